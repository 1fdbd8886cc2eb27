# src/domain/reporting.py
"""Proyección de lectura con las métricas del panel de administración."""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dateutil import parser

from .entities import (
    DEFAULT_CATEGORY_ID,
    DEFAULT_CATEGORY_LABEL,
    Category,
    Courier,
    InventoryItem,
    Order,
    OrderItem,
    OrderSource,
    OrderStatus,
)

DEFAULT_REGION = "Merkez"
TOP_REGIONS_LIMIT = 5


class TimeFilter(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    CUSTOM = "custom"
    ALL = "all"


def to_local(timestamp: Optional[str]) -> Optional[datetime]:
    """Convierte un ISO-8601 a hora local sin zona. Devuelve None si no se puede leer."""
    if not timestamp:
        return None
    try:
        parsed = parser.isoparse(timestamp)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def resolve_window(time_filter: TimeFilter, now: datetime,
                   start: Optional[date] = None,
                   end: Optional[date] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Límites [desde, hasta] del filtro, relativos al instante de evaluación.
    None en un extremo significa 'sin límite'.
    """
    if time_filter == TimeFilter.TODAY:
        return datetime.combine(now.date(), time.min), None
    if time_filter == TimeFilter.WEEK:
        return now - timedelta(days=7), None
    if time_filter == TimeFilter.MONTH:
        return now - timedelta(days=30), None
    if time_filter == TimeFilter.CUSTOM:
        start = start or now.date()
        end = end or now.date()
        return datetime.combine(start, time.min), datetime.combine(end, time(23, 59, 59, 999000))
    return None, None


def filter_orders(orders: Sequence[Order], time_filter: TimeFilter, now: datetime,
                  start: Optional[date] = None, end: Optional[date] = None) -> List[Order]:
    if time_filter == TimeFilter.ALL:
        return list(orders)
    lower, upper = resolve_window(time_filter, now, start, end)
    selected = []
    for order in orders:
        created = to_local(order.created_at)
        if created is None:
            continue
        if lower is not None and created < lower:
            continue
        if upper is not None and created > upper:
            continue
        selected.append(order)
    return selected


def extract_region(address: str) -> str:
    """Barrio = segundo segmento de la dirección separada por comas."""
    parts = (address or "").split(",")
    if len(parts) > 1 and parts[1].strip():
        return parts[1].strip()
    return DEFAULT_REGION


def _cost_item(item: OrderItem, inventory: Sequence[InventoryItem]) -> Optional[InventoryItem]:
    by_id = next((i for i in inventory if i.id == item.product_id), None)
    if by_id is not None:
        return by_id
    return next((i for i in inventory if i.name == item.product_name), None)


@dataclass
class DashboardStats:
    total_revenue: float = 0.0
    total_cost: float = 0.0
    net_profit: float = 0.0
    margin: float = 0.0
    delivered_count: int = 0
    pending_count: int = 0
    on_way_count: int = 0
    cancelled_count: int = 0
    total_count: int = 0
    courier_performance: List[Dict[str, Any]] = field(default_factory=list)
    top_regions: List[Tuple[str, int]] = field(default_factory=list)
    category_sales: Dict[str, float] = field(default_factory=dict)
    source_stats: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRevenue": self.total_revenue,
            "totalCost": self.total_cost,
            "netProfit": self.net_profit,
            "margin": self.margin,
            "deliveredCount": self.delivered_count,
            "pendingCount": self.pending_count,
            "onWayCount": self.on_way_count,
            "cancelledCount": self.cancelled_count,
            "totalCount": self.total_count,
            "courierPerformance": self.courier_performance,
            "topRegions": [{"region": region, "count": count} for region, count in self.top_regions],
            "categorySales": self.category_sales,
            "sourceStats": self.source_stats,
        }


def compute_dashboard_stats(orders: Sequence[Order], couriers: Sequence[Courier],
                            inventory: Sequence[InventoryItem], categories: Sequence[Category],
                            time_filter: TimeFilter = TimeFilter.ALL,
                            now: Optional[datetime] = None,
                            start: Optional[date] = None,
                            end: Optional[date] = None) -> DashboardStats:
    """
    Calcula las métricas sobre los pedidos dentro de la ventana de tiempo.
    Ingresos, costos y ventas por categoría solo cuentan pedidos entregados;
    regiones y canales cuentan todos los pedidos filtrados.
    """
    now = now or datetime.now()
    filtered = filter_orders(orders, time_filter, now, start, end)
    delivered = [o for o in filtered if o.status == OrderStatus.DELIVERED]

    stats = DashboardStats()
    stats.total_count = len(filtered)
    stats.delivered_count = len(delivered)
    stats.pending_count = sum(1 for o in filtered if o.status == OrderStatus.PENDING)
    stats.on_way_count = sum(1 for o in filtered if o.status == OrderStatus.ON_WAY)
    stats.cancelled_count = sum(1 for o in filtered if o.status == OrderStatus.CANCELLED)

    stats.total_revenue = sum(o.total_amount for o in delivered)
    total_cost = 0.0
    for order in delivered:
        for item in order.items:
            inv_item = _cost_item(item, inventory)
            if inv_item is not None:
                total_cost += inv_item.cost_price * item.quantity
    stats.total_cost = total_cost
    stats.net_profit = stats.total_revenue - total_cost
    stats.margin = (stats.net_profit / stats.total_revenue) * 100 if stats.total_revenue > 0 else 0

    # Rendimiento por repartidor
    performance = []
    for courier in couriers:
        courier_orders = [o for o in delivered if o.courier_id == courier.id]
        performance.append({
            "id": courier.id,
            "name": courier.name,
            "count": len(courier_orders),
            "revenue": sum(o.total_amount for o in courier_orders),
        })
    stats.courier_performance = sorted(performance, key=lambda p: p["revenue"], reverse=True)

    # Distribución por barrio
    region_map: Dict[str, int] = {}
    for order in filtered:
        region = extract_region(order.address)
        region_map[region] = region_map.get(region, 0) + 1
    stats.top_regions = sorted(region_map.items(), key=lambda entry: entry[1], reverse=True)[:TOP_REGIONS_LIMIT]

    # Ventas por categoría
    labels: Dict[str, str] = {}
    for category in categories:
        labels.setdefault(category.id, category.label)
    products: Dict[str, InventoryItem] = {}
    for product in inventory:
        products.setdefault(product.id, product)
    category_sales: Dict[str, float] = {}
    for order in delivered:
        for item in order.items:
            inv_item = products.get(item.product_id)
            category_id = (inv_item.category if inv_item is not None else None) or DEFAULT_CATEGORY_ID
            label = labels.get(category_id) or DEFAULT_CATEGORY_LABEL
            category_sales[label] = category_sales.get(label, 0) + item.price * item.quantity
    stats.category_sales = category_sales

    # Estadísticas por canal de origen
    for source in OrderSource:
        source_orders = [o for o in filtered if o.source == source]
        source_delivered = [o for o in source_orders if o.status == OrderStatus.DELIVERED]
        stats.source_stats[source.value] = {
            "count": len(source_orders),
            "delivered": len(source_delivered),
            "revenue": sum(o.total_amount for o in source_delivered),
        }

    return stats
