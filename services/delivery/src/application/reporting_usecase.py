# src/application/reporting_usecase.py
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from dateutil import parser

from src.application.errors import ValidationError
from src.application.store import EntityStore
from src.domain.entities import OrderStatus
from src.domain.reporting import TimeFilter, compute_dashboard_stats, to_local

# Nombres heredados del panel (daily/weekly/monthly)
FILTER_ALIASES = {
    "daily": TimeFilter.TODAY,
    "weekly": TimeFilter.WEEK,
    "monthly": TimeFilter.MONTH,
}


def _parse_filter(value: Optional[str]) -> TimeFilter:
    value = (value or TimeFilter.ALL.value).lower()
    if value in FILTER_ALIASES:
        return FILTER_ALIASES[value]
    try:
        return TimeFilter(value)
    except ValueError as e:
        raise ValidationError(f"Filtro de tiempo inválido: '{value}'") from e


def _parse_date(value: Optional[str], field_name: str) -> Optional[date]:
    if not value:
        return None
    try:
        return parser.isoparse(value).date()
    except (ValueError, OverflowError) as e:
        raise ValidationError(f"{field_name} debe ser una fecha ISO (YYYY-MM-DD)") from e


class DashboardStatsUseCase:
    """
    Caso de uso: Métricas del panel de administración para una ventana de tiempo.
    Las ventanas relativas se recalculan en cada llamada a partir de 'now'.
    """

    def __init__(self, store: EntityStore, now: Callable[[], datetime] = datetime.now):
        self.store = store
        self.now = now

    def execute(self, time_filter: Optional[str] = None, start: Optional[str] = None,
                end: Optional[str] = None) -> Dict[str, Any]:
        parsed_filter = _parse_filter(time_filter)
        start_date = _parse_date(start, "start")
        end_date = _parse_date(end, "end")

        snapshot = self.store.snapshot
        stats = compute_dashboard_stats(
            snapshot.orders,
            snapshot.couriers,
            snapshot.inventory,
            snapshot.categories,
            time_filter=parsed_filter,
            now=self.now(),
            start=start_date,
            end=end_date,
        )
        result = stats.to_dict()
        result["filter"] = parsed_filter.value
        return result


class CourierStatsUseCase:
    """
    Caso de uso: Resumen diario por repartidor (unidades entregadas hoy y
    unidades pendientes de entregar).
    """

    def __init__(self, store: EntityStore, now: Callable[[], datetime] = datetime.now):
        self.store = store
        self.now = now

    def execute(self) -> List[Dict[str, Any]]:
        snapshot = self.store.snapshot
        start_of_today = datetime.combine(self.now().date(), datetime.min.time())

        result = []
        for courier in snapshot.couriers:
            delivered_today = 0
            active_units = 0
            for order in snapshot.orders:
                if order.courier_id != courier.id:
                    continue
                units = sum(item.quantity for item in order.items)
                if order.status == OrderStatus.DELIVERED:
                    updated = to_local(order.updated_at)
                    if updated is not None and updated >= start_of_today:
                        delivered_today += units
                elif order.is_active:
                    active_units += units
            result.append({
                **courier.to_dict(),
                "todayDelivered": delivered_today,
                "activeLoad": active_units,
            })
        return result
