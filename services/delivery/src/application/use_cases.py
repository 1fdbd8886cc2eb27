# src/application/use_cases.py
import logging
from typing import List, Dict, Any, Optional

from src.application.errors import ValidationError
from src.application.store import EntityStore
from src.domain.entities import (
    UNKNOWN_PRODUCT_NAME,
    Customer,
    Order,
    OrderItem,
    OrderSource,
    OrderStatus,
    PaymentMethod,
)
from src.domain.lifecycle import generate_customer_id
from src.domain.scoring import ranking_report, suggest_courier

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50


def parse_enum(enum_cls, value, field_name: str):
    """Convierte el valor recibido al Enum correspondiente o lanza ValidationError."""
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field_name} inválido: '{value}'. Valores permitidos: {allowed}") from e


def format_address(district: str, neighborhood: str, street: str, building_no: str, apartment_no: str) -> str:
    return f"{district}, {neighborhood}, {street} No:{building_no} D:{apartment_no}"


class PlaceOrderUseCase:
    """
    Caso de uso: Registrar un pedido desde el formulario de oficina o la tienda web.
    Valida los datos del formulario, resuelve productos y precios contra el
    inventario, elige repartidor y delega en el almacén (CreateOrder).
    """

    def __init__(self, store: EntityStore, default_district: str = "KARTAL"):
        self.store = store
        self.default_district = default_district

    def execute(self, data: Dict[str, Any]) -> Order:
        phone = (data.get("phone") or "").strip()
        name = (data.get("name") or "").strip()
        if not phone or not name:
            raise ValidationError("phone y name son obligatorios")

        snapshot = self.store.snapshot

        # 1. Resolver líneas contra el inventario (se descartan las que no tienen producto)
        items = []
        for raw in data.get("items") or []:
            if not isinstance(raw, dict):
                raise ValidationError("Cada línea debe ser un objeto con productId y quantity")
            product_id = raw.get("productId") or ""
            if not product_id:
                continue
            try:
                quantity = int(raw.get("quantity", 1))
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Cantidad inválida para el producto {product_id}") from e
            if quantity <= 0:
                raise ValidationError(f"Cantidad inválida para el producto {product_id}")
            product = snapshot.find_inventory_item(product_id)
            items.append(OrderItem(
                product_id=product_id,
                product_name=product.name if product else UNKNOWN_PRODUCT_NAME,
                quantity=quantity,
                price=product.sale_price if product else 0.0,
            ))
        if not items:
            raise ValidationError("El pedido debe tener al menos un producto")

        source = parse_enum(OrderSource, data.get("source") or OrderSource.PHONE.value, "source")
        payment_method = None
        if data.get("paymentMethod"):
            payment_method = parse_enum(PaymentMethod, data["paymentMethod"], "paymentMethod")

        district = (data.get("district") or self.default_district).upper()
        # La puntuación usa el barrio tal como llega: upper() convierte la ı en I
        raw_neighborhood = (data.get("neighborhood") or "").strip()
        neighborhood = raw_neighborhood.upper()
        street = data.get("street") or ""
        building_no = str(data.get("buildingNo") or "")
        apartment_no = str(data.get("apartmentNo") or "")
        note = data.get("note") or ""

        # 2. Repartidor: el indicado si existe, si no el mejor según la heurística
        courier = None
        if data.get("courierId"):
            courier = snapshot.find_courier(data["courierId"])
        if courier is None:
            courier = suggest_courier(snapshot.couriers, snapshot.orders, raw_neighborhood)

        # 3. Cliente: se reutiliza el id del cliente con el mismo teléfono
        existing = snapshot.find_customer_by_phone(phone)
        customer = Customer(
            id=existing.id if existing else generate_customer_id(),
            phone=phone,
            name=name,
            district=district,
            neighborhood=neighborhood,
            street=street,
            building_no=building_no,
            apartment_no=apartment_no,
            last_note=note,
        )

        order = Order(
            id="",
            customer_id=customer.id,
            customer_name=name,
            phone=phone,
            address=format_address(district, neighborhood, street, building_no, apartment_no),
            items=tuple(items),
            total_amount=sum(item.price * item.quantity for item in items),
            source=source,
            status=OrderStatus.PENDING,
            courier_id=courier.id if courier else None,
            courier_name=courier.name if courier else None,
            note=note,
            payment_method=payment_method,
        )
        created = self.store.create_order(order, customer)
        logger.info("Pedido %s creado (%s, %s items, repartidor %s)",
                    created.id, source.value, len(items), created.courier_name)
        return created


class UpdateOrderStatusUseCase:
    """Caso de uso: Cambiar el estado de un pedido. Sin restricciones de transición."""

    def __init__(self, store: EntityStore):
        self.store = store

    def execute(self, order_id: str, status_value: str) -> Optional[Order]:
        status = parse_enum(OrderStatus, status_value, "status")
        return self.store.update_order_status(order_id, status)


class ReassignCourierUseCase:
    """Caso de uso: Cambiar (o quitar, con id vacío) el repartidor de un pedido."""

    def __init__(self, store: EntityStore):
        self.store = store

    def execute(self, order_id: str, courier_id: Optional[str]) -> Optional[Order]:
        return self.store.reassign_courier(order_id, courier_id or "")


class ListOrdersUseCase:
    """
    Caso de uso: Listar pedidos del más reciente al más antiguo,
    con filtros opcionales por estado y canal.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def execute(self, status: Optional[str] = None, source: Optional[str] = None,
                limit: int = DEFAULT_LIST_LIMIT) -> List[Dict[str, Any]]:
        orders = self.store.snapshot.orders
        if status:
            wanted_status = parse_enum(OrderStatus, status, "status")
            orders = [o for o in orders if o.status == wanted_status]
        if source:
            wanted_source = parse_enum(OrderSource, source, "source")
            orders = [o for o in orders if o.source == wanted_source]
        if limit < 0:
            raise ValidationError(f"limit inválido: {limit}")
        return [order.to_dict() for order in list(orders)[:limit]]


class GetOrderUseCase:
    def __init__(self, store: EntityStore):
        self.store = store

    def execute(self, order_id: str) -> Optional[Dict[str, Any]]:
        order = self.store.snapshot.find_order(order_id)
        return order.to_dict() if order else None


class RankCouriersUseCase:
    """Caso de uso: Ranking de repartidores para un barrio (selector de asignación)."""

    def __init__(self, store: EntityStore):
        self.store = store

    def execute(self, neighborhood: Optional[str] = "") -> List[Dict[str, Any]]:
        snapshot = self.store.snapshot
        return ranking_report(snapshot.couriers, snapshot.orders, neighborhood or "")
