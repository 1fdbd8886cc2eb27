# src/domain/entities.py
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, Dict, Any


class OrderStatus(str, Enum):
    """Estados del ciclo de vida de un pedido (valores persistidos)."""
    PENDING = "Bekliyor"
    ON_WAY = "Yolda"
    DELIVERED = "Teslim Edildi"
    CANCELLED = "İptal"


# Estados que cuentan como carga activa de un repartidor
ACTIVE_STATUSES = (OrderStatus.PENDING, OrderStatus.ON_WAY)


class OrderSource(str, Enum):
    """Canal por el que llegó el pedido."""
    WEB = "Web/Müşteri"
    PHONE = "Telefon"
    GETIR = "Getir"
    TRENDYOL = "Trendyol"
    YEMEKSEPETI = "Yemeksepeti"
    AI_PHONE = "telefon-robot"
    WHATSAPP = "whatsapp"


class PaymentMethod(str, Enum):
    CASH = "Nakit"
    POS = "POS"
    NOT_COLLECTED = "Alınmadı"


class CourierStatus(str, Enum):
    ACTIVE = "active"
    BUSY = "busy"
    OFFLINE = "offline"


# Nombres de tabla/colección usados por la persistencia y el flujo de cambios
ORDERS = "orders"
CUSTOMERS = "customers"
COURIERS = "couriers"
INVENTORY = "inventory"
CATEGORIES = "categories"
TABLES = (ORDERS, CUSTOMERS, COURIERS, INVENTORY, CATEGORIES)

UNKNOWN_PRODUCT_NAME = "Bilinmeyen Ürün"
DEFAULT_CATEGORY_ID = "diger"
DEFAULT_CATEGORY_LABEL = "DİĞER"


def now_iso() -> str:
    """Marca de tiempo ISO-8601 en UTC con milisegundos (formato 'Z')."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def normalize_phone(phone: Optional[str]) -> str:
    """
    Clave de identidad del cliente: los últimos 10 dígitos del teléfono.
    Tolera prefijos de país (+90), ceros iniciales, espacios y guiones.
    """
    return re.sub(r"\D", "", phone or "")[-10:]


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _get(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Lee una clave camelCase aceptando también su forma snake_case (columnas de BD)."""
    if key in data:
        return data[key]
    return data.get(_snake(key), default)


def parse_flag(value: Any, default: bool) -> bool:
    """Booleano desde JSON o BD; acepta también las cadenas 'true'/'false'."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"Valor booleano inválido: {value!r}")


def _optional_enum(enum_cls, value):
    if value in (None, ""):
        return None
    return enum_cls(value)


@dataclass(frozen=True)
class OrderItem:
    """Línea de producto dentro de un pedido."""
    product_id: str
    product_name: str
    quantity: int
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=_get(data, "productId") or "",
            product_name=_get(data, "productName") or "",
            quantity=int(_get(data, "quantity", 1) or 0),
            price=float(_get(data, "price", 0) or 0),
        )


@dataclass(frozen=True)
class Order:
    """Entidad central de Pedido. Un id vacío significa 'aún no asignado'."""
    id: str
    customer_id: str
    customer_name: str
    phone: str
    address: str
    items: Tuple[OrderItem, ...]
    total_amount: float
    source: OrderSource
    status: OrderStatus = OrderStatus.PENDING
    courier_id: Optional[str] = None
    courier_name: Optional[str] = None
    note: str = ""
    payment_method: Optional[PaymentMethod] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "phone": self.phone,
            "address": self.address,
            "items": [item.to_dict() for item in self.items],
            "totalAmount": self.total_amount,
            "courierId": self.courier_id,
            "courierName": self.courier_name,
            "status": self.status.value,
            "source": self.source.value,
            "note": self.note,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        # paymentMethod se omite cuando no se ha registrado
        if self.payment_method is not None:
            data["paymentMethod"] = self.payment_method.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        return cls(
            id=_get(data, "id") or "",
            customer_id=_get(data, "customerId") or "",
            customer_name=_get(data, "customerName") or "",
            phone=_get(data, "phone") or "",
            address=_get(data, "address") or "",
            items=tuple(OrderItem.from_dict(item) for item in (_get(data, "items") or [])),
            total_amount=float(_get(data, "totalAmount", 0) or 0),
            source=OrderSource(_get(data, "source") or OrderSource.PHONE.value),
            status=OrderStatus(_get(data, "status") or OrderStatus.PENDING.value),
            courier_id=_get(data, "courierId") or None,
            courier_name=_get(data, "courierName") or None,
            note=_get(data, "note") or "",
            payment_method=_optional_enum(PaymentMethod, _get(data, "paymentMethod")),
            created_at=str(_get(data, "createdAt") or ""),
            updated_at=str(_get(data, "updatedAt") or ""),
        )


@dataclass(frozen=True)
class Customer:
    """Perfil de destinatario; su identidad real es el teléfono normalizado."""
    id: str
    phone: str
    name: str
    district: str = ""
    neighborhood: str = ""
    street: str = ""
    building_no: str = ""
    apartment_no: str = ""
    last_note: str = ""
    order_count: int = 0
    last_order_date: Optional[str] = None

    @property
    def phone_key(self) -> str:
        return normalize_phone(self.phone)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "phone": self.phone,
            "name": self.name,
            "district": self.district,
            "neighborhood": self.neighborhood,
            "street": self.street,
            "buildingNo": self.building_no,
            "apartmentNo": self.apartment_no,
            "lastNote": self.last_note,
            "orderCount": self.order_count,
            "lastOrderDate": self.last_order_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Customer":
        return cls(
            id=_get(data, "id") or "",
            phone=_get(data, "phone") or "",
            name=_get(data, "name") or "",
            district=_get(data, "district") or "",
            neighborhood=_get(data, "neighborhood") or "",
            street=_get(data, "street") or "",
            building_no=str(_get(data, "buildingNo") or ""),
            apartment_no=str(_get(data, "apartmentNo") or ""),
            last_note=_get(data, "lastNote") or "",
            order_count=int(_get(data, "orderCount", 0) or 0),
            last_order_date=_get(data, "lastOrderDate") or None,
        )


@dataclass(frozen=True)
class Courier:
    """Repartidor. serviceRegion es texto libre comparado contra barrios."""
    id: str
    name: str
    phone: str = ""
    status: CourierStatus = CourierStatus.ACTIVE
    full_inventory: int = 0
    empty_inventory: int = 0
    service_region: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "status": self.status.value,
            "fullInventory": self.full_inventory,
            "emptyInventory": self.empty_inventory,
            "serviceRegion": self.service_region,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Courier":
        return cls(
            id=_get(data, "id") or "",
            name=_get(data, "name") or "",
            phone=_get(data, "phone") or "",
            status=CourierStatus(_get(data, "status") or CourierStatus.ACTIVE.value),
            full_inventory=int(_get(data, "fullInventory", 0) or 0),
            empty_inventory=int(_get(data, "emptyInventory", 0) or 0),
            service_region=_get(data, "serviceRegion") or "",
        )


@dataclass(frozen=True)
class InventoryItem:
    """Producto vendible o activo de stock. Los ítems 'core' no se pueden borrar."""
    id: str
    name: str
    quantity: int = 0
    unit: str = "Adet"
    cost_price: float = 0.0
    sale_price: float = 0.0
    is_active: bool = True
    is_core: bool = False
    category: str = DEFAULT_CATEGORY_ID
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "costPrice": self.cost_price,
            "salePrice": self.sale_price,
            "isActive": self.is_active,
            "isCore": self.is_core,
            "category": self.category,
            "imageUrl": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InventoryItem":
        return cls(
            id=_get(data, "id") or "",
            name=_get(data, "name") or "",
            quantity=int(_get(data, "quantity", 0) or 0),
            unit=_get(data, "unit") or "Adet",
            cost_price=float(_get(data, "costPrice", 0) or 0),
            sale_price=float(_get(data, "salePrice", 0) or 0),
            is_active=parse_flag(_get(data, "isActive"), True),
            is_core=parse_flag(_get(data, "isCore"), False),
            category=_get(data, "category") or DEFAULT_CATEGORY_ID,
            image_url=_get(data, "imageUrl") or None,
        )


@dataclass(frozen=True)
class Category:
    id: str
    label: str
    icon: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "icon": self.icon}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=_get(data, "id") or "",
            label=_get(data, "label") or "",
            icon=_get(data, "icon") or "",
        )


ENTITY_TYPES = {
    ORDERS: Order,
    CUSTOMERS: Customer,
    COURIERS: Courier,
    INVENTORY: InventoryItem,
    CATEGORIES: Category,
}


@dataclass(frozen=True)
class StoreSnapshot:
    """
    Estado completo e inmutable del almacén. Cada mutación produce un
    snapshot nuevo; los pedidos se mantienen del más reciente al más antiguo.
    """
    orders: Tuple[Order, ...] = field(default_factory=tuple)
    customers: Tuple[Customer, ...] = field(default_factory=tuple)
    couriers: Tuple[Courier, ...] = field(default_factory=tuple)
    inventory: Tuple[InventoryItem, ...] = field(default_factory=tuple)
    categories: Tuple[Category, ...] = field(default_factory=tuple)

    def collection(self, table: str) -> tuple:
        return getattr(self, table)

    def find_order(self, order_id: str) -> Optional[Order]:
        return next((o for o in self.orders if o.id == order_id), None)

    def find_courier(self, courier_id: str) -> Optional[Courier]:
        return next((c for c in self.couriers if c.id == courier_id), None)

    def find_customer(self, customer_id: str) -> Optional[Customer]:
        return next((c for c in self.customers if c.id == customer_id), None)

    def find_customer_by_phone(self, phone: str) -> Optional[Customer]:
        key = normalize_phone(phone)
        return next((c for c in self.customers if c.phone_key == key), None)

    def find_inventory_item(self, item_id: str) -> Optional[InventoryItem]:
        return next((i for i in self.inventory if i.id == item_id), None)

    def find_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)
