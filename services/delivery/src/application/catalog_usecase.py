# src/application/catalog_usecase.py
import logging
import time
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.application.errors import EntityNotFoundError, ProtectedEntityError, ValidationError
from src.application.store import EntityStore
from src.application.use_cases import parse_enum
from src.domain.entities import (
    Category,
    Courier,
    CourierStatus,
    Customer,
    InventoryItem,
    OrderStatus,
    normalize_phone,
    parse_flag,
)
from src.domain.reporting import to_local

logger = logging.getLogger(__name__)

# Columnas de la importación masiva de clientes, en orden
IMPORT_COLUMNS = ("name", "phone", "district", "neighborhood", "street", "building_no", "apartment_no")
_EPOCH = datetime.min


def _millis() -> int:
    return int(time.time() * 1000)


def _as_int(value, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field_name} debe ser un número entero") from e


def _as_float(value, field_name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field_name} debe ser numérico") from e


def _check_item_numbers(data: Dict[str, Any]) -> None:
    _as_int(data.get("quantity") or 0, "quantity")
    _as_float(data.get("costPrice") or 0, "costPrice")
    _as_float(data.get("salePrice") or 0, "salePrice")
    for flag in ("isActive", "isCore"):
        try:
            parse_flag(data.get(flag), False)
        except ValueError as e:
            raise ValidationError(f"{flag} debe ser true o false") from e


class ManageCouriersUseCase:
    """Caso de uso: Alta, edición y reporte de stock de los repartidores."""

    def __init__(self, store: EntityStore):
        self.store = store

    def list(self) -> List[Dict[str, Any]]:
        return [courier.to_dict() for courier in self.store.snapshot.couriers]

    def _get(self, courier_id: str) -> Courier:
        courier = self.store.snapshot.find_courier(courier_id)
        if courier is None:
            raise EntityNotFoundError(f"Repartidor {courier_id} no encontrado")
        return courier

    def create(self, data: Dict[str, Any]) -> Courier:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("name es obligatorio")
        courier = Courier(
            id=f"c{_millis()}",
            name=name,
            phone=data.get("phone") or "",
            status=parse_enum(CourierStatus, data.get("status") or CourierStatus.ACTIVE.value, "status"),
            full_inventory=_as_int(data.get("fullInventory", 0), "fullInventory"),
            empty_inventory=_as_int(data.get("emptyInventory", 0), "emptyInventory"),
            service_region=data.get("serviceRegion") or "",
        )
        logger.info("Repartidor %s creado (%s)", courier.id, courier.name)
        return self.store.save_courier(courier)

    def update(self, courier_id: str, data: Dict[str, Any]) -> Courier:
        """Edición de nombre, teléfono, región y estado. Los pedidos conservan el nombre anterior."""
        courier = self._get(courier_id)
        changes = {}
        if "name" in data:
            if not (data["name"] or "").strip():
                raise ValidationError("name no puede estar vacío")
            changes["name"] = data["name"].strip()
        if "phone" in data:
            changes["phone"] = data["phone"] or ""
        if "serviceRegion" in data:
            changes["service_region"] = data["serviceRegion"] or ""
        if "status" in data:
            changes["status"] = parse_enum(CourierStatus, data["status"], "status")
        return self.store.save_courier(replace(courier, **changes))

    def report_inventory(self, courier_id: str, full_inventory, empty_inventory) -> Courier:
        """Stock de damajuanas llenas/vacías que el repartidor declara llevar."""
        courier = self._get(courier_id)
        updated = replace(
            courier,
            full_inventory=_as_int(full_inventory, "fullInventory"),
            empty_inventory=_as_int(empty_inventory, "emptyInventory"),
        )
        return self.store.save_courier(updated)


class ManageCustomersUseCase:
    """Caso de uso: Consulta, historial e importación masiva de clientes."""

    def __init__(self, store: EntityStore):
        self.store = store

    def list(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        customers = self.store.snapshot.customers
        if search:
            term = search.lower()
            customers = [c for c in customers if term in c.name.lower() or search in c.phone]
        ordered = sorted(customers, key=lambda c: c.order_count or 0, reverse=True)
        return [customer.to_dict() for customer in ordered]

    def history(self, customer_id: str) -> Dict[str, Any]:
        """Pedidos del cliente (por sufijo de teléfono), total gastado y último pedido."""
        snapshot = self.store.snapshot
        customer = snapshot.find_customer(customer_id)
        if customer is None:
            raise EntityNotFoundError(f"Cliente {customer_id} no encontrado")

        key = customer.phone_key
        orders = [o for o in snapshot.orders if normalize_phone(o.phone) == key]
        orders.sort(key=lambda o: to_local(o.created_at) or _EPOCH, reverse=True)
        total_spent = sum(o.total_amount for o in orders if o.status == OrderStatus.DELIVERED)
        return {
            "customer": customer.to_dict(),
            "orders": [o.to_dict() for o in orders],
            "totalSpent": total_spent,
            "lastOrder": orders[0].to_dict() if orders else None,
        }

    def import_text(self, text: str) -> List[Customer]:
        """
        Importa clientes desde líneas separadas por comas:
        ad, telefon, ilçe, mahalle, sokak, bina no, daire no.
        Las líneas sin nombre o teléfono se ignoran.
        """
        base = _millis()
        lines = [line for line in (text or "").split("\n") if line.strip()]
        imported = []
        for index, line in enumerate(lines):
            values = dict(zip(IMPORT_COLUMNS, (part.strip() for part in line.split(","))))
            if not values.get("name") or not values.get("phone"):
                continue
            imported.append(Customer(
                id=f"imp_{base}_{index}",
                name=values["name"],
                phone=values["phone"],
                district=values.get("district", ""),
                neighborhood=values.get("neighborhood", ""),
                street=values.get("street", ""),
                building_no=values.get("building_no", ""),
                apartment_no=values.get("apartment_no", ""),
                order_count=0,
            ))
        logger.info("Importación de clientes: %s de %s líneas", len(imported), len(lines))
        return self.store.save_customers(imported)


class ManageStockUseCase:
    """
    Caso de uso: Gestión de inventario y categorías.
    Los ítems 'core' no se borran y una categoría en uso tampoco.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    # --- Inventario ---

    def list_inventory(self, category: Optional[str] = None, search: Optional[str] = None) -> List[Dict[str, Any]]:
        items = self.store.snapshot.inventory
        if category and category != "all":
            items = [i for i in items if i.category == category]
        if search:
            term = search.lower()
            items = [i for i in items if term in i.name.lower()]
        return [item.to_dict() for item in items]

    def create_item(self, data: Dict[str, Any]) -> InventoryItem:
        if not (data.get("name") or "").strip():
            raise ValidationError("name es obligatorio")
        _check_item_numbers(data)
        item = InventoryItem.from_dict({**data, "id": f"inv-{_millis()}"})
        return self.store.save_inventory_item(item)

    def update_item(self, item_id: str, data: Dict[str, Any]) -> InventoryItem:
        current = self.store.snapshot.find_inventory_item(item_id)
        if current is None:
            raise EntityNotFoundError(f"Producto {item_id} no encontrado")
        merged = {**current.to_dict(), **data, "id": item_id}
        if not (merged.get("name") or "").strip():
            raise ValidationError("name no puede estar vacío")
        _check_item_numbers(merged)
        return self.store.save_inventory_item(InventoryItem.from_dict(merged))

    def delete_item(self, item_id: str) -> None:
        item = self.store.snapshot.find_inventory_item(item_id)
        if item is None:
            raise EntityNotFoundError(f"Producto {item_id} no encontrado")
        if item.is_core:
            raise ProtectedEntityError(f"{item.name} es un ítem principal y no se puede eliminar")
        self.store.delete_inventory_item(item_id)

    # --- Categorías ---

    def list_categories(self) -> List[Dict[str, Any]]:
        return [category.to_dict() for category in self.store.snapshot.categories]

    def create_category(self, data: Dict[str, Any]) -> Category:
        label = (data.get("label") or "").strip()
        if not label:
            raise ValidationError("label es obligatorio")
        category = Category(id=data.get("id") or f"cat-{_millis()}", label=label.upper(), icon=data.get("icon") or "")
        if self.store.snapshot.find_category(category.id) is not None:
            raise ValidationError(f"La categoría {category.id} ya existe")
        return self.store.save_category(category)

    def update_category(self, category_id: str, data: Dict[str, Any]) -> Category:
        current = self.store.snapshot.find_category(category_id)
        if current is None:
            raise EntityNotFoundError(f"Categoría {category_id} no encontrada")
        label = data.get("label", current.label)
        if not (label or "").strip():
            raise ValidationError("label no puede estar vacío")
        updated = replace(current, label=label.strip().upper(), icon=data.get("icon", current.icon) or "")
        return self.store.save_category(updated)

    def delete_category(self, category_id: str) -> None:
        snapshot = self.store.snapshot
        if snapshot.find_category(category_id) is None:
            raise EntityNotFoundError(f"Categoría {category_id} no encontrada")
        in_use = [item.name for item in snapshot.inventory if item.category == category_id]
        if in_use:
            raise ProtectedEntityError(
                f"La categoría {category_id} tiene {len(in_use)} producto(s) asociados y no se puede eliminar"
            )
        self.store.delete_category(category_id)
