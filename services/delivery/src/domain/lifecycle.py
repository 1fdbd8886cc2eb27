# src/domain/lifecycle.py
"""
Transiciones del ciclo de vida de pedidos.

Funciones puras: reciben un StoreSnapshot y devuelven uno nuevo junto con
las entidades afectadas. No validan la entrada (esa responsabilidad es de
la capa que llama) y los identificadores inexistentes no producen error,
solo dejan el snapshot como estaba.

El cambio de estado es libre: cualquier estado puede pasar a cualquier otro,
también desde Teslim Edildi o İptal.
"""
import random
import string
import time
from dataclasses import replace
from typing import Optional, Tuple

from .entities import (
    Customer,
    Order,
    OrderSource,
    OrderStatus,
    StoreSnapshot,
    normalize_phone,
    now_iso,
)

ORDER_ID_LENGTH = 6


def generate_order_id(source: OrderSource) -> str:
    prefix = "WEB" if source == OrderSource.WEB else "ORD"
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=ORDER_ID_LENGTH))
    return prefix + suffix


def generate_customer_id() -> str:
    return f"cust_{int(time.time() * 1000)}"


def upsert_customer(customers: Tuple[Customer, ...], draft: Customer,
                    timestamp: str) -> Tuple[Tuple[Customer, ...], Customer]:
    """
    Inserta o actualiza el cliente comparando los últimos 10 dígitos del teléfono.
    Con coincidencia se sobrescriben nombre, teléfono y dirección, y se suma
    un pedido; si no, se crea un registro nuevo con orderCount = 1.
    """
    key = normalize_phone(draft.phone)
    for index, existing in enumerate(customers):
        if existing.phone_key != key:
            continue
        updated = replace(
            existing,
            name=draft.name,
            phone=draft.phone,
            district=draft.district,
            neighborhood=draft.neighborhood,
            street=draft.street,
            building_no=draft.building_no,
            apartment_no=draft.apartment_no,
            order_count=(existing.order_count or 0) + 1,
            last_order_date=timestamp,
            last_note=draft.last_note or existing.last_note,
        )
        return customers[:index] + (updated,) + customers[index + 1:], updated

    created = replace(
        draft,
        id=draft.id or generate_customer_id(),
        order_count=1,
        last_order_date=timestamp,
    )
    return customers + (created,), created


def create_order(snapshot: StoreSnapshot, order: Order, customer_draft: Customer,
                 timestamp: Optional[str] = None) -> Tuple[StoreSnapshot, Order, Customer]:
    """Antepone el pedido (más reciente primero) y registra al cliente."""
    timestamp = timestamp or now_iso()
    order = replace(
        order,
        id=order.id or generate_order_id(order.source),
        created_at=order.created_at or timestamp,
        updated_at=order.updated_at or timestamp,
    )
    customers, customer = upsert_customer(snapshot.customers, customer_draft, timestamp)
    new_snapshot = replace(snapshot, orders=(order,) + snapshot.orders, customers=customers)
    return new_snapshot, order, customer


def _replace_order(snapshot: StoreSnapshot, updated: Order) -> StoreSnapshot:
    orders = tuple(updated if o.id == updated.id else o for o in snapshot.orders)
    return replace(snapshot, orders=orders)


def update_order_status(snapshot: StoreSnapshot, order_id: str, status: OrderStatus,
                        timestamp: Optional[str] = None) -> Tuple[StoreSnapshot, Optional[Order]]:
    order = snapshot.find_order(order_id)
    if order is None:
        return snapshot, None
    updated = replace(order, status=status, updated_at=timestamp or now_iso())
    return _replace_order(snapshot, updated), updated


def reassign_courier(snapshot: StoreSnapshot, order_id: str, courier_id: str,
                     timestamp: Optional[str] = None) -> Tuple[StoreSnapshot, Optional[Order]]:
    """
    Asigna el repartidor copiando su nombre en el pedido (copia puntual, no se
    sincroniza si el repartidor cambia de nombre después). Un courier_id vacío
    desasigna; uno que no existe deja el pedido intacto.
    """
    order = snapshot.find_order(order_id)
    if order is None:
        return snapshot, None

    if courier_id == "":
        updated = replace(order, courier_id=None, courier_name=None, updated_at=timestamp or now_iso())
        return _replace_order(snapshot, updated), updated

    courier = snapshot.find_courier(courier_id)
    if courier is None:
        return snapshot, order

    updated = replace(order, courier_id=courier.id, courier_name=courier.name,
                      updated_at=timestamp or now_iso())
    return _replace_order(snapshot, updated), updated
