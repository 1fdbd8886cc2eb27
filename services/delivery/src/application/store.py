# src/application/store.py
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from src.domain import lifecycle
from src.domain.entities import (
    CATEGORIES,
    COURIERS,
    CUSTOMERS,
    ENTITY_TYPES,
    INVENTORY,
    ORDERS,
    TABLES,
    Category,
    Courier,
    Customer,
    InventoryItem,
    Order,
    OrderStatus,
    StoreSnapshot,
    now_iso,
)
from src.domain.interfaces import PersistenceError, PersistenceGateway

logger = logging.getLogger(__name__)

NEW_ORDER = "new_order"
INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


@dataclass(frozen=True)
class StoreEvent:
    """Notificación de cambio emitida a los suscriptores del almacén."""
    kind: str
    table: str
    record: Dict[str, Any]
    origin: str = "local"


Listener = Callable[[StoreEvent], None]


class EntityStore:
    """
    Almacén compartido de pedidos, clientes, repartidores, inventario y categorías.

    Cada mutación construye un StoreSnapshot nuevo y lo reemplaza (copy-on-write).
    La persistencia es 'fire-and-forget': el snapshot en memoria se actualiza
    primero y un fallo del gateway solo se registra en el log, sin llegar al
    llamador. No hay control de versiones: la última escritura gana.
    """

    def __init__(self, gateway: Optional[PersistenceGateway] = None,
                 snapshot: Optional[StoreSnapshot] = None,
                 clock: Callable[[], str] = now_iso):
        self._gateway = gateway
        self._snapshot = snapshot or StoreSnapshot()
        self._clock = clock
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

    @classmethod
    def load(cls, gateway: PersistenceGateway, clock: Callable[[], str] = now_iso) -> "EntityStore":
        """Crea el almacén leyendo todas las colecciones del gateway."""
        collections = {}
        for table in TABLES:
            entity_cls = ENTITY_TYPES[table]
            collections[table] = tuple(entity_cls.from_dict(row) for row in gateway.read_all(table))
        logger.info("Almacén cargado: %s", {table: len(rows) for table, rows in collections.items()})
        return cls(gateway=gateway, snapshot=StoreSnapshot(**collections), clock=clock)

    @property
    def snapshot(self) -> StoreSnapshot:
        return self._snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registra un suscriptor; devuelve la función para darlo de baja."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # --- Ciclo de vida de pedidos ---

    def create_order(self, order: Order, customer_draft: Customer) -> Order:
        with self._lock:
            previous = self._snapshot
            self._snapshot, created, customer = lifecycle.create_order(
                previous, order, customer_draft, self._clock()
            )
            grew = len(self._snapshot.orders) > len(previous.orders)
            customer_kind = UPDATE if previous.find_customer(customer.id) else INSERT

        self._persist_upsert(ORDERS, created.to_dict())
        self._persist_upsert(CUSTOMERS, customer.to_dict())
        self._emit(StoreEvent(INSERT, ORDERS, created.to_dict()))
        self._emit(StoreEvent(customer_kind, CUSTOMERS, customer.to_dict()))
        if grew:
            self._emit(StoreEvent(NEW_ORDER, ORDERS, created.to_dict()))
        return created

    def update_order_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        with self._lock:
            self._snapshot, updated = lifecycle.update_order_status(
                self._snapshot, order_id, status, self._clock()
            )
        if updated is None:
            logger.info("Cambio de estado ignorado: pedido %s no existe", order_id)
            return None

        self._persist_update(ORDERS, updated.id, {"status": updated.status.value, "updatedAt": updated.updated_at})
        self._emit(StoreEvent(UPDATE, ORDERS, updated.to_dict()))
        return updated

    def reassign_courier(self, order_id: str, courier_id: str) -> Optional[Order]:
        with self._lock:
            previous = self._snapshot
            self._snapshot, updated = lifecycle.reassign_courier(
                previous, order_id, courier_id, self._clock()
            )
        if updated is None or self._snapshot is previous:
            logger.info("Reasignación ignorada: pedido %s / repartidor %s", order_id, courier_id)
            return updated

        self._persist_update(ORDERS, updated.id, {
            "courierId": updated.courier_id,
            "courierName": updated.courier_name,
            "updatedAt": updated.updated_at,
        })
        self._emit(StoreEvent(UPDATE, ORDERS, updated.to_dict()))
        logger.info("Pedido %s asignado a %s", updated.id, updated.courier_name or "(sin repartidor)")
        return updated

    # --- Gestión de catálogos ---

    def save_courier(self, courier: Courier) -> Courier:
        self._save(COURIERS, courier)
        return courier

    def save_customers(self, customers: Iterable[Customer]) -> List[Customer]:
        saved = list(customers)
        for customer in saved:
            self._save(CUSTOMERS, customer)
        return saved

    def save_inventory_item(self, item: InventoryItem) -> InventoryItem:
        self._save(INVENTORY, item)
        return item

    def delete_inventory_item(self, item_id: str) -> bool:
        return self._delete(INVENTORY, item_id)

    def save_category(self, category: Category) -> Category:
        self._save(CATEGORIES, category)
        return category

    def delete_category(self, category_id: str) -> bool:
        return self._delete(CATEGORIES, category_id)

    # --- Cambios remotos (flujo de notificaciones de la persistencia) ---

    def apply_remote_change(self, table: str, event_type: str, row: Dict[str, Any]) -> None:
        """
        Integra un cambio llegado de otro cliente. Las inserciones se deduplican
        por id (los pedidos se anteponen, el resto se agrega al final); las
        actualizaciones reemplazan por id. No se vuelve a persistir.
        """
        entity_cls = ENTITY_TYPES.get(table)
        if entity_cls is None:
            logger.warning("Cambio remoto para tabla desconocida: %s", table)
            return

        with self._lock:
            previous = self._snapshot
            rows = previous.collection(table)
            if event_type == DELETE:
                row_id = row.get("id")
                merged = tuple(r for r in rows if r.id != row_id)
                entity = None
            else:
                entity = entity_cls.from_dict(row)
                exists = any(r.id == entity.id for r in rows)
                if event_type == INSERT:
                    if exists:
                        return
                    merged = (entity,) + rows if table == ORDERS else rows + (entity,)
                elif event_type == UPDATE:
                    if not exists:
                        return
                    merged = tuple(entity if r.id == entity.id else r for r in rows)
                else:
                    logger.warning("Tipo de cambio remoto desconocido: %s", event_type)
                    return
            self._snapshot = replace(previous, **{table: merged})
            grew = table == ORDERS and len(self._snapshot.orders) > len(previous.orders)

        record = entity.to_dict() if entity is not None else dict(row)
        self._emit(StoreEvent(event_type, table, record, origin="remote"))
        if grew:
            self._emit(StoreEvent(NEW_ORDER, ORDERS, record, origin="remote"))

    # --- Auxiliares ---

    def _save(self, table: str, entity) -> None:
        with self._lock:
            rows = self._snapshot.collection(table)
            if any(r.id == entity.id for r in rows):
                merged = tuple(entity if r.id == entity.id else r for r in rows)
                kind = UPDATE
            else:
                merged = rows + (entity,)
                kind = INSERT
            self._snapshot = replace(self._snapshot, **{table: merged})
        self._persist_upsert(table, entity.to_dict())
        self._emit(StoreEvent(kind, table, entity.to_dict()))

    def _delete(self, table: str, row_id: str) -> bool:
        with self._lock:
            rows = self._snapshot.collection(table)
            remaining = tuple(r for r in rows if r.id != row_id)
            if len(remaining) == len(rows):
                return False
            self._snapshot = replace(self._snapshot, **{table: remaining})
        self._persist(lambda gateway: gateway.delete(table, row_id), table, row_id)
        self._emit(StoreEvent(DELETE, table, {"id": row_id}))
        return True

    def _persist_upsert(self, table: str, row: Dict[str, Any]) -> None:
        self._persist(lambda gateway: gateway.upsert(table, row), table, row.get("id"))

    def _persist_update(self, table: str, row_id: str, changes: Dict[str, Any]) -> None:
        self._persist(lambda gateway: gateway.update(table, row_id, changes), table, row_id)

    def _persist(self, action: Callable[[PersistenceGateway], None], table: str, row_id: Optional[str]) -> None:
        if self._gateway is None:
            return
        try:
            action(self._gateway)
        except PersistenceError:
            # El estado en memoria ya cambió; la escritura se pierde.
            logger.error("No se pudo persistir %s/%s", table, row_id, exc_info=True)

    def _emit(self, event: StoreEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.error("Fallo en suscriptor del almacén (%s %s)", event.kind, event.table, exc_info=True)
