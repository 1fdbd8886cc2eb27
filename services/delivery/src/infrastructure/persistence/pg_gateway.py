# src/infrastructure/persistence/pg_gateway.py
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2 import extras, sql

from src.domain.entities import CATEGORIES, COURIERS, CUSTOMERS, INVENTORY, ORDERS
from src.domain.interfaces import PersistenceError, PersistenceGateway
from .db_connector import get_connection, release_connection

logger = logging.getLogger(__name__)

SCHEMA = "delivery"

# Campo del registro (camelCase) -> columna de la tabla
COLUMN_MAPS: Dict[str, Dict[str, str]] = {
    ORDERS: {
        "id": "id",
        "customerId": "customer_id",
        "customerName": "customer_name",
        "phone": "phone",
        "address": "address",
        "items": "items",
        "totalAmount": "total_amount",
        "courierId": "courier_id",
        "courierName": "courier_name",
        "status": "status",
        "source": "source",
        "note": "note",
        "paymentMethod": "payment_method",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    },
    CUSTOMERS: {
        "id": "id",
        "phone": "phone",
        "name": "name",
        "district": "district",
        "neighborhood": "neighborhood",
        "street": "street",
        "buildingNo": "building_no",
        "apartmentNo": "apartment_no",
        "lastNote": "last_note",
        "orderCount": "order_count",
        "lastOrderDate": "last_order_date",
    },
    COURIERS: {
        "id": "id",
        "name": "name",
        "phone": "phone",
        "status": "status",
        "fullInventory": "full_inventory",
        "emptyInventory": "empty_inventory",
        "serviceRegion": "service_region",
    },
    INVENTORY: {
        "id": "id",
        "name": "name",
        "quantity": "quantity",
        "unit": "unit",
        "costPrice": "cost_price",
        "salePrice": "sale_price",
        "isActive": "is_active",
        "isCore": "is_core",
        "category": "category",
        "imageUrl": "image_url",
    },
    CATEGORIES: {
        "id": "id",
        "label": "label",
        "icon": "icon",
    },
}

ORDER_BY = {
    ORDERS: "created_at DESC",
    CUSTOMERS: "name",
    COURIERS: "id",
    INVENTORY: "name",
    CATEGORIES: "id",
}

JSON_COLUMNS = {"items"}


def _columns(table: str) -> Dict[str, str]:
    try:
        return COLUMN_MAPS[table]
    except KeyError:
        raise PersistenceError(f"Tabla desconocida: {table}")


def _to_db_values(table: str, record: Dict[str, Any]) -> Dict[str, Any]:
    """Convierte un registro camelCase en {columna: valor} listo para psycopg2."""
    columns = _columns(table)
    values = {}
    for key, value in record.items():
        column = columns.get(key)
        if column is None:
            continue
        if column in JSON_COLUMNS:
            value = extras.Json(value or [])
        elif value == "" and column.endswith(("_at", "_date")):
            value = None
        values[column] = value
    return values


def _from_db_value(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.isoformat(timespec='milliseconds').replace('+00:00', 'Z')
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def row_to_record(table: str, row: Dict[str, Any]) -> Dict[str, Any]:
    """Convierte una fila de la BD (snake_case) en el registro camelCase de la entidad."""
    reverse = {column: key for key, column in _columns(table).items()}
    return {reverse.get(column, column): _from_db_value(value) for column, value in row.items()}


class PgPersistenceGateway(PersistenceGateway):
    """
    Implementación concreta que persiste las colecciones del negocio en
    PostgreSQL usando psycopg2. Cada operación usa su propia conexión del pool
    y su propia transacción.
    """

    def read_all(self, table: str) -> List[Dict[str, Any]]:
        columns = _columns(table)
        query = sql.SQL("SELECT {fields} FROM {table} ORDER BY " + ORDER_BY[table]).format(
            fields=sql.SQL(", ").join(sql.Identifier(c) for c in columns.values()),
            table=sql.Identifier(SCHEMA, table),
        )
        conn = None
        try:
            conn = get_connection()
            cursor = conn.cursor(cursor_factory=extras.RealDictCursor)
            cursor.execute(query)
            return [row_to_record(table, dict(row)) for row in cursor.fetchall()]
        except (psycopg2.Error, ConnectionError) as e:
            logger.error(f"ERROR de base de datos al leer {table}: {e}")
            raise PersistenceError(f"Error leyendo {table}") from e
        finally:
            if conn:
                release_connection(conn)

    def read_one(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        columns = _columns(table)
        query = sql.SQL("SELECT {fields} FROM {table} WHERE id = %s").format(
            fields=sql.SQL(", ").join(sql.Identifier(c) for c in columns.values()),
            table=sql.Identifier(SCHEMA, table),
        )
        conn = None
        try:
            conn = get_connection()
            cursor = conn.cursor(cursor_factory=extras.RealDictCursor)
            cursor.execute(query, (row_id,))
            row = cursor.fetchone()
            return row_to_record(table, dict(row)) if row else None
        except (psycopg2.Error, ConnectionError) as e:
            logger.error(f"ERROR de base de datos al leer {table}/{row_id}: {e}")
            raise PersistenceError(f"Error leyendo {table}") from e
        finally:
            if conn:
                release_connection(conn)

    def upsert(self, table: str, row: Dict[str, Any]) -> None:
        values = _to_db_values(table, row)
        if not values.get("id"):
            raise PersistenceError(f"Fila sin id para {table}")
        fields = list(values.keys())
        updates = [f for f in fields if f != "id"]
        query = sql.SQL(
            "INSERT INTO {table} ({fields}) VALUES ({placeholders}) "
            "ON CONFLICT (id) DO UPDATE SET {updates}"
        ).format(
            table=sql.Identifier(SCHEMA, table),
            fields=sql.SQL(", ").join(sql.Identifier(f) for f in fields),
            placeholders=sql.SQL(", ").join(sql.Placeholder() for _ in fields),
            updates=sql.SQL(", ").join(
                sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(f)) for f in updates
            ),
        )
        self._execute(table, query, [values[f] for f in fields])

    def update(self, table: str, row_id: str, changes: Dict[str, Any]) -> None:
        values = _to_db_values(table, changes)
        values.pop("id", None)
        if not values:
            return
        query = sql.SQL("UPDATE {table} SET {assignments} WHERE id = %s").format(
            table=sql.Identifier(SCHEMA, table),
            assignments=sql.SQL(", ").join(
                sql.SQL("{col} = %s").format(col=sql.Identifier(f)) for f in values
            ),
        )
        self._execute(table, query, list(values.values()) + [row_id])

    def delete(self, table: str, row_id: str) -> None:
        _columns(table)
        query = sql.SQL("DELETE FROM {table} WHERE id = %s").format(table=sql.Identifier(SCHEMA, table))
        self._execute(table, query, [row_id])

    def _execute(self, table: str, query, params: List[Any]) -> None:
        conn = None
        try:
            conn = get_connection()
            cursor = conn.cursor()
            cursor.execute(query, params)
            conn.commit()
        except (psycopg2.Error, ConnectionError) as e:
            logger.error(f"ERROR de base de datos al escribir en {table}: {e}")
            if conn:
                conn.rollback()
            raise PersistenceError(f"Error escribiendo en {table}") from e
        finally:
            if conn:
                release_connection(conn)
