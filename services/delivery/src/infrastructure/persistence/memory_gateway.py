# src/infrastructure/persistence/memory_gateway.py
import copy
import logging
import threading
from typing import Any, Dict, List, Optional

from src.domain.entities import CATEGORIES, COURIERS, CUSTOMERS, INVENTORY, ORDERS, TABLES
from src.domain.interfaces import PersistenceError, PersistenceGateway

logger = logging.getLogger(__name__)

# Datos iniciales de una instalación nueva (mismos que resources/insert_data.sql)
DEFAULT_DATA: Dict[str, List[Dict[str, Any]]] = {
    ORDERS: [],
    CUSTOMERS: [
        {
            "id": "cust1", "phone": "05001112233", "name": "Ayşe Kaya", "district": "KARTAL",
            "neighborhood": "KORDONBOYU", "street": "Güneş Sk.", "buildingNo": "12", "apartmentNo": "4",
            "lastNote": "Zil bozuk, kapıya bırakın.", "orderCount": 5,
        },
    ],
    COURIERS: [
        {"id": "c1", "name": "Ahmet Yılmaz", "status": "active", "phone": "0555 111 22 33",
         "fullInventory": 20, "emptyInventory": 0, "serviceRegion": "Kordonboyu"},
        {"id": "c2", "name": "Mehmet Demir", "status": "busy", "phone": "0555 222 33 44",
         "fullInventory": 15, "emptyInventory": 5, "serviceRegion": "Uğur Mumcu"},
    ],
    INVENTORY: [
        {"id": "core-full", "name": "19L Dolu Damacana", "quantity": 450, "unit": "Adet", "costPrice": 45,
         "salePrice": 85, "isCore": True, "category": "su", "isActive": True},
        {"id": "core-empty", "name": "19L Boş Damacana", "quantity": 120, "unit": "Adet", "costPrice": 200,
         "salePrice": 0, "isCore": True, "category": "su", "isActive": True},
        {"id": "core-pump", "name": "Yedek Pompalar", "quantity": 35, "unit": "Adet", "costPrice": 80,
         "salePrice": 150, "isCore": True, "category": "ekipman", "isActive": True},
        {"id": "extra-1", "name": "0.5L Koli Su", "quantity": 80, "unit": "Koli", "costPrice": 90,
         "salePrice": 130, "category": "su", "isActive": True},
    ],
    CATEGORIES: [
        {"id": "su", "label": "SU", "icon": "droplet"},
        {"id": "ekipman", "label": "EKİPMAN", "icon": "faucet"},
        {"id": "aksesuar", "label": "AKSESUAR", "icon": "bottle-water"},
        {"id": "diger", "label": "DİĞER", "icon": "ellipsis-h"},
    ],
}


class InMemoryPersistenceGateway(PersistenceGateway):
    """
    Gateway en memoria del proceso. Sirve para desarrollo local sin base de
    datos y para las pruebas; los datos se pierden al reiniciar.
    """

    def __init__(self, data: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        source = DEFAULT_DATA if data is None else data
        self._tables = {table: copy.deepcopy(list(source.get(table, []))) for table in TABLES}
        self._lock = threading.Lock()

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        if table not in self._tables:
            raise PersistenceError(f"Tabla desconocida: {table}")
        return self._tables[table]

    def read_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._rows(table))

    def read_one(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for row in self._rows(table):
                if row.get("id") == row_id:
                    return copy.deepcopy(row)
        return None

    def upsert(self, table: str, row: Dict[str, Any]) -> None:
        if not row.get("id"):
            raise PersistenceError(f"Fila sin id para {table}")
        with self._lock:
            rows = self._rows(table)
            for index, existing in enumerate(rows):
                if existing.get("id") == row["id"]:
                    rows[index] = copy.deepcopy(row)
                    return
            if table == ORDERS:
                rows.insert(0, copy.deepcopy(row))
            else:
                rows.append(copy.deepcopy(row))

    def update(self, table: str, row_id: str, changes: Dict[str, Any]) -> None:
        with self._lock:
            for existing in self._rows(table):
                if existing.get("id") == row_id:
                    existing.update(copy.deepcopy(changes))
                    return
        logger.debug("update sin efecto: %s/%s no existe", table, row_id)

    def delete(self, table: str, row_id: str) -> None:
        with self._lock:
            rows = self._rows(table)
            rows[:] = [r for r in rows if r.get("id") != row_id]
