# src/domain/interfaces.py
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional


class PersistenceError(Exception):
    """Fallo del almacenamiento subyacente (BD o equivalente)."""
    pass


class PersistenceGateway(ABC):
    """
    Contrato (Interfaz) para el almacenamiento de las colecciones del negocio.
    Las filas viajan con la forma de registro camelCase (to_dict de las entidades);
    'table' es uno de: orders, customers, couriers, inventory, categories.
    La capa de Aplicación solo conoce esta Interfaz, no la implementación.
    """

    @abstractmethod
    def read_all(self, table: str) -> List[Dict[str, Any]]:
        """Recupera todas las filas de una colección."""
        pass

    @abstractmethod
    def read_one(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        """Recupera una fila por id, o None si no existe."""
        pass

    @abstractmethod
    def upsert(self, table: str, row: Dict[str, Any]) -> None:
        """Inserta la fila o la reemplaza si ya existe una con el mismo id."""
        pass

    @abstractmethod
    def update(self, table: str, row_id: str, changes: Dict[str, Any]) -> None:
        """Actualiza parcialmente la fila identificada por row_id."""
        pass

    @abstractmethod
    def delete(self, table: str, row_id: str) -> None:
        """Elimina la fila identificada por row_id."""
        pass
