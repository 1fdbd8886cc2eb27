# src/infrastructure/persistence/change_listener.py
import json
import logging
import select
import threading
from typing import Any, Callable, Dict, Optional

import psycopg2

from src.application.store import EntityStore
from src.domain.interfaces import PersistenceError, PersistenceGateway
from .db_connector import open_dedicated_connection
from .pg_gateway import COLUMN_MAPS, row_to_record

logger = logging.getLogger(__name__)


class PgChangeListener:
    """
    Escucha el canal LISTEN/NOTIFY que alimenta el trigger de resources/schema.sql
    y aplica cada cambio de fila sobre el almacén local. Corre en un hilo daemon;
    si la conexión se cae, reintenta tras 'retry_seconds'.
    """

    def __init__(self, store: EntityStore, channel: str,
                 gateway: Optional[PersistenceGateway] = None,
                 connect: Callable = open_dedicated_connection,
                 poll_timeout: float = 5.0, retry_seconds: float = 5.0):
        self.store = store
        self.channel = channel
        self.gateway = gateway
        self._connect = connect
        self._poll_timeout = poll_timeout
        self._retry_seconds = retry_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="pg-change-listener", daemon=True)
        self._thread.start()
        logger.info("Escuchando cambios en el canal '%s'", self.channel)

    def stop(self) -> None:
        self._stop.set()

    def handle_payload(self, payload: str) -> None:
        """
        Decodifica una notificación {table, type, record} y la aplica al almacén.
        Con 'partial' el registro trae solo el id y la fila se lee del gateway.
        """
        try:
            message = json.loads(payload)
            table = message["table"]
            event_type = str(message["type"]).lower()
            record = message.get("record") or {}
            partial = bool(message.get("partial"))
        except (ValueError, KeyError, TypeError, AttributeError):
            logger.warning("Notificación de cambio ilegible: %r", payload)
            return
        if table not in COLUMN_MAPS:
            logger.warning("Notificación para tabla desconocida: %s", table)
            return

        if partial and event_type != "delete":
            row = self._load_row(table, record.get("id"))
            if row is None:
                return
        else:
            row = row_to_record(table, record)

        try:
            self.store.apply_remote_change(table, event_type, row)
        except (ValueError, TypeError, KeyError) as e:
            # Una fila inválida no debe detener el hilo de escucha
            logger.warning("Cambio remoto descartado en %s (%s): %s", table, event_type, e)

    def _load_row(self, table: str, row_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if self.gateway is None or not row_id:
            logger.warning("Notificación parcial de %s/%s sin forma de releer la fila", table, row_id)
            return None
        try:
            row = self.gateway.read_one(table, row_id)
        except PersistenceError:
            logger.warning("No se pudo releer %s/%s tras una notificación parcial", table, row_id, exc_info=True)
            return None
        if row is None:
            logger.debug("La fila %s/%s ya no existe", table, row_id)
        return row

    def _run(self) -> None:
        while not self._stop.is_set():
            conn = None
            try:
                conn = self._connect()
                cursor = conn.cursor()
                cursor.execute(f"LISTEN {self.channel};")
                self._listen(conn)
            except psycopg2.Error as e:
                logger.error(f"Conexión de escucha perdida: {e}")
                self._stop.wait(self._retry_seconds)
            finally:
                if conn:
                    conn.close()

    def _listen(self, conn) -> None:
        while not self._stop.is_set():
            if select.select([conn], [], [], self._poll_timeout) == ([], [], []):
                continue
            conn.poll()
            while conn.notifies:
                notify = conn.notifies.pop(0)
                self.handle_payload(notify.payload)
