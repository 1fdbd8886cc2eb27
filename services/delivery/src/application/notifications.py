# src/application/notifications.py
import logging
from collections import deque
from typing import Any, Deque, Dict, List

from src.application.store import NEW_ORDER, StoreEvent

logger = logging.getLogger(__name__)


class NewOrderNotifier:
    """
    Suscriptor del almacén que avisa de cada pedido nuevo (el aviso 'YENİ SİPARİŞ'
    del panel de oficina) y guarda los últimos avisos para consultarlos por API.
    """

    def __init__(self, max_items: int = 20):
        self._recent: Deque[Dict[str, Any]] = deque(maxlen=max_items)

    def __call__(self, event: StoreEvent) -> None:
        if event.kind != NEW_ORDER:
            return
        record = event.record
        notification = {
            "title": "YENİ SİPARİŞ! 🔔",
            "message": f"{record.get('customerName')} - {record.get('totalAmount')}₺ değerinde sipariş alındı.",
            "orderId": record.get("id"),
            "origin": event.origin,
        }
        self._recent.appendleft(notification)
        logger.info("%s %s", notification["title"], notification["message"])

    def recent(self) -> List[Dict[str, Any]]:
        return list(self._recent)
