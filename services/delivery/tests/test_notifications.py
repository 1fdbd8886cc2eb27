from src.application.notifications import NewOrderNotifier
from src.application.store import INSERT, NEW_ORDER, StoreEvent
from src.application.use_cases import PlaceOrderUseCase


def test_only_new_order_events_are_kept():
    notifier = NewOrderNotifier()
    record = {"id": "ORD1", "customerName": "Ayşe", "totalAmount": 170.0}

    notifier(StoreEvent(INSERT, "orders", record))
    notifier(StoreEvent(NEW_ORDER, "orders", record, origin="remote"))

    assert notifier.recent() == [{
        "title": "YENİ SİPARİŞ! 🔔",
        "message": "Ayşe - 170.0₺ değerinde sipariş alındı.",
        "orderId": "ORD1",
        "origin": "remote",
    }]


def test_keeps_latest_first_with_limit():
    notifier = NewOrderNotifier(max_items=2)
    for i in range(3):
        notifier(StoreEvent(NEW_ORDER, "orders", {"id": f"ORD{i}", "customerName": "X", "totalAmount": 1}))
    assert [n["orderId"] for n in notifier.recent()] == ["ORD2", "ORD1"]


def test_subscribed_to_store(store):
    notifier = NewOrderNotifier()
    store.subscribe(notifier)

    created = PlaceOrderUseCase(store).execute({
        "phone": "05551112233", "name": "Zeynep", "items": [{"productId": "core-full", "quantity": 1}],
    })

    assert notifier.recent()[0]["orderId"] == created.id
    assert notifier.recent()[0]["origin"] == "local"
