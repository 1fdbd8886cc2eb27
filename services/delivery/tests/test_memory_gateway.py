import pytest

from src.domain.interfaces import PersistenceError
from src.infrastructure.persistence.memory_gateway import DEFAULT_DATA, InMemoryPersistenceGateway


def test_seeded_with_defaults():
    gateway = InMemoryPersistenceGateway()
    assert [c["label"] for c in gateway.read_all("categories")] == ["SU", "EKİPMAN", "AKSESUAR", "DİĞER"]
    assert [i["id"] for i in gateway.read_all("inventory") if i.get("isCore")] == ["core-full", "core-empty", "core-pump"]


def test_reads_are_copies():
    gateway = InMemoryPersistenceGateway()
    gateway.read_all("couriers")[0]["name"] = "Değişti"
    assert gateway.read_all("couriers")[0]["name"] == "Ahmet Yılmaz"
    assert DEFAULT_DATA["couriers"][0]["name"] == "Ahmet Yılmaz"


def test_upsert_update_delete():
    gateway = InMemoryPersistenceGateway(data={})
    gateway.upsert("orders", {"id": "o1", "status": "Bekliyor"})
    gateway.upsert("orders", {"id": "o2", "status": "Bekliyor"})
    gateway.upsert("orders", {"id": "o1", "status": "Yolda"})
    assert [(o["id"], o["status"]) for o in gateway.read_all("orders")] == [("o2", "Bekliyor"), ("o1", "Yolda")]

    gateway.update("orders", "o2", {"status": "İptal"})
    gateway.update("orders", "ghost", {"status": "İptal"})
    assert gateway.read_all("orders")[0]["status"] == "İptal"

    gateway.delete("orders", "o1")
    assert [o["id"] for o in gateway.read_all("orders")] == ["o2"]


def test_invalid_rows_and_tables():
    gateway = InMemoryPersistenceGateway(data={})
    with pytest.raises(PersistenceError):
        gateway.upsert("orders", {"status": "Bekliyor"})
    with pytest.raises(PersistenceError):
        gateway.read_all("payments")


def test_read_one():
    gateway = InMemoryPersistenceGateway()
    assert gateway.read_one("inventory", "extra-1")["name"] == "0.5L Koli Su"
    assert gateway.read_one("inventory", "ghost") is None
    with pytest.raises(PersistenceError):
        gateway.read_one("payments", "x")
