import re
from dataclasses import replace

import pytest

from src.domain import lifecycle
from src.domain.entities import (
    Courier,
    Customer,
    Order,
    OrderItem,
    OrderSource,
    OrderStatus,
    StoreSnapshot,
)

T0 = "2024-05-01T10:00:00.000Z"
T1 = "2024-05-01T11:00:00.000Z"


def make_order(order_id="", phone="05551112233", source=OrderSource.PHONE, **kwargs):
    return Order(
        id=order_id, customer_id="", customer_name="Ayşe", phone=phone,
        address="KARTAL, KORDONBOYU, Güneş Sk. No:12 D:4",
        items=(OrderItem("core-full", "19L Dolu Damacana", 2, 85.0),),
        total_amount=170.0, source=source, **kwargs,
    )


def draft_for(phone, name="Ayşe", note=""):
    return Customer(id="", phone=phone, name=name, district="KARTAL", neighborhood="KORDONBOYU",
                    street="Güneş Sk.", building_no="12", apartment_no="4", last_note=note)


@pytest.fixture
def snapshot():
    return StoreSnapshot(
        orders=(make_order("ORD000001", created_at=T0, updated_at=T0),),
        couriers=(Courier(id="c1", name="Ahmet Yılmaz"), Courier(id="c2", name="Mehmet Demir")),
    )


def test_order_id_prefix_by_source():
    assert re.fullmatch(r"WEB[A-Z0-9]{6}", lifecycle.generate_order_id(OrderSource.WEB))
    assert re.fullmatch(r"ORD[A-Z0-9]{6}", lifecycle.generate_order_id(OrderSource.GETIR))


def test_create_order_prepends_and_assigns_id(snapshot):
    new_snapshot, order, customer = lifecycle.create_order(snapshot, make_order(), draft_for("05551112233"), T1)

    assert new_snapshot.orders[0] is order
    assert len(new_snapshot.orders) == 2
    assert order.id.startswith("ORD")
    assert order.created_at == T1 and order.updated_at == T1
    assert customer.order_count == 1
    assert customer.last_order_date == T1
    # el snapshot original no cambia
    assert len(snapshot.orders) == 1


def test_create_order_keeps_given_id(snapshot):
    _, order, _ = lifecycle.create_order(snapshot, make_order("WEBABC123"), draft_for("1"), T1)
    assert order.id == "WEBABC123"


def test_customer_upsert_matches_last_ten_digits():
    """'+90 555 111 22 33' y '05551112233' son el mismo cliente."""
    existing = Customer(id="cust1", phone="05551112233", name="Eski", order_count=3, last_note="Zil bozuk")
    customers, updated = lifecycle.upsert_customer((existing,), draft_for("+90 555 111 22 33", "Yeni"), T1)

    assert len(customers) == 1
    assert updated.id == "cust1"
    assert updated.order_count == 4
    assert updated.name == "Yeni"
    assert updated.phone == "+90 555 111 22 33"
    assert updated.last_order_date == T1
    assert updated.last_note == "Zil bozuk"


def test_customer_upsert_new_phone_creates_record():
    customers, created = lifecycle.upsert_customer((), draft_for("05320000000", note="Kapıya bırak"), T0)
    assert len(customers) == 1
    assert created.id.startswith("cust_")
    assert created.order_count == 1
    assert created.last_note == "Kapıya bırak"


def test_status_update_is_idempotent_except_timestamp(snapshot):
    first, updated = lifecycle.update_order_status(snapshot, "ORD000001", OrderStatus.DELIVERED, T1)
    second, again = lifecycle.update_order_status(first, "ORD000001", OrderStatus.DELIVERED, "2024-05-01T12:00:00.000Z")

    assert updated.status == OrderStatus.DELIVERED
    assert again.updated_at == "2024-05-01T12:00:00.000Z"
    assert replace(again, updated_at=updated.updated_at) == updated


def test_status_transitions_are_unrestricted(snapshot):
    s1, _ = lifecycle.update_order_status(snapshot, "ORD000001", OrderStatus.CANCELLED, T1)
    _, reopened = lifecycle.update_order_status(s1, "ORD000001", OrderStatus.PENDING, T1)
    assert reopened.status == OrderStatus.PENDING


def test_status_update_unknown_order_is_noop(snapshot):
    new_snapshot, updated = lifecycle.update_order_status(snapshot, "missing", OrderStatus.ON_WAY, T1)
    assert new_snapshot is snapshot
    assert updated is None


def test_reassign_copies_courier_name(snapshot):
    new_snapshot, updated = lifecycle.reassign_courier(snapshot, "ORD000001", "c2", T1)
    assert updated.courier_id == "c2"
    assert updated.courier_name == "Mehmet Demir"
    assert updated.updated_at == T1
    assert new_snapshot.find_order("ORD000001") == updated


def test_reassign_to_unknown_courier_is_noop(snapshot):
    new_snapshot, order = lifecycle.reassign_courier(snapshot, "ORD000001", "ghost", T1)
    assert new_snapshot is snapshot
    assert order == snapshot.orders[0]


def test_reassign_empty_courier_unassigns(snapshot):
    assigned, _ = lifecycle.reassign_courier(snapshot, "ORD000001", "c1", T1)
    _, cleared = lifecycle.reassign_courier(assigned, "ORD000001", "", T1)
    assert cleared.courier_id is None
    assert cleared.courier_name is None


def test_reassign_unknown_order(snapshot):
    new_snapshot, order = lifecycle.reassign_courier(snapshot, "missing", "c1", T1)
    assert new_snapshot is snapshot
    assert order is None
