from datetime import datetime, timezone
from decimal import Decimal

import pytest
import psycopg2
from psycopg2 import extras
from unittest.mock import MagicMock, patch

from src.domain.interfaces import PersistenceError
from src.infrastructure.persistence.pg_gateway import PgPersistenceGateway, row_to_record


@pytest.fixture
def mock_db_connection():
    """Mockea la conexión y el cursor de psycopg2."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


@pytest.fixture
def gateway(mock_db_connection):
    mock_conn, _ = mock_db_connection
    with patch('src.infrastructure.persistence.pg_gateway.get_connection', return_value=mock_conn), \
            patch('src.infrastructure.persistence.pg_gateway.release_connection') as release_mock:
        yield PgPersistenceGateway(), release_mock


def test_read_all_orders_maps_columns(gateway, mock_db_connection):
    repo, release_mock = gateway
    mock_conn, mock_cursor = mock_db_connection
    mock_cursor.fetchall.return_value = [{
        "id": "ORD1",
        "customer_id": "cust1",
        "items": [{"productId": "core-full", "productName": "19L Dolu Damacana", "quantity": 2, "price": 85}],
        "total_amount": Decimal("170.00"),
        "status": "Bekliyor",
        "created_at": datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
        "courier_id": None,
    }]

    rows = repo.read_all("orders")

    mock_conn.cursor.assert_called_once_with(cursor_factory=extras.RealDictCursor)
    assert rows == [{
        "id": "ORD1",
        "customerId": "cust1",
        "items": [{"productId": "core-full", "productName": "19L Dolu Damacana", "quantity": 2, "price": 85}],
        "totalAmount": 170.0,
        "status": "Bekliyor",
        "createdAt": "2024-05-01T10:00:00.000Z",
        "courierId": None,
    }]
    release_mock.assert_called_once_with(mock_conn)


def test_read_one_by_id(gateway, mock_db_connection):
    repo, release_mock = gateway
    mock_conn, mock_cursor = mock_db_connection
    mock_cursor.fetchone.return_value = {"id": "c1", "name": "Ahmet Yılmaz", "service_region": "Kordonboyu"}

    row = repo.read_one("couriers", "c1")

    assert mock_cursor.execute.call_args[0][1] == ("c1",)
    assert row == {"id": "c1", "name": "Ahmet Yılmaz", "serviceRegion": "Kordonboyu"}
    release_mock.assert_called_once_with(mock_conn)

    mock_cursor.fetchone.return_value = None
    assert repo.read_one("couriers", "ghost") is None


def test_read_all_database_error(gateway, mock_db_connection):
    repo, release_mock = gateway
    mock_conn, mock_cursor = mock_db_connection
    mock_cursor.execute.side_effect = psycopg2.Error("relation does not exist")

    with pytest.raises(PersistenceError):
        repo.read_all("couriers")
    release_mock.assert_called_once_with(mock_conn)


def test_unknown_table_is_rejected(gateway):
    repo, _ = gateway
    with pytest.raises(PersistenceError):
        repo.read_all("payments")
    with pytest.raises(PersistenceError):
        repo.delete("payments", "x")


def test_upsert_converts_record(gateway, mock_db_connection):
    repo, release_mock = gateway
    mock_conn, mock_cursor = mock_db_connection

    repo.upsert("orders", {
        "id": "ORD1",
        "customerId": "cust1",
        "items": [{"productId": "core-full", "quantity": 1}],
        "paymentMethod": "Nakit",
        "updatedAt": "",
        "unknownField": "ignored",
    })

    params = mock_cursor.execute.call_args[0][1]
    assert params[0] == "ORD1"
    assert params[1] == "cust1"
    assert isinstance(params[2], extras.Json)
    assert params[3] == "Nakit"
    assert params[4] is None
    assert len(params) == 5
    mock_conn.commit.assert_called_once()
    release_mock.assert_called_once_with(mock_conn)


def test_upsert_requires_id(gateway):
    repo, _ = gateway
    with pytest.raises(PersistenceError):
        repo.upsert("couriers", {"name": "Sin id"})


def test_update_sets_only_changed_columns(gateway, mock_db_connection):
    repo, _ = gateway
    mock_conn, mock_cursor = mock_db_connection

    repo.update("orders", "ORD1", {"status": "Yolda", "updatedAt": "2024-05-01T10:00:00.000Z"})

    params = mock_cursor.execute.call_args[0][1]
    assert params == ["Yolda", "2024-05-01T10:00:00.000Z", "ORD1"]
    mock_conn.commit.assert_called_once()


def test_update_without_changes_skips_database(gateway, mock_db_connection):
    repo, _ = gateway
    mock_conn, mock_cursor = mock_db_connection
    repo.update("orders", "ORD1", {"id": "ORD1"})
    mock_cursor.execute.assert_not_called()


def test_write_error_rolls_back(gateway, mock_db_connection):
    repo, release_mock = gateway
    mock_conn, mock_cursor = mock_db_connection
    mock_cursor.execute.side_effect = psycopg2.Error("deadlock")

    with pytest.raises(PersistenceError):
        repo.delete("inventory", "extra-1")

    mock_conn.rollback.assert_called_once()
    mock_conn.commit.assert_not_called()
    release_mock.assert_called_once_with(mock_conn)


def test_pool_not_initialized_becomes_persistence_error():
    with patch('src.infrastructure.persistence.pg_gateway.get_connection',
               side_effect=ConnectionError("El pool de la base de datos no está inicializado.")), \
            patch('src.infrastructure.persistence.pg_gateway.release_connection') as release_mock:
        with pytest.raises(PersistenceError):
            PgPersistenceGateway().delete("orders", "ORD1")
        release_mock.assert_not_called()


def test_row_to_record_from_notification_payload():
    """Las filas serializadas por row_to_json llegan con fechas como texto."""
    record = row_to_record("customers", {
        "id": "cust1", "building_no": "12", "order_count": 5,
        "last_order_date": "2024-05-01T13:00:00+03:00",
    })
    assert record == {"id": "cust1", "buildingNo": "12", "orderCount": 5,
                      "lastOrderDate": "2024-05-01T13:00:00+03:00"}
