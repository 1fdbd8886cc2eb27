import itertools

import pytest

from src.application.store import EntityStore
from src.infrastructure.persistence.memory_gateway import InMemoryPersistenceGateway


@pytest.fixture
def clock():
    """Reloj determinista: cada llamada avanza un segundo."""
    ticks = itertools.count()
    return lambda: f"2024-05-01T10:00:{next(ticks) % 60:02d}.000Z"


@pytest.fixture
def gateway():
    return InMemoryPersistenceGateway()


@pytest.fixture
def store(gateway, clock):
    """Almacén cargado con los datos iniciales (2 repartidores, 4 productos, 1 cliente)."""
    return EntityStore.load(gateway, clock=clock)
