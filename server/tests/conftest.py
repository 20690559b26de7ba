"""
Shared fixtures: an in-memory storage double and a valid order payload.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from checkout.models import InsertOrder, Order
from checkout.storage import get_storage


class InMemoryStorage:
    """Stands in for DatabaseStorage with the same order methods."""

    def __init__(self):
        self.orders: Dict[int, Order] = {}
        self._next_id = 1
        self._clock = datetime(2024, 5, 1, 12, 0, 0)

    async def create_order(self, order: InsertOrder) -> Order:
        stored = Order(**order.model_dump(), id=self._next_id, created_at=self._clock)
        self.orders[stored.id] = stored
        self._next_id += 1
        self._clock += timedelta(seconds=1)
        return stored

    async def get_order(self, order_id: int) -> Optional[Order]:
        return self.orders.get(order_id)

    async def get_all_orders(self) -> List[Order]:
        return sorted(self.orders.values(), key=lambda o: o.created_at)

    async def update_order_payment(self, order_id: int, payment_complete: bool) -> Optional[Order]:
        order = self.orders.get(order_id)
        if order is None:
            return None
        updated = order.model_copy(update={"payment_complete": payment_complete})
        self.orders[order_id] = updated
        return updated


def make_order_payload(**overrides) -> dict:
    payload = {
        "productSku": "KIT-CAFE-01",
        "productName": "Kit Café Especial",
        "originalPrice": "149.90",
        "customerName": "Maria Silva",
        "customerEmail": "maria.silva@empresa.com.br",
        "customerPhone": "11987654321",
        "customerCpf": "12345678901",
        "shippingAddress": "Avenida Paulista",
        "shippingCity": "São Paulo",
        "shippingState": "SP",
        "shippingPostalCode": "01310100",
        "shippingNumber": "1000",
        "shippingComplement": "Apto 12",
        "shippingMethod": "sedex",
        "shippingPrice": "25.00",
        "surveyAnswers": {"howDidYouHear": "instagram", "rating": 5},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def order_payload():
    return make_order_payload()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def client(storage):
    """Client for the default app with storage swapped for the in-memory double."""
    from checkout.main import app

    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()
