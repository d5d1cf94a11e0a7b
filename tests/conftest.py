"""
Shared fixtures for the channel ledger test suite.

Provides:
- An in-memory repository seeded with a small catalog
- A repository that fails chosen store calls on demand
- A JSON-file repository whose disk writes can be made to fail once
- Factories for marketplace order records
"""

import pytest

from channel_ledger import settings
from channel_ledger.errors import StoreError
from channel_ledger.repository import InMemoryRepository, JsonFileRepository


class FlakyRepository(InMemoryRepository):
    """InMemoryRepository that raises StoreError for configured calls."""

    def __init__(self, collections=None):
        super().__init__(collections)
        self.failures = []

    def fail(self, method, collection, when=None):
        """Make `method` on `collection` fail, optionally only when `when(arg)` is true."""
        self.failures.append((method, collection, when))

    def _check(self, method, collection, arg):
        for fail_method, fail_collection, when in self.failures:
            if fail_method == method and fail_collection == collection and (when is None or when(arg)):
                raise StoreError(f"injected {method} failure", collection=collection)

    def list_all(self, collection):
        self._check("list_all", collection, None)
        return super().list_all(collection)

    def add(self, collection, record):
        self._check("add", collection, record)
        return super().add(collection, record)

    def update(self, collection, record_id, partial):
        self._check("update", collection, record_id)
        return super().update(collection, record_id, partial)

    def remove(self, collection, record_id):
        self._check("remove", collection, record_id)
        return super().remove(collection, record_id)


class DiskFailureRepository(JsonFileRepository):
    """JsonFileRepository whose file write fails for chosen calls, once each."""

    def __init__(self, path):
        super().__init__(path)
        self.pending = []
        self._refuse_write = False

    def fail_once(self, method, collection):
        self.pending.append((method, collection))

    def _arm(self, method, collection):
        if (method, collection) in self.pending:
            self.pending.remove((method, collection))
            self._refuse_write = True

    def add(self, collection, record):
        self._arm("add", collection)
        return super().add(collection, record)

    def update(self, collection, record_id, partial):
        self._arm("update", collection)
        return super().update(collection, record_id, partial)

    def remove(self, collection, record_id):
        self._arm("remove", collection)
        return super().remove(collection, record_id)

    def _persist(self):
        if self._refuse_write:
            self._refuse_write = False
            raise StoreError(f"injected write failure for {self.path}")
        super()._persist()


def make_product(product_id, sku, quantity=10, **overrides):
    record = {
        "id": product_id,
        "sku": sku,
        "title": f"Product {sku}",
        "category": "General",
        "mrp": 999.0,
        "purchasePrice": 400.0,
        "salePrice": 699.0,
        "quantity": quantity,
        "hsnCode": "8518",
        "gstRate": 18.0,
        "status": "active",
    }
    record.update(overrides)
    return record


def flipkart_order(order_item_id, sku, quantity=1, sale_amount=500.0, **overrides):
    record = {
        "orderItemId": order_item_id,
        "orderId": f"OD{order_item_id}",
        "sellerSku": sku,
        "quantity": quantity,
        "saleAmount": sale_amount,
        "orderDate": "2024-05-01",
        "uploadDate": "2024-05-02T10:00:00",
    }
    record.update(overrides)
    return record


def meesho_order(sub_order_no, sku, quantity=1, total_sale_amount=300.0, **overrides):
    record = {
        "subOrderNo": sub_order_no,
        "supplierSku": sku,
        "quantity": quantity,
        "totalSaleAmount": total_sale_amount,
        "orderDate": "2024-05-03",
        "uploadDate": "2024-05-04T10:00:00",
    }
    record.update(overrides)
    return record


@pytest.fixture
def catalog():
    return [
        make_product("p1", "SKU-1", quantity=10),
        make_product("p2", "SKU-2", quantity=4),
    ]


@pytest.fixture
def repo(catalog):
    return InMemoryRepository({settings.PRODUCTS: catalog})


@pytest.fixture
def flaky_repo(catalog):
    return FlakyRepository({settings.PRODUCTS: catalog})


def stock(repository, product_id):
    for record in repository.list_all(settings.PRODUCTS):
        if record["id"] == product_id:
            return record["quantity"]
    raise KeyError(product_id)
