"""ProductRepository port and its in-memory adapter.

Stock writes are exposed as atomic operations rather than
read-modify-write on a snapshot: ``decrement_stock`` only succeeds when
enough quantity remains at the moment of the write, so two concurrent
checkouts can never oversell the same residual stock.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable

from protean.exceptions import ObjectNotFoundError

from catalogue.product.product import ProductSnapshot
from inventory.stock.record import InventoryRecord, StockDirection, apply_delta_to_record


class ProductRepository(ABC):
    @abstractmethod
    def find(self, product_id: str) -> ProductSnapshot | None: ...

    @abstractmethod
    def add(self, product: ProductSnapshot) -> None: ...

    @abstractmethod
    def decrement_stock(self, product_id: str, quantity: int, strict: bool = True) -> InventoryRecord:
        """Atomically take ``quantity`` units.

        With ``strict`` (and no backorders) the write only happens if
        enough stock remains, otherwise ``Conflict`` is raised and nothing
        changes. Without ``strict`` the result is floored at zero.
        """

    @abstractmethod
    def increment_stock(self, product_id: str, quantity: int) -> InventoryRecord: ...

    def get(self, product_id: str) -> ProductSnapshot:
        product = self.find(product_id)
        if product is None:
            raise ObjectNotFoundError({"product_id": [f"Product {product_id} not found"]})
        return product

    def get_many(self, product_ids: Iterable[str]) -> dict[str, ProductSnapshot]:
        """Snapshots for the ids that exist; missing ids are simply absent."""
        found = {}
        for product_id in product_ids:
            product = self.find(product_id)
            if product is not None:
                found[product_id] = product
        return found


class InMemoryProductRepository(ProductRepository):
    def __init__(self, products: Iterable[ProductSnapshot] = ()):
        self._lock = threading.Lock()
        self._products: dict[str, ProductSnapshot] = {}
        for product in products:
            self.add(product)

    def find(self, product_id):
        with self._lock:
            return self._products.get(str(product_id))

    def add(self, product):
        with self._lock:
            self._products[product.id] = product

    def decrement_stock(self, product_id, quantity, strict=True):
        return self._write(product_id, quantity, StockDirection.DECREASE, strict)

    def increment_stock(self, product_id, quantity):
        return self._write(product_id, quantity, StockDirection.INCREASE, strict=True)

    def _write(self, product_id, quantity, direction, strict):
        with self._lock:
            product = self._products.get(str(product_id))
            if product is None:
                raise ObjectNotFoundError({"product_id": [f"Product {product_id} not found"]})
            record = apply_delta_to_record(product.inventory, quantity, direction, strict=strict)
            self._products[product.id] = product.with_inventory(record)
            return record
