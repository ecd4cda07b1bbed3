"""Order repository: lookups by number and paged listings for an owner.

Order numbers are unique. ``add_new`` refuses a number another order
already holds; later saves of the same order go through ``add``.
"""

import math
import threading

from protean.exceptions import ObjectNotFoundError
from pydantic import BaseModel, ConfigDict

from ordering.domain import ordering
from ordering.order.order import Order, parse_status
from shared.errors import Conflict

# Guards the number check and the insert against concurrent checkouts.
_numbering_lock = threading.Lock()


class OrderPage(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    orders: list[Order]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def get_by_number(self, order_number) -> Order:
        order = self.find_by_number(order_number)
        if order is None:
            raise ObjectNotFoundError({"order": [f"Order {order_number} not found"]})
        return order

    def add_new(self, order: Order) -> Order:
        with _numbering_lock:
            holder = self.find_by_number(order.order_number)
            if holder is not None and holder.id != order.id:
                raise Conflict({"order_number": [f"Order number {order.order_number} already exists"]})
            return self.add(order)

    def list_for_owner(self, owner_id, status=None, page=1, limit=10) -> OrderPage:
        """One page of an owner's orders, newest first."""
        filters = {"owner_id": str(owner_id)}
        if status is not None:
            filters["status"] = parse_status(status).value

        results = (
            self._dao.query.filter(**filters)
            .order_by("-created_at")
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return OrderPage(orders=list(results.items), page=page, limit=limit, total=results.total)
