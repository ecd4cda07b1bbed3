"""OrderLifecycle — status transitions, cancellation and order queries.

Every write to an order runs under that order's lock, so two concurrent
cancellations cannot both pass the eligibility check and restock twice.

Cancellation is persisted first and inventory is restored afterwards,
line by line. A line that cannot be restocked does not stop the others:
failures are collected and raised together as ``PartialFailure`` once
every line has been attempted. The cancellation itself stands.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from inventory.stock.ledger import StockLedger
from inventory.stock.record import StockDirection
from ordering.order.order import CancellationActor, Order, OrderStatus, parse_status
from ordering.order.repository import OrderPage
from shared.config import CommerceSettings
from shared.errors import Forbidden, PartialFailure
from shared.identity import Actor
from shared.locks import KeyedLocks

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100


class OrderLifecycle:
    def __init__(
        self,
        ledger: StockLedger,
        settings: CommerceSettings | None = None,
        locks: KeyedLocks | None = None,
    ):
        self.settings = settings or CommerceSettings()
        self.locks = locks or KeyedLocks()
        self._ledger = ledger

    @property
    def _orders(self):
        return current_domain.repository_for(Order)

    @staticmethod
    def _authorize(order: Order, actor: Actor | None):
        if actor is not None and not actor.is_admin and order.owner_id != actor.user_id:
            raise Forbidden({"order": ["Not authorized to access this order"]})

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id, actor: Actor | None = None) -> Order:
        order = self._orders.get(order_id)
        self._authorize(order, actor)
        return order

    def list_orders(self, owner_id, status=None, page=1, limit=10) -> OrderPage:
        """A page of the owner's orders, newest first, optionally of one status."""
        if page < 1:
            raise ValidationError({"page": ["Page must be at least 1"]})
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError({"limit": [f"Limit must be between 1 and {MAX_PAGE_SIZE}"]})

        return self._orders.list_for_owner(owner_id, status=status, page=page, limit=limit)

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def update_status(self, order_id, status, tracking_number=None, notes=None, actor: Actor | None = None) -> Order:
        """Move an order to ``status``. Admin operation.

        ``cancelled`` goes through the cancellation flow so inventory is
        restored. ``returned`` is only accepted inside the return window.
        """
        if actor is not None and not actor.is_admin:
            raise Forbidden({"status": ["Only administrators can update order status"]})

        target = parse_status(status)
        if target == OrderStatus.CANCELLED:
            order = self.cancel_order(order_id, actor or Actor.system())
            if notes:
                with self.locks.hold(order.id):
                    order = self._orders.get(order.id)
                    order.add_notes(notes)
                    self._orders.add(order)
            return order

        with self.locks.hold(order_id):
            order = self._orders.get(order_id)
            previous = order.status

            if target == OrderStatus.SHIPPED:
                order.ship(tracking_number)
            elif target == OrderStatus.RETURNED:
                order.mark_returned(window_days=self.settings.return_window_days)
            else:
                order.transition_to(target)
                if tracking_number:
                    order.record_tracking(tracking_number)

            if notes:
                order.add_notes(notes)

            self._orders.add(order)

        logger.info(
            "Order status updated",
            order_id=str(order.id),
            order_number=order.order_number,
            previous_status=previous,
            new_status=order.status,
        )
        return order

    def cancel_order(self, order_id, actor: Actor) -> Order:
        with self.locks.hold(order_id):
            order = self._orders.get(order_id)
            self._authorize(order, actor)

            order.cancel(cancelled_by=CancellationActor(actor.role.value).value)
            self._orders.add(order)

            failures = self._restock(order)

        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            order_number=order.order_number,
            cancelled_by=actor.role.value,
            restock_failures=len(failures),
        )

        if failures:
            raise PartialFailure({"inventory": failures}, order=order)
        return order

    def _restock(self, order: Order) -> list[str]:
        failures = []
        for line in order.lines:
            try:
                self._ledger.apply_delta(line.product_id, line.quantity, StockDirection.INCREASE)
            except Exception as exc:
                logger.exception(
                    "Failed to restore inventory for cancelled order",
                    order_id=str(order.id),
                    product_id=str(line.product_id),
                    quantity=line.quantity,
                )
                failures.append(f"Could not restock {line.quantity} x {line.name} ({line.product_id}): {exc}")
        return failures
