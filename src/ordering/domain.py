"""Ordering bounded context — shopping carts, checkout and the order lifecycle.

Carts and orders are standard CQRS aggregates (not event sourced). The
stock ledger's low-stock alerts and the notification handlers register on
this domain as well, so every event raised during a cart or order change
is dispatched synchronously inside the same unit of work.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
