"""Human-readable order numbers.

``ORD-<yyyymmddHHMMSS>-<12 hex digits>``: the timestamp keeps numbers
sortable by creation time, the suffix comes from a random UUID so two
orders created in the same second do not collide in practice. The order
repository still rejects duplicates, and checkout retries with a fresh
number when that happens.
"""

from uuid import uuid4

from shared.utils.clock import utcnow

ORDER_NUMBER_PREFIX = "ORD"


def generate_order_number(now=None) -> str:
    now = now or utcnow()
    return f"{ORDER_NUMBER_PREFIX}-{now:%Y%m%d%H%M%S}-{uuid4().hex[:12].upper()}"
