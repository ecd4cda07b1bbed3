"""Commerce errors that have no counterpart in Protean's exception set.

Malformed input and missing aggregates use Protean's own
``ValidationError`` and ``ObjectNotFoundError``. The errors below describe
outcomes of the commerce flows themselves. Each carries a ``messages`` dict
mapping a field (or a general key such as ``"cart"``) to a list of
human-readable strings, like Protean's exceptions do.
"""


class CommerceError(Exception):
    """Base class for the commerce-flow errors."""

    def __init__(self, messages: dict[str, list[str]] | None = None):
        self.messages = messages or {}
        super().__init__(self.messages)


class EmptyCart(CommerceError):
    """Checkout was attempted on a cart with no lines."""

    def __init__(self):
        super().__init__({"cart": ["Cart is empty"]})


class Forbidden(CommerceError):
    """The acting user may not touch this resource."""


class Conflict(CommerceError):
    """A concurrent write won the race for a shared resource."""

    def __init__(self, messages: dict[str, list[str]] | None = None, available_quantity: int | None = None):
        super().__init__(messages)
        self.available_quantity = available_quantity


class InsufficientStock(CommerceError):
    """One or more cart lines cannot be fulfilled.

    ``issues`` enumerates every offending line so a client can fix all
    quantities in one round trip.
    """

    def __init__(self, issues: list):
        self.issues = list(issues)
        super().__init__({"stock": [issue.message for issue in self.issues] or ["Some items are out of stock"]})


class PartialFailure(CommerceError):
    """An order was persisted but a downstream step did not complete."""

    def __init__(self, messages: dict[str, list[str]], order=None):
        super().__init__(messages)
        self.order = order
