"""Domain events for the Order aggregate.

Events are dispatched when the order is persisted. Notification handlers
render their messages from the event payload alone, so each event carries
the figures a recipient needs. Line payloads travel as JSON text.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A cart was converted into an order at checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    owner_id = Identifier(required=True)
    customer_name = String(max_length=255, default="")
    items = Text(required=True)  # JSON list of line payloads
    subtotal = Float(required=True)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    total = Float(required=True)
    shipping_method = String(max_length=50)
    estimated_delivery = DateTime()


@ordering.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    previous_status = String(required=True, max_length=50)
    new_status = String(required=True, max_length=50)


@ordering.event(part_of="Order")
class OrderShipped:
    """The order left the warehouse with a tracking number."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    owner_id = Identifier(required=True)
    customer_name = String(max_length=255, default="")
    tracking_number = String(required=True, max_length=100)
    shipping_method = String(max_length=50)
    estimated_delivery = DateTime()


@ordering.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    owner_id = Identifier(required=True)
    customer_name = String(max_length=255, default="")
    cancelled_by = String(required=True, max_length=50)
    total = Float(required=True)
    items = Text()  # JSON list of line payloads
