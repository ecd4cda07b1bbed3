"""Cart repository — query methods on top of Protean's provider-backed repository.

A cart is addressed by ``(owner_id, is_guest)``. The aggregate id stays an
opaque identifier; the service layer never hands it to clients.
"""

from datetime import datetime

from protean.exceptions import ObjectNotFoundError

from ordering.cart.cart import Cart
from ordering.domain import ordering


@ordering.repository(part_of=Cart)
class CartRepository:
    def find_for(self, owner_id, guest: bool = False) -> Cart | None:
        carts = self._dao.query.filter(owner_id=str(owner_id), is_guest=guest).all().items
        return carts[0] if carts else None

    def get_for(self, owner_id, guest: bool = False) -> Cart:
        cart = self.find_for(owner_id, guest)
        if cart is None:
            raise ObjectNotFoundError({"cart": ["Cart not found"]})
        return cart

    def expired_guest_carts(self, as_of: datetime) -> list[Cart]:
        """One page of guest carts whose expiry is at or before ``as_of``."""
        return self._dao.query.filter(is_guest=True, expires_at__lte=as_of).all().items

    def discard(self, cart: Cart) -> None:
        """Delete the cart together with its lines."""
        if cart.lines:
            for line in list(cart.lines):
                cart.remove_lines(line)
            self.add(cart)
        self._dao.delete(cart)
