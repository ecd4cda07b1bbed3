"""Background sweeper that purges guest carts past their expiry."""

import threading

import structlog

from ordering.cart.service import CartPricingEngine
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


def start_guest_cart_sweeper(engine: CartPricingEngine, interval_seconds: float) -> threading.Event:
    """Purge expired guest carts every ``interval_seconds`` until the returned event is set."""
    stop = threading.Event()

    def sweep():
        with ordering.domain_context():
            while not stop.wait(interval_seconds):
                try:
                    engine.purge_expired_guest_carts()
                except Exception:
                    logger.exception("Guest cart sweep failed")

    threading.Thread(target=sweep, name="guest-cart-sweeper", daemon=True).start()
    logger.info("Guest cart sweeper started", interval_seconds=interval_seconds)
    return stop
