"""SQLAlchemy adapter for the ProductRepository port.

Stock decrements are a single conditional UPDATE
(``... SET quantity = quantity - :n WHERE id = :id AND quantity >= :n``).
The database decides the race: a zero row count means another writer took
the stock first and the caller gets ``Conflict``.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    case,
    select,
    update,
)
from sqlalchemy.engine import Engine

from catalogue.product.product import ProductSnapshot, ProductStatus
from catalogue.product.repository import ProductRepository
from inventory.stock.record import InventoryRecord
from shared.errors import Conflict

logger = structlog.get_logger(__name__)

metadata = MetaData()

products_table = Table(
    "products",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("image", String(1024), nullable=False, default=""),
    Column("price", Float, nullable=False),
    Column("status", String(20), nullable=False, default=ProductStatus.ACTIVE.value),
    Column("variant_adjustments", JSON, nullable=False),
    Column("track_quantity", Boolean, nullable=False, default=True),
    Column("quantity", Integer, nullable=False, default=0),
    Column("low_stock_threshold", Integer, nullable=False, default=10),
    Column("allow_backorders", Boolean, nullable=False, default=False),
)


def _to_snapshot(row) -> ProductSnapshot:
    return ProductSnapshot(
        id=row["id"],
        name=row["name"],
        image=row["image"] or "",
        price=row["price"],
        status=ProductStatus(row["status"]),
        variant_adjustments=row["variant_adjustments"] or {},
        inventory=_to_record(row),
    )


def _to_record(row) -> InventoryRecord:
    return InventoryRecord(
        track_quantity=row["track_quantity"],
        quantity=row["quantity"],
        low_stock_threshold=row["low_stock_threshold"],
        allow_backorders=row["allow_backorders"],
    )


class SqlProductRepository(ProductRepository):
    def __init__(self, engine: Engine):
        self._engine = engine

    def find(self, product_id):
        with self._engine.connect() as conn:
            row = conn.execute(select(products_table).where(products_table.c.id == str(product_id))).mappings().first()
        return _to_snapshot(row) if row is not None else None

    def add(self, product):
        values = {
            "name": product.name,
            "image": product.image,
            "price": product.price,
            "status": product.status.value,
            "variant_adjustments": dict(product.variant_adjustments),
            "track_quantity": product.inventory.track_quantity,
            "quantity": product.inventory.quantity,
            "low_stock_threshold": product.inventory.low_stock_threshold,
            "allow_backorders": product.inventory.allow_backorders,
        }
        with self._engine.begin() as conn:
            result = conn.execute(update(products_table).where(products_table.c.id == product.id).values(**values))
            if result.rowcount == 0:
                conn.execute(products_table.insert().values(id=product.id, **values))

    def decrement_stock(self, product_id, quantity, strict=True):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        product_id = str(product_id)
        with self._engine.begin() as conn:
            row = self._select_for_write(conn, product_id)
            if not row["track_quantity"]:
                return _to_record(row)

            if strict and not row["allow_backorders"]:
                result = conn.execute(
                    update(products_table)
                    .where(
                        products_table.c.id == product_id,
                        products_table.c.quantity >= quantity,
                    )
                    .values(quantity=products_table.c.quantity - quantity)
                )
                if result.rowcount == 0:
                    current = conn.execute(
                        select(products_table.c.quantity).where(products_table.c.id == product_id)
                    ).scalar_one()
                    logger.info(
                        "Conditional stock decrement lost the race",
                        product_id=product_id,
                        requested=quantity,
                        available=current,
                    )
                    raise Conflict(
                        {"quantity": [f"Only {current} items available"]},
                        available_quantity=current,
                    )
            else:
                conn.execute(
                    update(products_table)
                    .where(products_table.c.id == product_id)
                    .values(
                        quantity=case(
                            (products_table.c.quantity > quantity, products_table.c.quantity - quantity),
                            else_=0,
                        )
                    )
                )

            return _to_record(self._select_for_write(conn, product_id))

    def increment_stock(self, product_id, quantity):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        product_id = str(product_id)
        with self._engine.begin() as conn:
            row = self._select_for_write(conn, product_id)
            if row["track_quantity"]:
                conn.execute(
                    update(products_table)
                    .where(products_table.c.id == product_id)
                    .values(quantity=products_table.c.quantity + quantity)
                )
                row = self._select_for_write(conn, product_id)
            return _to_record(row)

    @staticmethod
    def _select_for_write(conn, product_id):
        row = conn.execute(select(products_table).where(products_table.c.id == product_id)).mappings().first()
        if row is None:
            raise ObjectNotFoundError({"product_id": [f"Product {product_id} not found"]})
        return row
