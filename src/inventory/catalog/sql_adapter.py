"""SQL catalog store built on SQLAlchemy Core.

Stock is decremented with a single conditional statement:

    UPDATE products SET stock = stock - :n WHERE id = :id AND stock >= :n

Zero affected rows means the product is short. The reservation key goes into
``stock_reservations`` (primary key) inside the same transaction, so a
replayed reservation either finds its key and is skipped, or collides on the
key and rolls its decrement back.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from inventory.catalog.port import CatalogProduct, CatalogStore

logger = structlog.get_logger(__name__)

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("price", Numeric(10, 2), nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
)

stock_reservations = Table(
    "stock_reservations",
    metadata,
    Column("reservation_key", String(255), primary_key=True),
    Column("product_id", String(64), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


class SqlCatalogStore(CatalogStore):
    """Catalog store backed by any SQLAlchemy-supported database."""

    def __init__(self, engine: Engine | str) -> None:
        self.engine = create_engine(engine) if isinstance(engine, str) else engine

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def drop_schema(self) -> None:
        metadata.drop_all(self.engine)

    def add_product(self, product_id: str, name: str, price: float, stock: int, is_active: bool = True) -> CatalogProduct:
        with self.engine.begin() as conn:
            conn.execute(
                products.insert().values(id=str(product_id), name=name, price=price, stock=stock, is_active=is_active)
            )
        return CatalogProduct(id=str(product_id), name=name, price=price, stock=stock, is_active=is_active)

    def get_product(self, product_id: str) -> CatalogProduct | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(products).where(products.c.id == str(product_id))).first()

        if row is None:
            return None
        return CatalogProduct(
            id=row.id,
            name=row.name,
            price=float(row.price),
            stock=row.stock,
            is_active=bool(row.is_active),
        )

    def available_quantity(self, product_id: str) -> int:
        with self.engine.connect() as conn:
            stock = conn.execute(select(products.c.stock).where(products.c.id == str(product_id))).scalar()
        return stock or 0

    def decrement_stock(self, product_id: str, quantity: int, reservation_key: str) -> int | None:
        product_id = str(product_id)
        try:
            with self.engine.begin() as conn:
                replayed = conn.execute(
                    select(stock_reservations.c.reservation_key).where(
                        stock_reservations.c.reservation_key == reservation_key
                    )
                ).first()
                if replayed is not None:
                    return conn.execute(select(products.c.stock).where(products.c.id == product_id)).scalar()

                result = conn.execute(
                    update(products)
                    .where(products.c.id == product_id, products.c.stock >= quantity)
                    .values(stock=products.c.stock - quantity)
                )
                if result.rowcount == 0:
                    return None

                conn.execute(
                    stock_reservations.insert().values(
                        reservation_key=reservation_key,
                        product_id=product_id,
                        quantity=quantity,
                        created_at=datetime.now(UTC),
                    )
                )
                return conn.execute(select(products.c.stock).where(products.c.id == product_id)).scalar()
        except IntegrityError:
            logger.info("Stock reservation already applied", product_id=product_id, reservation_key=reservation_key)
            return self.available_quantity(product_id)
