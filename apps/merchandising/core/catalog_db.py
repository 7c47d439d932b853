"""SQLAlchemy tables for the demo catalog and helpers to seed them.

The schema is a trimmed down EAV layout: products, a category tree, the
filterable attributes with their option labels and one row per product
attribute value.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import Float, ForeignKey, Integer, String, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Category(Base):
    __tablename__ = "catalog_category"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey("catalog_category.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(255))
    position: Mapped[int] = mapped_column(Integer, default=0)


class Product(Base):
    __tablename__ = "catalog_product"

    entity_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    price: Mapped[float] = mapped_column(Float)


class CategoryProduct(Base):
    __tablename__ = "catalog_category_product"

    category_id: Mapped[int] = mapped_column(ForeignKey("catalog_category.id"), primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("catalog_product.entity_id"), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)


class Attribute(Base):
    __tablename__ = "eav_attribute"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    label: Mapped[str] = mapped_column(String(255))
    frontend_input: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)


class AttributeOption(Base):
    __tablename__ = "eav_attribute_option"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    attribute_code: Mapped[str] = mapped_column(ForeignKey("eav_attribute.code"))
    label: Mapped[str] = mapped_column(String(255))


class ProductAttributeValue(Base):
    __tablename__ = "catalog_product_attribute_value"

    product_id: Mapped[int] = mapped_column(ForeignKey("catalog_product.entity_id"), primary_key=True)
    attribute_code: Mapped[str] = mapped_column(ForeignKey("eav_attribute.code"), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), primary_key=True)


def create_catalog_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # one shared connection so every thread sees the same in-memory database
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url)


def create_session_factory(engine: Engine) -> sessionmaker:
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)


def seed_catalog(session: Session, path: Path) -> int:
    """Load the JSON catalog at ``path`` into an empty database.

    Returns the number of products inserted; an already populated catalog is
    left alone.
    """
    existing = session.scalar(select(func.count()).select_from(Product))
    if existing:
        logger.debug("Catalog already holds %d products, skipping seed", existing)
        return 0

    data = json.loads(Path(path).read_text())
    for item in data.get("categories", []):
        session.add(Category(**item))
    for item in data.get("attributes", []):
        options = item.pop("options", [])
        session.add(Attribute(**item))
        for option in options:
            session.add(AttributeOption(attribute_code=item["code"], **option))
    session.flush()

    products = data.get("products", [])
    for item in products:
        categories = item.pop("categories", [])
        attributes = item.pop("attributes", {})
        session.add(Product(**item))
        for position, category_id in enumerate(categories):
            session.add(
                CategoryProduct(category_id=category_id, product_id=item["entity_id"], position=position)
            )
        for code, values in attributes.items():
            if not isinstance(values, list):
                values = [values]
            for value in values:
                session.add(
                    ProductAttributeValue(product_id=item["entity_id"], attribute_code=code, value=str(value))
                )
    session.commit()
    logger.info("Seeded catalog with %d products from %s", len(products), path)
    return len(products)
