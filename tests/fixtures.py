from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from crudkit.models.common import ExternalIdMixin, SerializableMixin, TimestampMixin


class FixtureBase(DeclarativeBase):
    pass


class Category(FixtureBase, ExternalIdMixin, SerializableMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))

    products: Mapped[list["Product"]] = relationship(back_populates="category")


class Product(FixtureBase, ExternalIdMixin, SerializableMixin):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(String(400), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="active")
    attributes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=datetime(2024, 1, 1))

    category: Mapped[Category | None] = relationship(back_populates="products")

    def to_card(self) -> dict[str, Any]:
        return {"name": self.name, "category": self.category.name if self.category else None}


class Customer(FixtureBase, ExternalIdMixin, SerializableMixin):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))


class Order(FixtureBase, ExternalIdMixin, TimestampMixin, SerializableMixin):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"))

    customer: Mapped[Customer] = relationship()


class Invoice(FixtureBase, SerializableMixin):
    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    number: Mapped[str] = mapped_column(String(20))
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"))

    order: Mapped[Order] = relationship()
