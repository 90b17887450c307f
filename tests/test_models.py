"""
Test-specific SQLAlchemy ORM models.

One single-key entity for paging and tracking, one composite-key entity for
multi-value key lookups.
"""

from __future__ import annotations

from sqlalchemy import Float, Integer, String
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class MockBase(AsyncAttrs, DeclarativeBase):
    """Declarative base for test models."""

    pass


class MockItem(MockBase):
    """Item with an explicitly assigned integer key."""

    __tablename__ = "items"

    key: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    category: Mapped[str | None] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return f"MockItem(key={self.key!r}, name={self.name!r})"


class MockLineItem(MockBase):
    """Order line identified by (order_id, line_no)."""

    __tablename__ = "line_items"

    order_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    line_no: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


__all__ = ["MockBase", "MockItem", "MockLineItem"]
