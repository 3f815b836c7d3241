"""Debt model."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    false,
    text,
)
from sqlalchemy.orm import relationship

from src.config import get_settings
from src.database import Base
from src.models.mixins import TimestampMixin


def default_currency() -> str:
    return get_settings().default_currency


class Debt(Base, TimestampMixin):
    """Money lent by the owner, optionally to another registered user."""

    __tablename__ = "debts"
    __table_args__ = (
        Index("ix_debts_owner_id_paid", "owner_id", "paid"),
        Index(
            "ix_debts_due_date",
            "due_date",
            postgresql_where=text("due_date IS NOT NULL"),
            sqlite_where=text("due_date IS NOT NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    counterparty_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(18, 2), nullable=False)
    currency = Column(String(3), nullable=False, default=default_currency)
    paid = Column(Boolean, nullable=False, default=False, server_default=false(), index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    owner = relationship("User", foreign_keys=[owner_id])
    counterparty = relationship("User", foreign_keys=[counterparty_id])
