"""SQLAlchemy models."""

from src.models.debt import Debt
from src.models.user import User

__all__ = [
    "User",
    "Debt",
]
