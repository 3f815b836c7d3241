"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from src.schemas.common import ApiResponse, PaginatedResult
from src.schemas.debt import (
    CombinedDebtsView,
    DebtCreate,
    DebtFilters,
    DebtPay,
    DebtResponse,
    DebtStatistics,
    DebtSummary,
    DebtUpdate,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "AuthResponse",
    "UserResponse",
    "ApiResponse",
    "PaginatedResult",
    "DebtCreate",
    "DebtUpdate",
    "DebtPay",
    "DebtFilters",
    "DebtResponse",
    "DebtStatistics",
    "DebtSummary",
    "CombinedDebtsView",
]
