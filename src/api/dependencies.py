"""FastAPI dependencies for authentication, database and services."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.database import get_db
from src.models.user import User
from src.schemas.debt import DebtFilters
from src.services.auth import decode_access_token
from src.services.cache import DynamoDBCacheService, get_cache_service
from src.services.debt_service import DebtService
from src.services.report_service import ReportService
from src.services.user_service import UserService

security = HTTPBearer()


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    token = credentials.credentials
    payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def get_cache() -> DynamoDBCacheService:
    """Get the shared cache client."""
    return get_cache_service()


def get_debt_service(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[DynamoDBCacheService, Depends(get_cache)],
) -> DebtService:
    """Get debt service with dependencies."""
    return DebtService(db, cache)


def get_user_service(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[DynamoDBCacheService, Depends(get_cache)],
) -> UserService:
    """Get user service with dependencies."""
    return UserService(db, cache)


def get_report_service(
    debt_service: Annotated[DebtService, Depends(get_debt_service)],
) -> ReportService:
    return ReportService(debt_service)


def get_debt_filters(
    paid: bool | None = None,
    counterparty_id: int | None = None,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    currency: str | None = None,
    overdue: bool | None = None,
    search: str | None = None,
    order_by: str | None = None,
    order_direction: str | None = None,
    page: int = 1,
    page_size: int = 10,
) -> DebtFilters:
    """Collect the listing query parameters into a DebtFilters."""
    return DebtFilters(
        paid=paid,
        counterparty_id=counterparty_id,
        min_amount=min_amount,
        max_amount=max_amount,
        from_date=from_date,
        to_date=to_date,
        currency=currency,
        overdue=overdue,
        search=search,
        order_by=order_by,
        order_direction=order_direction,
        page=page,
        page_size=page_size,
    )
