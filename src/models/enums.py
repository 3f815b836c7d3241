"""Enums for model fields."""

from enum import Enum


class DebtStatus(str, Enum):
    """Display status derived from the paid flag."""

    PENDING = "Pending"
    PAID = "Paid"


class DebtOrderField(str, Enum):
    """Fields a debt listing can be ordered by."""

    AMOUNT = "amount"
    DUE_DATE = "duedate"
    TITLE = "title"
    PAID = "paid"
    UPDATED_AT = "updatedat"
    CREATED_AT = "createdat"

    @classmethod
    def parse(cls, value: str | None) -> "DebtOrderField":
        """Parse a client-supplied field name, falling back to created_at.

        Accepts camelCase, snake_case and any letter case ("dueDate",
        "due_date", "DUEDATE"). "ispaid" is an alias for paid.
        """
        if not value:
            return cls.CREATED_AT
        normalized = value.replace("_", "").replace("-", "").strip().lower()
        if normalized == "ispaid":
            return cls.PAID
        try:
            return cls(normalized)
        except ValueError:
            return cls.CREATED_AT


class OrderDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | None) -> "OrderDirection":
        if value and value.strip().lower() == "asc":
            return cls.ASC
        return cls.DESC


class ExportFormat(str, Enum):
    """Supported debt export formats."""

    JSON = "json"
    CSV = "csv"
