"""User profile schemas."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UserUpdate(BaseModel):
    """Profile update request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)


class ChangePasswordRequest(BaseModel):
    """Password change request."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("New password and confirmation do not match")
        return self


class UserSearchResult(BaseModel):
    """Public view of another user, used to pick a counterparty."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
