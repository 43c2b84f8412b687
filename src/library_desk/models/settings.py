"""
Circulation policy for the Library Desk MCP Server.

``LibraryPolicy`` is the one place fallback policy values are defined. An
account without a ``library_settings`` row gets ``LibraryPolicy()``; the
policy object is then handed to each circulation component explicitly.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LibraryPolicy(BaseModel):
    """Late fee, renewal and borrowing rules of one account."""

    daily_late_fee_rate: float = Field(
        default=0.50,
        ge=0.0,
        description="Fee charged per chargeable overdue day",
    )

    grace_period_days: int = Field(
        default=0,
        ge=0,
        le=365,
        description="Overdue days that are not charged",
    )

    max_late_fee_cap: float = Field(
        default=50.00,
        ge=0.0,
        description="Maximum fee per loan; 0 disables the cap",
    )

    max_renewals_per_loan: int = Field(
        default=2,
        ge=0,
        le=50,
        description="Renewals allowed per loan without a staff override",
    )

    member_borrowing_limit: int = Field(
        default=5,
        ge=0,
        le=500,
        description="Active loans a member may hold at once",
    )

    unpaid_fee_threshold: float = Field(
        default=10.00,
        ge=0.0,
        description="Unpaid late fees above this amount block new loans",
    )

    default_loan_days: int = Field(default=14, ge=1, le=365)

    default_renewal_days: int = Field(default=15, ge=1, le=365)

    max_books_per_checkout: int = Field(default=5, ge=1, le=50)

    model_config = ConfigDict(
        from_attributes=True,
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "daily_late_fee_rate": 0.5,
                "grace_period_days": 0,
                "max_late_fee_cap": 50.0,
                "max_renewals_per_loan": 2,
                "member_borrowing_limit": 5,
            }
        },
    )


class LibraryPolicyUpdate(BaseModel):
    """Partial policy update; unset fields keep their current value."""

    daily_late_fee_rate: float | None = Field(None, ge=0.0)
    grace_period_days: int | None = Field(None, ge=0, le=365)
    max_late_fee_cap: float | None = Field(None, ge=0.0)
    max_renewals_per_loan: int | None = Field(None, ge=0, le=50)
    member_borrowing_limit: int | None = Field(None, ge=0, le=500)
    unpaid_fee_threshold: float | None = Field(None, ge=0.0)
    default_loan_days: int | None = Field(None, ge=1, le=365)
    default_renewal_days: int | None = Field(None, ge=1, le=365)
    max_books_per_checkout: int | None = Field(None, ge=1, le=50)

    @model_validator(mode="after")
    def require_a_change(self) -> "LibraryPolicyUpdate":
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one policy field must be provided")
        return self
