"""Member model for the Library Desk MCP Server."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..database.schema import MemberStatusEnum as MemberStatus


class Member(BaseModel):
    """A patron (library) or customer (bookstore) of one account."""

    id: str = Field(..., description="Unique identifier for the member")
    owner_id: str = Field(..., description="Owning account id")
    name: str = Field(..., min_length=1, max_length=200, examples=["Jane Doe"])
    email: EmailStr | None = Field(None, examples=["jane.doe@example.com"])
    phone: str | None = Field(None, max_length=30)
    status: MemberStatus = Field(default=MemberStatus.ACTIVE)

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class MemberCreate(BaseModel):
    """Fields accepted when registering a member."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=30)
    status: MemberStatus = MemberStatus.ACTIVE
