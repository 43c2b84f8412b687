"""
Book model for the Library Desk MCP Server.

A book is a catalogue entry with ``stock`` copies on the shelf. Circulation
tools move copies in and out; resources expose the current shelf state.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.schema import BookStatusEnum as BookStatus


class Book(BaseModel):
    """A catalogue entry owned by one library or bookstore account."""

    id: str = Field(..., description="Unique identifier for the book", examples=["book_9f2c41d07a3b55e1"])
    owner_id: str = Field(..., description="Owning account id")

    title: str = Field(..., min_length=1, max_length=500, examples=["The Great Gatsby"])
    author: str = Field(..., min_length=1, max_length=300, examples=["F. Scott Fitzgerald"])
    isbn: str | None = Field(None, max_length=20, examples=["9780743273565"])
    category: str | None = Field(None, max_length=100, examples=["Fiction"])

    stock: int = Field(default=1, ge=0, description="Copies currently on the shelf")
    status: BookStatus = Field(default=BookStatus.AVAILABLE, description="Shelf status")
    price: float = Field(default=0.0, ge=0.0, description="Sale price")

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_lendable(self) -> bool:
        """Whether a copy can leave the shelf right now."""
        return self.stock > 0 and self.status not in (BookStatus.NEEDS_REPAIR, BookStatus.LOST)

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
    )


class BookCreate(BaseModel):
    """Fields accepted when cataloguing a new book."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=300)
    isbn: str | None = Field(None, max_length=20)
    category: str | None = Field(None, max_length=100)
    stock: int = Field(default=1, ge=0)
    status: BookStatus | None = None
    price: float = Field(default=0.0, ge=0.0)

    @model_validator(mode="after")
    def default_status_from_stock(self) -> "BookCreate":
        """An empty shelf is never Available."""
        if self.status is None:
            self.status = BookStatus.AVAILABLE if self.stock > 0 else BookStatus.OUT_OF_STOCK
        elif self.stock == 0 and self.status == BookStatus.AVAILABLE:
            raise ValueError("A book with no stock cannot be Available")
        return self
