"""Member repository implementation for the Library Desk MCP Server."""

from ..database.schema import Member as MemberDB
from ..models.member import Member as MemberModel
from ..models.member import MemberCreate
from .repository import BaseRepository


class MemberRepository(BaseRepository[MemberDB, MemberCreate, MemberModel]):
    """Repository for patrons and customers."""

    @property
    def model_class(self):
        return MemberDB

    @property
    def response_schema(self):
        return MemberModel
