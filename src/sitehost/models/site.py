"""Site model - one deployed version of a named site."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.sitehost.core.security.validators import MAX_SITE_NAME_LENGTH
from src.sitehost.models.base import utc_now

DEFAULT_SITE_DESCRIPTION = "Site uploaded from CLI"


class Site(SQLModel, table=True):
    """A deployed site version.

    The id is chosen by the uploading client and never changes. Several rows
    may share a name; the one with the greatest ``created_at`` is the version
    served under ``/sites/{name}/``.
    """

    __tablename__ = "sites"
    __table_args__ = (
        # Prefix scan for list_by_owner, newest first
        Index("ix_sites_owner_created", "owner_id", "created_at", "id"),
        # Latest-by-name lookup
        Index("ix_sites_name_created", "name", "created_at", "id"),
    )

    id: UUID = Field(primary_key=True)
    owner_id: UUID
    name: str = Field(max_length=MAX_SITE_NAME_LENGTH)
    description: str = Field(default=DEFAULT_SITE_DESCRIPTION, max_length=1000)
    domain: str | None = Field(default=None, max_length=253)
    created_at: datetime = Field(default_factory=utc_now)
