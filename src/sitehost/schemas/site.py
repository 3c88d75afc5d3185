from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from src.sitehost.core.security import validate_site_name
from src.sitehost.models import Site


class SiteRead(BaseModel):
    id: UUID
    owner_id: UUID
    name: str
    description: str
    domain: str | None
    created_at: datetime
    url: str
    id_url: str

    @classmethod
    def from_site(cls, site: Site, base_url: str) -> "SiteRead":
        """Attach the two public URLs a site is served under."""
        return cls(
            id=site.id,
            owner_id=site.owner_id,
            name=site.name,
            description=site.description,
            domain=site.domain,
            created_at=site.created_at,
            url=f"{base_url}/sites/{site.name}/",
            id_url=f"{base_url}/sites/{site.id}/",
        )


class SiteUpdate(BaseModel):
    """Partial update; omitted fields stay as they are."""

    name: str | None = Field(None, max_length=64)
    description: str | None = Field(None, max_length=1000)
    domain: str | None = Field(None, max_length=253)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_site_name(v)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "SiteUpdate":
        # domain may be cleared with null; name and description may not
        for field in ("name", "description"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class SiteDeleted(BaseModel):
    id: UUID
    message: str = "Site deleted"
