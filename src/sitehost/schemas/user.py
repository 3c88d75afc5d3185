from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.sitehost.core.security import validate_username
from src.sitehost.schemas.site import SiteRead


class UserRead(BaseModel):
    id: UUID
    username: str
    created_at: datetime

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=64)

    @field_validator("username")
    @classmethod
    def validate_username_format(cls, v: str | None) -> str | None:
        return validate_username(v) if v is not None else v


class UserProfile(BaseModel):
    user: UserRead
    sites: list[SiteRead]
    total_sites: int


class UserStats(BaseModel):
    user_id: UUID
    username: str
    total_sites: int
    distinct_names: int
    account_created: datetime
    latest_upload: datetime | None
    sites: list[SiteRead]


class AccountDeleted(BaseModel):
    message: str = "User account deleted"
