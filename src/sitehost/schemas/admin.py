from typing import Literal
from uuid import UUID

from pydantic import BaseModel, computed_field

from src.sitehost.schemas.site import SiteRead
from src.sitehost.schemas.user import UserRead


class SiteMismatchReport(BaseModel):
    """Record <-> identifier-tree consistency check."""

    total_records: int
    records_without_tree: list[UUID]
    trees_without_record: list[str]
    name_trees: list[str]
    name_trees_without_record: list[str]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def consistent(self) -> bool:
        return not (
            self.records_without_tree or self.trees_without_record or self.name_trees_without_record
        )


class DirectoryUsage(BaseModel):
    name: str
    kind: Literal["id", "name"]
    files: int
    bytes: int


class StorageUsage(BaseModel):
    total_files: int
    total_bytes: int
    directories: list[DirectoryUsage]


class AdminOverview(BaseModel):
    sites: list[SiteRead]
    users: list[UserRead]
