"""Storage dependencies - the handle opened by the lifespan."""

from typing import Annotated

from fastapi import Depends, Request

from src.sitehost.core.config import Settings, get_settings
from src.sitehost.storage import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage  # type: ignore[no-any-return]


StorageDep = Annotated[Storage, Depends(get_storage)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
