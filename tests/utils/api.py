"""HTTP helpers shared by the API tests."""

from uuid import UUID, uuid4

from httpx import AsyncClient, Response

from tests.factories import DEFAULT_TEST_PASSWORD
from tests.utils.archives import site_files, tar_gz_bytes

ADMIN_KEY = "test-admin-key"
BASE_URL = "http://test"


async def register_and_login(
    client: AsyncClient, username: str, password: str = DEFAULT_TEST_PASSWORD
) -> dict[str, str]:
    """Create an account and return its Authorization header."""
    response = await client.post(
        "/api/v1/auth/register", json={"username": username, "password": password}
    )
    assert response.status_code == 201, response.text
    response = await client.post(
        "/api/v1/auth/login", json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def upload_site(
    client: AsyncClient,
    headers: dict[str, str],
    name: str,
    site_id: UUID | None = None,
    *,
    archive: bytes | None = None,
    filename: str = "site.tar.gz",
    description: str | None = None,
) -> Response:
    """POST a multipart upload; the archive defaults to a small .tar.gz site."""
    site_id = site_id or uuid4()
    data = {"uuid": str(site_id), "siteName": name}
    if description is not None:
        data["description"] = description
    if archive is None:
        archive = tar_gz_bytes(site_files(site_id))
    return await client.post(
        "/api/v1/sites",
        data=data,
        files={"site": (filename, archive, "application/octet-stream")},
        headers=headers,
    )
