"""Admin API behavior tests, including the end-to-end create/rename/delete scenarios."""

import pytest
from httpx import AsyncClient

from shortlinks.config import get_settings
from shortlinks.enums import Namespace
from shortlinks.keys import ALL_PARTITION, user_partition
from shortlinks.resolver import drain_pending_increments

HOME = {"group": "ab", "slug": "home", "target": "https://example.com", "createdBy": "u1"}


async def partition(index_manager, name: str) -> list[str]:
    return await index_manager.members(name)


# ============================================================================
# END-TO-END SCENARIOS
# ============================================================================


@pytest.mark.asyncio
async def test_create_then_resolve_counts_one_click(client: AsyncClient) -> None:
    response = await client.post("/admin/redirects", json=HOME)
    assert response.status_code == 201
    assert response.json() == {"message": "Redirect created", "key": "ab/home"}

    redirect = await client.get("/ab/home", follow_redirects=False)
    assert redirect.status_code == 302
    assert redirect.headers["location"] == "https://example.com"
    await drain_pending_increments()

    detail = await client.get("/admin/redirects/ab/home")
    assert detail.json()["clicks"] == 1


@pytest.mark.asyncio
async def test_duplicate_create_conflicts(client: AsyncClient) -> None:
    await client.post("/admin/redirects", json=HOME)

    response = await client.post("/admin/redirects", json={**HOME, "target": "https://other.example.com"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_slug_rename_moves_key(client: AsyncClient, index_manager, namespaces, redis_data) -> None:
    await client.post("/admin/redirects", json=HOME)

    response = await client.put("/admin/redirects/ab/home", json={"slug": "landing"})
    assert response.status_code == 200
    assert response.json() == {"message": "Updated and key moved", "oldKey": "ab/home", "newKey": "ab/landing"}

    records = namespaces[Namespace.RECORDS]
    assert records.redis_key("ab/home") not in redis_data
    assert records.redis_key("ab/landing") in redis_data
    assert await partition(index_manager, ALL_PARTITION) == ["ab/landing"]
    assert await partition(index_manager, user_partition("u1")) == ["ab/landing"]

    assert (await client.get("/ab/home", follow_redirects=False)).status_code == 404
    assert (await client.get("/ab/landing", follow_redirects=False)).status_code == 302


@pytest.mark.asyncio
async def test_delete_then_resolve_is_not_found(client: AsyncClient, index_manager) -> None:
    await client.post("/admin/redirects", json={**HOME, "slug": "landing"})

    response = await client.delete("/admin/redirects/ab/landing")
    assert response.status_code == 200
    assert response.json() == {"message": "Deleted", "key": "ab/landing"}

    assert (await client.get("/ab/landing", follow_redirects=False)).status_code == 404
    assert "ab/landing" not in await partition(index_manager, ALL_PARTITION)


@pytest.mark.asyncio
async def test_invalid_target_writes_nothing(client: AsyncClient, redis_data, mock_redis) -> None:
    response = await client.post("/admin/redirects", json={**HOME, "target": "not-a-url"})

    assert response.status_code == 400
    assert redis_data == {}
    mock_redis.set.assert_not_awaited()


# ============================================================================
# AUTHENTICATION
# ============================================================================


@pytest.mark.asyncio
async def test_wrong_admin_key_is_unauthorized(client: AsyncClient) -> None:
    response = await client.get("/admin/redirects", headers={"X-Admin-Api-Key": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


@pytest.mark.asyncio
async def test_unconfigured_admin_key_rejects_everything(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(get_settings(), "ADMIN_API_KEY", "")

    response = await client.post("/admin/redirects", json=HOME)
    assert response.status_code == 500
    assert response.json() == {"detail": "Admin API key not configured"}


# ============================================================================
# VALIDATION
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {**HOME, "group": "a b"},
        {**HOME, "slug": "bad/slug"},
        {**HOME, "group": "g" * 33},
        {**HOME, "createdBy": ""},
        {key: value for key, value in HOME.items() if key != "createdBy"},
    ],
)
async def test_create_rejects_invalid_body(client: AsyncClient, body: dict) -> None:
    response = await client.post("/admin/redirects", json=body)
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("target", ["http://localhost:3000/x", "https://intranet/wiki"])
async def test_create_accepts_local_and_intranet_targets(client: AsyncClient, target: str) -> None:
    response = await client.post("/admin/redirects", json={**HOME, "target": target})
    assert response.status_code == 201

    redirect = await client.get("/ab/home", follow_redirects=False)
    assert redirect.headers["location"] == target


@pytest.mark.asyncio
@pytest.mark.parametrize("target", ["http://localhost:3000/x", "https://intranet/wiki"])
async def test_update_accepts_local_and_intranet_targets(client: AsyncClient, target: str) -> None:
    await client.post("/admin/redirects", json=HOME)

    response = await client.put("/admin/redirects/ab/home", json={"target": target})
    assert response.status_code == 200
    assert (await client.get("/admin/redirects/ab/home")).json()["data"]["target"] == target


@pytest.mark.asyncio
@pytest.mark.parametrize("target", ["not-a-url", "/relative/path", "example.com"])
async def test_create_rejects_non_absolute_targets(client: AsyncClient, target: str) -> None:
    response = await client.post("/admin/redirects", json={**HOME, "target": target})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_rejects_empty_patch(client: AsyncClient) -> None:
    await client.post("/admin/redirects", json=HOME)

    response = await client.put("/admin/redirects/ab/home", json={"unknown": "field"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Nothing to update"}


@pytest.mark.asyncio
@pytest.mark.parametrize("patch", [{"target": "nope"}, {"target": None}, {"slug": "has space"}, {"group": ""}])
async def test_update_rejects_invalid_patch(client: AsyncClient, patch: dict) -> None:
    await client.post("/admin/redirects", json=HOME)

    response = await client.put("/admin/redirects/ab/home", json=patch)
    assert response.status_code == 400
    assert (await client.get("/admin/redirects/ab/home")).json()["data"]["target"] == "https://example.com"


@pytest.mark.asyncio
async def test_admin_path_is_validated(client: AsyncClient) -> None:
    response = await client.get("/admin/redirects/ab/bad.slug")
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid path"}


# ============================================================================
# READ / UPDATE / DELETE
# ============================================================================


@pytest.mark.asyncio
async def test_get_one_returns_record_and_clicks(client: AsyncClient) -> None:
    await client.post("/admin/redirects", json={**HOME, "title": "Home", "notes": "front page"})

    response = await client.get("/admin/redirects/ab/home")
    assert response.status_code == 200
    body = response.json()
    assert body["key"] == "ab/home"
    assert body["clicks"] == 0
    assert body["data"]["createdBy"] == "u1"
    assert body["data"]["title"] == "Home"
    assert body["data"]["notes"] == "front page"
    assert body["data"]["createdAt"] == body["data"]["updatedAt"]


@pytest.mark.asyncio
async def test_get_one_missing(client: AsyncClient) -> None:
    response = await client.get("/admin/redirects/ab/nothing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_same_key_update(client: AsyncClient) -> None:
    await client.post("/admin/redirects", json=HOME)

    response = await client.put("/admin/redirects/ab/home", json={"target": "https://new.example.com", "title": "New"})
    assert response.status_code == 200
    assert response.json() == {"message": "Updated", "key": "ab/home"}

    data = (await client.get("/admin/redirects/ab/home")).json()["data"]
    assert data["target"] == "https://new.example.com"
    assert data["title"] == "New"


@pytest.mark.asyncio
async def test_rename_onto_existing_key_conflicts(client: AsyncClient) -> None:
    await client.post("/admin/redirects", json=HOME)
    await client.post("/admin/redirects", json={**HOME, "slug": "landing"})

    response = await client.put("/admin/redirects/ab/home", json={"slug": "landing"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_rename_keeps_clicks(client: AsyncClient) -> None:
    await client.post("/admin/redirects", json=HOME)
    for _ in range(2):
        await client.get("/ab/home", follow_redirects=False)
        await drain_pending_increments()

    await client.put("/admin/redirects/ab/home", json={"group": "cd"})

    assert (await client.get("/admin/redirects/cd/home")).json()["clicks"] == 2


@pytest.mark.asyncio
async def test_update_and_delete_missing_key(client: AsyncClient) -> None:
    assert (await client.put("/admin/redirects/ab/nothing", json={"title": "x"})).status_code == 404
    assert (await client.delete("/admin/redirects/ab/nothing")).status_code == 404


@pytest.mark.asyncio
async def test_check_slug(client: AsyncClient) -> None:
    await client.post("/admin/redirects", json=HOME)

    taken = await client.get("/admin/redirects/check", params={"group": "ab", "slug": "home"})
    free = await client.get("/admin/redirects/check", params={"group": "ab", "slug": "free"})
    invalid = await client.get("/admin/redirects/check", params={"group": "a b", "slug": "free"})

    assert taken.json() == {"key": "ab/home", "exists": True}
    assert free.json() == {"key": "ab/free", "exists": False}
    assert invalid.status_code == 400


# ============================================================================
# LISTING
# ============================================================================


@pytest.mark.asyncio
async def test_list_paginates_all_redirects(client: AsyncClient) -> None:
    for i in range(5):
        await client.post("/admin/redirects", json={**HOME, "slug": f"s{i}"})

    first = (await client.get("/admin/redirects", params={"page": 1, "pageSize": 2})).json()
    last = (await client.get("/admin/redirects", params={"page": 3, "pageSize": 2})).json()

    assert first["totalItems"] == 5
    assert first["totalPages"] == 3
    assert first["pageSize"] == 2
    assert [item["key"] for item in first["items"]] == ["ab/s0", "ab/s1"]
    assert first["items"][0]["data"]["slug"] == "s0"
    assert [item["key"] for item in last["items"]] == ["ab/s4"]


@pytest.mark.asyncio
async def test_list_uses_default_page_size(client: AsyncClient) -> None:
    response = await client.get("/admin/redirects")
    assert response.status_code == 200
    assert response.json() == {"page": 1, "pageSize": 20, "totalItems": 0, "totalPages": 0, "items": []}


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{"page": 0}, {"pageSize": 0}, {"pageSize": 51}, {"page": "x"}])
async def test_list_rejects_bad_pagination(client: AsyncClient, params: dict) -> None:
    response = await client.get("/admin/redirects", params=params)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_by_user_is_scoped(client: AsyncClient) -> None:
    await client.post("/admin/redirects", json={**HOME, "slug": "one"})
    await client.post("/admin/redirects", json={**HOME, "slug": "two", "createdBy": "u2"})
    await client.post("/admin/redirects", json={**HOME, "slug": "three"})

    response = await client.get("/admin/redirects/by-user", params={"user": "u1"})
    body = response.json()
    assert body["user"] == "u1"
    assert body["totalItems"] == 2
    assert [item["key"] for item in body["items"]] == ["ab/one", "ab/three"]


@pytest.mark.asyncio
async def test_list_by_user_requires_user(client: AsyncClient) -> None:
    response = await client.get("/admin/redirects/by-user")
    assert response.status_code == 400
