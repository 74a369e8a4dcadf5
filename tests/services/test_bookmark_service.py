"""Tests for the bookmark table client."""
import json
from typing import Any

import pytest
import respx
from httpx import Response

from schemas.bookmark import BookmarkCreate
from services.backend_client import BackendClient
from services.exceptions import DataApiError


async def test__list_bookmarks__preserves_server_order_and_count(
    backend: BackendClient,
    mock_backend: respx.MockRouter,
    sample_bookmarks: list[dict[str, Any]],
) -> None:
    route = mock_backend.get("/rest/v1/bookmarks").mock(
        return_value=Response(200, json=sample_bookmarks),
    )

    bookmarks = await backend.bookmarks.list_bookmarks()

    assert [b.id for b in bookmarks] == ["b3", "b2", "b1"]
    assert len(bookmarks) == len(sample_bookmarks)
    params = route.calls.last.request.url.params
    assert params["select"] == "*"
    assert params["order"] == "created_at.desc"


async def test__list_bookmarks__sends_session_token(
    backend: BackendClient,
    mock_backend: respx.MockRouter,
) -> None:
    route = mock_backend.get("/rest/v1/bookmarks").mock(return_value=Response(200, json=[]))

    assert await backend.bookmarks.list_bookmarks() == []

    headers = route.calls.last.request.headers
    assert headers["authorization"] == "Bearer access-token-1"
    assert headers["apikey"] == "anon-test-key"


async def test__list_bookmarks__error_raises_data_api_error(
    backend: BackendClient,
    mock_backend: respx.MockRouter,
) -> None:
    mock_backend.get("/rest/v1/bookmarks").mock(
        return_value=Response(
            401,
            json={"code": "PGRST301", "message": "JWT expired", "details": None, "hint": None},
        ),
    )

    with pytest.raises(DataApiError) as exc_info:
        await backend.bookmarks.list_bookmarks()

    assert exc_info.value.status_code == 401
    assert exc_info.value.code == "PGRST301"
    assert exc_info.value.message == "JWT expired"


async def test__list_bookmarks__malformed_rows_raise(
    backend: BackendClient,
    mock_backend: respx.MockRouter,
) -> None:
    mock_backend.get("/rest/v1/bookmarks").mock(
        return_value=Response(200, json=[{"id": "b1"}]),
    )
    with pytest.raises(DataApiError, match="Malformed"):
        await backend.bookmarks.list_bookmarks()


async def test__create_bookmark__inserts_one_row_with_user_id(
    backend: BackendClient,
    mock_backend: respx.MockRouter,
) -> None:
    route = mock_backend.post("/rest/v1/bookmarks").mock(return_value=Response(201))

    await backend.bookmarks.create_bookmark(
        BookmarkCreate(title="Example", url="https://example.com"),
        user_id="user-1",
    )

    assert route.call_count == 1
    request = route.calls.last.request
    assert json.loads(request.content) == [
        {"title": "Example", "url": "https://example.com", "user_id": "user-1"},
    ]
    assert request.headers["prefer"] == "return=minimal"


async def test__create_bookmark__policy_violation_raises(
    backend: BackendClient,
    mock_backend: respx.MockRouter,
) -> None:
    mock_backend.post("/rest/v1/bookmarks").mock(
        return_value=Response(
            403,
            json={
                "code": "42501",
                "message": 'new row violates row-level security policy for table "bookmarks"',
            },
        ),
    )
    with pytest.raises(DataApiError) as exc_info:
        await backend.bookmarks.create_bookmark(
            BookmarkCreate(title="Example", url="https://example.com"),
            user_id="someone-else",
        )
    assert exc_info.value.code == "42501"


async def test__delete_bookmark__filters_on_id(
    backend: BackendClient,
    mock_backend: respx.MockRouter,
) -> None:
    route = mock_backend.delete("/rest/v1/bookmarks").mock(return_value=Response(204))

    await backend.bookmarks.delete_bookmark("abc123")

    assert route.call_count == 1
    assert route.calls.last.request.url.params["id"] == "eq.abc123"


async def test__delete_bookmark__error_raises(
    backend: BackendClient,
    mock_backend: respx.MockRouter,
) -> None:
    mock_backend.delete("/rest/v1/bookmarks").mock(return_value=Response(500))
    with pytest.raises(DataApiError):
        await backend.bookmarks.delete_bookmark("abc123")
