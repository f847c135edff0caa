"""Unit tests for auth module."""

import pytest
from fastapi import HTTPException

from backend.tripline.api.auth import DEFAULT_USER_ID, get_current_context


@pytest.mark.asyncio
async def test_get_current_context_no_header_uses_default_user() -> None:
    """Test that a missing auth header falls back to the development user."""
    ctx = await get_current_context(authorization=None)

    assert ctx.user_id == DEFAULT_USER_ID


@pytest.mark.asyncio
async def test_get_current_context_valid_token() -> None:
    """Test bearer token carries the user id."""
    ctx = await get_current_context(authorization="Bearer traveler-42")

    assert ctx.user_id == "traveler-42"


@pytest.mark.asyncio
async def test_get_current_context_invalid_bearer_format() -> None:
    """Test invalid scheme raises 401."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_context(authorization="Basic dXNlcjpwYXNz")

    assert exc_info.value.status_code == 401
    assert "Invalid authorization header format" in exc_info.value.detail


@pytest.mark.asyncio
@pytest.mark.parametrize("header", ["Bearer ", "Bearer    ", "Bearer two words"])
async def test_get_current_context_invalid_token(header: str) -> None:
    """Test empty or multi-word tokens raise 401."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_context(authorization=header)

    assert exc_info.value.status_code == 401
