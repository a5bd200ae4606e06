"""
Tests for profile helpers and user CRUD.
"""
import pytest

from database.crud import add_or_update_user, delete_user_by_telegram_id, get_user_by_telegram_id
from handlers.registration_handler import NICKNAME_MAX_LENGTH, format_profile_display, validate_nickname


@pytest.mark.parametrize("raw, expected", [
    ("  Schumi  ", "Schumi"),
    ("x" * NICKNAME_MAX_LENGTH, "x" * NICKNAME_MAX_LENGTH),
    ("x" * (NICKNAME_MAX_LENGTH + 1), None),
    ("", None),
    ("   ", None),
    (None, None),
    ("/start", None),
])
def test_validate_nickname(raw, expected):
    assert validate_nickname(raw) == expected


def test_profile_display_without_stats():
    text = format_profile_display({"nickname": "<Lando>", "age_range": None}, None)

    assert "&lt;Lando&gt;" in text
    assert "Не вказано" in text
    assert "--- мс" in text


def test_profile_display_with_stats():
    text = format_profile_display(
        {"nickname": "Max", "age_range": "18_24"},
        {"best_time": 187, "average_time": 231.4, "total_tests": 12},
    )

    assert "18-24" in text
    assert "187 мс" in text
    assert "231 мс" in text
    assert "12" in text


@pytest.mark.asyncio
async def test_user_create_update_delete(db):
    assert await add_or_update_user({"telegram_id": 42, "nickname": "Max"}) is True
    assert await add_or_update_user({"telegram_id": 42, "age_range": "25_34"}) is True

    user = await get_user_by_telegram_id(42)
    assert user["nickname"] == "Max"
    assert user["age_range"] == "25_34"

    assert await delete_user_by_telegram_id(42) is True
    assert await get_user_by_telegram_id(42) is None
    assert await delete_user_by_telegram_id(42) is False


@pytest.mark.asyncio
async def test_add_user_requires_telegram_id(db):
    assert await add_or_update_user({"nickname": "Ghost"}) is False
