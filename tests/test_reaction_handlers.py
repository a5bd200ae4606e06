"""
Tests for the reaction game Telegram handlers with a mocked bot.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from games.reaction import handlers
from games.reaction import messages as msg
from games.reaction.keyboards import CB_DELETE_CONFIRM_PREFIX, CB_PRESS
from games.reaction.logic import Phase
from games.reaction.service import ReactionSession
from games.reaction.stats import SavedResult, summarize

USER_ID = 7
CHAT_ID = 70
MESSAGE_ID = 700


async def settle():
    """Дає відпрацювати задачам рендерингу, створеним з таймерів."""
    for _ in range(10):
        await asyncio.sleep(0)


def make_callback(data: str = CB_PRESS) -> MagicMock:
    callback = MagicMock()
    callback.data = data
    callback.from_user.id = USER_ID
    callback.message.message_id = MESSAGE_ID
    callback.message.chat.id = CHAT_ID
    callback.message.edit_text = AsyncMock()
    callback.answer = AsyncMock()
    return callback


def keyboard_callbacks(markup) -> set[str]:
    return {button.callback_data for row in markup.inline_keyboard for button in row}


@pytest.fixture(autouse=True)
def clean_active_games():
    handlers.active_games.clear()
    yield
    for game in handlers.active_games.values():
        game.session.reset()
    handlers.active_games.clear()


@pytest.fixture
def bot():
    bot = MagicMock()
    bot.edit_message_text = AsyncMock()
    return bot


@pytest.fixture
def release_save():
    return asyncio.Event()


@pytest.fixture
def game_factory(monkeypatch, scheduler, fixed_random, release_save):
    async def slow_saver(record):
        await release_save.wait()
        return SavedResult(
            record_id=1,
            duration_ms=record.duration_ms,
            summary=summarize([record.duration_ms]),
            previous_best=None,
        )

    def make_session(owner_id, on_change=None):
        return ReactionSession(
            owner_id,
            scheduler=scheduler,
            rng=fixed_random(0.0),
            on_change=on_change,
            saver=slow_saver,
        )

    monkeypatch.setattr(handlers, "ReactionSession", make_session)
    monkeypatch.setattr(
        handlers, "get_user_by_telegram_id", AsyncMock(return_value={"telegram_id": USER_ID})
    )


@pytest.mark.asyncio
async def test_result_is_shown_after_save(bot, scheduler, game_factory, release_save):
    await handlers.start_reaction_game(make_callback(), bot)
    scheduler.advance_ms(6250)
    await settle()

    press = asyncio.create_task(handlers.press_handler(make_callback()))
    await settle()
    saving_text = bot.edit_message_text.await_args.kwargs["text"]
    assert msg.MSG_SAVING in saving_text

    release_save.set()
    await press

    final = bot.edit_message_text.await_args.kwargs
    assert "250 мс" in final["text"]
    assert msg.MSG_SAVING not in final["text"]
    assert USER_ID not in handlers.active_games


@pytest.mark.asyncio
async def test_late_save_does_not_overwrite_newer_armed_run(bot, scheduler, game_factory, release_save):
    await handlers.start_reaction_game(make_callback(), bot)
    scheduler.advance_ms(6250)
    await settle()

    # Перший заїзд зафіксовано, збереження зависло
    press = asyncio.create_task(handlers.press_handler(make_callback()))
    await settle()

    # "Ще раз" у тому ж повідомленні: другий заїзд доходить до згасання
    await handlers.start_reaction_game(make_callback(), bot)
    scheduler.advance_ms(6500)
    await settle()
    assert handlers.active_games[USER_ID].session.phase is Phase.ARMED

    release_save.set()
    await press
    await settle()

    last = bot.edit_message_text.await_args.kwargs
    assert "ТИСНИ" in last["text"]
    assert CB_PRESS in keyboard_callbacks(last["reply_markup"])
    assert handlers.active_games[USER_ID].session.phase is Phase.ARMED


@pytest.mark.asyncio
async def test_second_delete_confirmation_reports_already_deleted(monkeypatch):
    monkeypatch.setattr(handlers, "delete_result_and_recompute", AsyncMock(return_value=None))
    monkeypatch.setattr(handlers.crud, "list_results", AsyncMock(return_value=[]))
    callback = make_callback(f"{CB_DELETE_CONFIRM_PREFIX}42")

    await handlers.confirm_delete_result(callback)

    handlers.delete_result_and_recompute.assert_awaited_once_with(USER_ID, 42)
    callback.message.edit_text.assert_awaited_once()
    callback.answer.assert_awaited_once_with(msg.MSG_NOT_DELETED)


@pytest.mark.asyncio
async def test_delete_confirmation_reports_deleted(monkeypatch):
    monkeypatch.setattr(
        handlers, "delete_result_and_recompute", AsyncMock(return_value=summarize([250]))
    )
    monkeypatch.setattr(handlers.crud, "list_results", AsyncMock(return_value=[]))
    callback = make_callback(f"{CB_DELETE_CONFIRM_PREFIX}42")

    await handlers.confirm_delete_result(callback)

    callback.answer.assert_awaited_once_with(msg.MSG_DELETED)
