"""
Обробники для міні-гри на перевірку реакції.
"""
import asyncio
from dataclasses import dataclass
from typing import Sequence

from aiogram import Bot, Dispatcher, F, types
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.types import InlineKeyboardMarkup

from config import HISTORY_PAGE_SIZE, LEADERBOARD_DISPLAY_LIMIT, logger
from database.crud import get_user_by_telegram_id
from games.reaction import crud
from games.reaction import messages as msg
from games.reaction.errors import DataUnavailableError, FalseStartError, PersistenceError
from games.reaction.keyboards import (
    CB_DELETE_CONFIRM_PREFIX,
    CB_DELETE_PREFIX,
    CB_HISTORY,
    CB_LEADERBOARD_AGE,
    CB_LEADERBOARD_GLOBAL,
    CB_MENU,
    CB_PRESS,
    CB_RESET,
    CB_START,
    CB_STATS,
    create_back_keyboard,
    create_delete_confirm_keyboard,
    create_history_keyboard,
    create_leaderboard_keyboard,
    create_reaction_game_keyboard,
)
from games.reaction.logic import Phase
from games.reaction.service import (
    ReactionSession,
    delete_result_and_recompute,
    get_peer_percentile,
    get_personal_stats,
)
from utils.cache_manager import load_leaderboard


class LightsView:
    """
    Одне повідомлення Telegram, в якому малюються вогні та результат.
    Редагування серіалізуються через lock, тож порядок кадрів зберігається.
    """

    def __init__(self, bot: Bot, chat_id: int, message_id: int):
        self._bot = bot
        self._chat_id = chat_id
        self.message_id = message_id
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    def on_lights(self, phase: Phase, lights: Sequence[bool]) -> None:
        """Слухач секвенсора: викликається синхронно з таймера event loop."""
        # IDLE (фальстарт, скидання) малюють обробники своїм текстом
        if phase not in (Phase.WAITING, Phase.ARMED):
            return
        task = asyncio.create_task(
            self.show(msg.get_lights_text(phase, lights), create_reaction_game_keyboard(phase.value))
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def show(self, text: str, reply_markup: InlineKeyboardMarkup | None = None) -> None:
        async with self._lock:
            try:
                await self._bot.edit_message_text(
                    text=text,
                    chat_id=self._chat_id,
                    message_id=self.message_id,
                    reply_markup=reply_markup
                )
            except TelegramBadRequest as e:
                if "message is not modified" in str(e):
                    logger.debug(f"Game message {self.message_id} not modified.")
                else:
                    logger.warning(f"Could not edit game message {self.message_id}: {e}")
            except TelegramAPIError as e:
                logger.error(f"Telegram API error while rendering game {self.message_id}: {e}")


@dataclass
class ActiveGame:
    session: ReactionSession
    view: LightsView


# Словник для зберігання активних ігор: user_id -> гра
active_games: dict[int, ActiveGame] = {}


async def show_game_menu(callback_query: types.CallbackQuery):
    """Початковий екран гри."""
    await callback_query.message.edit_text(
        msg.MSG_INTRO,
        reply_markup=create_reaction_game_keyboard("initial")
    )
    await callback_query.answer()


async def start_reaction_game(callback_query: types.CallbackQuery, bot: Bot):
    """
    Запускає новий заїзд. Попередній заїзд цього гравця (якщо був)
    скидається разом з усіма його таймерами.
    """
    user_id = callback_query.from_user.id
    message = callback_query.message

    if not message:
        await callback_query.answer(msg.MSG_ERROR_NO_MESSAGE, show_alert=True)
        return

    # Перевірка, чи гравець зареєстрований
    user_profile = await get_user_by_telegram_id(user_id)
    if not user_profile:
        await callback_query.answer(msg.MSG_ERROR_NOT_REGISTERED, show_alert=True)
        return

    previous = active_games.pop(user_id, None)
    if previous:
        previous.session.reset()

    view = LightsView(bot, message.chat.id, message.message_id)
    session = ReactionSession(user_id, on_change=view.on_lights)
    active_games[user_id] = ActiveGame(session=session, view=view)

    await callback_query.answer(msg.MSG_PREPARE)
    session.start()


async def press_handler(callback_query: types.CallbackQuery):
    """
    Обробляє натискання під час заїзду: фальстарт, результат або ігнор.
    """
    user_id = callback_query.from_user.id
    game = active_games.get(user_id)
    message = callback_query.message

    if not game or not message or game.view.message_id != message.message_id:
        await callback_query.answer(msg.MSG_GAME_OVER, show_alert=True)
        return

    try:
        finished = game.session.press()
    except FalseStartError:
        await callback_query.answer(msg.MSG_TOO_EARLY, show_alert=True)
        await game.view.show(msg.MSG_FALSE_START, create_reaction_game_keyboard("finished"))
        return

    if finished is None:
        await callback_query.answer(msg.MSG_GAME_OVER)
        return

    time_ms = finished.duration_ms
    # Результат показуємо одразу, збереження йде паралельно
    await callback_query.answer(msg.get_user_time_answer(time_ms))
    await game.view.show(
        msg.get_result_text(time_ms, finished.label, msg.MSG_SAVING),
        create_reaction_game_keyboard("finished")
    )

    try:
        saved = await finished.saved
    except PersistenceError:
        footer = msg.MSG_SAVE_FAILED
    else:
        footer = msg.get_saved_footer(saved)

    # Поки зберігали, гравець міг почати новий заїзд у цьому ж повідомленні
    if active_games.get(user_id) is not game:
        logger.debug(f"User {user_id}: newer run owns the message, skipping stale result render.")
        return

    await game.view.show(
        msg.get_result_text(time_ms, finished.label, footer),
        create_reaction_game_keyboard("finished")
    )
    del active_games[user_id]


async def reset_handler(callback_query: types.CallbackQuery):
    """Скидає поточний заїзд без результату."""
    game = active_games.pop(callback_query.from_user.id, None)
    if game:
        game.session.reset()
    await show_game_menu(callback_query)


async def show_stats(callback_query: types.CallbackQuery):
    """Особиста статистика + перцентиль серед суперників."""
    user_id = callback_query.from_user.id
    user = await get_user_by_telegram_id(user_id)
    if not user:
        await callback_query.answer(msg.MSG_ERROR_NOT_REGISTERED, show_alert=True)
        return

    try:
        summary = await get_personal_stats(user_id)
        try:
            peer = await get_peer_percentile(user_id)
        except DataUnavailableError:
            # Порожня група - це нормальний стан, а не помилка
            peer = None
        text = msg.get_stats_text(summary, peer, user.get("age_range"))
    except PersistenceError:
        text = msg.MSG_DB_UNAVAILABLE

    await callback_query.message.edit_text(text, reply_markup=create_back_keyboard())
    await callback_query.answer()


async def _render_history(user_id: int, message: types.Message) -> bool:
    try:
        records = await crud.list_results(user_id)
    except PersistenceError:
        return False

    page = records[:HISTORY_PAGE_SIZE]
    keyboard = create_history_keyboard(page) if page else create_back_keyboard()
    await message.edit_text(
        msg.get_history_text(
            page,
            total=len(records),
            all_times=[record.duration_ms for record in records],
        ),
        reply_markup=keyboard
    )
    return True


async def show_history(callback_query: types.CallbackQuery):
    """Останні результати з кнопками видалення."""
    if await _render_history(callback_query.from_user.id, callback_query.message):
        await callback_query.answer()
    else:
        await callback_query.answer(msg.MSG_DB_UNAVAILABLE, show_alert=True)


async def ask_delete_result(callback_query: types.CallbackQuery):
    record_id = int(callback_query.data.removeprefix(CB_DELETE_PREFIX))
    await callback_query.message.edit_text(
        msg.MSG_DELETE_CONFIRM,
        reply_markup=create_delete_confirm_keyboard(record_id)
    )
    await callback_query.answer()


async def confirm_delete_result(callback_query: types.CallbackQuery):
    """Видаляє результат і повертає оновлену історію."""
    user_id = callback_query.from_user.id
    record_id = int(callback_query.data.removeprefix(CB_DELETE_CONFIRM_PREFIX))
    try:
        summary = await delete_result_and_recompute(user_id, record_id)
    except PersistenceError:
        await callback_query.answer(msg.MSG_DB_UNAVAILABLE, show_alert=True)
        return

    await _render_history(user_id, callback_query.message)
    # Повторне натискання "Так": запис уже зник
    await callback_query.answer(msg.MSG_DELETED if summary is not None else msg.MSG_NOT_DELETED)


async def show_leaderboard(callback_query: types.CallbackQuery):
    """Показує актуальну таблицю лідерів: глобальну або своєї вікової групи."""
    user_id = callback_query.from_user.id
    user = await get_user_by_telegram_id(user_id)
    user_age_range = user.get("age_range") if user else None

    wants_age = callback_query.data == CB_LEADERBOARD_AGE and user_age_range is not None
    age_range = user_age_range if wants_age else None

    try:
        leaderboard_data = await load_leaderboard(age_range)
    except PersistenceError:
        await callback_query.answer(msg.MSG_DB_UNAVAILABLE, show_alert=True)
        return

    text = msg.get_leaderboard_text(
        leaderboard_data, user_id, age_range=age_range, limit=LEADERBOARD_DISPLAY_LIMIT
    )
    try:
        await callback_query.message.edit_text(
            text,
            reply_markup=create_leaderboard_keyboard(
                has_age_range=user_age_range is not None,
                active="age" if wants_age else "global",
            )
        )
    except TelegramBadRequest as e:
        if "message is not modified" not in str(e):
            raise
    await callback_query.answer()


def register_reaction_handlers(dp: Dispatcher):
    """Реєструє всі обробники для гри 'Reaction Time'."""
    dp.callback_query.register(start_reaction_game, F.data == CB_START)
    dp.callback_query.register(press_handler, F.data == CB_PRESS)
    dp.callback_query.register(reset_handler, F.data == CB_RESET)
    dp.callback_query.register(show_game_menu, F.data == CB_MENU)
    dp.callback_query.register(show_stats, F.data == CB_STATS)
    dp.callback_query.register(show_history, F.data == CB_HISTORY)
    dp.callback_query.register(ask_delete_result, F.data.startswith(CB_DELETE_PREFIX))
    dp.callback_query.register(confirm_delete_result, F.data.startswith(CB_DELETE_CONFIRM_PREFIX))
    dp.callback_query.register(
        show_leaderboard, F.data.in_({CB_LEADERBOARD_GLOBAL, CB_LEADERBOARD_AGE})
    )
    logger.info("✅ Обробники для гри 'Reaction Time' зареєстровано.")
