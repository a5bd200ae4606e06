"""
Клавіатури для міні-гри на перевірку реакції.
"""
from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from games.reaction.logic import ReactionRecord

CB_START = "reaction:start"
CB_PRESS = "reaction:press"
CB_RESET = "reaction:reset"
CB_MENU = "reaction:menu"
CB_STATS = "reaction:stats"
CB_HISTORY = "reaction:history"
CB_LEADERBOARD_GLOBAL = "reaction:leaderboard:global"
CB_LEADERBOARD_AGE = "reaction:leaderboard:age"
CB_DELETE_PREFIX = "reaction:delete:"
CB_DELETE_CONFIRM_PREFIX = "reaction:delete_yes:"


def create_reaction_game_keyboard(state: str) -> InlineKeyboardMarkup:
    """
    Створює динамічну клавіатуру для гри на реакцію.

    Args:
        state: Поточний стан гри ('initial', 'waiting', 'armed', 'finished').

    Returns:
        Клавіатура для відповідного стану гри.
    """
    builder = InlineKeyboardBuilder()

    if state in ("waiting", "armed"):
        # Одна й та сама кнопка: до згасання це фальстарт, після - результат
        builder.button(text="🏎 ТИСНИ", callback_data=CB_PRESS)
        builder.button(text="✖️ Скинути", callback_data=CB_RESET)
        builder.adjust(1)
        return builder.as_markup()

    if state == "finished":
        builder.button(text="🔄 Ще раз", callback_data=CB_START)
    else:
        builder.button(text="🚀 Почати тест", callback_data=CB_START)
    builder.button(text="📊 Статистика", callback_data=CB_STATS)
    builder.button(text="📜 Історія", callback_data=CB_HISTORY)
    builder.button(text="🏆 Таблиця лідерів", callback_data=CB_LEADERBOARD_GLOBAL)
    builder.adjust(1, 2, 1)
    return builder.as_markup()


def create_back_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.button(text="◀️ Назад до гри", callback_data=CB_MENU)
    return builder.as_markup()


def create_leaderboard_keyboard(has_age_range: bool, active: str = "global") -> InlineKeyboardMarkup:
    """
    Перемикач глобальної таблиці та таблиці своєї вікової групи.
    Якщо вік не вказано, друга вкладка недоступна.
    """
    builder = InlineKeyboardBuilder()
    builder.button(
        text=("• " if active == "global" else "") + "🌍 Глобальна",
        callback_data=CB_LEADERBOARD_GLOBAL,
    )
    if has_age_range:
        builder.button(
            text=("• " if active == "age" else "") + "👥 Моя вікова група",
            callback_data=CB_LEADERBOARD_AGE,
        )
    builder.button(text="◀️ Назад до гри", callback_data=CB_MENU)
    builder.adjust(2 if has_age_range else 1, 1)
    return builder.as_markup()


def create_history_keyboard(records: Sequence[ReactionRecord]) -> InlineKeyboardMarkup:
    """Кнопка видалення для кожного показаного запису."""
    builder = InlineKeyboardBuilder()
    for record in records:
        builder.button(
            text=f"🗑 {record.duration_ms} мс",
            callback_data=f"{CB_DELETE_PREFIX}{record.record_id}",
        )
    builder.adjust(3)
    builder.row(InlineKeyboardButton(text="◀️ Назад до гри", callback_data=CB_MENU))
    return builder.as_markup()


def create_delete_confirm_keyboard(record_id: int) -> InlineKeyboardMarkup:
    """
    Підтвердження видалення результату:
    | ✅ Так | ❌ Ні |
    """
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Так", callback_data=f"{CB_DELETE_CONFIRM_PREFIX}{record_id}"),
        InlineKeyboardButton(text="❌ Ні", callback_data=CB_HISTORY),
    )
    return builder.as_markup()
