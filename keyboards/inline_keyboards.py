"""
Інлайн-клавіатури загального призначення: головне меню, профіль, реєстрація.
"""
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from config import AGE_RANGES
from games.reaction.keyboards import CB_LEADERBOARD_GLOBAL, CB_MENU, CB_STATS

CB_AGE_PREFIX = "age:"
CB_AGE_SKIP = "age:skip"


def create_main_menu_keyboard() -> InlineKeyboardMarkup:
    """
    Головне меню:
    | 🏁 Тест реакції |
    | 📊 Статистика | 🏆 Лідери |
    | 👤 Профіль |
    """
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="🏁 Тест реакції", callback_data=CB_MENU))
    builder.row(
        InlineKeyboardButton(text="📊 Статистика", callback_data=CB_STATS),
        InlineKeyboardButton(text="🏆 Лідери", callback_data=CB_LEADERBOARD_GLOBAL),
    )
    builder.row(InlineKeyboardButton(text="👤 Профіль", callback_data="profile_show"))
    return builder.as_markup()


def create_age_range_keyboard() -> InlineKeyboardMarkup:
    """Вибір вікової групи; її можна пропустити."""
    builder = InlineKeyboardBuilder()
    for value, label in AGE_RANGES.items():
        builder.button(text=label, callback_data=f"{CB_AGE_PREFIX}{value}")
    builder.adjust(4)
    builder.row(InlineKeyboardButton(text="⏭ Пропустити", callback_data=CB_AGE_SKIP))
    return builder.as_markup()


def create_profile_menu_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✏️ Нікнейм", callback_data="profile_edit_nickname"),
        InlineKeyboardButton(text="🎂 Вік", callback_data="profile_edit_age"),
    )
    builder.row(InlineKeyboardButton(text="🗑️ Видалити профіль", callback_data="profile_delete"))
    builder.row(InlineKeyboardButton(text="◀️ Меню", callback_data="main_menu"))
    return builder.as_markup()


def create_delete_confirm_keyboard() -> InlineKeyboardMarkup:
    """
    Підтвердження дії видалення профілю:
    | ✅ Так | ❌ Ні |
    """
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Так", callback_data="delete_confirm_yes"),
        InlineKeyboardButton(text="❌ Ні", callback_data="delete_confirm_no")
    )
    return builder.as_markup()
