"""
Обробники для реєстрації та управління профілем гравця:
нікнейм, вікова група (для таблиці лідерів своєї групи), видалення профілю.
"""
import html
from typing import Any, Dict

from aiogram import Dispatcher, F, Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from config import AGE_RANGES, logger
from database.crud import (
    add_or_update_user,
    delete_user_by_telegram_id,
    get_user_by_telegram_id,
)
from games.reaction import crud as reaction_crud
from games.reaction.errors import PersistenceError
from keyboards.inline_keyboards import (
    CB_AGE_PREFIX,
    CB_AGE_SKIP,
    create_age_range_keyboard,
    create_delete_confirm_keyboard,
    create_main_menu_keyboard,
    create_profile_menu_keyboard,
)
from states.user_states import RegistrationFSM
from utils.cache_manager import invalidate_leaderboard_cache
from utils.formatter import format_age_range, format_ms

registration_router = Router()

NICKNAME_MAX_LENGTH = 32


def format_profile_display(user_data: Dict[str, Any], stats: Dict[str, Any] | None) -> str:
    """Форматує дані профілю для відображення користувачу."""
    nickname = html.escape(user_data.get("nickname") or "Не вказано")
    stats = stats or {}
    return (
        f"<b>Ваш профіль:</b>\n\n"
        f"👤 <b>Нікнейм:</b> {nickname}\n"
        f"🎂 <b>Вікова група:</b> {format_age_range(user_data.get('age_range'))}\n"
        f"🏆 <b>Найкращий час:</b> {format_ms(stats.get('best_time'))}\n"
        f"⏱ <b>Середній час:</b> {format_ms(stats.get('average_time'))}\n"
        f"🔁 <b>Тестів:</b> {stats.get('total_tests') or 0}"
    )


def validate_nickname(raw: str | None) -> str | None:
    """Повертає очищений нікнейм або None, якщо він не підходить."""
    nickname = (raw or "").strip()
    if not nickname or len(nickname) > NICKNAME_MAX_LENGTH or nickname.startswith("/"):
        return None
    return nickname


async def _send_profile(message: Message, user_id: int, edit: bool = False) -> None:
    user = await get_user_by_telegram_id(user_id)
    if not user:
        await message.answer("Профіль не знайдено. Натисніть /profile, щоб зареєструватися.")
        return
    try:
        stats = await reaction_crud.get_user_stats(user_id)
    except PersistenceError:
        stats = None
    text = format_profile_display(user, stats)
    if edit:
        await message.edit_text(text, reply_markup=create_profile_menu_keyboard())
    else:
        await message.answer(text, reply_markup=create_profile_menu_keyboard())


@registration_router.message(Command("profile"))
async def cmd_profile(message: Message, state: FSMContext):
    """Показує профіль або починає реєстрацію."""
    await state.clear()
    user_id = message.from_user.id
    if await get_user_by_telegram_id(user_id):
        await _send_profile(message, user_id)
        return

    logger.info(f"User {user_id} started registration.")
    await state.set_state(RegistrationFSM.waiting_for_nickname)
    await state.update_data(is_new=True)
    await message.answer(
        "🏎 <b>Реєстрація</b>\n\n"
        f"Як вас підписати в таблиці лідерів? Надішліть нікнейм (до {NICKNAME_MAX_LENGTH} символів)."
    )


@registration_router.callback_query(F.data == "profile_show")
async def show_profile(callback_query: CallbackQuery, state: FSMContext):
    await state.clear()
    if await get_user_by_telegram_id(callback_query.from_user.id):
        await _send_profile(callback_query.message, callback_query.from_user.id, edit=True)
    else:
        await callback_query.message.answer("Натисніть /profile, щоб зареєструватися.")
    await callback_query.answer()


@registration_router.callback_query(F.data == "profile_edit_nickname")
async def edit_nickname(callback_query: CallbackQuery, state: FSMContext):
    await state.set_state(RegistrationFSM.waiting_for_nickname)
    await state.update_data(is_new=False)
    await callback_query.message.answer("Надішліть новий нікнейм.")
    await callback_query.answer()


@registration_router.message(RegistrationFSM.waiting_for_nickname)
async def receive_nickname(message: Message, state: FSMContext):
    nickname = validate_nickname(message.text)
    if nickname is None:
        await message.answer(
            f"Нікнейм має бути від 1 до {NICKNAME_MAX_LENGTH} символів і не починатися з '/'. "
            "Спробуйте ще раз."
        )
        return

    data = await state.get_data()
    if not data.get("is_new"):
        saved = await add_or_update_user({"telegram_id": message.from_user.id, "nickname": nickname})
        await state.clear()
        if saved:
            await invalidate_leaderboard_cache()
            await _send_profile(message, message.from_user.id)
        else:
            await message.answer("Не вдалося зберегти нікнейм. Спробуйте пізніше.")
        return

    await state.update_data(nickname=nickname)
    await state.set_state(RegistrationFSM.waiting_for_age_range)
    await message.answer(
        "Оберіть вікову групу, щоб змагатися з ровесниками (необов'язково).",
        reply_markup=create_age_range_keyboard()
    )


@registration_router.callback_query(F.data == "profile_edit_age")
async def edit_age_range(callback_query: CallbackQuery, state: FSMContext):
    await state.set_state(RegistrationFSM.waiting_for_age_range)
    await state.update_data(is_new=False)
    await callback_query.message.answer(
        "Оберіть вікову групу.",
        reply_markup=create_age_range_keyboard()
    )
    await callback_query.answer()


@registration_router.callback_query(
    StateFilter(RegistrationFSM.waiting_for_age_range), F.data.startswith(CB_AGE_PREFIX)
)
async def receive_age_range(callback_query: CallbackQuery, state: FSMContext):
    user_id = callback_query.from_user.id
    value = callback_query.data.removeprefix(CB_AGE_PREFIX)
    age_range = None if callback_query.data == CB_AGE_SKIP else value
    if age_range is not None and age_range not in AGE_RANGES:
        await callback_query.answer("Невідома вікова група.", show_alert=True)
        return

    data = await state.get_data()
    user_data: Dict[str, Any] = {"telegram_id": user_id, "age_range": age_range}
    if data.get("is_new"):
        user_data["nickname"] = data["nickname"]

    saved = await add_or_update_user(user_data)
    await state.clear()
    await callback_query.answer()

    if not saved:
        await callback_query.message.answer("Не вдалося зберегти профіль. Спробуйте пізніше.")
        return

    await invalidate_leaderboard_cache()
    if data.get("is_new"):
        logger.info(f"User {user_id} registered (age_range={age_range}).")
        await callback_query.message.edit_text(
            f"✅ Готово, <b>{html.escape(data['nickname'])}</b>! Можна стартувати.",
            reply_markup=create_main_menu_keyboard()
        )
    else:
        await _send_profile(callback_query.message, user_id, edit=True)


@registration_router.callback_query(F.data == "profile_delete")
async def ask_delete_profile(callback_query: CallbackQuery, state: FSMContext):
    await state.set_state(RegistrationFSM.confirming_deletion)
    await callback_query.message.edit_text(
        "<b>Видалити профіль?</b>\n\nРазом з ним зникнуть уся історія тестів і місце в таблиці лідерів.",
        reply_markup=create_delete_confirm_keyboard()
    )
    await callback_query.answer()


@registration_router.callback_query(
    StateFilter(RegistrationFSM.confirming_deletion), F.data.in_({"delete_confirm_yes", "delete_confirm_no"})
)
async def confirm_delete_profile(callback_query: CallbackQuery, state: FSMContext):
    user_id = callback_query.from_user.id
    await state.clear()
    if callback_query.data == "delete_confirm_no":
        await _send_profile(callback_query.message, user_id, edit=True)
        await callback_query.answer("Скасовано.")
        return

    deleted = await delete_user_by_telegram_id(user_id)
    if deleted:
        await invalidate_leaderboard_cache()
        await callback_query.message.edit_text("🗑️ Профіль видалено. /profile, щоб зареєструватися знову.")
    else:
        await callback_query.message.edit_text("Профіль уже видалено.")
    await callback_query.answer()


def register_registration_handlers(dp: Dispatcher):
    """Реєструє роутер профілю."""
    dp.include_router(registration_router)
    logger.info("✅ Обробники профілю зареєстровано.")
