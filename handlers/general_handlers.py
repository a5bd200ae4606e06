"""
Обробники загального призначення.

Цей файл містить логіку для:
- Стартових команд (/start, /help, /test).
- Головного меню.
- Глобальної обробки помилок.
- Встановлення списку команд для меню бота.
"""
import html

from aiogram import Bot, Dispatcher, F, Router, types
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import BotCommand, BotCommandScopeDefault, CallbackQuery, Message

from config import logger
from database.crud import get_user_by_telegram_id
from games.reaction import messages as reaction_messages
from games.reaction.keyboards import create_reaction_game_keyboard
from keyboards.inline_keyboards import create_main_menu_keyboard

general_router = Router()

HELP_TEXT = (
    "<b>🏁 Як це працює</b>\n\n"
    "1. Натисніть «Почати тест».\n"
    "2. П'ять вогнів запалюються по одному щосекунди.\n"
    "3. Через 1-5 секунд після п'ятого вогню всі згасають разом.\n"
    "4. Тисніть кнопку, щойно вогні згаснуть. Натиснули раніше - фальстарт.\n\n"
    "/test - тест реакції\n"
    "/profile - профіль і вікова група\n"
    "/help - ця довідка"
)


async def set_bot_commands(bot: Bot):
    commands = [
        BotCommand(command="start", description="🏁 Головне меню"),
        BotCommand(command="test", description="🏎 Пройти тест реакції"),
        BotCommand(command="profile", description="👤 Мій профіль (реєстрація/оновлення)"),
        BotCommand(command="help", description="❓ Допомога та інфо"),
    ]
    try:
        await bot.set_my_commands(commands, BotCommandScopeDefault())
        logger.info("✅ Список команд бота успішно оновлено.")
    except TelegramAPIError as e:
        logger.error(f"Помилка під час оновлення команд бота: {e}", exc_info=True)


# === ДОПОМІЖНІ ФУНКЦІЇ ===
def get_user_display_name(user: types.User | None) -> str:
    if not user:
        return "друже"
    if user.first_name and user.first_name.strip():
        return html.escape(user.first_name.strip())
    elif user.username and user.username.strip():
        return html.escape(user.username.strip())
    else:
        return "друже"


# === ЗАГАЛЬНІ ОБРОБНИКИ КОМАНД ===
@general_router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext):
    """Обробник команди /start: вітання та головне меню."""
    await state.clear()
    user = message.from_user
    if not user:
        return

    name = get_user_display_name(user)
    profile = await get_user_by_telegram_id(user.id)
    if profile:
        text = f"Вітаю, <b>{html.escape(profile['nickname'])}</b>! Готові до старту?"
    else:
        text = (
            f"Привіт, {name}! Це тест швидкості реакції у стилі старту Формули-1.\n\n"
            "Щоб потрапити до таблиці лідерів, зареєструйтесь: /profile"
        )
    await message.answer(text, reply_markup=create_main_menu_keyboard())


@general_router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(HELP_TEXT)


@general_router.message(Command("test"))
async def cmd_test(message: Message):
    await message.answer(
        reaction_messages.MSG_INTRO,
        reply_markup=create_reaction_game_keyboard("initial")
    )


@general_router.callback_query(F.data == "main_menu")
async def show_main_menu(callback_query: CallbackQuery):
    await callback_query.message.edit_text(
        "Головне меню", reply_markup=create_main_menu_keyboard()
    )
    await callback_query.answer()


async def error_handler(event: types.ErrorEvent, bot: Bot):
    logger.error(f"Глобальна помилка: {event.exception}", exc_info=event.exception)
    chat_id, user_name = None, "друже"
    update = event.update
    if update.message:
        chat_id = update.message.chat.id
        user_name = get_user_display_name(update.message.from_user)
    elif update.callback_query and update.callback_query.message:
        chat_id = update.callback_query.message.chat.id
        user_name = get_user_display_name(update.callback_query.from_user)
        try:
            await update.callback_query.answer("Сталася помилка...", show_alert=False)
        except TelegramAPIError:
            logger.debug("Callback query already answered or expired.")

    error_message_text = f"Вибач, {user_name}, сталася непередбачена системна помилка 😔"
    if isinstance(event.exception, TelegramAPIError):
        error_message_text = f"Упс, {user_name}, проблема з Telegram API 📡 Спробуй ще раз."

    if chat_id:
        try:
            await bot.send_message(chat_id, f"💀 {error_message_text}")
        except TelegramAPIError as e:
            logger.error(f"Не вдалося надіслати повідомлення про помилку в чат {chat_id}: {e}")


# === РЕЄСТРАЦІЯ ОБРОБНИКІВ ===
def register_general_handlers(dp: Dispatcher):
    dp.include_router(general_router)
    logger.info("✅ Загальні обробники зареєстровано.")
