import asyncio
import os
from datetime import datetime, timezone

from aiogram import Bot, Dispatcher, types
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError

# Імпорти з проєкту
from config import TELEGRAM_BOT_TOKEN, ADMIN_USER_ID, logger
from database.crud import engine
# Імпортуємо модуль з моделями ДО ініціалізації БД,
# щоб SQLAlchemy Base знав про всі таблиці, які потрібно створити.
import database.models  # noqa: F401
from database.init_db import init_db
from handlers.general_handlers import (
    register_general_handlers,
    set_bot_commands,
    error_handler as general_error_handler,
)
from handlers.registration_handler import register_registration_handlers
from games.reaction.handlers import active_games, register_reaction_handlers
from utils.redis_client import close_redis

BOT_VERSION = "v1.0.0"


async def main() -> None:
    """Головна функція запуску бота."""
    logger.info(f"🚀 Запуск Reaction Speed {BOT_VERSION}... (PID: {os.getpid()})")

    await init_db()

    bot = Bot(token=TELEGRAM_BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher()

    await set_bot_commands(bot)

    # --- РЕЄСТРАЦІЯ ВСІХ РОУТЕРІВ ---
    # Специфічні обробники (гра, реєстрація) реєструємо ПЕРЕД загальними.
    register_reaction_handlers(dp)
    register_registration_handlers(dp)
    register_general_handlers(dp)

    @dp.errors()
    async def global_error_handler_wrapper(event: types.ErrorEvent):
        logger.debug(f"Global error wrapper caught exception: {event.exception} in update: {event.update}")
        await general_error_handler(event, bot)

    try:
        bot_info = await bot.get_me()
        logger.info(f"✅ Бот @{bot_info.username} (ID: {bot_info.id}) успішно авторизований!")
        if ADMIN_USER_ID:
            launch_time = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S %Z')
            try:
                await bot.send_message(
                    ADMIN_USER_ID,
                    f"🤖 <b>Reaction Speed {BOT_VERSION} запущено!</b>\n\n"
                    f"🆔 @{bot_info.username}\n⏰ {launch_time}\n🟢 Готовий до роботи!"
                )
                logger.info(f"Повідомлення про запуск надіслано адміну ID: {ADMIN_USER_ID}")
            except TelegramAPIError as e:
                logger.warning(f"Не вдалося надіслати повідомлення про запуск адміну (ID: {ADMIN_USER_ID}): {e}")

        logger.info("Розпочинаю polling...")
        await bot.delete_webhook(drop_pending_updates=True)
        await dp.start_polling(bot)
    except KeyboardInterrupt:
        logger.info("👋 Бот зупинено користувачем (KeyboardInterrupt).")
    finally:
        logger.info("🛑 Зупинка бота та закриття сесій...")
        # Незавершені заїзди не повинні лишати таймери
        for game in active_games.values():
            game.session.reset()
        active_games.clear()

        await close_redis()
        await engine.dispose()
        await bot.session.close()
        logger.info("👋 Бот остаточно зупинено.")


if __name__ == "__main__":
    asyncio.run(main())
