"""
Функції для взаємодії з базою даних (Create, Read, Update, Delete).
"""
from typing import Any

from sqlalchemy import insert, update, select, delete
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.exc import SQLAlchemyError

from database.models import User
from config import ASYNC_DATABASE_URL, logger

engine = create_async_engine(ASYNC_DATABASE_URL)


# --- User CRUD ---

async def add_or_update_user(user_data: dict[str, Any]) -> bool:
    """
    Додає нового гравця або оновлює існуючого за telegram_id.

    Returns:
        True, якщо запис створено або оновлено, інакше False.
    """
    # 🧠 Уникаємо передачі рядків у поля datetime!
    for dt_field in ("created_at", "updated_at"):
        user_data.pop(dt_field, None)

    telegram_id = user_data.get('telegram_id')
    if telegram_id is None:
        logger.warning("add_or_update_user викликано без telegram_id.")
        return False

    async with engine.connect() as conn:
        try:
            async with conn.begin():
                existing = await conn.execute(
                    select(User.id).where(User.telegram_id == telegram_id)
                )
                if existing.first():
                    stmt = (
                        update(User)
                        .where(User.telegram_id == telegram_id)
                        .values(**user_data)
                    )
                    logger.info(f"Оновлення даних для користувача з Telegram ID: {telegram_id}")
                else:
                    stmt = insert(User).values(**user_data)
                    logger.info(f"Створення нового користувача з Telegram ID: {telegram_id}")
                await conn.execute(stmt)
            return True
        except SQLAlchemyError as e:
            logger.error(f"Помилка в add_or_update_user для {telegram_id}: {e}", exc_info=True)
            return False


async def get_user_by_telegram_id(telegram_id: int) -> dict[str, Any] | None:
    async with engine.connect() as conn:
        stmt = select(User).where(User.telegram_id == telegram_id)
        result = await conn.execute(stmt)
        user_row = result.first()
        if user_row:
            # Перетворюємо результат у словник
            return dict(user_row._mapping)
    return None


async def delete_user_by_telegram_id(telegram_id: int) -> bool:
    """
    Видаляє користувача з бази даних за його Telegram ID.
    Історія та агрегати видаляються каскадно.

    Returns:
        True, якщо користувача було видалено, інакше False.
    """
    async with engine.connect() as conn:
        async with conn.begin():
            stmt = delete(User).where(User.telegram_id == telegram_id)
            result = await conn.execute(stmt)
        if result.rowcount > 0:
            logger.info(f"Користувача з Telegram ID {telegram_id} було успішно видалено.")
            return True
        logger.warning(f"Спроба видалити неіснуючого користувача з Telegram ID {telegram_id}.")
        return False
