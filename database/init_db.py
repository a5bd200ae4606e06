"""
Модуль для ініціалізації бази даних.
Створює всі необхідні таблиці на основі моделей SQLAlchemy
та забезпечує м'які міграції для колонок, доданих пізніше.
"""
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from config import logger
from database.models import Base

# Запити ідемпотентні, тому їх безпечно виконувати на кожному старті
SOFT_MIGRATIONS: list[str] = [
    "ALTER TABLE users ADD COLUMN IF NOT EXISTS age_range VARCHAR(16)",
    "ALTER TABLE user_stats ADD COLUMN IF NOT EXISTS worst_time INTEGER",
    "CREATE INDEX IF NOT EXISTS ix_users_age_range ON users (age_range)",
]


async def init_db(engine: AsyncEngine | None = None) -> None:
    """
    Ініціалізує базу даних: створює таблиці (users, reaction_results, user_stats)
    і для PostgreSQL докатує м'які міграції.
    """
    if engine is None:
        from database.crud import engine

    async with engine.begin() as conn:
        logger.info("Initializing database tables...")
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialized successfully.")

        if conn.dialect.name != "postgresql":
            logger.debug(f"Soft migrations skipped for dialect '{conn.dialect.name}'.")
            return

        logger.info("Applying soft migrations...")
        for query in SOFT_MIGRATIONS:
            try:
                # Кожен запит у власному savepoint, щоб одна невдача не зірвала транзакцію
                async with conn.begin_nested():
                    await conn.execute(text(query))
            except SQLAlchemyError as e:
                logger.error(f"Soft migration failed ({query}): {e}", exc_info=True)
        logger.info("Soft migrations completed.")
