"""
Функції для взаємодії з базою даних (CRUD) для гри на реакцію.

Кожна помилка SQLAlchemy логується і перетворюється на PersistenceError:
обробники показують її як попередження, а не як падіння гри.
"""
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from config import LEADERBOARD_LIMIT, logger
# Використовуємо спільний engine з основного модуля БД
from database.crud import engine
from database.models import User
from games.reaction.errors import PersistenceError
from games.reaction.logic import ReactionRecord
from games.reaction.models import ReactionResult, UserStats
from games.reaction.stats import StatsSummary, summarize


async def save_result(user_id: int, time_ms: int, taken_at: datetime) -> int:
    """
    Додає новий незмінний запис результату.

    Returns:
        ID створеного запису.
    """
    stmt = insert(ReactionResult).values(
        user_telegram_id=user_id,
        reaction_time_ms=time_ms,
        taken_at=taken_at,
    )
    try:
        async with engine.connect() as conn:
            async with conn.begin():
                result = await conn.execute(stmt)
                record_id = result.inserted_primary_key[0]
    except SQLAlchemyError as e:
        logger.error(
            f"A database error occurred while saving reaction result "
            f"for user {user_id}: {e}",
            exc_info=True
        )
        raise PersistenceError(f"Could not save result for user {user_id}") from e

    logger.info(f"Saved reaction result #{record_id} for user {user_id}: {time_ms}ms")
    return record_id


def _results_query(user_id: int):
    return (
        select(
            ReactionResult.id,
            ReactionResult.reaction_time_ms,
            ReactionResult.taken_at,
        )
        .where(ReactionResult.user_telegram_id == user_id)
        .order_by(ReactionResult.taken_at.desc(), ReactionResult.id.desc())
    )


def _to_records(user_id: int, rows) -> list[ReactionRecord]:
    return [
        ReactionRecord(
            owner_id=user_id,
            duration_ms=row.reaction_time_ms,
            captured_at=row.taken_at,
            record_id=row.id,
        )
        for row in rows
    ]


async def list_results(user_id: int) -> list[ReactionRecord]:
    """Уся історія гравця, найновіші спочатку."""
    try:
        async with engine.connect() as conn:
            result = await conn.execute(_results_query(user_id))
            rows = result.all()
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch results for user {user_id}: {e}", exc_info=True)
        raise PersistenceError(f"Could not load results for user {user_id}") from e

    return _to_records(user_id, rows)


async def delete_result(user_id: int, record_id: int) -> bool:
    """
    Видаляє запис, лише якщо він належить user_id.

    Returns:
        True, якщо запис було видалено.
    """
    stmt = (
        delete(ReactionResult)
        .where(ReactionResult.id == record_id)
        .where(ReactionResult.user_telegram_id == user_id)
    )
    try:
        async with engine.connect() as conn:
            async with conn.begin():
                result = await conn.execute(stmt)
    except SQLAlchemyError as e:
        logger.error(f"Failed to delete result #{record_id} of user {user_id}: {e}", exc_info=True)
        raise PersistenceError(f"Could not delete result #{record_id}") from e

    if result.rowcount > 0:
        logger.info(f"Deleted reaction result #{record_id} of user {user_id}.")
        return True
    logger.warning(f"Result #{record_id} not found for user {user_id}, nothing deleted.")
    return False


async def _upsert_aggregate(conn: AsyncConnection, user_id: int, summary: StatsSummary) -> None:
    values = {
        "best_time": summary.best,
        "worst_time": summary.worst,
        "average_time": summary.average,
        "total_tests": summary.count,
        "updated_at": func.now(),
    }
    # INSERT ... ON CONFLICT DO UPDATE: перший запис двох паралельних збережень не впаде на PK
    dialect_insert = sqlite_insert if conn.dialect.name == "sqlite" else pg_insert
    stmt = dialect_insert(UserStats).values(user_telegram_id=user_id, **values)
    stmt = stmt.on_conflict_do_update(index_elements=["user_telegram_id"], set_=values)
    await conn.execute(stmt)


async def update_aggregate(user_id: int, summary: StatsSummary) -> None:
    """Записує (upsert) агрегат гравця в user_stats."""
    try:
        async with engine.connect() as conn:
            async with conn.begin():
                await _upsert_aggregate(conn, user_id, summary)
    except SQLAlchemyError as e:
        logger.error(f"Failed to update aggregate for user {user_id}: {e}", exc_info=True)
        raise PersistenceError(f"Could not update stats for user {user_id}") from e

    logger.debug(f"Aggregate for user {user_id} updated: {summary}")


async def rebuild_aggregate(user_id: int) -> tuple[StatsSummary, list[ReactionRecord]]:
    """
    Перераховує агрегат з усієї історії в одній транзакції.

    Рядок гравця блокується (SELECT ... FOR UPDATE), тож два перерахунки
    одного гравця виконуються по черзі і пізніший бачить усі записи.

    Returns:
        Новий агрегат та історію, з якої його пораховано.
    """
    try:
        async with engine.connect() as conn:
            async with conn.begin():
                await conn.execute(
                    select(User.id).where(User.telegram_id == user_id).with_for_update()
                )
                result = await conn.execute(_results_query(user_id))
                records = _to_records(user_id, result.all())
                summary = summarize(record.duration_ms for record in records)
                await _upsert_aggregate(conn, user_id, summary)
    except SQLAlchemyError as e:
        logger.error(f"Failed to rebuild aggregate for user {user_id}: {e}", exc_info=True)
        raise PersistenceError(f"Could not update stats for user {user_id}") from e

    logger.debug(f"Aggregate for user {user_id} rebuilt: {summary}")
    return summary, records


async def get_user_stats(user_id: int) -> dict[str, Any] | None:
    query = select(UserStats).where(UserStats.user_telegram_id == user_id)
    try:
        async with engine.connect() as conn:
            result = await conn.execute(query)
            row = result.first()
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch stats for user {user_id}: {e}", exc_info=True)
        raise PersistenceError(f"Could not load stats for user {user_id}") from e
    return dict(row._mapping) if row else None


async def list_peer_best_times(age_range: str | None, exclude_user_id: int | None = None) -> list[int]:
    """
    Найкращі часи суперників. age_range=None означає всіх гравців.
    Порожній список для нової чи малої групи є нормою.
    """
    query = (
        select(UserStats.best_time)
        .select_from(UserStats)
        .join(User, User.telegram_id == UserStats.user_telegram_id)
        .where(UserStats.best_time.is_not(None))
    )
    if age_range is not None:
        query = query.where(User.age_range == age_range)
    if exclude_user_id is not None:
        query = query.where(UserStats.user_telegram_id != exclude_user_id)

    try:
        async with engine.connect() as conn:
            result = await conn.execute(query)
            return [row.best_time for row in result.all()]
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch peer best times (age_range={age_range}): {e}", exc_info=True)
        raise PersistenceError("Could not load peer results") from e


async def get_leaderboard(limit: int = LEADERBOARD_LIMIT, age_range: str | None = None) -> list[dict[str, Any]]:
    """
    Отримує таблицю лідерів за найкращим часом.

    Args:
        limit: Кількість позицій у таблиці лідерів.
        age_range: Фільтр вікової групи; позиції перераховуються після фільтра.

    Returns:
        Список словників з даними про найкращих гравців.
        Приклад: [{'rank': 1, 'nickname': 'Player1', 'best_time': 150, 'telegram_id': 123, ...}, ...]
    """
    query = (
        select(
            User.telegram_id,
            User.nickname,
            User.age_range,
            UserStats.best_time,
            UserStats.total_tests,
        )
        .select_from(UserStats)
        .join(User, User.telegram_id == UserStats.user_telegram_id)
        .where(UserStats.best_time.is_not(None))
        .order_by(UserStats.best_time.asc(), UserStats.total_tests.desc())
        .limit(limit)
    )
    if age_range is not None:
        query = query.where(User.age_range == age_range)

    try:
        async with engine.connect() as conn:
            result = await conn.execute(query)
            rows = [dict(row._mapping) for row in result.all()]
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch leaderboard from DB: {e}", exc_info=True)
        raise PersistenceError("Could not load leaderboard") from e

    for position, row in enumerate(rows, 1):
        row["rank"] = position
    logger.info(f"Successfully fetched leaderboard ({age_range or 'global'}) with {len(rows)} records.")
    return rows
