"""
utils/cache_manager.py

Кеш таблиці лідерів:
- Key: cache:leaderboard:{scope}, де scope = global або ключ вікової групи
- TTL: LEADERBOARD_CACHE_TTL
- Read-through: якщо в Redis є дані → повернути їх, інакше завантажити з БД та закешувати
- Інвалідація: будь-яке оновлення user_stats стирає всі scope
- Graceful fallback: якщо Redis недоступний → читати безпосередньо з БД
"""
import json
from typing import Any

from config import AGE_RANGES, LEADERBOARD_CACHE_TTL, LEADERBOARD_LIMIT, logger
from games.reaction.crud import get_leaderboard
from utils.redis_client import get_redis

KEY_TEMPLATE = "cache:leaderboard:{scope}"
GLOBAL_SCOPE = "global"


def _leaderboard_key(age_range: str | None) -> str:
    return KEY_TEMPLATE.format(scope=age_range or GLOBAL_SCOPE)


async def load_leaderboard(age_range: str | None = None) -> list[dict[str, Any]]:
    """
    Повертає таблицю лідерів для scope.
    Спроба завантажити з Redis; при невдачі або cache miss → із БД + кешування.
    """
    key = _leaderboard_key(age_range)
    try:
        redis = await get_redis()
        raw = await redis.get(key)
        if raw:
            logger.debug(f"Loaded leaderboard from Redis ({key})")
            return json.loads(raw)
    except Exception as e:
        logger.warning(f"Redis unavailable on load_leaderboard({key}): {e}")

    rows = await get_leaderboard(limit=LEADERBOARD_LIMIT, age_range=age_range)
    await _store(key, rows)
    return rows


async def _store(key: str, rows: list[dict[str, Any]]) -> None:
    try:
        payload = json.dumps(rows, ensure_ascii=False, default=str)
        redis = await get_redis()
        await redis.set(key, payload, ex=LEADERBOARD_CACHE_TTL)
        logger.debug(f"Saved leaderboard to Redis ({key})")
    except Exception as e:
        logger.warning(f"Redis unavailable on save leaderboard ({key}): {e}")


async def invalidate_leaderboard_cache() -> None:
    """
    Видаляє всі кешовані таблиці лідерів.
    Якщо Redis недоступний, кеш і так застаріє через TTL.
    """
    keys = [_leaderboard_key(None)] + [_leaderboard_key(age_range) for age_range in AGE_RANGES]
    try:
        redis = await get_redis()
        await redis.delete(*keys)
        logger.debug("Leaderboard cache invalidated.")
    except Exception as e:
        logger.warning(f"Could not invalidate leaderboard cache: {e}")
