"""
Pytest configuration and shared fixtures for testing.
"""
import heapq
import itertools
import os
import random
from pathlib import Path

# Оточення має бути готове ДО імпорту config: він читає змінні при імпорті
_TEST_DB = Path(__file__).parent / "test.db"
os.environ["TELEGRAM_BOT_TOKEN"] = os.environ.get("TELEGRAM_BOT_TOKEN") or "123456:TEST-TOKEN"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB}"
# Без Redis кеш працює в режимі fallback на БД
os.environ["REDIS_URL"] = ""

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402


class ManualTimerHandle:
    def __init__(self, when: float, callback, args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """
    Віртуальний годинник з інтерфейсом call_later/time, як у asyncio loop.
    Час рухається лише через advance().
    """

    def __init__(self):
        self.now = 0.0
        self._timers: list = []
        self._seq = itertools.count()
        self.fired: list[tuple[float, object]] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback, *args) -> ManualTimerHandle:
        handle = ManualTimerHandle(self.now + delay, callback, args)
        heapq.heappush(self._timers, (handle.when, next(self._seq), handle))
        return handle

    def advance_ms(self, milliseconds: float) -> None:
        deadline = self.now + milliseconds / 1000
        while self._timers and self._timers[0][0] <= deadline:
            when, _, handle = heapq.heappop(self._timers)
            self.now = when
            if not handle.cancelled():
                self.fired.append((when, handle.callback))
                handle.callback(*handle.args)
        self.now = deadline

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._timers if not handle.cancelled())


class FixedRandom(random.Random):
    """random() завжди повертає одне й те саме значення з [0, 1)."""

    def __init__(self, value: float):
        super().__init__()
        self._value = value

    def random(self) -> float:
        return self._value


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def fixed_random():
    return FixedRandom


@pytest_asyncio.fixture
async def db():
    """
    Свіжа схема для кожного тесту (SQLite через aiosqlite).
    """
    from database.crud import engine
    from database.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        # Пул прив'язаний до event loop тесту
        await engine.dispose()


@pytest_asyncio.fixture
async def make_user(db):
    from database.crud import add_or_update_user

    async def _make_user(telegram_id: int, nickname: str = "Racer", age_range: str | None = None):
        await add_or_update_user(
            {"telegram_id": telegram_id, "nickname": nickname, "age_range": age_range}
        )
        return telegram_id

    return _make_user
