"""
Сервісний шар для гри на реакцію.

Зшиває ядро (секвенсор + суддя) зі сховищем результатів:
збереження заїзду, повний перерахунок агрегатів після вставки
або видалення, перцентиль серед суперників.
"""
import asyncio
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

from config import logger
from database.crud import get_user_by_telegram_id
from games.reaction import crud
from games.reaction.errors import DataUnavailableError
from games.reaction.logic import (
    LightSequencer,
    LightsListener,
    ReactionJudge,
    ReactionRecord,
    Scheduler,
    TestRun,
    tier_label,
)
from games.reaction.stats import PercentileResult, SavedResult, StatsSummary, percentile, summarize
from utils.cache_manager import invalidate_leaderboard_cache


async def recompute_stats(user_id: int) -> StatsSummary:
    """
    Перераховує агрегат з усієї історії гравця та записує його назад.
    Інкрементних оновлень немає: агрегат завжди відповідає повному набору записів.
    """
    summary, _ = await crud.rebuild_aggregate(user_id)
    await invalidate_leaderboard_cache()
    logger.info(f"Stats recomputed for user {user_id}: {summary.count} results, best={summary.best}")
    return summary


async def record_result(record: ReactionRecord) -> SavedResult:
    """Зберігає результат і оновлює агрегат. Помилки сховища йдуть нагору як PersistenceError."""
    record_id = await crud.save_result(record.owner_id, record.duration_ms, record.captured_at)
    summary, history = await crud.rebuild_aggregate(record.owner_id)
    await invalidate_leaderboard_cache()
    previous_best = min(
        (item.duration_ms for item in history if item.record_id != record_id),
        default=None,
    )
    logger.info(
        f"Stats recomputed for user {record.owner_id}: {summary.count} results, "
        f"best={summary.best}, previous best={previous_best}"
    )
    return SavedResult(
        record_id=record_id,
        duration_ms=record.duration_ms,
        summary=summary,
        previous_best=previous_best,
    )


async def delete_result_and_recompute(user_id: int, record_id: int) -> StatsSummary | None:
    """
    Видаляє запис гравця і перераховує агрегат.

    Returns:
        Новий агрегат або None, якщо такого запису у гравця вже немає.
    """
    if not await crud.delete_result(user_id, record_id):
        return None
    return await recompute_stats(user_id)


async def get_personal_stats(user_id: int) -> StatsSummary:
    records = await crud.list_results(user_id)
    return summarize(record.duration_ms for record in records)


async def get_peer_percentile(user_id: int) -> PercentileResult:
    """
    Перцентиль найкращого часу гравця серед його вікової групи
    (або серед усіх, якщо вік не вказано). Сам гравець до вибірки не входить.

    Raises:
        DataUnavailableError: у гравця ще немає результатів або суперників немає.
    """
    user = await get_user_by_telegram_id(user_id)
    age_range = user.get("age_range") if user else None

    stats = await crud.get_user_stats(user_id)
    best = stats.get("best_time") if stats else None
    peers = await crud.list_peer_best_times(age_range, exclude_user_id=user_id)

    result = percentile(best, peers)
    if result is None:
        raise DataUnavailableError(
            f"No percentile for user {user_id}: best={best}, peers={len(peers)}"
        )
    return result


Saver = Callable[[ReactionRecord], Awaitable[SavedResult]]


@dataclass(frozen=True)
class FinishedRun:
    """
    Результат валідного натискання. Доступний одразу;
    saved завершується пізніше (або з PersistenceError).
    """
    run: TestRun
    label: str
    record: ReactionRecord
    saved: "asyncio.Task[SavedResult]"

    @property
    def duration_ms(self) -> int:
        return self.run.duration_ms


class ReactionSession:
    """
    Тестовий стенд одного гравця: власний секвенсор, суддя і збереження результату.
    """

    def __init__(
        self,
        owner_id: int,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        on_change: LightsListener | None = None,
        saver: Saver = record_result,
    ):
        self.owner_id = owner_id
        self.sequencer = LightSequencer(scheduler=scheduler, rng=rng, on_change=on_change)
        self.judge = ReactionJudge(self.sequencer)
        self._saver = saver

    @property
    def phase(self):
        return self.sequencer.phase

    def start(self) -> None:
        self.sequencer.start()
        logger.info(f"User {self.owner_id}: reaction run {self.sequencer.run_id} started")

    def reset(self) -> None:
        self.sequencer.reset()

    def press(self) -> FinishedRun | None:
        """
        Передає натискання судді.

        Returns:
            FinishedRun для валідного натискання, None якщо натискання проігноровано.

        Raises:
            FalseStartError: натискання до згасання вогнів.
        """
        run = self.judge.press()
        if run is None:
            return None

        record = ReactionRecord(
            owner_id=self.owner_id,
            duration_ms=run.duration_ms,
            captured_at=datetime.now(timezone.utc),
        )
        # Збереження не блокує показ результату
        saved = asyncio.create_task(self._saver(record))
        return FinishedRun(run=run, label=tier_label(run.duration_ms), record=record, saved=saved)
