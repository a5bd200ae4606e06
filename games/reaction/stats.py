"""
Статистика часу реакції.

Усе тут чисті функції над колекціями мілісекунд: без стану,
без БД, можна перераховувати скільки завгодно разів.
"""
import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, Sequence

from games.reaction.logic import tier_label

# Розкид (worst - best) і відповідна категорія стабільності
CONSISTENCY_LEVELS: tuple[tuple[int, str], ...] = (
    (50, "Стабільно, як метроном"),
    (150, "Стабільно"),
    (300, "Нестабільно"),
)
LEAST_CONSISTENT_LABEL = "Хаотично"


@dataclass(frozen=True)
class StatsSummary:
    best: int | None
    worst: int | None
    average: float | None
    count: int

    @classmethod
    def empty(cls) -> "StatsSummary":
        return cls(best=None, worst=None, average=None, count=0)

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    @property
    def consistency(self) -> int | None:
        if self.is_empty:
            return None
        return self.worst - self.best


@dataclass(frozen=True)
class PercentileResult:
    rank: int
    peer_average: float
    peer_count: int


@dataclass(frozen=True)
class SavedResult:
    """
    Збережений заїзд разом з перерахованим агрегатом.
    previous_best: найкращий час гравця без цього запису (None для першого заїзду).
    """
    record_id: int
    duration_ms: int
    summary: StatsSummary
    previous_best: int | None

    @property
    def is_new_best(self) -> bool:
        return self.previous_best is not None and self.duration_ms < self.previous_best

    @property
    def ties_best(self) -> bool:
        return self.previous_best == self.duration_ms


def summarize(durations: Iterable[int]) -> StatsSummary:
    """best/worst/average/count. Порожній вхід дає порожній підсумок, а не виняток."""
    values = list(durations)
    if not values:
        return StatsSummary.empty()
    return StatsSummary(
        best=min(values),
        worst=max(values),
        average=sum(values) / len(values),
        count=len(values),
    )


def _round_half_up(value: float) -> int:
    # round() у Python банківський: 12.5 -> 12, нам потрібно 13
    return math.floor(value + 0.5)


def percentile(subject: int | None, peers: Sequence[int]) -> PercentileResult | None:
    """
    Частка суперників, яких гравець випередив.

    Менший час кращий, тому "випередив" означає, що час суперника строго більший.
    Однаковий час не рахується ні за, ні проти.
    """
    if subject is None or not peers:
        return None
    slower = sum(1 for value in peers if value > subject)
    return PercentileResult(
        rank=_round_half_up(100 * slower / len(peers)),
        peer_average=sum(peers) / len(peers),
        peer_count=len(peers),
    )


def consistency_label(spread: int) -> str:
    thresholds = [bound for bound, _ in CONSISTENCY_LEVELS]
    index = bisect_right(thresholds, spread)
    if index < len(CONSISTENCY_LEVELS):
        return CONSISTENCY_LEVELS[index][1]
    return LEAST_CONSISTENT_LABEL


def summary_tier(summary: StatsSummary) -> str | None:
    """Оцінка середнього часу за тією ж шкалою, що й окремий заїзд."""
    if summary.is_empty:
        return None
    return tier_label(round(summary.average))


def performance_class(time_ms: int, all_times: Sequence[int]) -> str:
    """
    Клас рядка в історії: 'best', 'worst', 'good' (нижня третина діапазону),
    'poor' (верхня третина) або 'average'.
    """
    best = min(all_times)
    worst = max(all_times)
    spread = worst - best

    if time_ms == best:
        return "best"
    if time_ms == worst:
        return "worst"
    if time_ms < best + spread * 0.33:
        return "good"
    if time_ms > worst - spread * 0.33:
        return "poor"
    return "average"
