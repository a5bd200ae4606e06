"""
Ядро гри на реакцію "Світлофор F1".

LightSequencer веде п'ять вогнів через стартову послідовність
на відкладених викликах event loop, ReactionJudge вирішує,
чим є натискання гравця: фальстартом, результатом чи шумом.
Telegram тут не згадується: відображення підписується через on_change.
"""
import asyncio
import random
from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Protocol, final

from config import logger
from games.reaction.errors import FalseStartError

LIGHT_COUNT = 5
# Вогні запалюються по одному щосекунди, починаючи через 1 с після старту
LIGHT_ON_OFFSETS_MS: tuple[int, ...] = (1000, 2000, 3000, 4000, 5000)
# Згасання: рівномірно в [6000, 10000) мс від старту, тобто 1-5 с після п'ятого вогню
BLACKOUT_MIN_MS = 6000
BLACKOUT_MAX_MS = 10000

# Пороги оцінок: значення на межі належить наступній (гіршій) оцінці
REACTION_TIERS: tuple[tuple[int, str], ...] = (
    (200, "Блискуче!"),
    (250, "Неймовірно!"),
    (300, "Чудово!"),
    (400, "Гарна робота!"),
    (500, "Непогано!"),
)
SLOWEST_TIER_LABEL = "Спробуй ще!"


class Phase(Enum):
    """Стани стартової послідовності."""
    IDLE = "idle"
    WAITING = "waiting"    # вогні запалюються, натискати ще рано
    ARMED = "armed"        # вогні згасли, годинник реакції йде
    RESOLVED = "resolved"  # результат зафіксовано


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """
    Підмножина asyncio.AbstractEventLoop, якої достатньо секвенсору.
    У проді це сам event loop, у тестах ручний годинник.
    """

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...

    def time(self) -> float: ...


@dataclass(frozen=True)
class TestRun:
    """Один заїзд: від згасання вогнів до валідного натискання (мс монотонного годинника)."""
    __test__ = False  # щоб pytest не приймав клас за набір тестів

    started_at_ms: float
    ended_at_ms: float

    @property
    def duration_ms(self) -> int:
        return int(self.ended_at_ms - self.started_at_ms)


@dataclass(frozen=True)
class ReactionRecord:
    """Збережений (або готовий до збереження) результат заїзду."""
    owner_id: int
    duration_ms: int
    captured_at: datetime
    record_id: int | None = None


def tier_label(duration_ms: int) -> str:
    """
    Повертає словесну оцінку результату.
    199 мс -> перша оцінка, 200 мс -> вже друга.
    """
    thresholds = [bound for bound, _ in REACTION_TIERS]
    index = bisect_right(thresholds, duration_ms)
    if index < len(REACTION_TIERS):
        return REACTION_TIERS[index][1]
    return SLOWEST_TIER_LABEL


LightsListener = Callable[[Phase, tuple[bool, ...]], None]


@final
class LightSequencer:
    """
    Керує п'ятьма вогнями та володіє всіма відкладеними викликами поточного заїзду.

    Будь-який вихід з WAITING, окрім власного виклику згасання
    (фальстарт, скидання, новий старт), скасовує всі відкладені виклики,
    тож запізнілий таймер не може змінити вогні чи повторно "озброїти" заїзд.
    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        on_change: LightsListener | None = None,
    ):
        self._scheduler = scheduler
        self._rng = rng or random.Random()
        self._on_change = on_change
        self._lights: list[bool] = [False] * LIGHT_COUNT
        self._handles: list[TimerHandle] = []
        self.phase = Phase.IDLE
        self.blackout_at_ms: float | None = None
        self.run_id = 0

    @property
    def lights(self) -> tuple[bool, ...]:
        return tuple(self._lights)

    @property
    def pending_callbacks(self) -> int:
        return len(self._handles)

    def _loop(self) -> Scheduler:
        return self._scheduler or asyncio.get_running_loop()

    def now_ms(self) -> float:
        return self._loop().time() * 1000

    def draw_blackout_delay_ms(self) -> float:
        """Рівномірна випадкова затримка згасання в [BLACKOUT_MIN_MS, BLACKOUT_MAX_MS)."""
        return BLACKOUT_MIN_MS + self._rng.random() * (BLACKOUT_MAX_MS - BLACKOUT_MIN_MS)

    def start(self) -> float:
        """
        Запускає новий заїзд. Усе, що лишилося від попереднього, скасовується
        до планування нових викликів.

        Returns:
            Затримку згасання в мс від старту.
        """
        self._cancel_pending()
        self.run_id += 1
        self._lights = [False] * LIGHT_COUNT
        self.blackout_at_ms = None
        self.phase = Phase.WAITING

        loop = self._loop()
        for index, offset_ms in enumerate(LIGHT_ON_OFFSETS_MS):
            self._handles.append(loop.call_later(offset_ms / 1000, self._light_on, index))

        blackout_delay_ms = self.draw_blackout_delay_ms()
        self._handles.append(loop.call_later(blackout_delay_ms / 1000, self._blackout))
        logger.debug(f"Run {self.run_id}: blackout scheduled in {blackout_delay_ms:.0f}ms")

        self._notify()
        return blackout_delay_ms

    def abort(self) -> None:
        """Скасовує заїзд: усі таймери геть, вогні вимкнено, стан IDLE."""
        cancelled = self._cancel_pending()
        self._lights = [False] * LIGHT_COUNT
        self.blackout_at_ms = None
        self.phase = Phase.IDLE
        if cancelled:
            logger.debug(f"Run {self.run_id}: aborted, {cancelled} pending callbacks cancelled")
        self._notify()

    # Явне скидання гравцем поводиться так само, як і фальстарт
    reset = abort

    def finish(self, ended_at_ms: float) -> TestRun:
        """Фіксує валідне натискання. Доступно лише в стані ARMED."""
        if self.phase is not Phase.ARMED or self.blackout_at_ms is None:
            raise RuntimeError(f"Cannot finish run {self.run_id} in phase {self.phase.value}")
        self.phase = Phase.RESOLVED
        return TestRun(started_at_ms=self.blackout_at_ms, ended_at_ms=ended_at_ms)

    def _light_on(self, index: int) -> None:
        self._lights[index] = True
        self._notify()

    def _blackout(self) -> None:
        # Це останній виклик заїзду: решта вже відпрацювала
        self._handles.clear()
        self._lights = [False] * LIGHT_COUNT
        self.phase = Phase.ARMED
        self.blackout_at_ms = self.now_ms()
        logger.info(f"Run {self.run_id}: lights out at {self.blackout_at_ms:.0f}ms")
        self._notify()

    def _cancel_pending(self) -> int:
        handles, self._handles = self._handles, []
        for handle in handles:
            handle.cancel()
        return len(handles)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.phase, self.lights)


@final
class ReactionJudge:
    """
    Класифікує одне натискання відносно поточного стану секвенсора.
    """

    def __init__(self, sequencer: LightSequencer):
        self._sequencer = sequencer

    def press(self) -> TestRun | None:
        """
        Returns:
            TestRun для валідного натискання; None, якщо натискання ігнорується
            (до старту або після фінішу).

        Raises:
            FalseStartError: вогні ще не згасли; заїзд скасовано.
        """
        phase = self._sequencer.phase
        if phase is Phase.WAITING:
            self._sequencer.abort()
            logger.info(f"Run {self._sequencer.run_id}: false start")
            raise FalseStartError()
        if phase is Phase.ARMED:
            run = self._sequencer.finish(self._sequencer.now_ms())
            logger.info(f"Run {self._sequencer.run_id}: reaction {run.duration_ms}ms")
            return run
        return None
