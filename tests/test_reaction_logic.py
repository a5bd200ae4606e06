"""
Tests for the F1 start-light sequencer and the reaction judge.
"""
import pytest

from games.reaction.errors import FalseStartError, UserInputError
from games.reaction.logic import (
    BLACKOUT_MAX_MS,
    BLACKOUT_MIN_MS,
    LIGHT_COUNT,
    LightSequencer,
    Phase,
    ReactionJudge,
    SLOWEST_TIER_LABEL,
    REACTION_TIERS,
    TestRun,
    tier_label,
)

ALL_OFF = (False,) * LIGHT_COUNT


def make_sequencer(scheduler, fixed_random, value=0.5, on_change=None):
    return LightSequencer(scheduler=scheduler, rng=fixed_random(value), on_change=on_change)


class TestLightSequencer:
    def test_idle_initially_with_all_lights_off(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)

        assert sequencer.phase is Phase.IDLE
        assert sequencer.lights == ALL_OFF
        assert sequencer.pending_callbacks == 0
        assert scheduler.pending == 0

    def test_start_schedules_five_lights_and_blackout(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)

        sequencer.start()

        assert sequencer.phase is Phase.WAITING
        assert sequencer.lights == ALL_OFF
        assert scheduler.pending == LIGHT_COUNT + 1

    def test_lights_turn_on_in_order_one_per_second(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)
        sequencer.start()

        scheduler.advance_ms(500)
        assert sequencer.lights == ALL_OFF

        for lit in range(1, LIGHT_COUNT + 1):
            scheduler.advance_ms(500)
            expected = tuple(index < lit for index in range(LIGHT_COUNT))
            assert sequencer.lights == expected
            assert sequencer.phase is Phase.WAITING
            scheduler.advance_ms(500)

    def test_no_light_ever_turns_off_while_waiting(self, scheduler, fixed_random):
        snapshots = []
        sequencer = make_sequencer(
            scheduler, fixed_random, value=0.99,
            on_change=lambda phase, lights: snapshots.append((phase, lights)),
        )
        sequencer.start()
        scheduler.advance_ms(BLACKOUT_MAX_MS)

        waiting = [lights for phase, lights in snapshots if phase is Phase.WAITING]
        for before, after in zip(waiting, waiting[1:]):
            assert all(after[i] for i in range(LIGHT_COUNT) if before[i])
            assert sum(after) - sum(before) == 1

    def test_blackout_turns_all_lights_off_at_once_and_arms(self, scheduler, fixed_random):
        snapshots = []
        sequencer = make_sequencer(
            scheduler, fixed_random, value=0.0,
            on_change=lambda phase, lights: snapshots.append((phase, lights)),
        )
        sequencer.start()

        scheduler.advance_ms(BLACKOUT_MIN_MS - 500)
        assert sequencer.lights == (True,) * LIGHT_COUNT
        assert sequencer.phase is Phase.WAITING

        scheduler.advance_ms(500)
        assert sequencer.phase is Phase.ARMED
        assert sequencer.lights == ALL_OFF
        assert sequencer.blackout_at_ms == pytest.approx(BLACKOUT_MIN_MS)
        assert snapshots[-2] == (Phase.WAITING, (True,) * LIGHT_COUNT)
        assert snapshots[-1] == (Phase.ARMED, ALL_OFF)

    def test_blackout_happens_once_per_run(self, scheduler, fixed_random):
        armed_events = []
        sequencer = make_sequencer(
            scheduler, fixed_random,
            on_change=lambda phase, lights: phase is Phase.ARMED and armed_events.append(lights),
        )
        sequencer.start()
        scheduler.advance_ms(60_000)

        assert len(armed_events) == 1
        assert sequencer.pending_callbacks == 0

    @pytest.mark.parametrize("value, expected_ms", [
        (0.0, 6000),
        (0.5, 8000),
        (0.999999, 9999.996),
    ])
    def test_blackout_delay_drawn_from_window(self, scheduler, fixed_random, value, expected_ms):
        sequencer = make_sequencer(scheduler, fixed_random, value=value)

        delay = sequencer.start()

        assert delay == pytest.approx(expected_ms)
        assert BLACKOUT_MIN_MS <= delay < BLACKOUT_MAX_MS

    def test_blackout_delay_with_real_random_stays_in_window(self, scheduler):
        sequencer = LightSequencer(scheduler=scheduler)
        for _ in range(200):
            delay = sequencer.draw_blackout_delay_ms()
            assert BLACKOUT_MIN_MS <= delay < BLACKOUT_MAX_MS

    def test_callbacks_fire_in_strictly_increasing_time(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random, value=0.0)
        sequencer.start()
        scheduler.advance_ms(BLACKOUT_MAX_MS)

        times = [when for when, _ in scheduler.fired]
        assert len(times) == LIGHT_COUNT + 1
        assert times == sorted(times)
        assert len(set(times)) == len(times)

    def test_abort_cancels_everything_and_returns_to_idle(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)
        sequencer.start()
        scheduler.advance_ms(2500)
        assert sequencer.lights[:2] == (True, True)

        sequencer.abort()

        assert sequencer.phase is Phase.IDLE
        assert sequencer.lights == ALL_OFF
        assert scheduler.pending == 0

        scheduler.advance_ms(BLACKOUT_MAX_MS)
        assert sequencer.phase is Phase.IDLE
        assert sequencer.lights == ALL_OFF

    def test_reset_after_resolved_returns_to_idle(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)
        judge = ReactionJudge(sequencer)
        sequencer.start()
        scheduler.advance_ms(BLACKOUT_MAX_MS)
        judge.press()

        sequencer.reset()

        assert sequencer.phase is Phase.IDLE
        assert sequencer.blackout_at_ms is None

    def test_restart_cancels_previous_run_blackout(self, scheduler, fixed_random):
        changes = []
        # Run 1 blackout at 9000ms, run 2 blackout at 9000ms after its own start
        sequencer = make_sequencer(
            scheduler, fixed_random, value=0.75,
            on_change=lambda phase, lights: changes.append((scheduler.now, phase, lights)),
        )
        sequencer.start()
        scheduler.advance_ms(5500)
        assert sequencer.lights == (True,) * LIGHT_COUNT

        sequencer.start()
        assert sequencer.lights == ALL_OFF
        assert scheduler.pending == LIGHT_COUNT + 1
        changes.clear()

        # Past where run 1 would have blacked out (9.0s): nothing but run 2's lights
        scheduler.advance_ms(3600)
        assert sequencer.phase is Phase.WAITING
        assert sequencer.lights == (True, True, True, False, False)
        assert all(phase is Phase.WAITING for _, phase, _ in changes)
        assert [round(at, 3) for at, _, _ in changes] == [6.5, 7.5, 8.5]

        scheduler.advance_ms(10_000)
        armed = [at for at, phase, _ in changes if phase is Phase.ARMED]
        assert armed == [pytest.approx(5.5 + 9.0)]

    def test_finish_outside_armed_is_a_programming_error(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)
        with pytest.raises(RuntimeError):
            sequencer.finish(123.0)


class TestReactionJudge:
    def test_press_while_waiting_is_false_start(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)
        judge = ReactionJudge(sequencer)
        sequencer.start()
        scheduler.advance_ms(3000)

        with pytest.raises(FalseStartError) as exc_info:
            judge.press()

        assert isinstance(exc_info.value, UserInputError)
        assert sequencer.phase is Phase.IDLE
        assert sequencer.lights == ALL_OFF
        assert scheduler.pending == 0

    def test_press_before_first_light_is_false_start(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)
        judge = ReactionJudge(sequencer)
        sequencer.start()

        with pytest.raises(FalseStartError):
            judge.press()
        scheduler.advance_ms(BLACKOUT_MAX_MS)
        assert sequencer.phase is Phase.IDLE

    def test_press_while_armed_measures_time_since_blackout(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random, value=0.25)
        judge = ReactionJudge(sequencer)
        sequencer.start()
        scheduler.advance_ms(7000)
        assert sequencer.phase is Phase.ARMED

        scheduler.advance_ms(250)
        run = judge.press()

        assert isinstance(run, TestRun)
        assert run.duration_ms == 250
        assert sequencer.phase is Phase.RESOLVED

    def test_instant_press_after_blackout_is_zero(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random, value=0.0)
        judge = ReactionJudge(sequencer)
        sequencer.start()
        scheduler.advance_ms(BLACKOUT_MIN_MS)

        run = judge.press()

        assert run.duration_ms == 0

    def test_press_when_idle_is_ignored(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)
        judge = ReactionJudge(sequencer)

        assert judge.press() is None
        assert sequencer.phase is Phase.IDLE

    def test_press_after_finish_is_ignored(self, scheduler, fixed_random):
        sequencer = make_sequencer(scheduler, fixed_random)
        judge = ReactionJudge(sequencer)
        sequencer.start()
        scheduler.advance_ms(BLACKOUT_MAX_MS)
        first = judge.press()

        scheduler.advance_ms(500)

        assert judge.press() is None
        assert first.duration_ms >= 0
        assert sequencer.phase is Phase.RESOLVED


class TestTierLabel:
    @pytest.mark.parametrize("duration, tier_index", [
        (0, 0),
        (199, 0),
        (200, 1),
        (201, 1),
        (249, 1),
        (250, 2),
        (299, 2),
        (300, 3),
        (399, 3),
        (400, 4),
        (499, 4),
    ])
    def test_boundaries(self, duration, tier_index):
        assert tier_label(duration) == REACTION_TIERS[tier_index][1]

    @pytest.mark.parametrize("duration", [500, 501, 2000])
    def test_slowest_tier(self, duration):
        assert tier_label(duration) == SLOWEST_TIER_LABEL

    def test_labels_are_distinct(self):
        labels = [label for _, label in REACTION_TIERS] + [SLOWEST_TIER_LABEL]
        assert len(set(labels)) == len(labels) == 6
