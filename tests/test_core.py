"""Tests for the timer core: tt.core.timer, registry, selection, tracker, scheduler."""

import unittest
from datetime import datetime, timedelta, timezone

from tt.core.errors import InvalidName, NotFound
from tt.core.registry import TimerRegistry
from tt.core.scheduler import ManualScheduler
from tt.core.timer import Timer
from tt.core.tracker import TimerTracker


class FakeClock:
    """Deterministic wall clock, moved forward by hand."""

    def __init__(self, start=None):
        self.current = start or datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)
        return self.current


# ──────────────────────────────────────────────────────────────────────────
# timer.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestTimer(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()

    def test_new_timer_is_idle(self):
        t = Timer("TICK-1")
        self.assertFalse(t.running)
        self.assertIsNone(t.run_since)
        self.assertIsNone(t.last_run_start)
        self.assertEqual(t.effective_elapsed(self.clock()), timedelta(0))

    def test_ids_are_unique(self):
        ids = {Timer("x").id for _ in range(50)}
        self.assertEqual(len(ids), 50)

    def test_start_sets_run_period(self):
        t = Timer("TICK-1")
        self.assertTrue(t.start(self.clock()))
        self.assertTrue(t.running)
        self.assertEqual(t.run_since, self.clock())
        self.assertEqual(t.last_run_start, self.clock())

    def test_start_while_running_is_noop(self):
        t = Timer("TICK-1")
        started = self.clock()
        t.start(started)
        self.clock.advance(seconds=30)
        self.assertFalse(t.start(self.clock()))
        self.assertEqual(t.run_since, started)
        self.assertEqual(t.last_run_start, started)

    def test_pause_banks_elapsed_and_keeps_last_start(self):
        t = Timer("TICK-1")
        started = self.clock()
        t.start(started)
        self.clock.advance(minutes=2)
        self.assertTrue(t.pause(self.clock()))
        self.assertFalse(t.running)
        self.assertIsNone(t.run_since)
        self.assertEqual(t.last_run_start, started)
        self.assertEqual(t.accumulated, timedelta(minutes=2))

    def test_pause_while_paused_is_noop(self):
        t = Timer("TICK-1", accumulated=timedelta(seconds=5))
        self.assertFalse(t.pause(self.clock()))
        self.assertEqual(t.accumulated, timedelta(seconds=5))

    def test_effective_elapsed_while_running(self):
        t = Timer("TICK-1", accumulated=timedelta(seconds=100))
        t.start(self.clock())
        self.clock.advance(seconds=7)
        self.assertEqual(t.effective_elapsed(self.clock()), timedelta(seconds=107))

    def test_pause_then_restart_loses_no_time(self):
        t = Timer("TICK-1")
        t.start(self.clock())
        self.clock.advance(seconds=10)
        t.pause(self.clock())
        t.start(self.clock())
        self.clock.advance(seconds=5)
        self.assertEqual(t.effective_elapsed(self.clock()), timedelta(seconds=15))

    def test_effective_elapsed_never_decreases(self):
        t = Timer("TICK-1")
        samples = []
        for step, action in enumerate(["start", None, "pause", None, "start", None, "pause", "start", None]):
            self.clock.advance(seconds=step + 1)
            if action == "start":
                t.start(self.clock())
            elif action == "pause":
                t.pause(self.clock())
            samples.append(t.effective_elapsed(self.clock()))
        self.assertEqual(samples, sorted(samples))

    def test_reset_clears_everything(self):
        t = Timer("TICK-1", accumulated=timedelta(minutes=5))
        t.start(self.clock())
        self.clock.advance(seconds=30)
        t.reset()
        self.assertFalse(t.running)
        self.assertIsNone(t.run_since)
        self.assertIsNone(t.last_run_start)
        self.assertEqual(t.effective_elapsed(self.clock()), timedelta(0))

    def test_reset_while_paused(self):
        t = Timer("TICK-1")
        t.start(self.clock())
        self.clock.advance(seconds=30)
        t.pause(self.clock())
        t.reset()
        self.assertEqual(t.effective_elapsed(self.clock()), timedelta(0))
        self.assertIsNone(t.last_run_start)

    def test_clock_going_backwards_is_clamped(self):
        t = Timer("TICK-1", accumulated=timedelta(seconds=20))
        t.start(self.clock())
        earlier = self.clock() - timedelta(seconds=5)
        self.assertEqual(t.effective_elapsed(earlier), timedelta(seconds=20))
        t.pause(earlier)
        self.assertEqual(t.accumulated, timedelta(seconds=20))

    def test_restored_run_keeps_counting(self):
        t0 = self.clock()
        t = Timer("TICK-1", accumulated=timedelta(seconds=60), run_since=t0, last_run_start=t0)
        self.assertTrue(t.running)
        self.clock.advance(hours=1)
        self.assertEqual(t.effective_elapsed(self.clock()), timedelta(hours=1, seconds=60))

    def test_negative_accumulated_is_clamped(self):
        t = Timer("TICK-1", accumulated=timedelta(seconds=-3))
        self.assertEqual(t.accumulated, timedelta(0))

    def test_state_reads_all_fields(self):
        t = Timer("TICK-1", accumulated=timedelta(seconds=4))
        t.start(self.clock())
        self.assertEqual(t.state(), (timedelta(seconds=4), True, self.clock(), self.clock()))

    def test_matches_ignores_case(self):
        t = Timer("Ops-12")
        self.assertTrue(t.matches("OPS-12"))
        self.assertTrue(t.matches("  ops-12 "))
        self.assertFalse(t.matches("ops-1"))


# ──────────────────────────────────────────────────────────────────────────
# registry.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = TimerRegistry()

    def test_blank_names_rejected(self):
        self.registry.create("A")
        for bad in ("", "   ", "\t\n"):
            with self.assertRaises(InvalidName):
                self.registry.create(bad)
        self.assertEqual([t.name for t in self.registry.list()], ["A"])

    def test_invalid_name_is_value_error(self):
        with self.assertRaises(ValueError):
            self.registry.create("")

    def test_create_strips_name(self):
        self.assertEqual(self.registry.create("  TICK-9 ").name, "TICK-9")

    def test_create_does_not_deduplicate(self):
        self.registry.create("abc")
        self.registry.create("abc")
        self.assertEqual(len(self.registry), 2)

    def test_list_is_insertion_ordered_and_restartable(self):
        for name in ("A", "B", "C"):
            self.registry.create(name)
        first = [t.name for t in self.registry.list()]
        second = [t.name for t in self.registry]
        self.assertEqual(first, ["A", "B", "C"])
        self.assertEqual(first, second)

    def test_remove_returns_pre_removal_index(self):
        a, b, c = (self.registry.create(n) for n in "ABC")
        self.assertEqual(self.registry.remove(b.id), 1)
        self.assertEqual([t.name for t in self.registry.list()], ["A", "C"])
        self.assertNotIn(b.id, self.registry)

    def test_remove_unknown_is_noop(self):
        self.registry.create("A")
        self.assertIsNone(self.registry.remove("missing"))
        self.assertEqual(len(self.registry), 1)

    def test_find_by_name_first_match_ignores_case(self):
        first = self.registry.create("abc")
        self.registry.create("ABC")
        self.assertIs(self.registry.find_by_name("Abc"), first)
        self.assertIsNone(self.registry.find_by_name("abcd"))

    def test_tick_notifies_without_mutating(self):
        clock = FakeClock()
        t = self.registry.create("A")
        t.start(clock())
        before = t.state()
        calls = []
        self.registry.ticked.connect(lambda: calls.append(1))
        self.registry.tick()
        self.registry.tick()
        self.assertEqual(len(calls), 2)
        self.assertEqual(t.state(), before)


# ──────────────────────────────────────────────────────────────────────────
# selection.py tests (through the tracker, which owns the removal flow)
# ──────────────────────────────────────────────────────────────────────────

class TestSelection(unittest.TestCase):

    def setUp(self):
        self.tracker = TimerTracker(clock=FakeClock())
        self.events = []
        self.tracker.selection_changed.connect(
            lambda prev, nxt: self.events.append((prev.name if prev else None, nxt.name if nxt else None)))

    def _make(self, *names):
        return [self.tracker.registry.create(n) for n in names]

    def test_remove_selected_middle_selects_successor(self):
        a, b, c = self._make("A", "B", "C")
        self.tracker.select(b.id)
        self.tracker.remove(b.id)
        self.assertIs(self.tracker.selected, c)

    def test_remove_selected_last_selects_predecessor(self):
        a, b, c = self._make("A", "B", "C")
        self.tracker.select(c.id)
        self.tracker.remove(c.id)
        self.assertIs(self.tracker.selected, b)

    def test_remove_selected_first_selects_new_first(self):
        a, b, c = self._make("A", "B", "C")
        self.tracker.select(a.id)
        self.tracker.remove(a.id)
        self.assertIs(self.tracker.selected, b)

    def test_remove_only_timer_clears_selection(self):
        (a,) = self._make("A")
        self.tracker.select(a.id)
        self.tracker.remove(a.id)
        self.assertIsNone(self.tracker.selected)
        self.assertIsNone(self.tracker.selection.selected_id)
        self.assertEqual(self.events[-1], ("A", None))

    def test_remove_unselected_keeps_selection(self):
        a, b, c = self._make("A", "B", "C")
        self.tracker.select(a.id)
        self.events.clear()
        self.tracker.remove(c.id)
        self.assertIs(self.tracker.selected, a)
        self.assertEqual(self.events, [])

    def test_remove_unknown_is_noop(self):
        (a,) = self._make("A")
        self.tracker.select(a.id)
        self.assertIsNone(self.tracker.remove("nope"))
        self.assertIs(self.tracker.selected, a)

    def test_select_unknown_raises(self):
        self._make("A")
        with self.assertRaises(NotFound):
            self.tracker.select("nope")
        self.assertIsNone(self.tracker.selected)

    def test_select_emits_previous_and_next(self):
        a, b = self._make("A", "B")
        self.tracker.select(a.id)
        self.tracker.select(b.id)
        self.assertEqual(self.events, [(None, "A"), ("A", "B")])

    def test_reselect_same_timer_emits_nothing(self):
        (a,) = self._make("A")
        self.tracker.select(a.id)
        self.tracker.select(a.id)
        self.assertEqual(self.events, [(None, "A")])

    def test_removal_event_names_removed_timer(self):
        a, b = self._make("A", "B")
        self.tracker.select(a.id)
        self.tracker.remove(a.id)
        self.assertEqual(self.events[-1], ("A", "B"))

    def test_listeners_see_changes_in_call_order(self):
        a, b, c = self._make("A", "B", "C")
        self.tracker.select(a.id)
        self.tracker.select(c.id)
        self.tracker.remove(c.id)
        self.assertEqual(self.events, [(None, "A"), ("A", "C"), ("C", "B")])

    def test_clear_all_walks_selection_down_to_none(self):
        a, b, c = self._make("A", "B", "C")
        self.tracker.select(a.id)
        self.assertEqual(self.tracker.clear_all(), 3)
        self.assertEqual(self.tracker.list_timers(), ())
        self.assertIsNone(self.tracker.selected)
        self.assertEqual(self.events, [(None, "A"), ("A", "B"), ("B", "C"), ("C", None)])

    def test_clear_all_on_empty_tracker(self):
        self.assertEqual(self.tracker.clear_all(), 0)
        self.assertEqual(self.events, [])


# ──────────────────────────────────────────────────────────────────────────
# tracker.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestTracker(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.tracker = TimerTracker(clock=self.clock)

    def test_create_or_select_dedups_ignoring_case(self):
        first = self.tracker.create_or_select("abc")
        second = self.tracker.create_or_select("ABC")
        self.assertIs(first, second)
        self.assertEqual([t.name for t in self.tracker.list_timers()], ["abc"])
        self.assertIs(self.tracker.selected, first)

    def test_create_or_select_switches_selection(self):
        a = self.tracker.create_or_select("A")
        b = self.tracker.create_or_select("B")
        self.assertIs(self.tracker.selected, b)
        self.tracker.create_or_select("a")
        self.assertIs(self.tracker.selected, a)
        self.assertEqual(len(self.tracker.list_timers()), 2)

    def test_create_or_select_blank_raises(self):
        with self.assertRaises(InvalidName):
            self.tracker.create_or_select("   ")
        self.assertEqual(self.tracker.list_timers(), ())

    def test_create_selects_first_timer_only(self):
        a = self.tracker.create("A")
        self.assertIs(self.tracker.selected, a)
        self.tracker.create("B")
        self.assertIs(self.tracker.selected, a)

    def test_start_pause_reset_by_id(self):
        t = self.tracker.create("A")
        self.assertTrue(self.tracker.start(t.id))
        self.clock.advance(seconds=90)
        self.assertTrue(self.tracker.pause(t.id))
        self.assertEqual(self.tracker.elapsed(t.id), timedelta(seconds=90))
        self.assertTrue(self.tracker.reset(t.id))
        self.assertEqual(self.tracker.elapsed(t.id), timedelta(0))

    def test_unknown_ids_are_silent_noops(self):
        self.assertFalse(self.tracker.start("nope"))
        self.assertFalse(self.tracker.pause("nope"))
        self.assertFalse(self.tracker.reset("nope"))
        self.assertIsNone(self.tracker.elapsed("nope"))

    def test_toggle_selected(self):
        self.assertIsNone(self.tracker.toggle_selected())
        t = self.tracker.create("A")
        self.assertTrue(self.tracker.toggle_selected())
        self.clock.advance(seconds=3)
        self.assertFalse(self.tracker.toggle_selected())
        self.assertEqual(t.accumulated, timedelta(seconds=3))

    def test_reset_selected(self):
        t = self.tracker.create("A")
        self.tracker.start(t.id)
        self.clock.advance(seconds=3)
        self.assertIs(self.tracker.reset_selected(), t)
        self.assertFalse(t.running)
        self.assertEqual(t.accumulated, timedelta(0))

    def test_pause_all(self):
        a = self.tracker.create("A")
        b = self.tracker.create("B")
        self.tracker.create("C")
        self.tracker.start(a.id)
        self.tracker.start(b.id)
        self.clock.advance(seconds=10)
        paused = self.tracker.pause_all()
        self.assertEqual({t.name for t in paused}, {"A", "B"})
        self.assertFalse(any(t.running for t in self.tracker.list_timers()))

    def test_filter_and_exact_match(self):
        for name in ("OPS-1", "ops-12", "DEV-3"):
            self.tracker.create(name)
        self.assertEqual([t.name for t in self.tracker.filter_timers("ops")], ["OPS-1", "ops-12"])
        self.assertEqual(len(self.tracker.filter_timers("")), 3)
        self.assertTrue(self.tracker.has_exact_match("Ops-1"))
        self.assertFalse(self.tracker.has_exact_match("ops"))


# ──────────────────────────────────────────────────────────────────────────
# scheduler.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestManualScheduler(unittest.TestCase):

    def test_fires_on_interval(self):
        sched = ManualScheduler()
        calls = []
        sched.every(100, lambda: calls.append(sched.now_ms))
        self.assertEqual(sched.advance(350), 3)
        self.assertEqual(calls, [100, 200, 300])
        sched.advance(50)
        self.assertEqual(calls, [100, 200, 300, 400])

    def test_interleaves_tasks_in_time_order(self):
        sched = ManualScheduler()
        calls = []
        sched.every(300, lambda: calls.append("slow"))
        sched.every(100, lambda: calls.append("fast"))
        sched.advance(300)
        self.assertEqual(calls, ["fast", "fast", "slow", "fast"])

    def test_cancel_stops_task(self):
        sched = ManualScheduler()
        calls = []
        task = sched.every(100, lambda: calls.append(1))
        sched.advance(200)
        task.cancel()
        sched.advance(1000)
        self.assertEqual(len(calls), 2)
        self.assertEqual(sched.tasks, [])

    def test_rejects_non_positive_interval(self):
        with self.assertRaises(ValueError):
            ManualScheduler().every(0, lambda: None)

    def test_tracker_ticks_on_schedule(self):
        tracker = TimerTracker(clock=FakeClock())
        ticks = []
        tracker.ticked.connect(lambda: ticks.append(1))
        sched = ManualScheduler()
        tracker.start_schedules(sched, tick_interval_ms=100, autosave_seconds=5)
        sched.advance(1000)
        self.assertEqual(len(ticks), 10)
        tracker.stop_schedules()
        sched.advance(1000)
        self.assertEqual(len(ticks), 10)


if __name__ == "__main__":
    unittest.main()
