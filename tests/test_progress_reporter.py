"""
Tests for progress text cycling and timer release.
"""

import asyncio

from task_orchestrator.core.progress import ProgressReporter
from task_orchestrator.core.state_store import TaskStateStore
from task_orchestrator.models import TaskPlan, TaskSpec


async def noop(context):
    return None


def working_store(*names):
    store = TaskStateStore(TaskPlan([TaskSpec(name, noop) for name in names]))
    for name in names:
        store.mark_working(name, 0)
    return store


class TestProgressReporter:

    def test_cycles_and_wraps_around(self):
        seen = []

        async def scenario():
            store = working_store("a")
            reporter = ProgressReporter(store, 0.01, on_update=lambda name, text: seen.append(text))
            reporter.start("a", ["one", "two", "three"])
            await asyncio.sleep(0.055)
            reporter.stop("a")

        asyncio.run(scenario())
        assert seen[:4] == ["one", "two", "three", "one"]

    def test_first_text_is_immediate(self):
        async def scenario():
            store = working_store("a")
            reporter = ProgressReporter(store, 10)
            reporter.start("a", ["Reading course materials...", "Designing layouts..."])
            text = store.get("a").progress_text
            reporter.stop_all()
            return text

        assert asyncio.run(scenario()) == "Reading course materials..."

    def test_stop_is_idempotent(self):
        async def scenario():
            reporter = ProgressReporter(working_store("a"), 10)
            reporter.start("a", ["x", "y"])
            return reporter.stop("a"), reporter.stop("a"), reporter.active

        assert asyncio.run(scenario()) == (True, False, [])

    def test_no_updates_after_stop(self):
        seen = []

        async def scenario():
            reporter = ProgressReporter(working_store("a"), 0.01,
                                        on_update=lambda name, text: seen.append(text))
            reporter.start("a", ["x", "y"])
            reporter.stop("a")
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert seen == ["x"]

    def test_single_text_creates_no_timer(self):
        async def scenario():
            reporter = ProgressReporter(working_store("a"), 0.01)
            reporter.start("a", ["Working..."])
            return reporter.active

        assert asyncio.run(scenario()) == []

    def test_close_releases_all_and_refuses_new_timers(self):
        async def scenario():
            store = working_store("a", "b", "c")
            reporter = ProgressReporter(store, 0.01)
            reporter.start("a", ["1", "2"])
            reporter.start("b", ["3", "4"])
            released = reporter.close()
            reporter.start("c", ["5", "6"])
            return released, reporter.active, store.get("c").progress_text

        released, active, c_text = asyncio.run(scenario())
        assert released == 2
        assert active == []
        assert c_text == "5"

    def test_text_ignored_once_task_is_terminal(self):
        async def scenario():
            store = working_store("a")
            store.mark_complete("a", 10, "done")
            reporter = ProgressReporter(store, 0.01)
            reporter.start("a", ["late"])
            return store.get("a").progress_text

        assert asyncio.run(scenario()) == "Waiting..."
