"""
Tests for the result merger: lost-update prevention and sub-task failures.
"""

import asyncio
import random
import threading

import pytest

from task_orchestrator.core.merger import ResultMerger, merge_fields, set_field, update_item


class TestPatchHelpers:

    def test_set_field_keeps_other_keys(self):
        assert set_field("b", 2)({"a": 1}) == {"a": 1, "b": 2}
        assert set_field("a", 1)(None) == {"a": 1}

    def test_merge_fields(self):
        assert merge_fields({"b": 2, "c": 3})({"a": 1, "b": 0}) == {"a": 1, "b": 2, "c": 3}

    def test_update_item_copies_on_write(self):
        current = {"slides": [{"title": "one"}, {"title": "two"}]}
        updated = update_item("slides", 1, image_url="u2")(current)

        assert updated["slides"][1] == {"title": "two", "image_url": "u2"}
        assert updated["slides"][0] is current["slides"][0]
        assert "image_url" not in current["slides"][1]

    def test_update_item_errors(self):
        with pytest.raises(KeyError):
            update_item("slides", 0, image_url="u")({})
        with pytest.raises(IndexError):
            update_item("slides", 3, image_url="u")({"slides": [{}]})


class TestResultMerger:

    def setup_method(self):
        self.updates = []
        self.failures = []
        self.merger = ResultMerger(
            {"slides": [{"title": f"slide {i}"} for i in range(20)]},
            on_update=lambda source, version: self.updates.append((source, version)),
            on_failure=self.failures.append,
        )

    def test_apply_reads_latest_value(self):
        self.merger.apply(set_field("summary", "s"), source="summary")
        self.merger.apply(update_item("slides", 0, image_url="u0"), source="img")

        value = self.merger.snapshot()
        assert value["summary"] == "s"
        assert value["slides"][0]["image_url"] == "u0"
        assert self.merger.version == 2
        assert self.updates == [("summary", 1), ("img", 2)]

    def test_snapshot_is_deep_copy(self):
        snapshot = self.merger.snapshot()
        snapshot["slides"][0]["title"] = "changed"
        assert self.merger.snapshot()["slides"][0]["title"] == "slide 0"

    def test_randomized_concurrent_item_writes_are_all_kept(self):
        """K sub-tasks finishing in random order each leave their own write."""
        k = 20

        async def make_url(index):
            await asyncio.sleep(random.uniform(0, 0.02))
            return f"url-{index}"

        async def scenario():
            for index in random.sample(range(k), k):
                self.merger.dispatch(
                    index,
                    lambda i=index: make_url(i),
                    lambda url, i=index: update_item("slides", i, image_url=url),
                )
            assert self.merger.pending == k
            await self.merger.drain()

        asyncio.run(scenario())

        slides = self.merger.snapshot()["slides"]
        assert [s["image_url"] for s in slides] == [f"url-{i}" for i in range(k)]
        assert self.merger.pending == 0
        assert self.merger.version == k

    def test_concurrent_writes_from_threads(self):
        threads = [
            threading.Thread(
                target=self.merger.apply,
                args=(update_item("slides", i, checked=True),),
            )
            for i in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(s["checked"] for s in self.merger.snapshot()["slides"])

    def test_primary_write_and_subtask_writes_do_not_clobber(self):
        async def late_url():
            await asyncio.sleep(0.01)
            return "late"

        async def scenario():
            self.merger.dispatch(3, late_url, lambda url: update_item("slides", 3, image_url=url))
            self.merger.apply(set_field("course_summary", {"title": "T"}), source="course-summary")
            await self.merger.drain()

        asyncio.run(scenario())
        value = self.merger.snapshot()
        assert value["course_summary"] == {"title": "T"}
        assert value["slides"][3]["image_url"] == "late"

    def test_failed_subtask_is_logged_and_skipped(self, caplog):
        async def broken():
            raise ConnectionError("asset service unavailable")

        async def ok():
            return "u1"

        async def scenario():
            self.merger.dispatch(0, broken, lambda url: update_item("slides", 0, image_url=url))
            self.merger.dispatch(1, ok, lambda url: update_item("slides", 1, image_url=url))
            await self.merger.drain()

        with caplog.at_level("WARNING", logger="task_orchestrator"):
            asyncio.run(scenario())

        slides = self.merger.snapshot()["slides"]
        assert "image_url" not in slides[0]
        assert slides[1]["image_url"] == "u1"
        assert len(self.merger.failures) == 1
        assert self.merger.failures[0].item == 0
        assert self.failures == self.merger.failures
        assert "Update for item 0 failed" in caplog.text

    def test_falsy_value_applies_nothing(self):
        async def no_image():
            return None

        async def scenario():
            self.merger.dispatch(0, no_image, lambda url: update_item("slides", 0, image_url=url))
            await self.merger.drain()

        asyncio.run(scenario())
        assert self.merger.version == 0
        assert self.merger.failures == []

    def test_unapplicable_patch_is_recorded(self):
        async def url():
            return "u"

        async def scenario():
            self.merger.dispatch(99, url, lambda value: update_item("slides", 99, image_url=value))
            await self.merger.drain()

        asyncio.run(scenario())
        assert len(self.merger.failures) == 1
        assert isinstance(self.merger.failures[0].original_error, IndexError)

    def test_default_initial_value(self):
        assert ResultMerger().snapshot() == {}
