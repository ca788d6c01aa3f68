"""
Tests for the wizard's mode plans, run against a mocked generation backend.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from task_orchestrator.config import OrchestratorConfig
from task_orchestrator.core.engine import ExecutionEngine
from task_orchestrator.models import TaskStatus
from task_orchestrator.plans import (
    AGENT_LABELS,
    AGENT_PROGRESS_TEXT,
    GenerationBackend,
    GenerationRequest,
    build_plan,
)
from task_orchestrator.utils.exceptions import PlanConfigurationError


def make_backend(**overrides) -> AsyncMock:
    backend = AsyncMock(spec=GenerationBackend)
    backend.verify_findings.return_value = {"findings": [{"id": "f1"}, {"id": "f2"}]}
    backend.generate_demo_slides.return_value = {
        "slides": [
            {"title": "Intro", "image_prompt": "warehouse"},
            {"title": "Rules"},
            {"title": "Recap", "image_prompt": "checklist"},
        ]
    }
    backend.generate_quiz_questions.return_value = {"questions": [{"q": 1}, {"q": 2}, {"q": 3}]}
    backend.generate_course_summary.return_value = {"course_title": "Forklift Safety 101"}
    backend.generate_study_guide.return_value = {"sections": [{"title": "Basics"}, {"title": "Loads"}]}
    backend.generate_slide_content.return_value = {
        "slides": [{"title": "A"}, {"title": "B"}],
        "data_verification": {"coverage_percentage": 87},
        "disclaimer": "Check local rules",
    }
    backend.select_infographic_slide.return_value = {"selected_slide_index": 1, "image_prompt": "chart"}
    backend.generate_asset.side_effect = lambda prompt: f"https://img/{prompt}.png"
    for name, value in overrides.items():
        setattr(backend, name, value)
    return backend


@pytest.fixture
def request_():
    return GenerationRequest(
        topic="Forklift Safety",
        sector="Logistics",
        approved_findings=[{"id": "f1"}, {"id": "f2"}],
    )


def run_plan(plan):
    engine = ExecutionEngine(config=OrchestratorConfig(progress_interval_seconds=0.05))

    async def scenario():
        handle = await engine.start_run(plan)
        await engine.wait_settled(handle, timeout=10)
        await handle.merger.drain()
        return engine.snapshot(handle)

    return asyncio.run(scenario())


class TestBuildPlan:

    def test_regulatory_plan_shape(self, request_):
        plan = build_plan("regulatory", make_backend(), request_)

        assert plan.names == ["fact-checker", "slide-designer", "quiz-builder", "course-summary"]
        assert [s.start_offset_ms for s in plan] == [0, 300, 600, 200]
        assert all(s.depends_on is None for s in plan)

    def test_visual_plan_shape(self, request_):
        plan = build_plan("visual", make_backend(), request_)

        assert plan.names == ["study-guide-agent", "slide-deck-agent", "quiz-agent"]
        assert plan.get("slide-deck-agent").start_offset_ms == 200
        assert plan.get("quiz-agent").depends_on == "study-guide-agent"

    def test_full_plan_shape(self, request_):
        plan = build_plan("full", make_backend(), request_)

        assert plan.names == [
            "fact-checker", "slide-designer", "course-summary",
            "study-guide-agent", "slide-deck-agent", "quiz-agent",
        ]
        assert [s.start_offset_ms for s in plan][:5] == [0, 300, 200, 100, 400]

    def test_labels_and_progress_texts(self, request_):
        for spec in build_plan("full", make_backend(), request_):
            assert spec.label == AGENT_LABELS[spec.name]
            assert list(spec.progress_texts) == AGENT_PROGRESS_TEXT[spec.name]

    def test_unknown_mode(self, request_):
        with pytest.raises(PlanConfigurationError, match="Unknown plan mode"):
            build_plan("interactive", make_backend(), request_)


class TestRegulatoryRun:

    def test_all_tasks_complete_and_images_merge_by_index(self, request_):
        backend = make_backend()
        snapshot = run_plan(build_plan("regulatory", backend, request_))

        tasks = snapshot.tasks
        assert tasks["fact-checker"].result_summary == "2 findings verified"
        assert tasks["slide-designer"].result_summary == "3 slides generated"
        assert tasks["quiz-builder"].result_summary == "3 questions created"
        assert tasks["course-summary"].result_summary == "Forklift Safety 101"

        slides = snapshot.result["slides"]
        assert slides[0]["image_url"] == "https://img/warehouse.png"
        assert "image_url" not in slides[1]
        assert slides[2]["image_url"] == "https://img/checklist.png"
        assert snapshot.result["verification_results"] == [{"id": "f1"}, {"id": "f2"}]
        assert snapshot.result["course_summary"] == {"course_title": "Forklift Safety 101"}
        assert backend.generate_asset.await_count == 2

    def test_no_findings_to_verify(self):
        backend = make_backend()
        request = GenerationRequest(topic="Forklift Safety", sector="Logistics")
        snapshot = run_plan(build_plan("regulatory", backend, request))

        assert snapshot.tasks["fact-checker"].status == TaskStatus.COMPLETE
        assert snapshot.tasks["fact-checker"].result_summary == "No findings to verify"
        backend.verify_findings.assert_not_awaited()

    def test_failed_image_keeps_slide_and_task_complete(self, request_):
        async def flaky_asset(prompt):
            if prompt == "warehouse":
                raise TimeoutError("image service timeout")
            return f"https://img/{prompt}.png"

        backend = make_backend(generate_asset=AsyncMock(side_effect=flaky_asset))
        snapshot = run_plan(build_plan("regulatory", backend, request_))

        assert snapshot.tasks["slide-designer"].status == TaskStatus.COMPLETE
        assert "image_url" not in snapshot.result["slides"][0]
        assert snapshot.result["slides"][2]["image_url"] == "https://img/checklist.png"

    def test_summary_without_title(self, request_):
        backend = make_backend(generate_course_summary=AsyncMock(return_value={}))
        snapshot = run_plan(build_plan("regulatory", backend, request_))
        assert snapshot.tasks["course-summary"].result_summary == "Summary ready"


class TestVisualRun:

    def test_visual_success(self, request_):
        backend = make_backend()
        snapshot = run_plan(build_plan("visual", backend, request_))

        assert snapshot.tasks["study-guide-agent"].result_summary == "2 sections generated"
        assert snapshot.tasks["slide-deck-agent"].result_summary == "2 slides + infographic (87% coverage)"
        assert snapshot.tasks["quiz-agent"].result_summary == "3 questions created"

        generated = snapshot.result["generated_slides"]
        assert generated[1]["image_url"] == "https://img/chart.png"
        assert "image_url" not in generated[0]
        assert snapshot.result["slide_disclaimer"] == "Check local rules"
        assert snapshot.result["study_guide"] == [{"title": "Basics"}, {"title": "Loads"}]

        # The quiz is grounded on the study guide sections
        args = backend.generate_quiz_questions.await_args.args
        assert args[3] == [{"title": "Basics"}, {"title": "Loads"}]

    def test_empty_study_guide_fails_but_quiz_still_runs(self, request_):
        backend = make_backend(generate_study_guide=AsyncMock(return_value={"sections": []}))
        snapshot = run_plan(build_plan("visual", backend, request_))

        guide = snapshot.tasks["study-guide-agent"]
        assert guide.status == TaskStatus.ERROR
        assert guide.error == "Study guide returned 0 sections"
        assert snapshot.tasks["quiz-agent"].status == TaskStatus.COMPLETE
        assert backend.generate_quiz_questions.await_args.args[3] is None

    def test_empty_slide_content_fails_without_infographic(self, request_):
        backend = make_backend(generate_slide_content=AsyncMock(return_value={"slides": []}))
        snapshot = run_plan(build_plan("visual", backend, request_))

        assert snapshot.tasks["slide-deck-agent"].error == "Slide content returned 0 slides"
        backend.select_infographic_slide.assert_not_awaited()

    def test_quiz_retried_once(self, request_):
        quiz = AsyncMock(side_effect=[{"questions": []}, {"questions": [{"q": 1}]}])
        backend = make_backend(generate_quiz_questions=quiz)
        snapshot = run_plan(build_plan("visual", backend, request_))

        assert snapshot.tasks["quiz-agent"].status == TaskStatus.COMPLETE
        assert snapshot.tasks["quiz-agent"].attempts == 2
        assert snapshot.tasks["quiz-agent"].result_summary == "1 questions created"

    def test_quiz_empty_twice_fails(self, request_):
        quiz = AsyncMock(return_value={"questions": []})
        backend = make_backend(generate_quiz_questions=quiz)
        snapshot = run_plan(build_plan("visual", backend, request_))

        assert snapshot.tasks["quiz-agent"].error == "Quiz returned 0 questions after retry"
        assert quiz.await_count == 2
        assert snapshot.tasks["slide-deck-agent"].status == TaskStatus.COMPLETE


class TestFullRun:

    def test_full_run_settles_with_every_artifact(self, request_):
        snapshot = run_plan(build_plan("full", make_backend(), request_))

        assert snapshot.settled
        assert all(state.status == TaskStatus.COMPLETE for state in snapshot.tasks.values())
        for key in ("slides", "verification_results", "course_summary",
                    "study_guide", "generated_slides", "quiz_questions"):
            assert key in snapshot.result

    def test_full_run_generates_only_the_infographic(self, request_):
        backend = make_backend()
        snapshot = run_plan(build_plan("full", backend, request_))

        backend.generate_asset.assert_awaited_once_with("chart")
        assert all("image_url" not in slide for slide in snapshot.result["slides"])
        assert snapshot.result["generated_slides"][1]["image_url"] == "https://img/chart.png"
