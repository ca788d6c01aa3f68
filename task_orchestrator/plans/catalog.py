"""
Mode plans - the task plans the course wizard launches.

Each mode is a fixed set of generation tasks with staggered start offsets:

- regulatory: fact checker, slide designer (with per-slide image generation),
  quiz builder and course summary
- visual: study guide, slide deck with infographic, and a quiz that waits
  for the study guide
- full: both families at once

Results of every task land in the run's shared result dict:

    verification_results   fact-checker
    slides, ...            slide-designer (whole demo result; image_url per slide in regulatory mode)
    quiz_questions         quiz-builder / quiz-agent
    course_summary         course-summary
    study_guide            study-guide-agent
    generated_slides       slide-deck-agent (plus slide_verification, slide_disclaimer)
"""

from typing import Any, Callable, Dict, List

from task_orchestrator.core.context import TaskContext
from task_orchestrator.core.merger import merge_fields, set_field, update_item
from task_orchestrator.core.retry import AcceptAnyResult, FailIfEmpty, RetryOnceIfEmpty
from task_orchestrator.models.plan import TaskPlan
from task_orchestrator.models.task import TaskSpec
from task_orchestrator.plans.backends import GenerationBackend, GenerationRequest
from task_orchestrator.utils.exceptions import PlanConfigurationError
from task_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)


AGENT_LABELS: Dict[str, str] = {
    "fact-checker": "Fact Checker",
    "slide-designer": "Slide Designer",
    "quiz-builder": "Quiz Builder",
    "course-summary": "Course Summary",
    "study-guide-agent": "Study Guide Agent",
    "slide-deck-agent": "Slide Deck Agent",
    "quiz-agent": "Quiz Agent",
}

AGENT_PROGRESS_TEXT: Dict[str, List[str]] = {
    "fact-checker": [
        "Searching current standards...",
        "Cross-referencing sources...",
        "Verifying claims...",
        "Compiling verification report...",
    ],
    "slide-designer": [
        "Reading course materials...",
        "Designing layouts...",
        "Generating visuals...",
        "Polishing slides...",
    ],
    "quiz-builder": [
        "Identifying key concepts...",
        "Crafting questions...",
        "Validating answers...",
        "Finalizing quiz...",
    ],
    "course-summary": [
        "Analyzing structure...",
        "Mapping objectives...",
        "Building overview...",
        "Summarizing course...",
    ],
    "study-guide-agent": [
        "Reading course materials...",
        "Extracting key concepts...",
        "Fact-checking with Gemini Search...",
        "Finalizing study guide...",
    ],
    "slide-deck-agent": [
        "Analyzing content structure...",
        "Generating slide content...",
        "Applying theme styles...",
        "Verifying data coverage...",
    ],
    "quiz-agent": [
        "Waiting for study guide...",
        "Identifying testable concepts...",
        "Crafting exam questions...",
        "Finalizing quiz module...",
    ],
}

PLAN_MODES = ("regulatory", "visual", "full")


def _spec(name: str, work, **kwargs) -> TaskSpec:
    return TaskSpec(
        name=name,
        work=work,
        label=AGENT_LABELS[name],
        progress_texts=AGENT_PROGRESS_TEXT[name],
        **kwargs,
    )


# ============================================================================
# REGULATORY TASKS
# ============================================================================

def fact_checker(backend: GenerationBackend, request: GenerationRequest,
                 start_offset_ms: int = 0) -> TaskSpec:
    """Verifies the approved findings; nothing to do when none were approved."""
    async def work(context: TaskContext):
        if not request.approved_findings:
            return None
        return await backend.verify_findings(
            request.approved_findings, request.sector, request.location or "United States"
        )

    def summarize(result) -> str:
        if result is None:
            return "No findings to verify"
        return f"{len(result.get('findings', []))} findings verified"

    def merge(current, result):
        if result is None:
            return current
        return set_field("verification_results", result.get("findings", []))(current)

    return _spec("fact-checker", work, start_offset_ms=start_offset_ms,
                 retry_policy=AcceptAnyResult(), summarize=summarize, merge=merge)


def slide_designer(backend: GenerationBackend, request: GenerationRequest,
                   start_offset_ms: int = 300, generate_images: bool = True) -> TaskSpec:
    """
    Generates the updated demo slides, then one image per slide that has an
    image prompt. Images are fire-and-forget: each one is merged into its
    own slide by index when (and if) it arrives.

    With generate_images=False only the slides are generated; the full mode
    leaves images to the slide deck agent's infographic.
    """
    async def work(context: TaskContext):
        demo = await backend.generate_demo_slides(request)
        context.merger.apply(merge_fields(demo), source=context.name)
        if not generate_images:
            return demo

        for index, slide in enumerate(demo.get("slides", [])):
            prompt = slide.get("image_prompt")
            if not prompt:
                continue
            context.spawn(
                index,
                lambda p=prompt: backend.generate_asset(p),
                lambda url, i=index: update_item("slides", i, image_url=url),
            )
        return demo

    return _spec("slide-designer", work, start_offset_ms=start_offset_ms,
                 retry_policy=AcceptAnyResult(),
                 summarize=lambda demo: f"{len(demo.get('slides', []))} slides generated")


def quiz_builder(backend: GenerationBackend, request: GenerationRequest,
                 start_offset_ms: int = 600) -> TaskSpec:
    async def work(context: TaskContext):
        return await backend.generate_quiz_questions(request.topic, request.sector, request.files)

    return _spec("quiz-builder", work, start_offset_ms=start_offset_ms,
                 retry_policy=AcceptAnyResult(),
                 summarize=_count_summary("questions", "questions created"),
                 merge=lambda current, result: set_field(
                     "quiz_questions", result.get("questions", []))(current))


def course_summary(backend: GenerationBackend, request: GenerationRequest,
                   start_offset_ms: int = 200) -> TaskSpec:
    async def work(context: TaskContext):
        return await backend.generate_course_summary(request.topic, request.sector, request.files)

    return _spec("course-summary", work, start_offset_ms=start_offset_ms,
                 retry_policy=AcceptAnyResult(),
                 summarize=lambda result: (result or {}).get("course_title") or "Summary ready",
                 merge=lambda current, result: set_field("course_summary", result)(current))


# ============================================================================
# VISUAL TASKS
# ============================================================================

def study_guide_agent(backend: GenerationBackend, request: GenerationRequest,
                      start_offset_ms: int = 0) -> TaskSpec:
    async def work(context: TaskContext):
        return await backend.generate_study_guide(request.topic, request.sector, request.files)

    return _spec("study-guide-agent", work, start_offset_ms=start_offset_ms,
                 retry_policy=FailIfEmpty(
                     items=lambda r: r.get("sections"),
                     empty_message="Study guide returned 0 sections"),
                 summarize=_count_summary("sections", "sections generated"),
                 merge=lambda current, result: set_field("study_guide", result["sections"])(current))


def slide_deck_agent(backend: GenerationBackend, request: GenerationRequest,
                     start_offset_ms: int = 200) -> TaskSpec:
    """
    Generates themed slide content, picks one slide for an infographic and
    attaches the generated image to it. The infographic is part of the task:
    a failure there fails the task.
    """
    async def work(context: TaskContext):
        content = await backend.generate_slide_content(
            request.topic, request.sector, request.files, request.theme
        )
        slides = content.get("slides") or []
        if not slides:
            return content

        context.report_progress("Selecting slide for infographic...")
        selection = await backend.select_infographic_slide(slides, request.topic, request.sector)
        context.report_progress("Generating infographic...")
        image_url = await backend.generate_asset(selection["image_prompt"])

        selected = selection["selected_slide_index"]
        content = dict(content)
        content["slides"] = [
            {**slide, "image_url": image_url} if index == selected and image_url else slide
            for index, slide in enumerate(slides)
        ]
        return content

    def summarize(content) -> str:
        summary = f"{len(content['slides'])} slides + infographic"
        verification = content.get("data_verification")
        if verification and "coverage_percentage" in verification:
            summary += f" ({verification['coverage_percentage']}% coverage)"
        return summary

    def merge(current, content):
        fields = {"generated_slides": content["slides"]}
        if content.get("data_verification"):
            fields["slide_verification"] = content["data_verification"]
        if content.get("disclaimer"):
            fields["slide_disclaimer"] = content["disclaimer"]
        return merge_fields(fields)(current)

    return _spec("slide-deck-agent", work, start_offset_ms=start_offset_ms,
                 retry_policy=FailIfEmpty(
                     items=lambda r: r.get("slides"),
                     empty_message="Slide content returned 0 slides"),
                 summarize=summarize, merge=merge)


def quiz_agent(backend: GenerationBackend, request: GenerationRequest,
               depends_on: str = "study-guide-agent") -> TaskSpec:
    """Quiz grounded on the study guide when the study guide task produced sections."""
    async def work(context: TaskContext):
        study_guide = (context.result_of(depends_on) or {}).get("sections") or None
        return await backend.generate_quiz_questions(
            request.topic, request.sector, request.files, study_guide
        )

    return _spec("quiz-agent", work, depends_on=depends_on,
                 retry_policy=RetryOnceIfEmpty(
                     items=lambda r: r.get("questions"),
                     empty_message="Quiz returned 0 questions after retry"),
                 summarize=_count_summary("questions", "questions created"),
                 merge=lambda current, result: set_field("quiz_questions", result["questions"])(current))


def _count_summary(key: str, suffix: str) -> Callable[[Any], str]:
    return lambda result: f"{len(result.get(key) or [])} {suffix}"


# ============================================================================
# PLAN BUILDER
# ============================================================================

def build_plan(mode: str, backend: GenerationBackend, request: GenerationRequest) -> TaskPlan:
    """
    Build the validated task plan of one wizard mode.

    Args:
        mode: "regulatory", "visual" or "full"
        backend: Generation backend the work routines call
        request: Inputs shared by every task of the run

    Returns:
        Validated TaskPlan

    Raises:
        PlanConfigurationError: unknown mode
    """
    if mode == "regulatory":
        specs = [
            fact_checker(backend, request, 0),
            slide_designer(backend, request, 300),
            quiz_builder(backend, request, 600),
            course_summary(backend, request, 200),
        ]
    elif mode == "visual":
        specs = [
            study_guide_agent(backend, request, 0),
            slide_deck_agent(backend, request, 200),
            quiz_agent(backend, request),
        ]
    elif mode == "full":
        specs = [
            fact_checker(backend, request, 0),
            slide_designer(backend, request, 300, generate_images=False),
            course_summary(backend, request, 200),
            study_guide_agent(backend, request, 100),
            slide_deck_agent(backend, request, 400),
            quiz_agent(backend, request),
        ]
    else:
        raise PlanConfigurationError(
            "mode", f"Unknown plan mode '{mode}' (expected one of: {', '.join(PLAN_MODES)})"
        )

    logger.debug(f"Built '{mode}' plan with tasks: {', '.join(spec.name for spec in specs)}")
    return TaskPlan(specs, name=mode)
