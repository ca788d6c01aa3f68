"""
Generation backend interface consumed by the mode plans.

The orchestrator never talks to a model provider itself; a backend object
implementing ``GenerationBackend`` is handed to ``build_plan`` and its
coroutines become the work routines of the plan's tasks. Results are plain
dicts, matching what the generation service returns.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, TypedDict, runtime_checkable


class InfographicSelection(TypedDict):
    """Slide chosen to carry the generated infographic."""
    selected_slide_index: int
    image_prompt: str


@dataclass
class GenerationRequest:
    """
    Inputs shared by every task of one wizard run.

    Attributes:
        topic: Course topic
        sector: Industry sector the course targets
        location: Jurisdiction used for regulatory verification
        update_mode: "regulatory", "visual" or "full"
        style: Slide style preset
        files: Ingested source files (opaque to the orchestrator)
        approved_findings: Findings the user approved for verification
        user_context: Free-text notes from the user
        design_questions: Answers to the slide design questionnaire
        theme: Selected theme for visual transformations
    """
    topic: str
    sector: str
    location: str = "United States"
    update_mode: str = "regulatory"
    style: str = "modern"
    files: List[Any] = field(default_factory=list)
    approved_findings: List[Dict[str, Any]] = field(default_factory=list)
    user_context: Optional[str] = None
    design_questions: Dict[str, str] = field(default_factory=dict)
    theme: Optional[Dict[str, Any]] = None


@runtime_checkable
class GenerationBackend(Protocol):
    """Async producers of the derived artifacts."""

    async def verify_findings(self, findings: List[Dict[str, Any]], sector: str,
                              location: str) -> Dict[str, Any]:
        """Returns ``{"findings": [...]}``."""
        ...

    async def generate_demo_slides(self, request: GenerationRequest) -> Dict[str, Any]:
        """Returns ``{"slides": [...], ...}``; slides may carry an ``image_prompt``."""
        ...

    async def generate_quiz_questions(self, topic: str, sector: str, files: List[Any],
                                      study_guide: Optional[List[Dict[str, Any]]] = None
                                      ) -> Dict[str, Any]:
        """Returns ``{"questions": [...]}``."""
        ...

    async def generate_course_summary(self, topic: str, sector: str,
                                      files: List[Any]) -> Dict[str, Any]:
        """Returns a summary dict, optionally with a ``course_title``."""
        ...

    async def generate_study_guide(self, topic: str, sector: str,
                                   files: List[Any]) -> Dict[str, Any]:
        """Returns ``{"sections": [...]}``."""
        ...

    async def generate_slide_content(self, topic: str, sector: str, files: List[Any],
                                     theme: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Returns ``{"slides": [...], "data_verification": {...}, "disclaimer": str}``."""
        ...

    async def select_infographic_slide(self, slides: List[Dict[str, Any]], topic: str,
                                       sector: str) -> InfographicSelection:
        ...

    async def generate_asset(self, prompt: str) -> Optional[str]:
        """Returns an image URL, or None when nothing was generated."""
        ...
