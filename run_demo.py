#!/usr/bin/env python
"""
Task Orchestrator - Demo Execution

Runs the "full" wizard plan against an in-memory backend that answers with
canned content after random delays, and prints the task table as it evolves.
"""

import asyncio
import random
from typing import Any, Dict, List, Optional

from task_orchestrator import ExecutionEngine, EventBus
from task_orchestrator.config import EnvConfig, OrchestratorConfig
from task_orchestrator.plans import GenerationRequest, build_plan


class InMemoryBackend:
    """Generation backend with canned results and simulated latency."""

    def __init__(self, min_delay: float = 0.3, max_delay: float = 1.5):
        self.min_delay = min_delay
        self.max_delay = max_delay

    async def _latency(self):
        await asyncio.sleep(random.uniform(self.min_delay, self.max_delay))

    async def verify_findings(self, findings, sector, location) -> Dict[str, Any]:
        await self._latency()
        return {"findings": [{**f, "verified": True, "location": location} for f in findings]}

    async def generate_demo_slides(self, request) -> Dict[str, Any]:
        await self._latency()
        return {
            "slides": [
                {"title": f"{request.topic}: part {i + 1}", "image_prompt": f"Illustration {i + 1}"}
                for i in range(4)
            ],
            "metadata": {"style": request.style},
        }

    async def generate_quiz_questions(self, topic, sector, files,
                                      study_guide: Optional[List[Dict[str, Any]]] = None):
        await self._latency()
        source = [s["title"] for s in study_guide] if study_guide else [topic]
        return {"questions": [{"question": f"What matters most about {s}?"} for s in source]}

    async def generate_course_summary(self, topic, sector, files):
        await self._latency()
        return {"course_title": f"{topic} for {sector}", "objectives": ["Know", "Apply"]}

    async def generate_study_guide(self, topic, sector, files):
        await self._latency()
        return {"sections": [{"title": f"{topic} basics"}, {"title": f"{topic} in {sector}"}]}

    async def generate_slide_content(self, topic, sector, files, theme=None):
        await self._latency()
        return {
            "slides": [{"title": f"Slide {i + 1}"} for i in range(5)],
            "data_verification": {"coverage_percentage": 92},
        }

    async def select_infographic_slide(self, slides, topic, sector):
        await self._latency()
        return {"selected_slide_index": 2, "image_prompt": f"Infographic about {topic}"}

    async def generate_asset(self, prompt: str) -> Optional[str]:
        await self._latency()
        return f"https://assets.example.com/{abs(hash(prompt)) % 10_000}.png"


def print_table(snapshot):
    print(f"  {'Task':<20} {'Status':<10} {'Progress / Result'}")
    for state in snapshot.tasks.values():
        detail = state.result_summary or state.error or state.progress_text
        print(f"  {state.label:<20} {state.status.value:<10} {detail}")
    print()


async def run():
    """Start the full plan and poll the run until it settles."""
    config = OrchestratorConfig.from_env()
    bus = EventBus(history_max_size=config.event_history_size)
    engine = ExecutionEngine(config=config, event_bus=bus)

    bus.subscribe(
        "task_failed",
        lambda event: print(f"  !! {event['task_name']} failed: {event['payload']['task']['error']}"),
        subscriber_name="demo",
    )

    request = GenerationRequest(
        topic="Forklift Safety",
        sector="Logistics",
        approved_findings=[{"id": "f1", "claim": "Annual operator re-certification"}],
    )
    plan = build_plan("full", InMemoryBackend(), request)
    handle = await engine.start_run(plan)

    while not engine.is_settled(handle):
        print_table(engine.snapshot(handle))
        await asyncio.sleep(0.5)

    await handle.merger.drain()
    return engine, engine.snapshot(handle)


def main():
    """Main entry point for the orchestrator demo."""
    print("=" * 70)
    print("Task Orchestrator - Demo Execution")
    print("=" * 70)
    print()

    EnvConfig.load_env_file()

    try:
        engine, snapshot = asyncio.run(run())

        print("=" * 70)
        print("Run Settled!")
        print("=" * 70)
        print_table(snapshot)

        stats = engine.get_stats()
        print("Execution Summary:")
        print(f"  Completed Tasks: {stats['tasks_completed']}")
        print(f"  Failed Tasks: {stats['tasks_failed']}")
        print(f"  Shared Result Keys: {', '.join(sorted(snapshot.result))}")
        images = [s.get("image_url") for s in snapshot.result.get("slides", [])]
        print(f"  Slide Images Merged: {len([i for i in images if i])} of {len(images)}")

    except KeyboardInterrupt:
        print()
        print("Demo interrupted by user.")


if __name__ == "__main__":
    main()
