"""
Plan module - Ordered, validated set of task specs for one run
"""

from typing import Dict, Iterable, Iterator, List, Optional

from task_orchestrator.utils.exceptions import (
    DependencyCycleError,
    DuplicateTaskError,
    PlanConfigurationError,
    UnknownDependencyError,
)
from .task import TaskSpec


class TaskPlan:
    """
    Ordered set of task specs for one run.

    The plan is validated on construction: task names must be unique,
    ``depends_on`` must name another task of the same plan, offsets must be
    non-negative and dependencies must not form a cycle. Any violation raises
    a ``PlanConfigurationError`` before a run can start.
    """

    def __init__(self, specs: Iterable[TaskSpec], name: str = "plan"):
        self.name = name
        self._specs: List[TaskSpec] = list(specs)
        self._by_name: Dict[str, TaskSpec] = {}
        self.validate()

    def validate(self) -> None:
        """Check names, dependency targets, offsets and cycles."""
        by_name: Dict[str, TaskSpec] = {}
        for spec in self._specs:
            if not isinstance(spec, TaskSpec):
                raise PlanConfigurationError(
                    None, f"Plan entries must be TaskSpec instances, got {type(spec).__name__}"
                )
            if not spec.name:
                raise PlanConfigurationError(None, "Task name cannot be empty")
            if spec.name in by_name:
                raise DuplicateTaskError(spec.name)
            if spec.work is None:
                raise PlanConfigurationError(spec.name, "Task has no work routine")
            if not isinstance(spec.start_offset_ms, int) or spec.start_offset_ms < 0:
                raise PlanConfigurationError(
                    spec.name,
                    "start_offset_ms must be a non-negative integer",
                    actual_value=spec.start_offset_ms,
                )
            by_name[spec.name] = spec

        for spec in self._specs:
            if spec.depends_on is None:
                continue
            if spec.depends_on == spec.name or spec.depends_on not in by_name:
                raise UnknownDependencyError(spec.name, spec.depends_on)

        cycle = self._find_cycle(by_name)
        if cycle:
            raise DependencyCycleError(cycle)

        self._by_name = by_name

    def _find_cycle(self, by_name: Dict[str, TaskSpec]) -> Optional[List[str]]:
        """Return one dependency cycle as a list of names, or None."""
        # Kahn's algorithm: whatever cannot be ordered sits on or behind a cycle
        in_degree = {name: 0 for name in by_name}
        for spec in by_name.values():
            if spec.depends_on is not None:
                in_degree[spec.name] += 1

        queue = [name for name, degree in in_degree.items() if degree == 0]
        ordered = set()
        while queue:
            node = queue.pop(0)
            ordered.add(node)
            for dependent in by_name.values():
                if dependent.depends_on == node:
                    in_degree[dependent.name] -= 1
                    if in_degree[dependent.name] == 0:
                        queue.append(dependent.name)

        remaining = [spec.name for spec in self._specs if spec.name not in ordered]
        if not remaining:
            return None

        # Each task has at most one dependency, so walking depends_on from
        # any unordered task ends up looping around the cycle
        path: List[str] = []
        seen: Dict[str, int] = {}
        current = remaining[0]
        while current not in seen:
            seen[current] = len(path)
            path.append(current)
            current = by_name[current].depends_on
        return path[seen[current]:] + [current]

    def get(self, name: str) -> TaskSpec:
        return self._by_name[name]

    @property
    def names(self) -> List[str]:
        return [spec.name for spec in self._specs]

    @property
    def specs(self) -> List[TaskSpec]:
        return list(self._specs)

    def dependents_of(self, name: str) -> List[TaskSpec]:
        return [spec for spec in self._specs if spec.depends_on == name]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[TaskSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"TaskPlan(name={self.name!r}, tasks={self.names!r})"
