"""
Plans module - Generation backend interface and the wizard's mode plans
"""

from .backends import GenerationBackend, GenerationRequest, InfographicSelection
from .catalog import AGENT_LABELS, AGENT_PROGRESS_TEXT, PLAN_MODES, build_plan

__all__ = [
    'GenerationBackend',
    'GenerationRequest',
    'InfographicSelection',
    'AGENT_LABELS',
    'AGENT_PROGRESS_TEXT',
    'PLAN_MODES',
    'build_plan',
]
