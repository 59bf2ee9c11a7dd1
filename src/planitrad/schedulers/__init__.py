"""
PlaniTrad - Planning engines

This package contains the scheduling algorithms of the translation
planning system:

Allocation:
- RepartitionEngine: équilibré, juste-à-temps and PEPS distributions
- CalendrierOuvrable: business days and statutory holidays

Conflicts:
- ConflictDetector: overlap and capacity conflict detection
- SuggestionEngine: ranked remediations with impact scores
"""

from .base import CandidatReaffectation, SchedulerBase, SourcePlanification
from .calendrier import CalendrierOuvrable
from .conflict_detector import Conflict, ConflictDetector, ConflictType, detecter_conflits
from .errors import (
    CapacityExceededError,
    DeadlineUnreachableError,
    InvalidScheduleError,
    InvalidSegmentError,
    NoBusinessDayError,
    PlanificationError,
)
from .horaire import WorkingWindow, parse_horaire
from .impact import Niveau, ScoreImpact
from .rapport import RapportConflits, generer_rapport_conflits
from .repartition import (
    AllocationEntry,
    AllocationPlan,
    OptionsJusteATemps,
    RepartitionEngine,
    juste_a_temps,
    repartition_equilibree,
    repartition_peps,
    valider_repartition,
)
from .segments import SegmentKind, TimeSegment
from .suggestion_engine import Suggestion, SuggestionEngine, SuggestionType

__all__ = [
    # Allocation
    "RepartitionEngine",
    "AllocationEntry",
    "AllocationPlan",
    "OptionsJusteATemps",
    "repartition_equilibree",
    "repartition_peps",
    "juste_a_temps",
    "valider_repartition",
    "CalendrierOuvrable",
    "WorkingWindow",
    "parse_horaire",
    "TimeSegment",
    "SegmentKind",
    # Conflicts
    "ConflictDetector",
    "Conflict",
    "ConflictType",
    "detecter_conflits",
    "SuggestionEngine",
    "Suggestion",
    "SuggestionType",
    "Niveau",
    "ScoreImpact",
    "RapportConflits",
    "generer_rapport_conflits",
    # Collaborators
    "SchedulerBase",
    "SourcePlanification",
    "CandidatReaffectation",
    # Errors
    "PlanificationError",
    "NoBusinessDayError",
    "CapacityExceededError",
    "DeadlineUnreachableError",
    "InvalidSegmentError",
    "InvalidScheduleError",
]
