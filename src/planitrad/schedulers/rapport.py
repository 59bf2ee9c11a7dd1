"""
Conflict report for a new or modified blackout.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .base import SourcePlanification
from .calendrier import CalendrierOuvrable
from .conflict_detector import Conflict, ConflictDetector
from .segments import TimeSegment
from .suggestion_engine import Suggestion, SuggestionEngine


@dataclass(frozen=True)
class RapportConflits:
    """What a blackout breaks, and what could be done about it."""
    declencheur: TimeSegment
    conflits: List[Conflict] = field(default_factory=list)
    suggestions: List[Suggestion] = field(default_factory=list)
    genere_le: datetime = field(default_factory=datetime.now)

    @property
    def a_conflits(self) -> bool:
        return bool(self.conflits)


def generer_rapport_conflits(
    source: SourcePlanification,
    blocage_id: str,
    calendrier: Optional[CalendrierOuvrable] = None,
) -> RapportConflits:
    """
    Detect the conflicts caused by a blackout and rank the remediations.

    Raises:
        LookupError: the blackout does not exist
    """
    detector = ConflictDetector(source, calendrier)
    conflits = detector.detecter_conflits_pour_blocage(blocage_id)
    suggestions = SuggestionEngine(source, detector.calendrier).generer_suggestions(conflits)
    return RapportConflits(
        declencheur=source.segment(blocage_id),
        conflits=conflits,
        suggestions=suggestions,
    )
