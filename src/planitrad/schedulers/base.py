"""
Base classes shared by the planning engines.

The engines never touch storage themselves: a ``SourcePlanification`` hands
them immutable snapshots (working window, segments, holidays, reassignment
candidates) and every call works only on what it received.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from planitrad.platform.logging import get_logger

from .calendrier import CalendrierOuvrable
from .horaire import WorkingWindow
from .segments import TimeSegment, segments_inactifs


@dataclass(frozen=True)
class CandidatReaffectation:
    """A translator offered by the caller as a possible reassignment target."""
    translator_id: str
    nom: str
    window: WorkingWindow
    segments: List[TimeSegment] = field(default_factory=list)
    paire_compatible: bool = True


class SourcePlanification(ABC):
    """Read access to translator schedules, supplied by the surrounding application."""

    @abstractmethod
    def horaire(self, translator_id: str) -> WorkingWindow:
        """Working window of a translator."""
        pass

    @abstractmethod
    def segments(self, translator_id: str, debut: date, fin: date) -> List[TimeSegment]:
        """TASK and BLACKOUT segments of a translator in ``[debut, fin]``."""
        pass

    @abstractmethod
    def segment(self, segment_id: str) -> Optional[TimeSegment]:
        """A single persisted allocation or blackout."""
        pass

    def candidats_reaffectation(self, segment: TimeSegment) -> List[CandidatReaffectation]:
        """Translators that could take over ``segment``."""
        return []

    def calendrier(self) -> CalendrierOuvrable:
        return CalendrierOuvrable()


class SchedulerBase:
    """
    Base class for the planning engines.

    Provides:
    - Access to the schedule source
    - The business-day calendar
    - Per-day segment lookup
    """

    def __init__(
        self,
        source: Optional[SourcePlanification] = None,
        calendrier: Optional[CalendrierOuvrable] = None,
    ):
        self.source = source
        if calendrier is None:
            calendrier = source.calendrier() if source is not None else CalendrierOuvrable()
        self.calendrier = calendrier
        self.logger = get_logger(self.__class__.__name__)

    def require_source(self) -> SourcePlanification:
        if self.source is None:
            raise RuntimeError("Source de planification non configurée")
        return self.source

    def segments_par_jour(
        self, translator_id: str, debut: date, fin: date
    ) -> Dict[date, List[TimeSegment]]:
        """Occupied segments of a translator grouped by day."""
        par_jour: Dict[date, List[TimeSegment]] = defaultdict(list)
        for segment in self.require_source().segments(translator_id, debut, fin):
            if segment.occupe:
                par_jour[segment.date].append(segment)
        return par_jour

    def journee(self, translator_id: str, jour: date) -> List[TimeSegment]:
        """The whole day of a translator: tasks, blackouts and the IDLE time between them."""
        source = self.require_source()
        occupes = [s for s in source.segments(translator_id, jour, jour) if s.occupe]
        inactifs = segments_inactifs(source.horaire(translator_id), occupes, translator_id, jour)
        return sorted(occupes + inactifs, key=lambda s: (s.debut, s.fin))
