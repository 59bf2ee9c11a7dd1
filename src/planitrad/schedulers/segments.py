"""
Time segments: the atomic pieces of a translator's day.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Iterable, List, Optional

from .errors import InvalidSegmentError
from .horaire import EPSILON, SECONDE, Plage, WorkingWindow, heure_decimale, vers_heure


class SegmentKind(str, Enum):
    """What occupies a segment."""
    TASK = "TASK"
    BLACKOUT = "BLACKOUT"
    IDLE = "IDLE"


@dataclass(frozen=True)
class TimeSegment:
    """
    One interval ``[start_clock, end_clock)`` on a single day for one translator.

    ``source_id`` is the task (or blackout) the segment belongs to, while
    ``segment_id`` identifies the persisted allocation row when there is one.
    ``hours`` can be lower than the clock span when the span covers the pause.
    """
    translator_id: str
    date: date
    start_clock: time
    end_clock: time
    hours: float
    kind: SegmentKind
    source_id: str
    segment_id: Optional[str] = None
    deadline: Optional[datetime] = None
    priority: int = 0
    splittable: bool = True

    @property
    def debut(self) -> float:
        return heure_decimale(self.start_clock)

    @property
    def fin(self) -> float:
        return heure_decimale(self.end_clock)

    @property
    def duree(self) -> float:
        """Clock span in hours."""
        return self.fin - self.debut

    @property
    def plage(self) -> Plage:
        return self.debut, self.fin

    @property
    def occupe(self) -> bool:
        return self.kind != SegmentKind.IDLE

    @property
    def identifiant(self) -> str:
        return self.segment_id or self.source_id

    @property
    def fin_datetime(self) -> datetime:
        return datetime.combine(self.date, self.end_clock)

    def chevauchement(self, autre: "TimeSegment") -> float:
        """Hours shared by both half-open intervals (0 when they only touch)."""
        if self.translator_id != autre.translator_id or self.date != autre.date:
            return 0.0
        return max(0.0, min(self.fin, autre.fin) - max(self.debut, autre.debut))

    def valider(self) -> None:
        """
        Raises:
            InvalidSegmentError: for an empty or reversed span, negative hours,
                or more hours than the span can hold
        """
        if self.end_clock <= self.start_clock:
            raise InvalidSegmentError(
                f"Segment {self.identifiant}: la fin ({self.end_clock}) doit suivre "
                f"le début ({self.start_clock})"
            )
        if self.hours < 0:
            raise InvalidSegmentError(f"Segment {self.identifiant}: heures négatives ({self.hours})")
        if self.hours > self.duree + SECONDE:
            raise InvalidSegmentError(
                f"Segment {self.identifiant}: {self.hours}h ne tiennent pas dans "
                f"{self.duree:.2f}h"
            )


def heures_occupees(segments: Iterable[TimeSegment]) -> float:
    return sum(segment.hours for segment in segments if segment.occupe)


def segments_inactifs(
    window: WorkingWindow,
    segments: Iterable[TimeSegment],
    translator_id: str,
    jour: date,
) -> List[TimeSegment]:
    """Derive the IDLE segments left free in the window on ``jour``."""
    occupes = [
        s.plage for s in segments
        if s.occupe and s.translator_id == translator_id and s.date == jour
    ]
    inactifs = []
    for debut, fin in window.plages_libres(occupes):
        if fin - debut <= EPSILON:
            continue
        inactifs.append(TimeSegment(
            translator_id=translator_id,
            date=jour,
            start_clock=vers_heure(debut),
            end_clock=vers_heure(fin),
            hours=round(fin - debut, 4),
            kind=SegmentKind.IDLE,
            source_id="idle",
        ))
    return inactifs


def segment_blocage(
    translator_id: str,
    jour: date,
    debut: time,
    fin: time,
    window: WorkingWindow,
    blocage_id: str,
) -> TimeSegment:
    """
    Build a BLACKOUT segment; its hours are the chargeable part of the span
    (inside the window, pause excluded).
    """
    if fin <= debut:
        raise InvalidSegmentError("L'heure de fin doit être après l'heure de début")
    return TimeSegment(
        translator_id=translator_id,
        date=jour,
        start_clock=debut,
        end_clock=fin,
        hours=window.heures_chargeables(debut, fin),
        kind=SegmentKind.BLACKOUT,
        source_id=blocage_id,
        segment_id=blocage_id,
        splittable=False,
    )
