"""
Conflict Detector

Finds scheduling conflicts in a translator's day.

Conflict Types:
- Task/task overlap (MOYEN or ELEVE, escalated near a deadline)
- Task inside a blackout (CRITIQUE)
- Blackout/blackout overlap (FAIBLE)
- Daily capacity exceeded (ELEVE)
- Extended checks: task outside the window, over the pause, after its deadline

Usage:
    conflits = detecter_conflits(segments, window)

    detector = ConflictDetector(source)
    conflits = detector.detecter_conflits_pour_blocage("blocage-42")
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from planitrad.platform.config import settings
from planitrad.platform.logging import get_logger

from .base import SchedulerBase
from .calendrier import heure_locale
from .horaire import TOLERANCE, WorkingWindow, format_heure, heure_decimale
from .impact import BANDES_CHEVAUCHEMENT, Niveau, classer
from .segments import SegmentKind, TimeSegment, heures_occupees

logger = get_logger(__name__)

Fenetres = Union[WorkingWindow, Mapping[str, WorkingWindow], None]


class ConflictType(str, Enum):
    """Types of conflicts."""
    OVERLAP_TASK_TASK = "OVERLAP_TASK_TASK"
    OVERLAP_TASK_BLACKOUT = "OVERLAP_TASK_BLACKOUT"
    OVERLAP_BLACKOUT_BLACKOUT = "OVERLAP_BLACKOUT_BLACKOUT"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    OUTSIDE_WINDOW = "OUTSIDE_WINDOW"
    BREAK_OVERLAP = "BREAK_OVERLAP"
    AFTER_DEADLINE = "AFTER_DEADLINE"


@dataclass(frozen=True)
class Conflict:
    """
    A detected conflict.

    ``segment_b`` is only set for overlaps. For CAPACITY_EXCEEDED,
    ``segment_a`` is the task the day should give up first.
    """
    type: ConflictType
    segment_a: TimeSegment
    segment_b: Optional[TimeSegment]
    severity: Niveau
    explanation: str
    overlap_hours: float = 0.0
    excess_hours: float = 0.0

    @property
    def translator_id(self) -> str:
        return self.segment_a.translator_id

    @property
    def date(self) -> date:
        return self.segment_a.date

    def concerne(self, identifiant: str) -> bool:
        segments = [self.segment_a, self.segment_b]
        return any(s is not None and s.identifiant == identifiant for s in segments)


def _plage_texte(segment: TimeSegment) -> str:
    return f"{format_heure(segment.start_clock)}-{format_heure(segment.end_clock)}"


def _fenetre(fenetres: Fenetres, translator_id: str) -> Optional[WorkingWindow]:
    if fenetres is None or isinstance(fenetres, WorkingWindow):
        return fenetres
    return fenetres.get(translator_id)


def _marge_echeance(segment: TimeSegment) -> Optional[float]:
    """Hours between the end of ``segment`` and its deadline (negative once past)."""
    if segment.deadline is None:
        return None
    ecart = heure_locale(segment.deadline) - segment.fin_datetime
    return ecart.total_seconds() / 3600


def _paires_chevauchantes(
    segments: List[TimeSegment],
) -> Iterator[Tuple[TimeSegment, TimeSegment]]:
    """Sorted sweep: each segment is compared with the following ones starting before its end."""
    ordonnes = sorted(segments, key=lambda s: (s.debut, s.fin))
    for i, courant in enumerate(ordonnes):
        for suivant in ordonnes[i + 1:]:
            if suivant.debut >= courant.fin:
                break
            yield courant, suivant


def _conflit_chevauchement(a: TimeSegment, b: TimeSegment) -> Conflict:
    heures = round(a.chevauchement(b), 4)
    if a.kind == SegmentKind.TASK and b.kind == SegmentKind.TASK:
        ratio = heures / min(a.duree, b.duree)
        severite = classer(ratio, BANDES_CHEVAUCHEMENT)
        explication = (
            f"Les tâches {a.source_id} ({_plage_texte(a)}) et {b.source_id} "
            f"({_plage_texte(b)}) se chevauchent de {heures:.2f}h"
        )
        marges = [m for m in (_marge_echeance(a), _marge_echeance(b)) if m is not None]
        if any(m <= settings.MARGE_ECHEANCE_PROCHE_HEURES for m in marges):
            severite = severite.escalader()
            explication += "; échéance proche ou dépassée"
        return Conflict(ConflictType.OVERLAP_TASK_TASK, a, b, severite, explication, heures)

    if a.kind == SegmentKind.BLACKOUT and b.kind == SegmentKind.BLACKOUT:
        return Conflict(
            ConflictType.OVERLAP_BLACKOUT_BLACKOUT, a, b, Niveau.FAIBLE,
            f"Les blocages {a.source_id} et {b.source_id} se chevauchent de {heures:.2f}h",
            heures,
        )

    tache, blocage = (a, b) if a.kind == SegmentKind.TASK else (b, a)
    return Conflict(
        ConflictType.OVERLAP_TASK_BLACKOUT, tache, blocage, Niveau.CRITIQUE,
        f"La tâche {tache.source_id} ({_plage_texte(tache)}) empiète de {heures:.2f}h "
        f"sur le blocage {blocage.source_id} ({_plage_texte(blocage)})",
        heures,
    )


def _conflit_capacite(
    segments: List[TimeSegment], window: WorkingWindow
) -> Optional[Conflict]:
    capacite = window.capacite_effective()
    total = heures_occupees(segments)
    if total <= capacite + TOLERANCE:
        return None
    taches = [s for s in segments if s.kind == SegmentKind.TASK] or segments
    # Lowest priority first, then the latest in the day
    cible = min(taches, key=lambda s: (s.priority, -s.debut, -s.fin))
    excedent = round(total - capacite, 4)
    return Conflict(
        ConflictType.CAPACITY_EXCEEDED, cible, None, Niveau.ELEVE,
        f"{total:.2f}h planifiées le {cible.date.isoformat()} pour une capacité "
        f"de {capacite:.2f}h",
        excess_hours=excedent,
    )


def _controles_etendus(tache: TimeSegment, window: Optional[WorkingWindow]) -> List[Conflict]:
    conflits = []
    if window is not None and window.hors_horaire(tache.start_clock, tache.end_clock):
        hors = round(
            max(0.0, window.debut - tache.debut) + max(0.0, tache.fin - window.fin), 4
        )
        conflits.append(Conflict(
            ConflictType.OUTSIDE_WINDOW, tache, None, Niveau.MOYEN,
            f"La tâche {tache.source_id} ({_plage_texte(tache)}) déborde de l'horaire "
            f"{window.libelle}",
            excess_hours=hors,
        ))
    if window is not None and window.empiete_pause(tache.start_clock, tache.end_clock):
        pause_debut, pause_fin = (heure_decimale(h) for h in window.pause)
        recouvrement = round(min(tache.fin, pause_fin) - max(tache.debut, pause_debut), 4)
        conflits.append(Conflict(
            ConflictType.BREAK_OVERLAP, tache, None, Niveau.FAIBLE,
            f"La tâche {tache.source_id} ({_plage_texte(tache)}) empiète sur la pause",
            overlap_hours=recouvrement,
        ))
    marge = _marge_echeance(tache)
    if marge is not None and marge < 0:
        conflits.append(Conflict(
            ConflictType.AFTER_DEADLINE, tache, None, Niveau.CRITIQUE,
            f"La tâche {tache.source_id} se termine {-marge:.2f}h après son échéance",
            excess_hours=round(-marge, 4),
        ))
    return conflits


def detecter_conflits(
    segments: Iterable[TimeSegment],
    window: Fenetres = None,
    *,
    controles_etendus: bool = False,
) -> List[Conflict]:
    """
    Detect conflicts among segments.

    Segments are grouped by translator and date; each group is swept in start
    order. Touching intervals (``a.end == b.start``) do not conflict. IDLE
    segments never conflict and never count toward capacity.

    Args:
        segments: Segments to check (not modified)
        window: Working window, or a mapping translator_id -> window; no
            capacity check is made without one
        controles_etendus: Also report tasks outside the window, over the
            pause, or ending after their deadline

    Returns:
        Conflicts in (translator, date, sweep) order; empty when none

    Raises:
        InvalidSegmentError: a segment is malformed
    """
    segments = list(segments)
    for segment in segments:
        segment.valider()

    groupes: Dict[Tuple[str, date], List[TimeSegment]] = defaultdict(list)
    for segment in segments:
        if segment.occupe:
            groupes[(segment.translator_id, segment.date)].append(segment)

    conflits: List[Conflict] = []
    for (translator_id, jour) in sorted(groupes):
        groupe = groupes[(translator_id, jour)]
        fenetre = _fenetre(window, translator_id)

        for a, b in _paires_chevauchantes(groupe):
            conflits.append(_conflit_chevauchement(a, b))

        if fenetre is not None:
            capacite = _conflit_capacite(groupe, fenetre)
            if capacite is not None:
                conflits.append(capacite)

        if controles_etendus:
            for tache in sorted(groupe, key=lambda s: (s.debut, s.fin)):
                if tache.kind == SegmentKind.TASK:
                    conflits.extend(_controles_etendus(tache, fenetre))

    if conflits:
        logger.debug("conflits.detectes", nombre=len(conflits))
    return conflits


class ConflictDetector(SchedulerBase):
    """
    Runs the detection on persisted allocations and blackouts.

    The ID-based calls assemble the day of the translator concerned through the
    schedule source and always run the extended checks.
    """

    def detecter_conflits(
        self,
        segments: Iterable[TimeSegment],
        window: Fenetres = None,
        *,
        controles_etendus: bool = False,
    ) -> List[Conflict]:
        return detecter_conflits(segments, window, controles_etendus=controles_etendus)

    def detecter_conflits_pour_allocation(self, allocation_id: str) -> List[Conflict]:
        """
        Conflicts involving one task allocation, plus the capacity conflict of its day.

        Raises:
            LookupError: no TASK segment has this id
        """
        return self._detecter_pour(allocation_id, SegmentKind.TASK)

    def detecter_conflits_pour_blocage(self, blocage_id: str) -> List[Conflict]:
        """
        Conflicts involving one blackout, plus the capacity conflict of its day.

        Raises:
            LookupError: no BLACKOUT segment has this id
        """
        return self._detecter_pour(blocage_id, SegmentKind.BLACKOUT)

    def _detecter_pour(self, segment_id: str, kind: SegmentKind) -> List[Conflict]:
        source = self.require_source()
        segment = source.segment(segment_id)
        if segment is None or segment.kind != kind:
            raise LookupError(f"{kind.value} {segment_id} introuvable")

        jour = source.segments(segment.translator_id, segment.date, segment.date)
        if segment not in jour:
            jour = [*jour, segment]
        window = source.horaire(segment.translator_id)

        conflits = [
            conflit
            for conflit in detecter_conflits(jour, window, controles_etendus=True)
            if conflit.concerne(segment.identifiant)
            or conflit.type == ConflictType.CAPACITY_EXCEEDED
        ]
        self.logger.info(
            "Conflits détectés",
            segment_id=segment_id,
            kind=kind.value,
            translator_id=segment.translator_id,
            date=segment.date.isoformat(),
            nombre=len(conflits),
        )
        return conflits
