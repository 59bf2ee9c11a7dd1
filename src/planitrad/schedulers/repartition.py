"""
Repartition Engine

Distributes a task's hours over business days within a translator's
working window.

Policies:
- Équilibré: even split across the business days of a range
- Juste-à-temps: back-loaded fill, walking backward from the deadline
- PEPS: front-loaded fill, walking forward from the start of a range

Usage:
    plan = repartition_equilibree(20, date(2025, 12, 8), date(2025, 12, 12), window)

    engine = RepartitionEngine(source)
    plan = engine.repartition_juste_a_temps(
        "trad-1", 14, datetime(2025, 12, 23, 16), OptionsJusteATemps(mode_timestamp=True)
    )
"""

from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from planitrad.platform.config import settings
from planitrad.platform.logging import get_logger

from .base import SchedulerBase
from .calendrier import CalendrierOuvrable, heure_locale
from .errors import CapacityExceededError, DeadlineUnreachableError, NoBusinessDayError
from .horaire import (
    TOLERANCE,
    Plage,
    WorkingWindow,
    heure_decimale,
    longueur,
    placer_a_rebours,
    placer_en_avant,
    vers_heure,
)
from .segments import TimeSegment, heures_occupees

logger = get_logger(__name__)


@dataclass(frozen=True)
class AllocationEntry:
    """Hours of one task on one day."""
    date: date
    hours: float
    start_clock: Optional[time] = None
    end_clock: Optional[time] = None


@dataclass(frozen=True)
class AllocationPlan:
    """Day-by-day allocation of a task, in chronological order."""
    entries: Tuple[AllocationEntry, ...] = ()

    def __iter__(self) -> Iterator[AllocationEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> AllocationEntry:
        return self.entries[index]

    @property
    def total_hours(self) -> float:
        return round(sum(entry.hours for entry in self.entries), 4)

    @property
    def dates(self) -> List[date]:
        return [entry.date for entry in self.entries]


@dataclass(frozen=True)
class OptionsJusteATemps:
    """
    Options of the juste-à-temps policy.

    Attributes:
        debug: Log every visited day
        mode_timestamp: The deadline clock time is meaningful (otherwise the
            whole deadline day is usable)
        livraison_matinale: Cap the hours placed on the deadline day
        heures_max_jour_j: Cap used with ``livraison_matinale``
            (defaults to JAT_HEURES_MAX_JOUR_J)
        max_lookback: Business days examined before giving up
            (defaults to JAT_MAX_LOOKBACK_JOURS)
        date_plancher: Never allocate before this date
    """
    debug: bool = False
    mode_timestamp: bool = False
    livraison_matinale: bool = False
    heures_max_jour_j: Optional[float] = None
    max_lookback: Optional[int] = None
    date_plancher: Optional[date] = None


@dataclass(frozen=True)
class ValidationRepartition:
    valide: bool
    erreurs: List[str] = field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================

def capacite_libre(
    window: WorkingWindow,
    occupes: Iterable[TimeSegment],
    jusqua: Optional[float] = None,
) -> float:
    """
    Hours still placeable on a day.

    The capacity is reduced by every occupied hour (tasks and blackouts) and
    bounded by the free time left in the window before ``jusqua``.
    """
    segments = [segment for segment in occupes if segment.occupe]
    restante = window.capacite_effective() - heures_occupees(segments)
    libres = longueur(window.plages_libres([s.plage for s in segments], jusqua))
    return max(0.0, min(restante, libres))


def _verifier_total(total_hours: float) -> None:
    if total_hours <= 0:
        raise ValueError("total_hours doit être > 0")


def _verifier_plage(date_debut: date, date_fin: date) -> None:
    if date_debut > date_fin:
        raise ValueError(
            f"La date de début ({date_debut.isoformat()}) doit précéder la date de fin "
            f"({date_fin.isoformat()})"
        )


def _entree(jour: date, heures: float, plages: List[Plage], a_rebours: bool) -> AllocationEntry:
    placement = placer_a_rebours(plages, heures) if a_rebours else placer_en_avant(plages, heures)
    if placement is None:
        return AllocationEntry(date=jour, hours=heures)
    debut, fin = placement
    return AllocationEntry(
        date=jour,
        hours=heures,
        start_clock=vers_heure(debut),
        end_clock=vers_heure(fin),
    )


def _ajuster_residu(entries: List[AllocationEntry], total_hours: float) -> AllocationPlan:
    """Put the rounding residual on the last entry so the plan sums to the total."""
    if not entries:
        return AllocationPlan()
    residu = round(total_hours - sum(entry.hours for entry in entries), 4)
    if residu != 0:
        dernier = entries[-1]
        entries[-1] = replace(dernier, hours=round(dernier.hours + residu, 4))
    return AllocationPlan(tuple(entries))


def _par_jour(occupes: Optional[Iterable[TimeSegment]]) -> Dict[date, List[TimeSegment]]:
    par_jour: Dict[date, List[TimeSegment]] = defaultdict(list)
    for segment in occupes or ():
        if segment.occupe:
            par_jour[segment.date].append(segment)
    return par_jour


def _normaliser_echeance(deadline: Union[date, datetime], window: WorkingWindow) -> datetime:
    if isinstance(deadline, datetime):
        return heure_locale(deadline)
    return datetime.combine(deadline, window.end_time)


def _max_lookback(options: OptionsJusteATemps) -> int:
    if options.max_lookback is None:
        return settings.JAT_MAX_LOOKBACK_JOURS
    return options.max_lookback


# =============================================================================
# Policies
# =============================================================================

def repartition_equilibree(
    total_hours: float,
    date_debut: date,
    date_fin: date,
    window: WorkingWindow,
    calendrier: Optional[CalendrierOuvrable] = None,
    occupes: Optional[Iterable[TimeSegment]] = None,
) -> AllocationPlan:
    """
    Spread ``total_hours`` evenly across the business days of ``[date_debut, date_fin]``.

    Each day gets ``total_hours / N`` rounded to 4 decimals; the last day
    absorbs the rounding residual. Entries are packed forward in the time
    left free by ``occupes``.

    Args:
        total_hours: Hours to place (> 0)
        date_debut: First day of the range
        date_fin: Last day of the range (inclusive)
        window: Working window of the translator
        calendrier: Holiday calendar; weekends only when omitted
        occupes: Segments already occupying the translator

    Raises:
        NoBusinessDayError: the range holds no business day
        CapacityExceededError: a day's share does not fit in its capacity
    """
    _verifier_total(total_hours)
    _verifier_plage(date_debut, date_fin)
    if window.daily_capacity_hours <= 0:
        raise ValueError("La capacité quotidienne doit être > 0")

    calendrier = calendrier or CalendrierOuvrable()
    par_jour = _par_jour(occupes)

    jours = calendrier.jours_ouvrables(date_debut, date_fin)
    if not jours:
        raise NoBusinessDayError(date_debut, date_fin)

    part = round(total_hours / len(jours), 4)
    parts = [part] * (len(jours) - 1)
    parts.append(round(total_hours - part * (len(jours) - 1), 4))

    entries = []
    for jour, heures in zip(jours, parts):
        segments_jour = par_jour.get(jour, [])
        capacite = capacite_libre(window, segments_jour)
        if heures > capacite + TOLERANCE:
            raise CapacityExceededError(jour, heures - capacite, capacite)
        plages = window.plages_libres([s.plage for s in segments_jour])
        entries.append(_entree(jour, heures, plages, a_rebours=False))

    logger.info(
        "repartition.equilibree",
        total_hours=total_hours,
        jours=len(jours),
        heures_par_jour=part,
    )
    return AllocationPlan(tuple(entries))


def repartition_peps(
    total_hours: float,
    date_debut: date,
    date_fin: date,
    window: WorkingWindow,
    calendrier: Optional[CalendrierOuvrable] = None,
    occupes: Optional[Iterable[TimeSegment]] = None,
) -> AllocationPlan:
    """
    First-in first-out fill: saturate the earliest business days first.

    Raises:
        NoBusinessDayError: the range holds no business day
        CapacityExceededError: hours are left once the range is full
            (named on ``date_fin``)
    """
    _verifier_total(total_hours)
    _verifier_plage(date_debut, date_fin)

    calendrier = calendrier or CalendrierOuvrable()
    par_jour = _par_jour(occupes)

    jours = calendrier.jours_ouvrables(date_debut, date_fin)
    if not jours:
        raise NoBusinessDayError(date_debut, date_fin)

    restant = round(total_hours, 4)
    entries = []
    for jour in jours:
        if restant <= 0:
            break
        segments_jour = par_jour.get(jour, [])
        alloue = round(min(capacite_libre(window, segments_jour), restant), 4)
        if alloue <= 0:
            continue
        plages = window.plages_libres([s.plage for s in segments_jour])
        entries.append(_entree(jour, alloue, plages, a_rebours=False))
        restant = round(restant - alloue, 4)

    if restant > TOLERANCE:
        raise CapacityExceededError(date_fin, restant)

    logger.info("repartition.peps", total_hours=total_hours, jours=len(entries))
    return _ajuster_residu(entries, total_hours)


def juste_a_temps(
    total_hours: float,
    deadline: Union[date, datetime],
    window: WorkingWindow,
    calendrier: Optional[CalendrierOuvrable] = None,
    occupes: Optional[Iterable[TimeSegment]] = None,
    options: Optional[OptionsJusteATemps] = None,
) -> AllocationPlan:
    """
    Back-loaded allocation: fill the latest business days first.

    Starting from the business day holding the deadline (or the one before it
    when the deadline falls on a weekend or holiday), each day receives as many
    hours as its free capacity allows, packed against the end of the window or
    against the deadline clock time on the deadline day.

    Args:
        total_hours: Hours to place (> 0)
        deadline: Moment the task must be delivered
        window: Working window of the translator
        calendrier: Holiday calendar; weekends only when omitted
        occupes: Segments already occupying the translator
        options: Policy options

    Raises:
        DeadlineUnreachableError: the lookback is exhausted before every hour
            is placed
    """
    _verifier_total(total_hours)
    options = options or OptionsJusteATemps()
    calendrier = calendrier or CalendrierOuvrable()

    max_lookback = _max_lookback(options)
    heures_max_jour_j = (
        settings.JAT_HEURES_MAX_JOUR_J
        if options.heures_max_jour_j is None
        else options.heures_max_jour_j
    )

    echeance = _normaliser_echeance(deadline, window)
    jour_echeance = echeance.date()
    coupure = heure_decimale(echeance.time()) if options.mode_timestamp else None

    par_jour = _par_jour(occupes)

    restant = round(total_hours, 4)
    entries: List[AllocationEntry] = []
    examines = 0
    jour = calendrier.dernier_ouvrable(jour_echeance)

    while restant > 0:
        if examines >= max_lookback or (
            options.date_plancher is not None and jour < options.date_plancher
        ):
            logger.warning(
                "repartition.jat.echeance_inatteignable",
                restant=restant,
                echeance=echeance.isoformat(),
                jours_examines=examines,
            )
            raise DeadlineUnreachableError(restant, echeance, examines)

        jusqua = coupure if jour == jour_echeance else None
        segments_jour = par_jour.get(jour, [])
        libre = capacite_libre(window, segments_jour, jusqua)
        if options.livraison_matinale and jour == jour_echeance:
            libre = min(libre, heures_max_jour_j)

        alloue = round(min(libre, restant), 4)
        if options.debug:
            logger.debug(
                "repartition.jat.jour",
                jour=jour.isoformat(),
                libre=round(libre, 4),
                alloue=alloue,
                restant=restant,
            )
        if alloue > 0:
            plages = window.plages_libres([s.plage for s in segments_jour], jusqua)
            entries.append(_entree(jour, alloue, plages, a_rebours=True))
            restant = round(restant - alloue, 4)

        examines += 1
        jour = calendrier.precedent(jour)

    entries.sort(key=lambda entry: entry.date)
    logger.info(
        "repartition.jat",
        total_hours=total_hours,
        echeance=echeance.isoformat(),
        jours=len(entries),
    )
    return _ajuster_residu(entries, total_hours)


def valider_repartition(
    entries: Iterable[AllocationEntry],
    total_attendu: float,
    window: WorkingWindow,
    heures_occupees: Optional[Mapping[date, float]] = None,
    calendrier: Optional[CalendrierOuvrable] = None,
) -> ValidationRepartition:
    """
    Check a manually entered plan: exact sum, per-day capacity, no negative hours.
    """
    occupees = heures_occupees or {}
    entries = list(entries)
    erreurs: List[str] = []

    somme = round(sum(entry.hours for entry in entries), 4)
    attendu = round(total_attendu, 4)
    if abs(somme - attendu) > TOLERANCE:
        erreurs.append(f"Somme des heures ({somme}) différente des heures totales ({attendu}).")

    capacite = window.capacite_effective()
    for entry in entries:
        iso = entry.date.isoformat()
        if entry.hours < 0:
            erreurs.append(f"Heures négatives interdites ({iso}).")
        total_jour = occupees.get(entry.date, 0.0) + entry.hours
        if total_jour > capacite + 1e-6:
            erreurs.append(
                f"Dépassement capacité le {iso} "
                f"(utilisées + nouvelles = {total_jour:.2f} / {capacite:.2f})."
            )
        if calendrier is not None and not calendrier.est_ouvrable(entry.date):
            erreurs.append(f"Jour non ouvrable ({iso}).")

    return ValidationRepartition(valide=not erreurs, erreurs=erreurs)


# =============================================================================
# Engine
# =============================================================================

class RepartitionEngine(SchedulerBase):
    """
    Runs the repartition policies for a persisted translator.

    The schedule source supplies the working window, the segments already on
    the calendar and the holidays; the policies themselves stay pure.
    """

    def repartition_juste_a_temps(
        self,
        translator_id: str,
        total_hours: float,
        deadline: Union[date, datetime],
        options: Optional[OptionsJusteATemps] = None,
    ) -> AllocationPlan:
        source = self.require_source()
        options = options or OptionsJusteATemps()
        window = source.horaire(translator_id)

        echeance = _normaliser_echeance(deadline, window)
        lookback = _max_lookback(options)
        fin = echeance.date()
        debut = self.calendrier.reculer(self.calendrier.dernier_ouvrable(fin), lookback)
        if options.date_plancher is not None:
            debut = max(debut, options.date_plancher)

        self.logger.info(
            "Juste-à-temps",
            translator_id=translator_id,
            total_hours=total_hours,
            echeance=echeance.isoformat(),
        )
        occupes = self._occupes(translator_id, debut, fin)
        return juste_a_temps(total_hours, echeance, window, self.calendrier, occupes, options)

    def repartition_equilibree(
        self,
        translator_id: str,
        total_hours: float,
        date_debut: date,
        date_fin: date,
    ) -> AllocationPlan:
        window = self.require_source().horaire(translator_id)
        return repartition_equilibree(
            total_hours, date_debut, date_fin, window, self.calendrier,
            self._occupes(translator_id, date_debut, date_fin),
        )

    def repartition_peps(
        self,
        translator_id: str,
        total_hours: float,
        date_debut: date,
        date_fin: date,
    ) -> AllocationPlan:
        window = self.require_source().horaire(translator_id)
        return repartition_peps(
            total_hours, date_debut, date_fin, window, self.calendrier,
            self._occupes(translator_id, date_debut, date_fin),
        )

    def valider_repartition(
        self,
        translator_id: str,
        entries: Iterable[AllocationEntry],
        total_attendu: float,
        ignorer_source_id: Optional[str] = None,
    ) -> ValidationRepartition:
        """Validate a manual plan, ignoring the hours already held by ``ignorer_source_id``."""
        entries = list(entries)
        window = self.require_source().horaire(translator_id)
        occupees: Dict[date, float] = {}
        if entries:
            debut = min(entry.date for entry in entries)
            fin = max(entry.date for entry in entries)
            for jour, segments in self.segments_par_jour(translator_id, debut, fin).items():
                occupees[jour] = heures_occupees(
                    s for s in segments if s.source_id != ignorer_source_id
                )
        return valider_repartition(entries, total_attendu, window, occupees, self.calendrier)

    def _occupes(self, translator_id: str, debut: date, fin: date) -> List[TimeSegment]:
        if debut > fin:
            return []
        return self.require_source().segments(translator_id, debut, fin)
