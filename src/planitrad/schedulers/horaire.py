"""
Working-window model.

A translator's day is a clock window (``9h-17h``, ``07:00-15:00``...) with an
optional lunch pause and a daily capacity in hours. Internally clock times are
handled as decimal hours (10h30 -> 10.5) and free time as sorted lists of
``(debut, fin)`` intervals.
"""

import re
from dataclasses import dataclass
from datetime import time
from typing import Iterable, List, Optional, Tuple

from planitrad.platform.config import settings

from .errors import InvalidScheduleError

Plage = Tuple[float, float]

EPSILON = 1e-6

# Hours are carried with 4 decimals
TOLERANCE = 1e-4

# Clock times are rounded to the second
SECONDE = 1 / 3600

_HEURE = re.compile(r"^(\d{1,2})\s*(?:[hH]\s*(\d{2})?|:\s*(\d{2}))$")
_SEPARATEUR = re.compile(r"\s*[-–à]\s*")


# =============================================================================
# Clock helpers
# =============================================================================

def heure_decimale(moment: time) -> float:
    """Clock time as decimal hours."""
    return moment.hour + moment.minute / 60 + moment.second / 3600


def vers_heure(valeur: float) -> time:
    """Decimal hours back to a clock time, rounded to the second."""
    secondes = int(round(valeur * 3600))
    if secondes >= 24 * 3600:
        return time(23, 59, 59)
    heures, reste = divmod(max(secondes, 0), 3600)
    minutes, secondes = divmod(reste, 60)
    return time(heures, minutes, secondes)


def format_heure(moment: time) -> str:
    """Format as ``10h`` or ``10h30``."""
    if moment.minute == 0:
        return f"{moment.hour}h"
    return f"{moment.hour}h{moment.minute:02d}"


def parse_heure(texte: str) -> time:
    """
    Parse a clock time written ``10h``, ``10h30`` or ``10:30``.

    Raises:
        InvalidScheduleError: if the text is not a valid clock time
    """
    match = _HEURE.match(texte.strip()) if texte else None
    if not match:
        raise InvalidScheduleError(f"Format d'heure invalide: {texte!r}")
    heures = int(match.group(1))
    minutes = int(match.group(2) or match.group(3) or 0)
    if heures > 23 or minutes > 59:
        raise InvalidScheduleError(f"Heure hors limites: {texte!r}")
    return time(heures, minutes)


def parse_plage(texte: str) -> Tuple[time, time]:
    """Parse ``9h-17h`` into a pair of clock times."""
    morceaux = _SEPARATEUR.split(texte.strip()) if texte else []
    if len(morceaux) != 2:
        raise InvalidScheduleError(f"Format d'horaire invalide: {texte!r}")
    debut, fin = parse_heure(morceaux[0]), parse_heure(morceaux[1])
    if fin <= debut:
        raise InvalidScheduleError(f"L'heure de fin doit suivre l'heure de début: {texte!r}")
    return debut, fin


# =============================================================================
# Interval helpers
# =============================================================================

def longueur(plages: Iterable[Plage]) -> float:
    return sum(fin - debut for debut, fin in plages)


def soustraire_plages(plages: Iterable[Plage], retraits: Iterable[Plage]) -> List[Plage]:
    """Remove every ``retraits`` interval from ``plages``."""
    resultat = sorted(plages)
    for r_debut, r_fin in sorted(retraits):
        if r_fin <= r_debut:
            continue
        suivantes = []
        for debut, fin in resultat:
            if r_fin <= debut or r_debut >= fin:
                suivantes.append((debut, fin))
                continue
            if r_debut > debut:
                suivantes.append((debut, r_debut))
            if r_fin < fin:
                suivantes.append((r_fin, fin))
        resultat = suivantes
    return [(debut, fin) for debut, fin in resultat if fin - debut > EPSILON]


def placer_a_rebours(plages: List[Plage], heures: float) -> Optional[Plage]:
    """
    Pack ``heures`` against the end of ``plages``.

    Returns:
        ``(debut, fin)`` span covering the packed work, or None when the
        intervals cannot hold that many hours
    """
    if heures <= EPSILON or longueur(plages) + TOLERANCE < heures:
        return None
    restant = heures
    debut_bloc = fin_bloc = None
    for debut, fin in sorted(plages, reverse=True):
        if fin_bloc is None:
            fin_bloc = fin
        pris = min(fin - debut, restant)
        restant -= pris
        debut_bloc = fin - pris
        if restant <= EPSILON:
            break
    return debut_bloc, fin_bloc


def placer_en_avant(plages: List[Plage], heures: float) -> Optional[Plage]:
    """Pack ``heures`` against the start of ``plages``."""
    if heures <= EPSILON or longueur(plages) + TOLERANCE < heures:
        return None
    restant = heures
    debut_bloc = fin_bloc = None
    for debut, fin in sorted(plages):
        if debut_bloc is None:
            debut_bloc = debut
        pris = min(fin - debut, restant)
        restant -= pris
        fin_bloc = debut + pris
        if restant <= EPSILON:
            break
    return debut_bloc, fin_bloc


# =============================================================================
# Working window
# =============================================================================

@dataclass(frozen=True)
class WorkingWindow:
    """
    A translator's daily working window.

    ``daily_capacity_hours`` may be lower than the window length; the effective
    capacity of a day never exceeds the hours actually workable in the window
    (pause excluded).
    """

    start_time: time
    end_time: time
    daily_capacity_hours: float
    pause: Optional[Tuple[time, time]] = None

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise InvalidScheduleError(
                f"Fenêtre invalide: {format_heure(self.start_time)}-{format_heure(self.end_time)}"
            )
        if self.daily_capacity_hours < 0:
            raise InvalidScheduleError("La capacité quotidienne doit être positive")
        if self.daily_capacity_hours > self.heures_brutes + EPSILON:
            raise InvalidScheduleError(
                f"Capacité {self.daily_capacity_hours}h supérieure à la fenêtre "
                f"{self.libelle} ({self.heures_brutes}h)"
            )
        if self.pause is not None and self.pause[1] <= self.pause[0]:
            raise InvalidScheduleError("Pause invalide")

    @classmethod
    def from_horaire(
        cls,
        horaire: str,
        capacite: Optional[float] = None,
        pause: Optional[str] = None,
    ) -> "WorkingWindow":
        return parse_horaire(horaire, capacite, pause)

    @property
    def debut(self) -> float:
        return heure_decimale(self.start_time)

    @property
    def fin(self) -> float:
        return heure_decimale(self.end_time)

    @property
    def heures_brutes(self) -> float:
        return self.fin - self.debut

    @property
    def libelle(self) -> str:
        return f"{format_heure(self.start_time)}-{format_heure(self.end_time)}"

    def plages_travail(self, jusqua: Optional[float] = None) -> List[Plage]:
        """Workable intervals of the day, cut at ``jusqua`` if given."""
        fin = self.fin if jusqua is None else min(self.fin, jusqua)
        if fin <= self.debut:
            return []
        plages = [(self.debut, fin)]
        if self.pause is not None:
            plages = soustraire_plages(
                plages, [(heure_decimale(self.pause[0]), heure_decimale(self.pause[1]))]
            )
        return plages

    def heures_nettes(self, jusqua: Optional[float] = None) -> float:
        return longueur(self.plages_travail(jusqua))

    def capacite_effective(self, jusqua: Optional[float] = None) -> float:
        return min(self.daily_capacity_hours, self.heures_nettes(jusqua))

    def plages_libres(
        self, occupes: Iterable[Plage], jusqua: Optional[float] = None
    ) -> List[Plage]:
        return soustraire_plages(self.plages_travail(jusqua), occupes)

    def heures_chargeables(self, debut: time, fin: time) -> float:
        """Hours of ``[debut, fin)`` that fall inside the workable window."""
        plages = self.plages_travail()
        hors = [(0.0, heure_decimale(debut)), (heure_decimale(fin), 24.0)]
        return round(longueur(soustraire_plages(plages, hors)), 2)

    def hors_horaire(self, debut: time, fin: time) -> bool:
        return debut < self.start_time or fin > self.end_time

    def empiete_pause(self, debut: time, fin: time) -> bool:
        if self.pause is None:
            return False
        return debut < self.pause[1] and self.pause[0] < fin


def parse_horaire(
    horaire: str,
    capacite: Optional[float] = None,
    pause: Optional[str] = None,
) -> WorkingWindow:
    """
    Build a WorkingWindow from a schedule string such as ``9h-17h``.

    Args:
        horaire: Schedule text (``9h-17h``, ``7h30-15h30``, ``07:00-15:00``)
        capacite: Daily capacity; defaults to CAPACITE_DEFAUT capped to the window
        pause: Pause text; None uses PAUSE_MIDI, an empty string disables it

    Raises:
        InvalidScheduleError: on malformed input
    """
    debut, fin = parse_plage(horaire)
    texte_pause = settings.PAUSE_MIDI if pause is None else pause
    plage_pause = parse_plage(texte_pause) if texte_pause else None
    if capacite is None:
        brutes = heure_decimale(fin) - heure_decimale(debut)
        capacite = min(settings.CAPACITE_DEFAUT, brutes)
    return WorkingWindow(
        start_time=debut,
        end_time=fin,
        daily_capacity_hours=float(capacite),
        pause=plage_pause,
    )
