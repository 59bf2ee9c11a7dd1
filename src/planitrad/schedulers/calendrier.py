"""
Business-day calendar.

Weekends are never worked; statutory holidays are excluded when the calendar
knows them. Deadlines coming in with a timezone are brought back to the
configured local time before any date arithmetic.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, FrozenSet, Iterable, List, Optional
from zoneinfo import ZoneInfo

from planitrad.platform.config import settings

# Canadian federal statutory holidays, used when no holiday table is available
JOURS_FERIES_FEDERAUX: dict[date, str] = {
    date(2025, 12, 25): "Noël",
    date(2025, 12, 26): "Lendemain de Noël",
    date(2026, 1, 1): "Jour de l'An",
    date(2026, 1, 2): "Congé du Jour de l'An (observé)",
    date(2026, 4, 3): "Vendredi saint",
    date(2026, 5, 18): "Fête de la Reine",
    date(2026, 7, 1): "Fête du Canada",
    date(2026, 9, 7): "Fête du Travail",
    date(2026, 9, 30): "Journée nationale de la vérité et de la réconciliation",
    date(2026, 10, 12): "Action de grâces",
    date(2026, 11, 11): "Jour du Souvenir",
    date(2026, 12, 25): "Noël",
    date(2026, 12, 28): "Congé de Noël (observé)",
    date(2027, 1, 1): "Jour de l'An",
    date(2027, 3, 26): "Vendredi saint",
    date(2027, 3, 29): "Lundi de Pâques",
    date(2027, 5, 24): "Fête de la Reine",
    date(2027, 7, 1): "Fête du Canada",
    date(2027, 9, 6): "Fête du Travail",
    date(2027, 9, 30): "Journée nationale de la vérité et de la réconciliation",
    date(2027, 10, 11): "Action de grâces",
    date(2027, 11, 11): "Jour du Souvenir",
    date(2027, 12, 27): "Noël (observé)",
    date(2027, 12, 28): "Lendemain de Noël (observé)",
}


def heure_locale(moment: datetime) -> datetime:
    """Return ``moment`` as a naive datetime in the configured timezone."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


@dataclass(frozen=True)
class CalendrierOuvrable:
    """
    Business-day calendar.

    Args:
        jours_feries: Known statutory holidays
        predicat: Optional external holiday lookup (date -> bool), checked
            in addition to ``jours_feries``
    """

    jours_feries: FrozenSet[date] = frozenset()
    predicat: Optional[Callable[[date], bool]] = None

    @classmethod
    def depuis_dates(cls, jours: Iterable[date]) -> "CalendrierOuvrable":
        return cls(jours_feries=frozenset(jours))

    @classmethod
    def federal(cls) -> "CalendrierOuvrable":
        """Calendar carrying the federal statutory holidays."""
        return cls(jours_feries=frozenset(JOURS_FERIES_FEDERAUX))

    @staticmethod
    def est_weekend(jour: date) -> bool:
        return jour.weekday() >= 5

    def est_ferie(self, jour: date) -> bool:
        if jour in self.jours_feries:
            return True
        return bool(self.predicat and self.predicat(jour))

    def est_ouvrable(self, jour: date) -> bool:
        return not self.est_weekend(jour) and not self.est_ferie(jour)

    def jours_ouvrables(self, debut: date, fin: date) -> List[date]:
        """Business days in ``[debut, fin]``, in chronological order."""
        jours = []
        courant = debut
        while courant <= fin:
            if self.est_ouvrable(courant):
                jours.append(courant)
            courant += timedelta(days=1)
        return jours

    def dernier_ouvrable(self, jour: date) -> date:
        """``jour`` itself if it is a business day, else the preceding one."""
        return jour if self.est_ouvrable(jour) else self.precedent(jour)

    def precedent(self, jour: date) -> date:
        courant = jour - timedelta(days=1)
        while not self.est_ouvrable(courant):
            courant -= timedelta(days=1)
        return courant

    def suivant(self, jour: date) -> date:
        courant = jour + timedelta(days=1)
        while not self.est_ouvrable(courant):
            courant += timedelta(days=1)
        return courant

    def reculer(self, jour: date, nombre: int) -> date:
        """Step back ``nombre`` business days from ``jour``."""
        courant = jour
        for _ in range(nombre):
            courant = self.precedent(courant)
        return courant

    def avancer(self, jour: date, nombre: int) -> date:
        """Step forward ``nombre`` business days from ``jour``."""
        courant = jour
        for _ in range(nombre):
            courant = self.suivant(courant)
        return courant
