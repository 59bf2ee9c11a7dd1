"""
Errors raised by the planning engines.

All of them are recoverable by the caller (widen the range, split the task,
pick another translator). Conflicts are never raised: they are returned.
"""

from datetime import date, datetime
from typing import Optional


class PlanificationError(ValueError):
    """Base class for planning computation errors."""


class NoBusinessDayError(PlanificationError):
    """The requested range holds no eligible business day."""

    def __init__(self, date_debut: date, date_fin: date):
        self.date_debut = date_debut
        self.date_fin = date_fin
        super().__init__(
            f"Aucun jour ouvrable entre {date_debut.isoformat()} et {date_fin.isoformat()}"
        )


class CapacityExceededError(PlanificationError):
    """A day cannot absorb the hours assigned to it."""

    def __init__(self, jour: date, shortfall: float, capacite: Optional[float] = None):
        self.date = jour
        self.shortfall = round(shortfall, 4)
        self.capacite = capacite
        message = f"Capacité dépassée le {jour.isoformat()} de {self.shortfall:.2f}h"
        if capacite is not None:
            message += f" (capacité disponible: {capacite:.2f}h)"
        super().__init__(message)


class DeadlineUnreachableError(PlanificationError):
    """Juste-à-temps lookback exhausted before every hour was placed."""

    def __init__(self, remaining_hours: float, echeance: datetime, jours_examines: int):
        self.remaining_hours = round(remaining_hours, 4)
        self.echeance = echeance
        self.jours_examines = jours_examines
        super().__init__(
            f"Impossible de répartir toutes les heures avant {echeance.isoformat()}: "
            f"{self.remaining_hours:.2f}h restantes après {jours_examines} jour(s) ouvrable(s)"
        )


class InvalidSegmentError(PlanificationError):
    """A time segment is malformed (empty or negative span, bad hours)."""


class InvalidScheduleError(PlanificationError):
    """A working schedule string or window is malformed."""
