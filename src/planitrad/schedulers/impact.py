"""
Severity levels and impact scoring.

Every threshold lives in a small band table so the policy can be read and
tested on its own:

- BANDES_CHEVAUCHEMENT: task/task overlap ratio -> severity
- BANDES_IMPACT: suggestion impact total -> niveau
- BANDES_RISQUE: deadline buffer left after a change -> risk points
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple


class Niveau(str, Enum):
    """Severity / impact level, from least to most serious."""
    FAIBLE = "FAIBLE"
    MOYEN = "MOYEN"
    ELEVE = "ELEVE"
    CRITIQUE = "CRITIQUE"

    @property
    def rang(self) -> int:
        return list(Niveau).index(self)

    def escalader(self) -> "Niveau":
        """The next level up (CRITIQUE stays CRITIQUE)."""
        niveaux = list(Niveau)
        return niveaux[min(self.rang + 1, len(niveaux) - 1)]


@dataclass(frozen=True)
class Bande:
    """Values up to ``plafond`` (inclusive) fall in ``niveau``; no ceiling means open-ended."""
    niveau: Niveau
    plafond: Optional[float] = None


BANDES_IMPACT: Tuple[Bande, ...] = (
    Bande(Niveau.FAIBLE, 25),
    Bande(Niveau.MOYEN, 50),
    Bande(Niveau.ELEVE, 75),
    Bande(Niveau.CRITIQUE),
)

# Ratio of the overlap to the shorter of the two tasks
BANDES_CHEVAUCHEMENT: Tuple[Bande, ...] = (
    Bande(Niveau.MOYEN, 0.5),
    Bande(Niveau.ELEVE),
)

# (hours of buffer left below which, points)
BANDES_RISQUE: Tuple[Tuple[Optional[float], float], ...] = (
    (8, 30),
    (24, 15),
    (None, 5),
)

POIDS_IMPACT: Dict[str, float] = {
    "heure_deplacee": 2,
    "heures_plafond": 20,
    "jour_supplementaire": 5,
    "plage_supplementaire": 5,
    "reaffectation": 35,
    "total_plafond": 100,
}


def classer(valeur: float, bandes: Sequence[Bande]) -> Niveau:
    """Return the level of the first band whose ceiling is not below ``valeur``."""
    for bande in bandes:
        if bande.plafond is None or valeur <= bande.plafond:
            return bande.niveau
    return bandes[-1].niveau


def points_risque(marge_heures: float) -> float:
    for plafond, points in BANDES_RISQUE:
        if plafond is None or marge_heures < plafond:
            return points
    return BANDES_RISQUE[-1][1]


@dataclass(frozen=True)
class ScoreImpact:
    """Disruption of a suggestion; lower is better."""
    total: float
    niveau: Niveau
    justification: str
    decomposition: Dict[str, float] = field(default_factory=dict)


def calculer_score_impact(
    heures_deplacees: float,
    jours_touches: int = 1,
    plages: int = 1,
    marge_avant: Optional[float] = None,
    marge_apres: Optional[float] = None,
    reaffectation: bool = False,
) -> ScoreImpact:
    """
    Score a remediation.

    Args:
        heures_deplacees: Hours moved away from their current slot
        jours_touches: Days the task ends up spanning for this change
        plages: Separate intervals the moved hours end up in
        marge_avant: Hours between the task end and its deadline, before
        marge_apres: Same buffer once the change is applied
        reaffectation: The work goes to another translator

    Returns:
        ScoreImpact whose total is capped at 100
    """
    decomposition: Dict[str, float] = {}
    raisons = []

    heures = min(
        heures_deplacees * POIDS_IMPACT["heure_deplacee"], POIDS_IMPACT["heures_plafond"]
    )
    if heures > 0:
        decomposition["heures"] = round(heures, 2)
        raisons.append(f"{heures_deplacees:.2f}h déplacées (+{heures:.0f})")

    if jours_touches > 1:
        points = (jours_touches - 1) * POIDS_IMPACT["jour_supplementaire"]
        decomposition["jours"] = points
        raisons.append(f"{jours_touches} jours touchés (+{points:.0f})")

    if plages > 1:
        points = (plages - 1) * POIDS_IMPACT["plage_supplementaire"]
        decomposition["morcellement"] = points
        raisons.append(f"travail morcelé en {plages} plages (+{points:.0f})")

    if marge_apres is not None and (marge_avant is None or marge_apres < marge_avant - 1e-6):
        points = points_risque(marge_apres)
        decomposition["echeance"] = points
        raisons.append(f"marge avant échéance réduite à {marge_apres:.1f}h (+{points:.0f})")

    if reaffectation:
        points = POIDS_IMPACT["reaffectation"]
        decomposition["reaffectation"] = points
        raisons.append(f"changement de traducteur (+{points:.0f})")

    total = round(min(sum(decomposition.values()), POIDS_IMPACT["total_plafond"]), 2)
    return ScoreImpact(
        total=total,
        niveau=classer(total, BANDES_IMPACT),
        justification="; ".join(raisons) or "Aucun impact mesurable",
        decomposition=decomposition,
    )


def score_intervention_manuelle(raison: str) -> ScoreImpact:
    total = POIDS_IMPACT["total_plafond"]
    return ScoreImpact(
        total=total,
        niveau=Niveau.CRITIQUE,
        justification=f"Intervention manuelle requise: {raison}",
        decomposition={"intervention_manuelle": total},
    )
