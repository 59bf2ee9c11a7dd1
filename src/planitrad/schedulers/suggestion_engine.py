"""
Suggestion Engine

Proposes remediations for detected conflicts, ranked by impact.

Suggestion Types:
- SHIFT: move the task to the nearest free slot (same day, then adjacent days)
- SPLIT: keep what fits today, move the rest to an adjacent business day
- REASSIGN: hand the task to another translator from the candidate pool
- SHRINK: cut the conflicting hours and spread them over nearby days

The engine never applies anything; the caller (or a human) picks an option.

Usage:
    engine = SuggestionEngine(source)
    suggestions = engine.generer_suggestions(conflits)
    best = suggestions[0]
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from planitrad.platform.config import settings

from .base import CandidatReaffectation, SchedulerBase
from .calendrier import heure_locale
from .conflict_detector import Conflict, ConflictType
from .errors import PlanificationError
from .horaire import (
    TOLERANCE,
    Plage,
    WorkingWindow,
    heure_decimale,
    longueur,
    placer_a_rebours,
    placer_en_avant,
    soustraire_plages,
    vers_heure,
)
from .impact import Niveau, ScoreImpact, calculer_score_impact, score_intervention_manuelle
from .repartition import AllocationPlan, capacite_libre, repartition_equilibree
from .segments import SegmentKind, TimeSegment


class SuggestionType(str, Enum):
    SHIFT = "SHIFT"
    SPLIT = "SPLIT"
    REASSIGN = "REASSIGN"
    SHRINK = "SHRINK"


@dataclass(frozen=True)
class Suggestion:
    """A proposed remediation; never persisted."""
    id: str
    type: SuggestionType
    target_segment: TimeSegment
    proposed_change: Dict[str, Any]
    score_impact: ScoreImpact
    conflict: Optional[Conflict] = None
    description: str = ""
    manual_intervention: bool = False


def _creneaux(
    window: WorkingWindow, occupes: List[TimeSegment], jusqua: Optional[float] = None
) -> List[Plage]:
    """Clock gaps of the window left between occupied segments."""
    fin = window.fin if jusqua is None else min(window.fin, jusqua)
    if fin <= window.debut:
        return []
    return soustraire_plages([(window.debut, fin)], [s.plage for s in occupes])


def _plages_travail(window: WorkingWindow, creneau: Plage) -> List[Plage]:
    """Workable part of a gap (pause removed)."""
    debut, fin = creneau
    return soustraire_plages(window.plages_travail(), [(0.0, debut), (fin, 24.0)])


@dataclass
class _Journee:
    """Working context of one translator on one day, the moved segment excluded."""
    window: WorkingWindow
    jour: date
    occupes: List[TimeSegment] = field(default_factory=list)
    jusqua: Optional[float] = None

    def capacite(self) -> float:
        return capacite_libre(self.window, self.occupes, self.jusqua)

    def placer(self, heures: float, reference: float) -> Optional[Plage]:
        """Slot for ``heures`` in a single gap, starting as close as possible to ``reference``."""
        if heures <= 0 or self.capacite() + TOLERANCE < heures:
            return None
        meilleure = None
        for debut, fin in _creneaux(self.window, self.occupes, self.jusqua):
            plages = _plages_travail(self.window, (debut, fin))
            essais = [placer_en_avant(plages, heures), placer_a_rebours(plages, heures)]
            if debut < reference < fin:
                essais.append(
                    placer_en_avant(_plages_travail(self.window, (reference, fin)), heures)
                )
            for placement in essais:
                if placement is None:
                    continue
                if meilleure is None or abs(placement[0] - reference) < abs(meilleure[0] - reference):
                    meilleure = placement
        return meilleure

    def plus_grand_creneau(self) -> Tuple[Optional[Plage], float]:
        meilleur, heures = None, 0.0
        for creneau in _creneaux(self.window, self.occupes, self.jusqua):
            disponibles = longueur(_plages_travail(self.window, creneau))
            if disponibles > heures + TOLERANCE:
                meilleur, heures = creneau, disponibles
        return meilleur, min(heures, self.capacite())


class SuggestionEngine(SchedulerBase):
    """
    Generates ranked remediations for conflicts.

    Every candidate slot is validated against the translator's free capacity
    and working window before being proposed. A CRITIQUE conflict that admits
    no automatic remediation still yields one suggestion, flagged for manual
    intervention.
    """

    def generer_suggestions(self, conflits: List[Conflict]) -> List[Suggestion]:
        """
        Generate suggestions for every conflict.

        Returns:
            Suggestions sorted by ascending impact total (least disruptive first)
        """
        suggestions: List[Suggestion] = []
        for conflit in conflits:
            cible = self._cible(conflit)
            if cible is None:
                continue

            candidates = self._suggestions_pour(conflit, cible)
            if not candidates and conflit.severity == Niveau.CRITIQUE:
                candidates = [self._intervention_manuelle(conflit, cible)]
            suggestions.extend(candidates)

        suggestions.sort(key=lambda s: s.score_impact.total)
        self.logger.info(
            "Suggestions générées", conflits=len(conflits), suggestions=len(suggestions)
        )
        return suggestions

    # -------------------------------------------------------------------------
    # Target selection
    # -------------------------------------------------------------------------

    @staticmethod
    def _cible(conflit: Conflict) -> Optional[TimeSegment]:
        """The segment to move: never a blackout."""
        a, b = conflit.segment_a, conflit.segment_b
        if conflit.type == ConflictType.OVERLAP_BLACKOUT_BLACKOUT:
            return None
        if conflit.type == ConflictType.OVERLAP_TASK_BLACKOUT:
            return a if a.kind == SegmentKind.TASK else b
        if conflit.type == ConflictType.OVERLAP_TASK_TASK and b is not None:
            if a.priority != b.priority:
                return a if a.priority < b.priority else b
            return a if (a.debut, a.fin) > (b.debut, b.fin) else b
        return a if a.kind == SegmentKind.TASK else None

    # -------------------------------------------------------------------------
    # Candidates
    # -------------------------------------------------------------------------

    def _suggestions_pour(self, conflit: Conflict, cible: TimeSegment) -> List[Suggestion]:
        window = self.require_source().horaire(cible.translator_id)
        generateurs = (self._shift, self._split, self._reassign, self._shrink)
        suggestions = [generateur(conflit, cible, window) for generateur in generateurs]
        return [suggestion for suggestion in suggestions if suggestion is not None]

    def _shift(
        self, conflit: Conflict, cible: TimeSegment, window: WorkingWindow
    ) -> Optional[Suggestion]:
        for jour in self._jours_candidats(cible):
            journee = self._journee(conflit, cible, window, jour)
            placement = journee.placer(cible.hours, cible.debut)
            if placement is None:
                continue
            debut, fin = placement
            if jour == cible.date and (debut, fin) == cible.plage:
                continue
            score = calculer_score_impact(
                cible.hours,
                jours_touches=1 if jour == cible.date else 2,
                marge_avant=self._marge(cible, cible.fin_datetime),
                marge_apres=self._marge(cible, datetime.combine(jour, vers_heure(fin))),
            )
            return self._suggestion(
                SuggestionType.SHIFT, conflit, cible, score,
                {
                    "date": jour,
                    "start_clock": vers_heure(debut),
                    "end_clock": vers_heure(fin),
                    "hours": cible.hours,
                },
                f"Déplacer {cible.source_id} le {jour.isoformat()} de "
                f"{vers_heure(debut):%H:%M} à {vers_heure(fin):%H:%M}",
            )
        return None

    def _split(
        self, conflit: Conflict, cible: TimeSegment, window: WorkingWindow
    ) -> Optional[Suggestion]:
        if not cible.splittable:
            return None

        journee = self._journee(conflit, cible, window, cible.date)
        creneau, disponibles = journee.plus_grand_creneau()
        partie = round(min(disponibles, cible.hours), 4)
        if creneau is None or partie <= TOLERANCE or partie >= cible.hours - TOLERANCE:
            return None
        ici = placer_en_avant(_plages_travail(window, creneau), partie)
        reste = round(cible.hours - partie, 4)

        for jour in self._jours_adjacents(cible):
            autre = self._journee(conflit, cible, window, jour)
            placement = autre.placer(reste, cible.debut)
            if placement is None:
                continue
            fin_reelle = max(
                datetime.combine(cible.date, vers_heure(ici[1])),
                datetime.combine(jour, vers_heure(placement[1])),
            )
            score = calculer_score_impact(
                reste,
                jours_touches=2,
                plages=2,
                marge_avant=self._marge(cible, cible.fin_datetime),
                marge_apres=self._marge(cible, fin_reelle),
            )
            parties = [
                {
                    "date": cible.date,
                    "start_clock": vers_heure(ici[0]),
                    "end_clock": vers_heure(ici[1]),
                    "hours": partie,
                },
                {
                    "date": jour,
                    "start_clock": vers_heure(placement[0]),
                    "end_clock": vers_heure(placement[1]),
                    "hours": reste,
                },
            ]
            parties.sort(key=lambda p: p["date"])
            return self._suggestion(
                SuggestionType.SPLIT, conflit, cible, score,
                {"parties": parties},
                f"Scinder {cible.source_id}: {partie:.2f}h le {cible.date.isoformat()}, "
                f"{reste:.2f}h le {jour.isoformat()}",
            )
        return None

    def _reassign(
        self, conflit: Conflict, cible: TimeSegment, window: WorkingWindow
    ) -> Optional[Suggestion]:
        faisables: List[Tuple[float, CandidatReaffectation, Plage]] = []
        for candidat in self.require_source().candidats_reaffectation(cible):
            if candidat.translator_id == cible.translator_id or not candidat.paire_compatible:
                continue
            journee = _Journee(
                window=candidat.window,
                jour=cible.date,
                occupes=[
                    s for s in candidat.segments if s.occupe and s.date == cible.date
                ],
                jusqua=self._coupure(cible, cible.date),
            )
            placement = journee.placer(cible.hours, cible.debut)
            if placement is None:
                continue
            faisables.append((journee.capacite() - cible.hours, candidat, placement))

        if not faisables:
            return None

        faisables.sort(key=lambda f: (-f[0], f[1].nom))
        _, meilleur, (debut, fin) = faisables[0]
        alternatives = [
            {"translator_id": c.translator_id, "nom": c.nom}
            for _, c, _ in faisables[1:settings.SUGGESTION_MAX_CANDIDATS]
        ]
        score = calculer_score_impact(
            cible.hours,
            marge_avant=self._marge(cible, cible.fin_datetime),
            marge_apres=self._marge(cible, datetime.combine(cible.date, vers_heure(fin))),
            reaffectation=True,
        )
        return self._suggestion(
            SuggestionType.REASSIGN, conflit, cible, score,
            {
                "translator_id": meilleur.translator_id,
                "nom": meilleur.nom,
                "date": cible.date,
                "start_clock": vers_heure(debut),
                "end_clock": vers_heure(fin),
                "hours": cible.hours,
                "alternatives": alternatives,
            },
            f"Réattribuer {cible.source_id} à {meilleur.nom}",
        )

    def _shrink(
        self, conflit: Conflict, cible: TimeSegment, window: WorkingWindow
    ) -> Optional[Suggestion]:
        retrait = round(max(conflit.overlap_hours, conflit.excess_hours), 4)
        if retrait <= TOLERANCE or retrait >= cible.hours - TOLERANCE:
            return None

        conserve = round(cible.hours - retrait, 4)
        placement = self._journee(conflit, cible, window, cible.date).placer(
            conserve, cible.debut
        )
        if placement is None:
            return None
        plan = self._redistribuer(cible, window, retrait)
        if plan is None:
            return None

        derniere = plan[-1]
        fin_redistribuee = datetime.combine(
            derniere.date, derniere.end_clock or window.end_time
        )
        score = calculer_score_impact(
            retrait,
            jours_touches=1 + len(plan),
            plages=1 + len(plan),
            marge_avant=self._marge(cible, cible.fin_datetime),
            marge_apres=self._marge(cible, max(fin_redistribuee, cible.fin_datetime)),
        )
        return self._suggestion(
            SuggestionType.SHRINK, conflit, cible, score,
            {
                "date": cible.date,
                "hours_before": cible.hours,
                "hours_after": conserve,
                "start_clock": vers_heure(placement[0]),
                "end_clock": vers_heure(placement[1]),
                "redistribution": [
                    {
                        "date": entry.date,
                        "hours": entry.hours,
                        "start_clock": entry.start_clock,
                        "end_clock": entry.end_clock,
                    }
                    for entry in plan
                ],
            },
            f"Réduire {cible.source_id} de {retrait:.2f}h le {cible.date.isoformat()} "
            f"et répartir sur {len(plan)} jour(s)",
        )

    def _redistribuer(
        self, cible: TimeSegment, window: WorkingWindow, heures: float
    ) -> Optional[AllocationPlan]:
        horizon = settings.SUGGESTION_HORIZON_JOURS
        suivants = (
            self.calendrier.suivant(cible.date),
            self.calendrier.avancer(cible.date, horizon),
        )
        echeance = self._echeance(cible)
        if echeance is not None:
            dernier = echeance.date()
            if heure_decimale(echeance.time()) < window.fin:
                dernier = self.calendrier.precedent(dernier)
            suivants = (suivants[0], min(suivants[1], dernier))
        precedents = (
            self.calendrier.reculer(cible.date, horizon),
            self.calendrier.precedent(cible.date),
        )

        for debut, fin in (suivants, precedents):
            if debut > fin:
                continue
            occupes = self.require_source().segments(cible.translator_id, debut, fin)
            try:
                return repartition_equilibree(
                    heures, debut, fin, window, self.calendrier, occupes
                )
            except PlanificationError:
                continue
        return None

    def _intervention_manuelle(self, conflit: Conflict, cible: TimeSegment) -> Suggestion:
        raison = f"aucune solution automatique pour {cible.source_id} ({conflit.type.value})"
        self.logger.warning(
            "Intervention manuelle requise",
            source_id=cible.source_id,
            translator_id=cible.translator_id,
            date=cible.date.isoformat(),
            conflict=conflit.type.value,
        )
        return self._suggestion(
            SuggestionType.REASSIGN, conflit, cible, score_intervention_manuelle(raison),
            {"intervention_manuelle": True},
            f"Intervention manuelle requise pour {cible.source_id}",
            manual_intervention=True,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _echeance(cible: TimeSegment) -> Optional[datetime]:
        return heure_locale(cible.deadline) if cible.deadline is not None else None

    def _marge(self, cible: TimeSegment, fin: datetime) -> Optional[float]:
        echeance = self._echeance(cible)
        if echeance is None:
            return None
        return (echeance - fin).total_seconds() / 3600

    def _coupure(self, cible: TimeSegment, jour: date) -> Optional[float]:
        echeance = self._echeance(cible)
        if echeance is None or echeance.date() != jour:
            return None
        return heure_decimale(echeance.time())

    def _admissible(self, cible: TimeSegment, jour: date) -> bool:
        echeance = self._echeance(cible)
        return echeance is None or jour <= echeance.date()

    def _jours_adjacents(self, cible: TimeSegment) -> List[date]:
        jours = [
            self.calendrier.precedent(cible.date),
            self.calendrier.suivant(cible.date),
        ]
        return [jour for jour in jours if self._admissible(cible, jour)]

    def _jours_candidats(self, cible: TimeSegment) -> List[date]:
        """Same day first, then alternately preceding and following business days."""
        jours = [cible.date]
        for rang in range(1, settings.SUGGESTION_HORIZON_JOURS + 1):
            jours.append(self.calendrier.reculer(cible.date, rang))
            jours.append(self.calendrier.avancer(cible.date, rang))
        return [jour for jour in jours if self._admissible(cible, jour)]

    def _journee(
        self, conflit: Conflict, cible: TimeSegment, window: WorkingWindow, jour: date
    ) -> _Journee:
        occupes = [
            s for s in self.require_source().segments(cible.translator_id, jour, jour)
            if s.occupe and s != cible
        ]
        for partenaire in (conflit.segment_a, conflit.segment_b):
            if (
                partenaire is not None
                and partenaire != cible
                and partenaire.date == jour
                and partenaire.translator_id == cible.translator_id
                and partenaire not in occupes
            ):
                occupes.append(partenaire)
        return _Journee(window, jour, occupes, self._coupure(cible, jour))

    @staticmethod
    def _suggestion(
        type_: SuggestionType,
        conflit: Conflict,
        cible: TimeSegment,
        score: ScoreImpact,
        changement: Dict[str, Any],
        description: str,
        manual_intervention: bool = False,
    ) -> Suggestion:
        return Suggestion(
            id=str(uuid.uuid4()),
            type=type_,
            target_segment=cible,
            proposed_change=changement,
            score_impact=score,
            conflict=conflit,
            description=description,
            manual_intervention=manual_intervention,
        )
