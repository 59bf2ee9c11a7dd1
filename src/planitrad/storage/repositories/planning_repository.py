from datetime import date, time
from typing import List, Optional
import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from planitrad.platform.config import settings
from planitrad.schedulers.base import CandidatReaffectation, SourcePlanification
from planitrad.schedulers.calendrier import CalendrierOuvrable
from planitrad.schedulers.horaire import WorkingWindow, parse_horaire
from planitrad.schedulers.repartition import AllocationPlan
from planitrad.schedulers.segments import SegmentKind, TimeSegment, segment_blocage
from planitrad.storage.adapter import SqlAdapter
from planitrad.storage.models import (
    TYPE_BLOCAGE,
    TYPE_TACHE,
    AjustementTempsModel,
    JourFerieModel,
    TacheModel,
    TraducteurModel,
)

logger = logging.getLogger(__name__)


class PlanningRepository(SourcePlanification):
    """Schedule source backed by the SQLAlchemy planning tables."""

    def __init__(self, adapter: SqlAdapter):
        self.adapter = adapter

    # --- SourcePlanification ---

    def horaire(self, translator_id: str) -> WorkingWindow:
        with self.adapter.get_session() as session:
            return self._window(self._traducteur(session, translator_id))

    def segments(self, translator_id: str, debut: date, fin: date) -> List[TimeSegment]:
        with self.adapter.get_session() as session:
            return self._segments(session, translator_id, debut, fin)

    def segment(self, segment_id: str) -> Optional[TimeSegment]:
        with self.adapter.get_session() as session:
            ajustement = session.get(AjustementTempsModel, segment_id)
            if not ajustement:
                return None
            return self._to_segment(ajustement)

    def candidats_reaffectation(self, segment: TimeSegment) -> List[CandidatReaffectation]:
        with self.adapter.get_session() as session:
            tache = session.get(TacheModel, segment.source_id)
            paire = tache.paire if tache else None

            stmt = (
                select(TraducteurModel)
                .where(TraducteurModel.actif.is_(True))
                .where(TraducteurModel.id != segment.translator_id)
                .order_by(TraducteurModel.nom)
            )
            candidats = []
            for traducteur in session.scalars(stmt):
                candidats.append(CandidatReaffectation(
                    translator_id=traducteur.id,
                    nom=traducteur.nom,
                    window=self._window(traducteur),
                    segments=self._segments(session, traducteur.id, segment.date, segment.date),
                    paire_compatible=paire is None or paire in (traducteur.paires or []),
                ))
            return candidats

    def calendrier(self) -> CalendrierOuvrable:
        with self.adapter.get_session() as session:
            jours = list(session.scalars(select(JourFerieModel.jour)))
        if not jours:
            logger.debug("No holiday table rows, using federal holidays")
            return CalendrierOuvrable.federal()
        return CalendrierOuvrable.depuis_dates(jours)

    # --- Writes ---

    def enregistrer_repartition(self, tache_id: str, plan: AllocationPlan) -> List[str]:
        """Replace the allocations of a task with ``plan``."""
        with self.adapter.get_session() as session:
            tache = session.get(TacheModel, tache_id)
            if not tache:
                raise LookupError(f"Tâche {tache_id} introuvable")

            session.execute(
                delete(AjustementTempsModel)
                .where(AjustementTempsModel.tache_id == tache_id)
                .where(AjustementTempsModel.type == TYPE_TACHE)
            )
            window = self._window(tache.traducteur)
            ids = []
            for entry in plan:
                ajustement = AjustementTempsModel(
                    id=str(uuid.uuid4()),
                    traducteur_id=tache.traducteur_id,
                    tache_id=tache_id,
                    jour=entry.date,
                    heure_debut=entry.start_clock or window.start_time,
                    heure_fin=entry.end_clock or window.end_time,
                    heures=entry.hours,
                    type=TYPE_TACHE,
                )
                session.add(ajustement)
                ids.append(ajustement.id)
            session.flush()

        logger.info(f"Saved {len(ids)} allocations for task {tache_id}")
        return ids

    def bloquer_temps(
        self,
        translator_id: str,
        jour: date,
        debut: time,
        fin: time,
        motif: Optional[str] = None,
    ) -> TimeSegment:
        """Record a blackout; its hours are the part of the span inside the working window."""
        with self.adapter.get_session() as session:
            traducteur = self._traducteur(session, translator_id)
            blocage_id = str(uuid.uuid4())
            segment = segment_blocage(
                translator_id, jour, debut, fin, self._window(traducteur), blocage_id
            )
            session.add(AjustementTempsModel(
                id=blocage_id,
                traducteur_id=translator_id,
                jour=jour,
                heure_debut=debut,
                heure_fin=fin,
                heures=segment.hours,
                type=TYPE_BLOCAGE,
                motif=motif,
            ))

        logger.info(f"Blocked {segment.hours}h for translator {translator_id} on {jour}")
        return segment

    # --- Helpers ---

    @staticmethod
    def _traducteur(session: Session, translator_id: str) -> TraducteurModel:
        traducteur = session.get(TraducteurModel, translator_id)
        if not traducteur:
            raise LookupError(f"Traducteur {translator_id} introuvable")
        return traducteur

    @staticmethod
    def _window(traducteur: TraducteurModel) -> WorkingWindow:
        return parse_horaire(
            traducteur.horaire or settings.HORAIRE_DEFAUT,
            capacite=traducteur.capacite_heures_par_jour,
        )

    def _segments(
        self, session: Session, translator_id: str, debut: date, fin: date
    ) -> List[TimeSegment]:
        stmt = (
            select(AjustementTempsModel)
            .where(AjustementTempsModel.traducteur_id == translator_id)
            .where(AjustementTempsModel.jour >= debut)
            .where(AjustementTempsModel.jour <= fin)
            .order_by(AjustementTempsModel.jour, AjustementTempsModel.heure_debut)
        )
        return [self._to_segment(a) for a in session.scalars(stmt)]

    @staticmethod
    def _to_segment(ajustement: AjustementTempsModel) -> TimeSegment:
        tache = ajustement.tache
        if ajustement.type == TYPE_BLOCAGE:
            return TimeSegment(
                translator_id=ajustement.traducteur_id,
                date=ajustement.jour,
                start_clock=ajustement.heure_debut,
                end_clock=ajustement.heure_fin,
                hours=ajustement.heures,
                kind=SegmentKind.BLACKOUT,
                source_id=ajustement.id,
                segment_id=ajustement.id,
                splittable=False,
            )
        return TimeSegment(
            translator_id=ajustement.traducteur_id,
            date=ajustement.jour,
            start_clock=ajustement.heure_debut,
            end_clock=ajustement.heure_fin,
            hours=ajustement.heures,
            kind=SegmentKind.TASK,
            source_id=ajustement.tache_id or ajustement.id,
            segment_id=ajustement.id,
            deadline=tache.date_echeance if tache else None,
            priority=tache.priorite if tache else 0,
            splittable=tache.fractionnable if tache else True,
        )
