from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import (
    JSON, Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, Time, func
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass

# Helper to support both Postgres JSONB and generic JSON (for SQLite tests)
JSON_TYPE = JSON().with_variant(JSONB, 'postgresql')
TIMESTAMP_TYPE = DateTime(timezone=True).with_variant(TIMESTAMP(timezone=True), 'postgresql')

TYPE_TACHE = "TACHE"
TYPE_BLOCAGE = "BLOCAGE"

# --- Translators ---

class TraducteurModel(Base):
    __tablename__ = "traducteurs"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    nom: Mapped[str] = mapped_column(String, nullable=False)
    horaire: Mapped[Optional[str]] = mapped_column(String)
    capacite_heures_par_jour: Mapped[Optional[float]] = mapped_column(Float)
    # Language pairs, e.g. ["EN>FR", "ES>FR"]
    paires: Mapped[List[str]] = mapped_column(JSON_TYPE, default=list)
    actif: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())

# --- Tasks ---

class TacheModel(Base):
    __tablename__ = "taches"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    numero_projet: Mapped[Optional[str]] = mapped_column(String)
    description: Mapped[Optional[str]] = mapped_column(Text)
    traducteur_id: Mapped[str] = mapped_column(ForeignKey("traducteurs.id"), nullable=False, index=True)
    paire: Mapped[Optional[str]] = mapped_column(String)
    heures_totales: Mapped[float] = mapped_column(Float, nullable=False)
    date_echeance: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP_TYPE)
    priorite: Mapped[int] = mapped_column(Integer, default=0)
    fractionnable: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())

    traducteur: Mapped["TraducteurModel"] = relationship()

# --- Time adjustments (allocations and blackouts) ---

class AjustementTempsModel(Base):
    __tablename__ = "ajustements_temps"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    traducteur_id: Mapped[str] = mapped_column(ForeignKey("traducteurs.id"), nullable=False)
    tache_id: Mapped[Optional[str]] = mapped_column(ForeignKey("taches.id"), nullable=True)
    jour: Mapped[date] = mapped_column(Date, nullable=False)
    heure_debut: Mapped[time] = mapped_column(Time, nullable=False)
    heure_fin: Mapped[time] = mapped_column(Time, nullable=False)
    heures: Mapped[float] = mapped_column(Float, nullable=False)
    type: Mapped[str] = mapped_column(String, default=TYPE_TACHE)
    motif: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())

    tache: Mapped[Optional["TacheModel"]] = relationship()

    __table_args__ = (
        Index('idx_ajustement_traducteur_date', 'traducteur_id', 'jour'),
    )

# --- Statutory holidays ---

class JourFerieModel(Base):
    __tablename__ = "jours_feries"

    jour: Mapped[date] = mapped_column(Date, primary_key=True)
    nom: Mapped[str] = mapped_column(String, nullable=False)
