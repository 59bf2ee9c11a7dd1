"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from datetime import date, time
from typing import Dict, List, Optional

import pytest

sys.path.append(os.path.join(os.getcwd(), "src"))

from planitrad.schedulers.base import CandidatReaffectation, SourcePlanification
from planitrad.schedulers.calendrier import CalendrierOuvrable
from planitrad.schedulers.horaire import WorkingWindow, parse_heure
from planitrad.schedulers.segments import SegmentKind, TimeSegment

# Tuesday
JOUR = date(2025, 12, 9)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> None:
    """Set up test environment variables."""
    os.environ.setdefault("APP_ENV", "test")
    os.environ.setdefault("DEBUG", "true")


# =============================================================================
# Segment Helpers
# =============================================================================

def make_segment(
    debut: str,
    fin: str,
    kind: SegmentKind = SegmentKind.TASK,
    hours: Optional[float] = None,
    translator_id: str = "trad-1",
    jour: date = JOUR,
    source_id: Optional[str] = None,
    **kwargs,
) -> TimeSegment:
    """Build a segment from clock strings such as ``9h`` or ``10h30``."""
    start, end = parse_heure(debut), parse_heure(fin)
    if hours is None:
        hours = (end.hour + end.minute / 60) - (start.hour + start.minute / 60)
    source_id = source_id or f"{kind.value.lower()}-{debut}-{fin}"
    kwargs.setdefault("segment_id", source_id)
    return TimeSegment(
        translator_id=translator_id,
        date=jour,
        start_clock=start,
        end_clock=end,
        hours=hours,
        kind=kind,
        source_id=source_id,
        **kwargs,
    )


@pytest.fixture
def segment():
    """Fixture to create segments."""
    return make_segment


# =============================================================================
# Schedule Source
# =============================================================================

class FakeSource(SourcePlanification):
    """In-memory schedule source."""

    def __init__(
        self,
        windows: Dict[str, WorkingWindow],
        segments: Optional[List[TimeSegment]] = None,
        candidats: Optional[List[CandidatReaffectation]] = None,
        calendrier: Optional[CalendrierOuvrable] = None,
    ):
        self.windows = windows
        self.all_segments = list(segments or [])
        self.candidats = list(candidats or [])
        self._calendrier = calendrier or CalendrierOuvrable()

    def horaire(self, translator_id: str) -> WorkingWindow:
        if translator_id not in self.windows:
            raise LookupError(translator_id)
        return self.windows[translator_id]

    def segments(self, translator_id: str, debut: date, fin: date) -> List[TimeSegment]:
        return [
            s for s in self.all_segments
            if s.translator_id == translator_id and debut <= s.date <= fin
        ]

    def segment(self, segment_id: str) -> Optional[TimeSegment]:
        for s in self.all_segments:
            if s.identifiant == segment_id:
                return s
        return None

    def candidats_reaffectation(self, segment: TimeSegment) -> List[CandidatReaffectation]:
        return self.candidats

    def calendrier(self) -> CalendrierOuvrable:
        return self._calendrier


@pytest.fixture
def window() -> WorkingWindow:
    """08:00-16:00, 7h a day, no pause."""
    return WorkingWindow(time(8), time(16), 7.0)


@pytest.fixture
def make_source(window):
    """Factory for a FakeSource with ``trad-1`` working in ``window``."""
    def _make(segments=None, candidats=None, calendrier=None, windows=None):
        return FakeSource(windows or {"trad-1": window}, segments, candidats, calendrier)
    return _make
