"""
Tests for the business-day calendar.
"""

from datetime import date, datetime, timezone

from planitrad.schedulers.calendrier import CalendrierOuvrable, JOURS_FERIES_FEDERAUX, heure_locale


class TestCalendrierOuvrable:
    """Tests for CalendrierOuvrable."""

    def test_weekend_is_not_business_day(self):
        calendrier = CalendrierOuvrable()

        assert calendrier.est_ouvrable(date(2025, 12, 12))
        assert not calendrier.est_ouvrable(date(2025, 12, 13))
        assert not calendrier.est_ouvrable(date(2025, 12, 14))

    def test_jours_ouvrables_skips_weekend(self):
        jours = CalendrierOuvrable().jours_ouvrables(date(2025, 12, 8), date(2025, 12, 16))

        assert len(jours) == 7
        assert date(2025, 12, 13) not in jours
        assert date(2025, 12, 14) not in jours
        assert jours == sorted(jours)

    def test_holidays_are_excluded(self):
        calendrier = CalendrierOuvrable.depuis_dates([date(2025, 12, 10)])

        jours = calendrier.jours_ouvrables(date(2025, 12, 8), date(2025, 12, 12))

        assert date(2025, 12, 10) not in jours
        assert len(jours) == 4

    def test_predicate_is_consulted(self):
        calendrier = CalendrierOuvrable(predicat=lambda jour: jour.day == 11)

        assert calendrier.est_ferie(date(2025, 12, 11))
        assert not calendrier.est_ouvrable(date(2025, 12, 11))

    def test_federal_calendar(self):
        calendrier = CalendrierOuvrable.federal()

        assert calendrier.est_ferie(date(2025, 12, 25))
        assert calendrier.est_ferie(date(2026, 7, 1))
        assert len(calendrier.jours_feries) == len(JOURS_FERIES_FEDERAUX)

    def test_navigation(self):
        calendrier = CalendrierOuvrable()

        # Saturday -> Friday
        assert calendrier.dernier_ouvrable(date(2025, 12, 13)) == date(2025, 12, 12)
        assert calendrier.dernier_ouvrable(date(2025, 12, 10)) == date(2025, 12, 10)
        assert calendrier.precedent(date(2025, 12, 15)) == date(2025, 12, 12)
        assert calendrier.suivant(date(2025, 12, 12)) == date(2025, 12, 15)
        assert calendrier.reculer(date(2025, 12, 16), 3) == date(2025, 12, 11)
        assert calendrier.avancer(date(2025, 12, 11), 3) == date(2025, 12, 16)

    def test_navigation_skips_holidays(self):
        calendrier = CalendrierOuvrable.federal()

        assert calendrier.suivant(date(2025, 12, 24)) == date(2025, 12, 29)
        assert calendrier.precedent(date(2025, 12, 29)) == date(2025, 12, 24)


class TestHeureLocale:
    """Tests for the local time conversion."""

    def test_naive_datetime_unchanged(self):
        moment = datetime(2025, 12, 23, 16, 0)
        assert heure_locale(moment) == moment

    def test_aware_datetime_converted(self):
        # 21:00 UTC is 16:00 in Toronto in December
        moment = datetime(2025, 12, 23, 21, 0, tzinfo=timezone.utc)

        local = heure_locale(moment)

        assert local == datetime(2025, 12, 23, 16, 0)
        assert local.tzinfo is None
