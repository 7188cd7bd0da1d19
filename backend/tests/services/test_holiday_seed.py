"""
Tests for holiday_pricing/services/holiday_seed.py
"""
from datetime import date

from holiday_pricing.models.ontology import HolidayRule, MANUAL_SOURCE
from holiday_pricing.services.holiday_seed import default_holiday_periods, seed_holiday_data


class TestSeedHolidayData:

    def test_default_periods(self):
        periods = default_holiday_periods()
        # 3 年 x 3 个固定节日 + 9 个农历节日区间
        assert len(periods) == 18
        assert periods[0] == {"name": "元旦", "start_date": date(2025, 1, 1), "end_date": date(2025, 1, 1)}
        assert all(p["end_date"] >= p["start_date"] for p in periods)

    def test_seed_is_idempotent(self, db_session):
        assert seed_holiday_data(db_session) == {"holidays": 18}
        assert seed_holiday_data(db_session) == {"holidays": 0}
        assert db_session.query(HolidayRule).count() == 18

    def test_seeded_rules_are_manual(self, db_session):
        seed_holiday_data(db_session, discount_rate=0.85)
        rules = db_session.query(HolidayRule).all()
        assert all(r.source == MANUAL_SOURCE and not r.is_auto_synced for r in rules)
        assert {float(r.discount_rate) for r in rules} == {0.85}
