"""
Tests for holiday_pricing/services/holiday_pricing_service.py
Covers: select_rule, resolve_rate, holiday_name, nightly_schedule,
        price_calendar, quote_strict, quote
"""
import pytest
from datetime import date
from decimal import Decimal

from holiday_pricing.errors import InvalidRangeError
from holiday_pricing.models.ontology import HolidayType
from holiday_pricing.models.schemas import StayPriceQuote
from holiday_pricing.services.holiday_pricing_service import HolidayPricingEngine, iter_nights
from holiday_pricing.services.holiday_rule_cache import RuleSnapshot
from holiday_pricing.services.holiday_rule_store import HolidayRuleStore


# ── helpers ──────────────────────────────────────────────────────────

class ListRuleSource:
    """内存规则来源，记录每次查询的区间"""

    def __init__(self, rules):
        self.rules = rules
        self.queries = []

    def list_active(self, start_date=None, end_date=None):
        self.queries.append((start_date, end_date))
        return [
            r for r in self.rules
            if (end_date is None or r.start_date <= end_date)
            and (start_date is None or r.end_date >= start_date)
        ]


def _rule(rule_id, name, start, end, rate, holiday_type=HolidayType.OFFICIAL):
    return RuleSnapshot(id=rule_id, name=name, start_date=start, end_date=end,
                        discount_rate=Decimal(rate), holiday_type=holiday_type)


NATIONAL_DAY = _rule(1, "国庆节", date(2025, 10, 1), date(2025, 10, 7), "0.9")
CAMPAIGN = _rule(2, "国庆大促", date(2025, 10, 1), date(2025, 10, 1), "0.8", HolidayType.CAMPAIGN)


def _engine(*rules):
    return HolidayPricingEngine(ListRuleSource(list(rules)))


# ── tests ────────────────────────────────────────────────────────────

class TestIterNights:

    def test_half_open(self):
        nights = list(iter_nights(date(2025, 9, 29), date(2025, 10, 3)))
        assert nights == [date(2025, 9, 29), date(2025, 9, 30), date(2025, 10, 1), date(2025, 10, 2)]

    def test_crosses_year(self):
        nights = list(iter_nights(date(2025, 12, 31), date(2026, 1, 2)))
        assert nights == [date(2025, 12, 31), date(2026, 1, 1)]


class TestResolveRate:

    def test_no_rule_is_full_price(self):
        resolved = _engine(NATIONAL_DAY).resolve_rate(date(2025, 9, 30))
        assert resolved.rate == Decimal("1")
        assert resolved.holiday_name == ""
        assert resolved.rule_id is None

    def test_single_rule(self):
        resolved = _engine(NATIONAL_DAY).resolve_rate(date(2025, 10, 7))
        assert resolved.rate == Decimal("0.9")
        assert resolved.holiday_name == "国庆节"

    def test_overlap_cheapest_wins(self):
        engine = _engine(NATIONAL_DAY, CAMPAIGN)
        assert engine.resolve_rate(date(2025, 10, 1)).rate == Decimal("0.8")
        assert engine.resolve_rate(date(2025, 10, 1)).holiday_name == "国庆大促"
        assert engine.resolve_rate(date(2025, 10, 2)).rate == Decimal("0.9")

    def test_equal_rates_lowest_id_wins(self):
        later = _rule(9, "黄金周", date(2025, 10, 1), date(2025, 10, 7), "0.9", HolidayType.CAMPAIGN)
        engine = _engine(later, NATIONAL_DAY)
        assert engine.resolve_rate(date(2025, 10, 3)).holiday_name == "国庆节"

    def test_uses_given_candidates_without_query(self):
        source = ListRuleSource([NATIONAL_DAY])
        engine = HolidayPricingEngine(source)
        engine.resolve_rate(date(2025, 10, 3), rules=[CAMPAIGN])
        assert source.queries == []

    def test_holiday_name(self):
        engine = _engine(NATIONAL_DAY)
        assert engine.holiday_name("2025-10-03") == "国庆节"
        assert engine.holiday_name(date(2025, 10, 8)) == ""
        assert engine.holiday_name("not-a-date") == ""


class TestQuote:

    def test_partial_overlap_with_holiday(self):
        quote = _engine(NATIONAL_DAY).quote(date(2025, 9, 29), date(2025, 10, 3), 100)

        assert quote.original_price == Decimal("400.00")
        assert quote.total_price == Decimal("380.00")
        assert quote.discount_amount == Decimal("20.00")
        assert quote.holiday_nights == 2
        assert quote.holiday_names == ["国庆节"]
        assert quote.applied_discount_rates == [Decimal("0.9")]

    def test_overlapping_rules_use_cheapest(self):
        quote = _engine(NATIONAL_DAY, CAMPAIGN).quote("2025-10-01", "2025-10-03", "100")

        assert quote.total_price == Decimal("170.00")
        assert quote.holiday_nights == 2
        assert quote.holiday_names == ["国庆大促", "国庆节"]
        assert quote.applied_discount_rates == [Decimal("0.8"), Decimal("0.9")]

    def test_no_rules_full_price(self):
        quote = _engine().quote(date(2025, 3, 1), date(2025, 3, 4), Decimal("288"))

        assert quote.original_price == quote.total_price == Decimal("864.00")
        assert quote.discount_amount == Decimal("0.00")
        assert quote.holiday_nights == 0
        assert quote.holiday_names == []
        assert quote.applied_discount_rates == []

    def test_full_rate_rule_counts_night_but_not_rate(self):
        marker = _rule(3, "周年庆", date(2025, 5, 1), date(2025, 5, 1), "1", HolidayType.CUSTOM)
        quote = _engine(marker).quote(date(2025, 5, 1), date(2025, 5, 2), 200)

        assert quote.total_price == Decimal("200.00")
        assert quote.holiday_nights == 1
        assert quote.holiday_names == ["周年庆"]
        assert quote.applied_discount_rates == []

    def test_rounding_to_cents(self):
        rule = _rule(4, "春节", date(2026, 2, 17), date(2026, 2, 23), "0.85")
        quote = _engine(rule).quote(date(2026, 2, 17), date(2026, 2, 20), Decimal("99.99"))

        # 99.99 * 0.85 * 3 = 254.9745
        assert quote.original_price == Decimal("299.97")
        assert quote.total_price == Decimal("254.97")
        assert quote.discount_amount == Decimal("45.00")

    def test_total_is_sum_of_nightly_prices(self):
        engine = _engine(NATIONAL_DAY, CAMPAIGN)
        nights = engine.nightly_schedule("2025-09-28", "2025-10-10", 150)
        quote = engine.quote("2025-09-28", "2025-10-10", 150)

        assert len(nights) == 12
        assert quote.total_price == sum(n.price for n in nights)
        assert quote.discount_amount == quote.original_price - quote.total_price

    def test_zero_price_is_valid(self):
        quote = _engine(NATIONAL_DAY).quote_strict("2025-10-01", "2025-10-02", 0)
        assert quote.total_price == Decimal("0.00")
        assert quote.holiday_nights == 1

    def test_max_base_price_is_valid(self):
        quote = _engine(NATIONAL_DAY).quote_strict("2025-10-01", "2025-10-03", "1e12")
        assert quote.original_price == Decimal("2000000000000.00")
        assert quote.total_price == Decimal("1800000000000.00")

    def test_single_query_per_stay(self):
        source = ListRuleSource([NATIONAL_DAY])
        HolidayPricingEngine(source).quote(date(2025, 9, 29), date(2025, 10, 3), 100)
        assert source.queries == [(date(2025, 9, 29), date(2025, 10, 2))]

    def test_same_day_returns_zero_quote(self):
        quote = _engine(NATIONAL_DAY).quote(date(2025, 10, 1), date(2025, 10, 1), 100)
        assert quote == StayPriceQuote.zero()
        assert quote.original_price == Decimal("0")

    @pytest.mark.parametrize("check_in,check_out,price", [
        ("2025-10-03", "2025-10-01", 100),
        ("2025-10-01", "2025-10-01", 100),
        ("2025/10/01", "2025-10-03", 100),
        ("2025-10-01", None, 100),
        ("2025-10-01", "2025-10-03", -1),
        ("2025-10-01", "2025-10-03", "nan"),
        ("2025-10-01", "2025-10-03", "abc"),
        ("2025-10-01", "2025-10-03", None),
        ("2025-10-01", "2025-10-03", True),
        ("2025-10-01", "2025-10-03", "1e26"),
    ])
    def test_invalid_input(self, check_in, check_out, price):
        engine = _engine(NATIONAL_DAY)
        assert engine.quote(check_in, check_out, price) == StayPriceQuote.zero()
        with pytest.raises(InvalidRangeError):
            engine.quote_strict(check_in, check_out, price)


class TestNightlySchedule:

    def test_schedule(self):
        nights = _engine(NATIONAL_DAY).nightly_schedule("2025-09-30", "2025-10-02", 100)

        assert [n.day for n in nights] == [date(2025, 9, 30), date(2025, 10, 1)]
        assert [n.price for n in nights] == [Decimal("100.00"), Decimal("90.00")]
        assert nights[0].holiday_name == ""
        assert nights[1].holiday_name == "国庆节"
        assert nights[1].rule_id == 1

    def test_price_calendar_inclusive(self):
        nights = _engine(NATIONAL_DAY).price_calendar("2025-10-06", "2025-10-08", 100)
        assert [n.day for n in nights] == [date(2025, 10, 6), date(2025, 10, 7), date(2025, 10, 8)]
        assert nights[-1].rate == Decimal("1")

    def test_price_calendar_invalid(self):
        with pytest.raises(InvalidRangeError):
            _engine().price_calendar("2025-10-08", "2025-10-06", 100)


class TestWithRuleStore:

    def test_quote_from_database(self, db_session, national_day_rule, make_rule):
        make_rule(name="国庆大促", start_date=date(2025, 10, 1), end_date=date(2025, 10, 1),
                  discount_rate=Decimal("0.8"), holiday_type=HolidayType.CAMPAIGN)
        make_rule(name="停用活动", start_date=date(2025, 10, 1), end_date=date(2025, 10, 7),
                  discount_rate=Decimal("0.5"), is_active=False)

        engine = HolidayPricingEngine(HolidayRuleStore(db_session))
        quote = engine.quote(date(2025, 9, 29), date(2025, 10, 3), 100)

        assert quote.total_price == Decimal("370.00")
        assert quote.holiday_names == ["国庆大促", "国庆节"]
        assert quote.applied_discount_rates == [Decimal("0.8"), Decimal("0.9")]
