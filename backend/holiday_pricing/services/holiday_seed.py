"""
节假日种子数据：初始化默认节假日规则（2025-2027）

作为手动规则写入，之后的法定节假日同步不会覆盖它们。
"""
from datetime import date
from sqlalchemy.orm import Session
from holiday_pricing.config import settings
from holiday_pricing.models.ontology import HolidayRule, HolidayType, MANUAL_SOURCE


SEED_PERIODS = [
    {"name": "春节", "start_date": date(2025, 1, 29), "end_date": date(2025, 2, 4)},
    {"name": "清明节", "start_date": date(2025, 4, 4), "end_date": date(2025, 4, 6)},
    {"name": "端午节", "start_date": date(2025, 5, 31), "end_date": date(2025, 6, 2)},
    {"name": "中秋节", "start_date": date(2025, 10, 6), "end_date": date(2025, 10, 6)},

    {"name": "春节", "start_date": date(2026, 2, 17), "end_date": date(2026, 2, 23)},
    {"name": "清明节", "start_date": date(2026, 4, 4), "end_date": date(2026, 4, 6)},
    {"name": "端午节", "start_date": date(2026, 6, 19), "end_date": date(2026, 6, 21)},
    {"name": "中秋节", "start_date": date(2026, 9, 25), "end_date": date(2026, 9, 25)},

    {"name": "春节", "start_date": date(2027, 2, 6), "end_date": date(2027, 2, 12)},
]

# 固定公历节假日（每年相同）
FIXED_HOLIDAYS = {
    (1, 1): "元旦",
    (5, 1): "劳动节",
    (10, 1): "国庆节",
}

SEED_YEARS = (2025, 2026, 2027)


def default_holiday_periods() -> list:
    """默认节假日区间：按年份展开固定节日，再加上农历节日表"""
    periods = [
        {"name": name, "start_date": date(year, month, day), "end_date": date(year, month, day)}
        for year in SEED_YEARS
        for (month, day), name in FIXED_HOLIDAYS.items()
    ]
    periods.extend(SEED_PERIODS)
    return sorted(periods, key=lambda p: (p["start_date"], p["name"]))


def seed_holiday_data(db: Session, discount_rate=None) -> dict:
    """Seed default holiday rules. Idempotent, skips existing (name, start_date).

    Returns dict with count of created items.
    """
    stats = {"holidays": 0}
    rate = discount_rate if discount_rate is not None else settings.HOLIDAY_DEFAULT_DISCOUNT_RATE

    for period in default_holiday_periods():
        existing = db.query(HolidayRule).filter(
            HolidayRule.name == period["name"],
            HolidayRule.start_date == period["start_date"],
        ).first()
        if not existing:
            db.add(HolidayRule(
                **period,
                holiday_type=HolidayType.OFFICIAL,
                discount_rate=rate,
                is_active=True,
                is_auto_synced=False,
                source=MANUAL_SOURCE,
                notes="默认节假日",
            ))
            stats["holidays"] += 1

    if stats["holidays"] > 0:
        db.commit()
    return stats
