"""
节假日定价服务 - HolidayPricingEngine

逐晚解析折扣系数并汇总入住区间报价：
- 某晚没有命中任何有效规则：按原价（系数 1）
- 命中多条规则：取折扣系数最低的规则；系数相同取 id 最小的规则（决定展示名称）
- 入住区间为半开区间 [check_in, check_out)，退房当天不计费
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from holiday_pricing.errors import InvalidRangeError
from holiday_pricing.models.schemas import NightPrice, StayPriceQuote
from holiday_pricing.services.holiday_rule_store import parse_date

logger = logging.getLogger(__name__)

FULL_RATE = Decimal("1")
CENT = Decimal("0.01")
# 每晚房价上限，保证按分取整不超出 Decimal 默认精度
MAX_BASE_PRICE = Decimal("1e12")


def round_money(value: Decimal) -> Decimal:
    """四舍五入到分"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """逐晚遍历 [check_in, check_out)"""
    cursor = check_in
    while cursor < check_out:
        yield cursor
        cursor += timedelta(days=1)


def parse_base_price(value: Any) -> Decimal:
    """每晚基础价，必须是不超过 MAX_BASE_PRICE 的有限非负数"""
    if value is None or isinstance(value, bool):
        raise InvalidRangeError("房价必须是非负数字")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidRangeError("房价必须是非负数字")
    if not price.is_finite() or price < 0:
        raise InvalidRangeError("房价必须是非负数字")
    if price > MAX_BASE_PRICE:
        raise InvalidRangeError(f"房价不能超过 {MAX_BASE_PRICE:f}")
    return price


def parse_stay(check_in: Any, check_out: Any, base_price: Any) -> Tuple[date, date, Decimal]:
    """校验入住区间与房价"""
    start = parse_date(check_in)
    end = parse_date(check_out)
    if start is None or end is None:
        raise InvalidRangeError("入住和离店日期格式必须为 YYYY-MM-DD")
    if start >= end:
        raise InvalidRangeError("离店日期必须晚于入住日期")
    return start, end, parse_base_price(base_price)


@dataclass
class ResolvedRate:
    """某一晚最终采用的折扣"""
    day: date
    rate: Decimal = FULL_RATE
    rule: Optional[Any] = None

    @property
    def holiday_name(self) -> str:
        return self.rule.name if self.rule is not None else ""

    @property
    def rule_id(self) -> Optional[int]:
        return self.rule.id if self.rule is not None else None


class HolidayPricingEngine:
    """
    节假日定价引擎

    rule_source 需要提供 list_active(start_date, end_date)，
    可以是 HolidayRuleStore（直接查库）或 HolidayRuleCache（内存快照）。
    """

    def __init__(self, rule_source):
        self.rule_source = rule_source

    @staticmethod
    def select_rule(day: date, rules: Sequence[Any]) -> Optional[Any]:
        """在候选规则中选出覆盖 day 且折扣最低的规则"""
        matched = [rule for rule in rules if rule.covers(day)]
        if not matched:
            return None
        return min(matched, key=lambda rule: (Decimal(str(rule.discount_rate)), rule.id))

    def resolve_rate(self, day: date, rules: Optional[Sequence[Any]] = None) -> ResolvedRate:
        """解析单日折扣；未传入候选规则时按该日查询规则来源"""
        if rules is None:
            rules = self.rule_source.list_active(day, day)
        rule = self.select_rule(day, rules)
        if rule is None:
            return ResolvedRate(day=day)
        return ResolvedRate(day=day, rate=Decimal(str(rule.discount_rate)), rule=rule)

    def holiday_name(self, day: Any) -> str:
        """某天命中的节假日名称，没有命中或日期非法时返回空串"""
        parsed = parse_date(day)
        if parsed is None:
            return ""
        return self.resolve_rate(parsed).holiday_name

    def _resolve_stay(self, check_in: date, check_out: date) -> List[ResolvedRate]:
        # 一次查出覆盖整个区间的规则，再逐晚在内存中筛选
        rules = self.rule_source.list_active(check_in, check_out - timedelta(days=1))
        return [self.resolve_rate(day, rules) for day in iter_nights(check_in, check_out)]

    def nightly_schedule(self, check_in: Any, check_out: Any, base_price: Any) -> List[NightPrice]:
        """
        逐晚价格明细

        Raises:
            InvalidRangeError: 日期无法解析、check_in 不早于 check_out、房价非法
        """
        start, end, price = parse_stay(check_in, check_out, base_price)
        return [
            NightPrice(
                day=resolved.day,
                rate=resolved.rate,
                price=round_money(price * resolved.rate),
                holiday_name=resolved.holiday_name,
                rule_id=resolved.rule_id,
            )
            for resolved in self._resolve_stay(start, end)
        ]

    def price_calendar(self, start_date: Any, end_date: Any, base_price: Any) -> List[NightPrice]:
        """价格日历，start_date 与 end_date 都包含"""
        end = parse_date(end_date)
        if end is None:
            raise InvalidRangeError("入住和离店日期格式必须为 YYYY-MM-DD")
        return self.nightly_schedule(start_date, end + timedelta(days=1), base_price)

    def quote_strict(self, check_in: Any, check_out: Any, base_price: Any) -> StayPriceQuote:
        """
        计算入住区间报价

        Raises:
            InvalidRangeError: 日期无法解析、check_in 不早于 check_out、房价非法
        """
        start, end, price = parse_stay(check_in, check_out, base_price)

        original_price = Decimal("0")
        total_price = Decimal("0")
        holiday_nights = 0
        holiday_names: List[str] = []
        applied_rates = set()

        for resolved in self._resolve_stay(start, end):
            original_price += price
            total_price += price * resolved.rate

            if resolved.holiday_name:
                holiday_nights += 1
                if resolved.holiday_name not in holiday_names:
                    holiday_names.append(resolved.holiday_name)
                if resolved.rate < FULL_RATE:
                    applied_rates.add(resolved.rate.normalize())

        rounded_original = round_money(original_price)
        rounded_total = round_money(total_price)

        return StayPriceQuote(
            original_price=rounded_original,
            total_price=rounded_total,
            discount_amount=round_money(rounded_original - rounded_total),
            holiday_nights=holiday_nights,
            holiday_names=holiday_names,
            applied_discount_rates=sorted(applied_rates),
        )

    def quote(self, check_in: Any, check_out: Any, base_price: Any) -> StayPriceQuote:
        """
        兼容版报价：输入非法时返回全零报价而不是抛出异常

        已有调用方依赖这一约定；新调用方应使用 quote_strict。
        """
        try:
            return self.quote_strict(check_in, check_out, base_price)
        except InvalidRangeError as e:
            logger.debug(f"Invalid stay range, returning zero quote: {e}")
            return StayPriceQuote.zero()
