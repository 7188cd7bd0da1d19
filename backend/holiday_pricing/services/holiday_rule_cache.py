"""
节假日规则缓存

给需要频繁报价的进程使用：有效规则快照保存在内存中，
通过 refresh() 显式加载、invalidate() 标记过期，可选最长有效期。
缓存对象由持有者创建和管理（例如应用启动时挂到 app.state 上），没有模块级全局状态。
"""
import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from holiday_pricing.models.ontology import HolidayType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleSnapshot:
    """与会话无关的规则快照"""
    id: int
    name: str
    start_date: date
    end_date: date
    discount_rate: Decimal
    holiday_type: HolidayType = HolidayType.CUSTOM

    @classmethod
    def from_rule(cls, rule) -> "RuleSnapshot":
        return cls(
            id=rule.id,
            name=rule.name,
            start_date=rule.start_date,
            end_date=rule.end_date,
            discount_rate=Decimal(str(rule.discount_rate)),
            holiday_type=rule.holiday_type,
        )

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class HolidayRuleCache:
    """
    有效规则的内存缓存

    提供与 HolidayRuleStore.list_active 相同的查询接口，
    因此可以直接作为 HolidayPricingEngine 的规则来源。
    """

    def __init__(self, max_age_seconds: Optional[float] = None):
        self.max_age_seconds = max_age_seconds
        self._rules: Optional[List[RuleSnapshot]] = None
        self._loaded_at: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._rules is not None

    @property
    def is_stale(self) -> bool:
        """未加载或超过最长有效期"""
        if self._rules is None or self._loaded_at is None:
            return True
        if not self.max_age_seconds:
            return False
        return time.monotonic() - self._loaded_at > self.max_age_seconds

    def refresh(self, store) -> int:
        """从规则存储重新加载全部有效规则，返回规则数"""
        snapshots = [RuleSnapshot.from_rule(rule) for rule in store.list_active()]
        with self._lock:
            self._rules = snapshots
            self._loaded_at = time.monotonic()
        logger.info(f"Holiday rule cache refreshed: {len(snapshots)} rules")
        return len(snapshots)

    def refresh_if_stale(self, store) -> bool:
        """过期时刷新，返回是否发生了刷新"""
        if not self.is_stale:
            return False
        self.refresh(store)
        return True

    def invalidate(self):
        """标记为过期，下一次 refresh_if_stale 时重新加载；刷新前仍返回上一份快照"""
        with self._lock:
            self._loaded_at = None

    def list_active(self, start_date: Optional[date] = None,
                    end_date: Optional[date] = None) -> List[RuleSnapshot]:
        """按区间过滤缓存中的规则，排序与 HolidayRuleStore 一致"""
        with self._lock:
            rules = self._rules
        if rules is None:
            raise RuntimeError("节假日规则缓存尚未加载，请先调用 refresh()")

        matched = [
            rule for rule in rules
            if (end_date is None or rule.start_date <= end_date)
            and (start_date is None or rule.end_date >= start_date)
        ]
        return sorted(matched, key=lambda r: (r.start_date, r.end_date, r.id))
