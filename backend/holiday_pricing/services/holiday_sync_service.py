"""
法定节假日同步服务

从外部节假日日历拉取某一年的逐日数据，合并为连续的命名区间，
再整体替换规则存储中该 (source, year) 的自动同步批次。手动规则不受影响。

支持两种返回格式：
    {"holiday": {"2025-10-01": {"holiday": true, "name": "国庆节"}, ...}}
    {"data": [{"date": "2025-10-01", "holiday": true, "name": "国庆节"}, ...]}
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, NamedTuple, Optional, Union

import httpx

from holiday_pricing.config import settings
from holiday_pricing.errors import SyncUnavailableError, ValidationError
from holiday_pricing.models.ontology import HolidayType
from holiday_pricing.models.schemas import HolidaySyncResult
from holiday_pricing.services.holiday_rule_store import (
    HolidayRuleDraft, HolidayRuleStore, parse_date, parse_discount_rate,
)

logger = logging.getLogger(__name__)

MIN_SYNC_YEAR = 2000
MAX_SYNC_YEAR = 2100


class HolidayDay(NamedTuple):
    """外部日历中的一个放假日"""
    day: date
    name: str


@dataclass
class HolidayPeriod:
    """合并后的连续放假区间"""
    name: str
    start_date: date
    end_date: date


def _day_from_entry(key: Any, item: Any) -> Optional[HolidayDay]:
    if not isinstance(item, dict):
        return None
    if item.get("holiday") is not True and item.get("isOffDay") is not True:
        return None
    # 部分数据源以 MM-DD 作为键，完整日期放在条目的 date 字段里
    day = parse_date(key) or parse_date(item.get("date"))
    name = str(item.get("name") or item.get("holidayName") or "").strip()
    if day is None or not name:
        return None
    return HolidayDay(day, name)


def extract_holiday_days(payload: Any) -> List[HolidayDay]:
    """从外部数据中提取放假日，丢弃工作日、无名称和日期非法的条目"""
    days = []
    if not isinstance(payload, dict):
        return days

    holiday_map = payload.get("holiday")
    if isinstance(holiday_map, dict):
        for key, item in holiday_map.items():
            parsed = _day_from_entry(key, item)
            if parsed:
                days.append(parsed)

    data = payload.get("data")
    if isinstance(data, list):
        for item in data:
            parsed = _day_from_entry(item.get("date") if isinstance(item, dict) else None, item)
            if parsed:
                days.append(parsed)

    return days


def merge_holiday_periods(days: List[HolidayDay]) -> List[HolidayPeriod]:
    """
    合并连续放假日

    只有名称相同且恰好相差一天的日期才会合并；
    名称不同（即使相邻）或中间有空档都会拆成不同区间。
    """
    periods: List[HolidayPeriod] = []
    for item in sorted(set(days)):
        current = periods[-1] if periods else None
        if (current is not None and current.name == item.name
                and current.end_date + timedelta(days=1) == item.day):
            current.end_date = item.day
            continue
        periods.append(HolidayPeriod(name=item.name, start_date=item.day, end_date=item.day))
    return periods


def build_sync_drafts(periods: List[HolidayPeriod], year: int, discount_rate: Decimal,
                      source: str, source_url: Optional[str] = None) -> List[HolidayRuleDraft]:
    """把合并后的区间转换为同步规则草稿"""
    return [
        HolidayRuleDraft(
            name=period.name,
            holiday_type=HolidayType.OFFICIAL,
            start_date=period.start_date,
            end_date=period.end_date,
            discount_rate=discount_rate,
            is_active=True,
            is_auto_synced=True,
            source=source,
            source_url=source_url,
            sync_year=year,
            notes=f"同步来源：{source}",
        )
        for period in periods
    ]


class HolidayCalendarClient:
    """外部节假日日历 HTTP 客户端"""

    def __init__(self, url_template: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.url_template = url_template or settings.HOLIDAY_SYNC_URL_TEMPLATE
        self.timeout = timeout if timeout is not None else settings.HOLIDAY_SYNC_TIMEOUT
        self.transport = transport
        self.headers = {"Accept": "application/json", "User-Agent": f"{settings.APP_NAME}/1.0"}

    def build_url(self, year: int) -> str:
        return self.url_template.replace("{year}", str(year))

    def fetch(self, year: int) -> Dict[str, Any]:
        """
        拉取某一年的日历数据

        Raises:
            SyncUnavailableError: 网络错误、超时、非 2xx 响应、返回不是 JSON 对象
        """
        url = self.build_url(year)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.get(url, headers=self.headers)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Holiday calendar returned {e.response.status_code}: {url}")
            raise SyncUnavailableError(f"同步失败，远程接口返回 {e.response.status_code}", url=url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Holiday calendar request failed: {url}: {e}")
            raise SyncUnavailableError(f"同步失败，无法访问远程接口: {e}", url=url)
        except ValueError:
            logger.warning(f"Holiday calendar returned invalid JSON: {url}")
            raise SyncUnavailableError("同步失败，远程返回不是有效 JSON", url=url)

        if not isinstance(payload, dict):
            raise SyncUnavailableError("同步失败，远程返回格式不正确", url=url)
        return payload


class HolidaySyncService:
    """法定节假日同步"""

    def __init__(self, store: HolidayRuleStore, client: Optional[HolidayCalendarClient] = None,
                 source: Optional[str] = None,
                 default_discount_rate: Optional[Union[Decimal, float]] = None):
        self.store = store
        self.client = client or HolidayCalendarClient()
        self.source = source or settings.HOLIDAY_SYNC_SOURCE
        self.default_discount_rate = (
            default_discount_rate if default_discount_rate is not None
            else settings.HOLIDAY_DEFAULT_DISCOUNT_RATE
        )

    def sync(self, year: Optional[int] = None, discount_rate: Any = None,
             operator_id: Optional[int] = None) -> HolidaySyncResult:
        """
        同步某一年的法定节假日

        远程数据解析不出任何放假日时视为同步失败，不会清空已有的同步规则。

        Raises:
            ValidationError: 年份不在 2000-2100 之间、折扣系数非法
            SyncUnavailableError: 拉取失败或没有可用的节假日数据
        """
        target_year = date.today().year if year is None else year
        if isinstance(target_year, bool) or not isinstance(target_year, int) \
                or not MIN_SYNC_YEAR <= target_year <= MAX_SYNC_YEAR:
            raise ValidationError(f"year 必须在 {MIN_SYNC_YEAR}-{MAX_SYNC_YEAR} 之间")
        rate = parse_discount_rate(discount_rate, self.default_discount_rate)

        url = self.client.build_url(target_year)
        payload = self.client.fetch(target_year)
        periods = merge_holiday_periods(extract_holiday_days(payload))
        if not periods:
            logger.warning(f"Holiday sync produced no periods: year={target_year} url={url}")
            raise SyncUnavailableError("同步失败：未从远程数据中解析到节假日", url=url)

        drafts = build_sync_drafts(periods, target_year, rate, self.source, url)
        created = self.store.replace_synced_batch(self.source, target_year, drafts, operator_id)

        logger.info(f"Holiday sync finished: source={self.source} year={target_year} count={len(created)}")
        return HolidaySyncResult(count=len(created), source=self.source, year=target_year)
