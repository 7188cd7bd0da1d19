"""
节假日规则存储 - HolidayRuleStore
管理 HolidayRule 对象的增删改查、区间查询，以及同步批次的整体替换
"""
import logging
import re
from dataclasses import dataclass, asdict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel
from sqlalchemy.orm import Session

from holiday_pricing.config import settings
from holiday_pricing.errors import ValidationError, NotFoundError
from holiday_pricing.models.ontology import HolidayRule, HolidayType, MANUAL_SOURCE

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MAX_RATE_PLACES = 4


def parse_date(value: Any) -> Optional[date]:
    """解析 YYYY-MM-DD 或 date 对象，无法解析返回 None"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not DATE_PATTERN.match(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def parse_discount_rate(value: Any, default: Optional[Union[Decimal, float]] = None) -> Decimal:
    """解析折扣系数，必须在 (0, 1] 内；缺省时使用默认值"""
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is None:
            raise ValidationError("折扣系数不能为空")
        value = default
    if isinstance(value, bool):
        raise ValidationError("折扣系数必须是数字")
    try:
        rate = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("折扣系数必须是数字")
    if not rate.is_finite() or rate <= 0 or rate > 1:
        raise ValidationError("折扣系数必须大于 0 且不超过 1")
    if rate.as_tuple().exponent < -MAX_RATE_PLACES:
        raise ValidationError(f"折扣系数最多保留 {MAX_RATE_PLACES} 位小数")
    return rate


@dataclass
class HolidayRuleDraft:
    """待写入的规则（已通过校验）"""
    name: str
    start_date: date
    end_date: date
    discount_rate: Decimal
    holiday_type: HolidayType = HolidayType.CUSTOM
    is_active: bool = True
    is_auto_synced: bool = False
    source: str = MANUAL_SOURCE
    source_url: Optional[str] = None
    sync_year: Optional[int] = None
    notes: Optional[str] = None

    def validate(self) -> "HolidayRuleDraft":
        if not self.name or not self.name.strip():
            raise ValidationError("节假日/活动名称不能为空")
        if self.end_date < self.start_date:
            raise ValidationError("结束日期不能早于开始日期")
        self.discount_rate = parse_discount_rate(self.discount_rate)
        return self


def normalize_rule_payload(
    payload: Union[BaseModel, Mapping[str, Any]],
    default_discount_rate: Optional[Union[Decimal, float]] = None,
) -> HolidayRuleDraft:
    """
    将手动录入的规则输入转换为 HolidayRuleDraft

    手动录入的规则一律标记为 manual 来源，清空同步信息。

    Raises:
        ValidationError: 名称为空、类型非法、日期无法解析、结束早于开始、折扣越界
    """
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()

    name = str(payload.get("name") or "").strip()
    if not name:
        raise ValidationError("节假日/活动名称不能为空")

    raw_type = payload.get("holiday_type")
    raw_type = HolidayType.CUSTOM.value if raw_type is None else str(raw_type).strip()
    try:
        holiday_type = HolidayType(raw_type)
    except ValueError:
        raise ValidationError("holiday_type 必须是 official、custom 或 campaign")

    start_date = parse_date(payload.get("start_date"))
    end_raw = payload.get("end_date")
    end_date = parse_date(end_raw if end_raw not in (None, "") else payload.get("start_date"))
    if start_date is None or end_date is None:
        raise ValidationError("开始日期和结束日期格式必须为 YYYY-MM-DD")
    if end_date < start_date:
        raise ValidationError("结束日期不能早于开始日期")

    if default_discount_rate is None:
        default_discount_rate = settings.HOLIDAY_DEFAULT_DISCOUNT_RATE
    discount_rate = parse_discount_rate(payload.get("discount_rate"), default_discount_rate)

    notes = payload.get("notes")
    return HolidayRuleDraft(
        name=name,
        holiday_type=holiday_type,
        start_date=start_date,
        end_date=end_date,
        discount_rate=discount_rate,
        is_active=payload.get("is_active") is not False,
        notes=str(notes) if notes else None,
    )


class HolidayRuleStore:
    """节假日规则存储"""

    def __init__(self, db: Session, default_discount_rate: Optional[Union[Decimal, float]] = None):
        self.db = db
        self.default_discount_rate = default_discount_rate

    def get(self, rule_id: int) -> HolidayRule:
        """获取单条规则"""
        rule = self.db.query(HolidayRule).filter(HolidayRule.id == rule_id).first()
        if not rule:
            raise NotFoundError(rule_id=rule_id)
        return rule

    def create(self, data, operator_id: Optional[int] = None) -> HolidayRule:
        """手动新增规则"""
        draft = normalize_rule_payload(data, self.default_discount_rate)
        rule = HolidayRule(**asdict(draft), created_by=operator_id, updated_by=operator_id)
        self.db.add(rule)
        self._commit()
        self.db.refresh(rule)
        logger.info(f"Holiday rule created: {rule.id} {rule.name} {rule.start_date}~{rule.end_date}")
        return rule

    def update(self, rule_id: int, data, operator_id: Optional[int] = None) -> HolidayRule:
        """
        全量更新规则

        手动编辑会把同步规则转换为手动来源（is_auto_synced/source/sync_year 重置），
        之后的重新同步不会再覆盖它。
        """
        rule = self.get(rule_id)
        draft = normalize_rule_payload(data, self.default_discount_rate)

        for key, value in asdict(draft).items():
            setattr(rule, key, value)
        rule.updated_by = operator_id

        self._commit()
        self.db.refresh(rule)
        logger.info(f"Holiday rule updated: {rule.id} {rule.name}")
        return rule

    def delete(self, rule_id: int) -> HolidayRule:
        """删除规则"""
        rule = self.get(rule_id)
        self.db.delete(rule)
        self._commit()
        logger.info(f"Holiday rule deleted: {rule_id}")
        return rule

    def list_rules(self, start_date: Optional[date] = None, end_date: Optional[date] = None,
                   active_only: bool = True) -> List[HolidayRule]:
        """
        区间查询：返回与 [start_date, end_date] 有交集的规则（两端包含）

        只给出一端时按半开区间过滤。按 start_date、end_date、id 升序。
        """
        query = self.db.query(HolidayRule)

        if active_only:
            query = query.filter(HolidayRule.is_active == True)  # noqa: E712
        if end_date is not None:
            query = query.filter(HolidayRule.start_date <= end_date)
        if start_date is not None:
            query = query.filter(HolidayRule.end_date >= start_date)

        return query.order_by(
            HolidayRule.start_date.asc(),
            HolidayRule.end_date.asc(),
            HolidayRule.id.asc(),
        ).all()

    def list_active(self, start_date: Optional[date] = None,
                    end_date: Optional[date] = None) -> List[HolidayRule]:
        """有效规则列表"""
        return self.list_rules(start_date, end_date, active_only=True)

    def list_all(self) -> List[HolidayRule]:
        """管理端列表（含停用规则），按 start_date、id 降序"""
        return self.db.query(HolidayRule).order_by(
            HolidayRule.start_date.desc(),
            HolidayRule.id.desc(),
        ).all()

    def replace_synced_batch(self, source: str, sync_year: int,
                             drafts: Sequence[HolidayRuleDraft],
                             operator_id: Optional[int] = None) -> List[HolidayRule]:
        """
        替换某个 (source, sync_year) 的同步批次

        先删除该批次的全部自动同步规则，再写入新批次，在同一事务中完成。
        手动规则（is_auto_synced=False）不受影响。
        """
        rows = []
        for draft in drafts:
            draft.validate()
            values: Dict[str, Any] = asdict(draft)
            values.update(is_auto_synced=True, source=source, sync_year=sync_year)
            rows.append(HolidayRule(**values, created_by=operator_id, updated_by=operator_id))

        try:
            stale = self.db.query(HolidayRule).filter(
                HolidayRule.source == source,
                HolidayRule.sync_year == sync_year,
                HolidayRule.is_auto_synced == True,  # noqa: E712
            ).all()
            for rule in stale:
                self.db.delete(rule)
            self.db.flush()
            self.db.add_all(rows)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for row in rows:
            self.db.refresh(row)
        logger.info(f"Synced batch replaced: source={source} year={sync_year} deleted={len(stale)} inserted={len(rows)}")
        return rows

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
