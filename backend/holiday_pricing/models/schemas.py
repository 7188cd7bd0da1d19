"""
Pydantic 模式定义
用于 API 请求/响应验证

规则输入的日期与折扣字段保持宽松类型，语义校验统一在 HolidayRuleStore 中完成，
这样格式错误与取值越界都以 ValidationError（400）返回。
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Union
from pydantic import BaseModel, Field, ConfigDict
from holiday_pricing.models.ontology import HolidayType


# ============== 节假日规则 Schemas ==============

class HolidayRuleCreate(BaseModel):
    name: str = ""
    holiday_type: Optional[str] = None
    start_date: Optional[Union[date, str]] = None
    end_date: Optional[Union[date, str]] = None
    discount_rate: Optional[Union[Decimal, str]] = None
    is_active: bool = True
    notes: Optional[str] = None


class HolidayRuleUpdate(HolidayRuleCreate):
    """全量替换：未提供的字段按默认值处理"""
    pass


class HolidayRuleResponse(BaseModel):
    id: int
    name: str
    holiday_type: HolidayType
    start_date: date
    end_date: date
    discount_rate: Decimal
    is_active: bool
    is_auto_synced: bool
    source: str
    source_url: Optional[str] = None
    sync_year: Optional[int] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 报价 Schemas ==============

class NightPrice(BaseModel):
    """单晚价格明细"""
    day: date
    rate: Decimal
    price: Decimal
    holiday_name: str = ""
    rule_id: Optional[int] = None


class StayPriceQuote(BaseModel):
    """入住区间报价（不持久化）"""
    original_price: Decimal = Decimal("0.00")
    total_price: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")
    holiday_nights: int = 0
    holiday_names: List[str] = Field(default_factory=list)
    applied_discount_rates: List[Decimal] = Field(default_factory=list)

    @classmethod
    def zero(cls) -> "StayPriceQuote":
        """全零报价（非法输入的兼容返回值）"""
        return cls()


# ============== 同步 Schemas ==============

class HolidaySyncRequest(BaseModel):
    year: Optional[int] = None
    discount_rate: Optional[Union[Decimal, str]] = None


class HolidaySyncResult(BaseModel):
    count: int
    source: str
    year: int
