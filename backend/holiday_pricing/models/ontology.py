"""
节假日规则对象定义
一条规则 = 一个带名称的日期区间折扣，区间两端均包含
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Text,
    Boolean, Numeric, Index, Enum as SQLEnum
)
from holiday_pricing.database import Base


MANUAL_SOURCE = "manual"


class HolidayType(str, Enum):
    """节假日类型（仅标识来源/用途，不影响定价行为）"""
    OFFICIAL = "official"    # 法定节假日
    CUSTOM = "custom"        # 自定义日期
    CAMPAIGN = "campaign"    # 营销活动


class HolidayRule(Base):
    """
    节假日/活动折扣规则
    多条规则的日期区间允许重叠，重叠在报价时按最低折扣率解决
    """
    __tablename__ = "holiday_rules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)               # 显示名称，如 国庆节、双11大促
    holiday_type = Column(
        SQLEnum(HolidayType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=HolidayType.CUSTOM,
    )
    start_date = Column(Date, nullable=False)                # 开始日期（含）
    end_date = Column(Date, nullable=False)                  # 结束日期（含）
    discount_rate = Column(Numeric(6, 4), nullable=False)    # 折扣系数 (0, 1]，1 = 原价
    is_active = Column(Boolean, nullable=False, default=True)
    is_auto_synced = Column(Boolean, nullable=False, default=False)
    source = Column(String(100), nullable=False, default=MANUAL_SOURCE)
    source_url = Column(String(500))
    sync_year = Column(Integer)                              # 同步批次年份，手动规则为空
    notes = Column(Text)
    created_by = Column(Integer)
    updated_by = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_holiday_rules_range", "start_date", "end_date"),
        Index("ix_holiday_rules_is_active", "is_active"),
        Index("ix_holiday_rules_holiday_type", "holiday_type"),
        Index("ix_holiday_rules_source_year", "source", "sync_year"),
    )

    def covers(self, day) -> bool:
        """该规则是否覆盖某一天"""
        return self.start_date <= day <= self.end_date

    def __repr__(self):
        return f"<HolidayRule {self.id} {self.name} {self.start_date}~{self.end_date} x{self.discount_rate}>"
