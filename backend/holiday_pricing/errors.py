"""
节假日定价错误类型

ValidationError / InvalidRangeError 同时继承 ValueError，
调用方可以继续按 ValueError 处理输入错误。
"""
from typing import Optional


class HolidayPricingError(Exception):
    """节假日定价基础异常"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HolidayPricingError, ValueError):
    """规则输入不合法（名称为空、日期格式错误、折扣越界等）"""


class NotFoundError(HolidayPricingError):
    """引用的规则不存在"""

    def __init__(self, message: str = "节假日配置不存在", rule_id: Optional[int] = None):
        super().__init__(message)
        self.rule_id = rule_id


class InvalidRangeError(HolidayPricingError, ValueError):
    """报价的入住区间或房价不合法"""


class SyncUnavailableError(HolidayPricingError):
    """外部节假日数据源不可用、返回无法解析，或未解析出任何节假日"""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url
