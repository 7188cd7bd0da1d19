# Models
from holiday_pricing.models.ontology import HolidayRule, HolidayType, MANUAL_SOURCE

__all__ = ['HolidayRule', 'HolidayType', 'MANUAL_SOURCE']
