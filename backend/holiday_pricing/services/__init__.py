# Services
from holiday_pricing.services.holiday_rule_store import HolidayRuleStore, HolidayRuleDraft
from holiday_pricing.services.holiday_rule_cache import HolidayRuleCache, RuleSnapshot
from holiday_pricing.services.holiday_pricing_service import HolidayPricingEngine
from holiday_pricing.services.holiday_sync_service import HolidaySyncService, HolidayCalendarClient

__all__ = [
    'HolidayRuleStore', 'HolidayRuleDraft',
    'HolidayRuleCache', 'RuleSnapshot',
    'HolidayPricingEngine',
    'HolidaySyncService', 'HolidayCalendarClient',
]
