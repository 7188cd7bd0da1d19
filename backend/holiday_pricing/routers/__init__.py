# API Routers
from holiday_pricing.routers import holidays

__all__ = ['holidays']
