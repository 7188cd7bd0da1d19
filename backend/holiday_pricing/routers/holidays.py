"""
节假日/活动管理路由
"""
from datetime import date, timedelta
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from holiday_pricing.database import get_db
from holiday_pricing.config import settings
from holiday_pricing.errors import (
    InvalidRangeError, NotFoundError, SyncUnavailableError, ValidationError,
)
from holiday_pricing.models.schemas import (
    HolidayRuleCreate, HolidayRuleUpdate, HolidayRuleResponse,
    HolidaySyncRequest, HolidaySyncResult, NightPrice, StayPriceQuote,
)
from holiday_pricing.security.auth import CurrentUser, require_admin
from holiday_pricing.services.holiday_pricing_service import HolidayPricingEngine
from holiday_pricing.services.holiday_rule_cache import HolidayRuleCache
from holiday_pricing.services.holiday_rule_store import HolidayRuleStore, parse_date
from holiday_pricing.services.holiday_sync_service import HolidayCalendarClient, HolidaySyncService

router = APIRouter(prefix="/api/holidays", tags=["节假日管理"])

MAX_CALENDAR_DAYS = 366


def get_rule_store(db: Session = Depends(get_db)) -> HolidayRuleStore:
    return HolidayRuleStore(db)


def get_rule_cache(request: Request) -> HolidayRuleCache:
    cache = getattr(request.app.state, "holiday_rule_cache", None)
    if cache is None:
        cache = HolidayRuleCache(max_age_seconds=settings.HOLIDAY_CACHE_MAX_AGE_SECONDS)
        request.app.state.holiday_rule_cache = cache
    return cache


def get_calendar_client() -> HolidayCalendarClient:
    return HolidayCalendarClient()


def get_pricing_engine(
    store: HolidayRuleStore = Depends(get_rule_store),
    cache: HolidayRuleCache = Depends(get_rule_cache),
) -> HolidayPricingEngine:
    cache.refresh_if_stale(store)
    return HolidayPricingEngine(cache)


def _to_response(rule) -> HolidayRuleResponse:
    return HolidayRuleResponse.model_validate(rule)


@router.get("", response_model=List[HolidayRuleResponse])
def list_holidays(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    active_only: bool = True,
    store: HolidayRuleStore = Depends(get_rule_store),
):
    """公共查询：用于日历展示和价格计算，格式不正确的日期参数会被忽略"""
    rules = store.list_rules(parse_date(start_date), parse_date(end_date), active_only=active_only)
    return [_to_response(r) for r in rules]


@router.get("/manage", response_model=List[HolidayRuleResponse])
def list_manage_holidays(
    store: HolidayRuleStore = Depends(get_rule_store),
    current_user: CurrentUser = Depends(require_admin),
):
    """管理端查询（含停用规则）"""
    return [_to_response(r) for r in store.list_all()]


@router.get("/quote", response_model=StayPriceQuote)
def quote_stay(
    check_in: str,
    check_out: str,
    base_price: str,
    strict: bool = False,
    engine: HolidayPricingEngine = Depends(get_pricing_engine),
):
    """计算入住区间报价；strict=true 时非法输入返回 400，否则返回全零报价"""
    if not strict:
        return engine.quote(check_in, check_out, base_price)
    try:
        return engine.quote_strict(check_in, check_out, base_price)
    except InvalidRangeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.get("/calendar", response_model=List[NightPrice])
def get_price_calendar(
    base_price: str,
    start_date: date = Query(default_factory=date.today),
    end_date: date = Query(default_factory=lambda: date.today() + timedelta(days=30)),
    engine: HolidayPricingEngine = Depends(get_pricing_engine),
):
    """价格日历（起止日期都包含）"""
    if (end_date - start_date).days + 1 > MAX_CALENDAR_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"价格日历最多查询 {MAX_CALENDAR_DAYS} 天"
        )
    try:
        return engine.price_calendar(start_date, end_date, base_price)
    except InvalidRangeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.post("/sync", response_model=HolidaySyncResult)
def sync_holidays(
    data: Optional[HolidaySyncRequest] = None,
    store: HolidayRuleStore = Depends(get_rule_store),
    cache: HolidayRuleCache = Depends(get_rule_cache),
    client: HolidayCalendarClient = Depends(get_calendar_client),
    current_user: CurrentUser = Depends(require_admin),
):
    """从互联网同步法定节假日，覆盖该年份已同步数据，不影响手动配置"""
    data = data or HolidaySyncRequest()
    service = HolidaySyncService(store, client)
    try:
        result = service.sync(data.year, data.discount_rate, operator_id=current_user.id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except SyncUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    cache.invalidate()
    return result


@router.get("/{rule_id}", response_model=HolidayRuleResponse)
def get_holiday(
    rule_id: int,
    store: HolidayRuleStore = Depends(get_rule_store),
    current_user: CurrentUser = Depends(require_admin),
):
    """获取节假日配置详情"""
    try:
        return _to_response(store.get(rule_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.post("", response_model=HolidayRuleResponse)
def create_holiday(
    data: HolidayRuleCreate,
    store: HolidayRuleStore = Depends(get_rule_store),
    cache: HolidayRuleCache = Depends(get_rule_cache),
    current_user: CurrentUser = Depends(require_admin),
):
    """手动新增节假日/活动"""
    try:
        rule = store.create(data, operator_id=current_user.id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    cache.invalidate()
    return _to_response(rule)


@router.put("/{rule_id}", response_model=HolidayRuleResponse)
def update_holiday(
    rule_id: int,
    data: HolidayRuleUpdate,
    store: HolidayRuleStore = Depends(get_rule_store),
    cache: HolidayRuleCache = Depends(get_rule_cache),
    current_user: CurrentUser = Depends(require_admin),
):
    """编辑节假日/活动（全量替换，同步规则编辑后转为手动规则）"""
    try:
        rule = store.update(rule_id, data, operator_id=current_user.id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    cache.invalidate()
    return _to_response(rule)


@router.delete("/{rule_id}")
def delete_holiday(
    rule_id: int,
    store: HolidayRuleStore = Depends(get_rule_store),
    cache: HolidayRuleCache = Depends(get_rule_cache),
    current_user: CurrentUser = Depends(require_admin),
):
    """删除节假日/活动"""
    try:
        store.delete(rule_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    cache.invalidate()
    return {"message": "删除成功"}
