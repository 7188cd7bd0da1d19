"""
Pytest 配置和共享 fixtures
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from datetime import date
from decimal import Decimal
from fastapi.testclient import TestClient

from holiday_pricing.database import Base, get_db
from holiday_pricing.models import ontology  # noqa
from holiday_pricing.models.ontology import HolidayRule, HolidayType, MANUAL_SOURCE
from holiday_pricing.errors import SyncUnavailableError
from holiday_pricing.security.auth import create_access_token, ROLE_ADMIN, ROLE_MERCHANT
from holiday_pricing.services.holiday_sync_service import HolidayCalendarClient
from holiday_pricing.main import app


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============== 认证相关 Fixtures ==============

@pytest.fixture
def admin_token():
    """管理员 token"""
    return create_access_token(1, ROLE_ADMIN)


@pytest.fixture
def merchant_token():
    """商户 token"""
    return create_access_token(2, ROLE_MERCHANT)


@pytest.fixture
def admin_auth_headers(admin_token):
    """返回管理员认证的请求头"""
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def merchant_auth_headers(merchant_token):
    """返回商户认证的请求头"""
    return {"Authorization": f"Bearer {merchant_token}"}


# ============== 规则相关 Fixtures ==============

@pytest.fixture
def make_rule(db_session):
    """直接写库创建规则，绕过输入校验"""
    def _make_rule(name="国庆节", start_date=date(2025, 10, 1), end_date=date(2025, 10, 7),
                   discount_rate=Decimal("0.9"), holiday_type=HolidayType.OFFICIAL,
                   is_active=True, is_auto_synced=False, source=MANUAL_SOURCE,
                   sync_year=None, notes=None):
        rule = HolidayRule(
            name=name,
            holiday_type=holiday_type,
            start_date=start_date,
            end_date=end_date,
            discount_rate=discount_rate,
            is_active=is_active,
            is_auto_synced=is_auto_synced,
            source=source,
            sync_year=sync_year,
            notes=notes,
        )
        db_session.add(rule)
        db_session.commit()
        db_session.refresh(rule)
        return rule
    return _make_rule


@pytest.fixture
def national_day_rule(make_rule):
    """国庆节 2025-10-01 ~ 2025-10-07，9 折"""
    return make_rule()


# ============== 外部日历 Fixtures ==============

class FakeCalendarClient(HolidayCalendarClient):
    """返回固定数据的日历客户端，记录请求过的年份"""

    def __init__(self, payload=None, error=None):
        super().__init__(url_template="https://holiday.example.com/api/{year}", timeout=1.0)
        self.payload = payload
        self.error = error
        self.requested_years = []

    def fetch(self, year):
        self.requested_years.append(year)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def national_day_payload():
    """国庆节逐日数据，10-03 缺失"""
    return {
        "holiday": {
            "2025-10-01": {"holiday": True, "name": "国庆节"},
            "2025-10-02": {"holiday": True, "name": "国庆节"},
            "2025-10-04": {"holiday": True, "name": "国庆节"},
        }
    }


@pytest.fixture
def fake_calendar_client():
    """创建 FakeCalendarClient 的工厂"""
    def _factory(payload=None, error=None):
        return FakeCalendarClient(payload=payload, error=error)
    return _factory


@pytest.fixture
def unavailable_calendar_client():
    """总是拉取失败的日历客户端"""
    return FakeCalendarClient(error=SyncUnavailableError("同步失败，远程接口返回 503"))
