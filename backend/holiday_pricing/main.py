"""
节假日定价服务主应用入口
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from holiday_pricing import __version__
from holiday_pricing.config import settings
from holiday_pricing.database import init_db
from holiday_pricing.routers import holidays
from holiday_pricing.services.holiday_rule_cache import HolidayRuleCache

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Setup logging configuration"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    setup_logging(settings.LOG_LEVEL)

    # 初始化数据库
    init_db()

    # 报价使用的规则缓存，规则写入后由路由显式失效
    app.state.holiday_rule_cache = HolidayRuleCache(
        max_age_seconds=settings.HOLIDAY_CACHE_MAX_AGE_SECONDS
    )
    logger.info(f"{settings.APP_NAME} started")

    yield

    app.state.holiday_rule_cache.invalidate()


# 创建应用
app = FastAPI(
    title=settings.APP_NAME,
    description="酒店节假日/活动折扣规则管理与入住报价",
    version=__version__,
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 生产环境应限制具体域名
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(holidays.router)


@app.get("/")
def root():
    """根路径"""
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "description": "酒店节假日/活动折扣规则管理与入住报价"
    }


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("holiday_pricing.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
