"""
应用配置
从环境变量读取配置，支持 .env 文件
"""
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "Holiday Pricing"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./holiday_pricing.db"

    # JWT 配置（由认证服务签发，本服务仅校验）
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # 节假日同步配置
    HOLIDAY_SYNC_SOURCE: str = "timor.tech"
    HOLIDAY_SYNC_URL_TEMPLATE: str = "https://timor.tech/api/holiday/year/{year}"
    HOLIDAY_SYNC_TIMEOUT: float = 8.0

    # 默认节假日折扣（0.9 = 9 折）
    HOLIDAY_DEFAULT_DISCOUNT_RATE: float = 0.9

    # 规则缓存最长有效期（秒），0 表示只在显式失效时刷新
    # 缓存按进程保存，多 worker 部署时其他 worker 最多延迟这么久才看到规则变更
    HOLIDAY_CACHE_MAX_AGE_SECONDS: int = 300

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()
