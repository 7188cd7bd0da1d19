"""
认证与授权模块

令牌由认证服务签发（HS256 JWT，sub = 用户 ID，role = admin | merchant），
本服务只负责校验令牌并按角色放行。
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import List
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from holiday_pricing.config import settings

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_MERCHANT = "merchant"

security = HTTPBearer()


@dataclass
class CurrentUser:
    """令牌中携带的用户身份"""
    id: int
    role: str


def create_access_token(user_id: int, role: str) -> str:
    """创建 JWT token"""
    expire = datetime.now(UTC) + timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)
    to_encode = {
        "sub": str(user_id),
        "role": role,
        "exp": expire
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """解码 JWT token"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证"
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """获取当前登录用户"""
    payload = decode_token(credentials.credentials)

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证"
        )

    return CurrentUser(id=user_id, role=str(payload.get("role") or ""))


def require_role(allowed_roles: List[str]):
    """角色权限验证"""
    async def role_checker(current_user: CurrentUser = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            logger.info(f"Permission denied for user {current_user.id} with role {current_user.role}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="仅管理员可管理节假日配置"
            )
        return current_user
    return role_checker


require_admin = require_role([ROLE_ADMIN])
