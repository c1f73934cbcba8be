"""
인증 세션

요청마다 Bearer JWT를 해석해 AuthSession을 만들고, 각 핸들러에 Depends로 명시적으로 주입합니다.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Literal

import jwt
from fastapi import Header, HTTPException
from pydantic import BaseModel

from linkorders.settings import settings

UserType = Literal["internal", "account", "publisher"]


class AuthSession(BaseModel):
    user_id: uuid.UUID
    user_type: UserType
    email: str = ""

    @property
    def is_internal(self) -> bool:
        return self.user_type == "internal"


def create_access_token(user_id: uuid.UUID, user_type: str, email: str = "") -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "userType": user_type,
        "email": email,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expiry_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AuthSession:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="토큰이 만료되었습니다")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="유효하지 않은 토큰입니다")

    try:
        return AuthSession(
            user_id=uuid.UUID(str(payload.get("sub"))),
            user_type=payload.get("userType"),
            email=payload.get("email") or "",
        )
    except ValueError:
        raise HTTPException(status_code=401, detail="토큰의 사용자 정보가 올바르지 않습니다")


def get_auth_session(authorization: str | None = Header(default=None)) -> AuthSession:
    """FastAPI 의존성: 인증된 세션이 없으면 401."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return decode_access_token(authorization[len("Bearer "):].strip())
