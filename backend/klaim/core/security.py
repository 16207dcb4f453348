from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from klaim.config import settings

def create_access_token(user_id: int, wallet_address: str) -> str:
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": str(user_id), "wallet": wallet_address, "iat": now, "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, settings.ALGORITHM)

def decode_token(token: str) -> Optional[dict]:
    """Return the verified claims, or None for a bad, expired or incomplete token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return {"user_id": int(payload["sub"]), "wallet": payload["wallet"]}
    except (JWTError, KeyError, ValueError):
        return None
