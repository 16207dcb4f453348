from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from klaim.database import get_db
from klaim.models.user import User
from klaim.core.errors import unauthorized
from klaim.core.security import decode_token

bearer = HTTPBearer(auto_error=False)

async def _resolve_user(token: str, db: AsyncSession) -> Optional[User]:
    claims = decode_token(token)
    if not claims:
        return None
    user = await db.get(User, claims["user_id"])
    # Token identity must still match the record it was issued for.
    if not user or user.wallet_address != claims["wallet"]:
        return None
    return user

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not credentials:
        raise unauthorized("Not authenticated")
    user = await _resolve_user(credentials.credentials, db)
    if not user:
        raise unauthorized("Invalid or stale token")
    return user
