from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from klaim.database import get_db
from klaim.core.deps import get_current_user
from klaim.models.user import User
from klaim.schemas.auth import NonceRequest, NonceResponse, VerifyRequest, TokenResponse
from klaim.schemas.user import UserOut
from klaim.services.addresses import ADDRESS_PATTERN
from klaim.services.nonces import issue_nonce
from klaim.services.wallet_auth import verify_login

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/nonce", response_model=NonceResponse)
async def request_nonce(body: NonceRequest, db: AsyncSession = Depends(get_db)):
    return NonceResponse(nonce=await issue_nonce(db, body.wallet_address))

@router.get("/nonce/{wallet}", response_model=NonceResponse)
async def get_nonce(
    wallet: str = Path(..., pattern=ADDRESS_PATTERN),
    db: AsyncSession = Depends(get_db),
):
    return NonceResponse(nonce=await issue_nonce(db, wallet))

@router.post("/verify", response_model=TokenResponse)
async def verify_signature(body: VerifyRequest, db: AsyncSession = Depends(get_db)):
    user, token = await verify_login(db, body.wallet_address, body.signature)
    return TokenResponse(token=token, wallet_address=user.wallet_address)

# Older web clients post to /login
router.add_api_route("/login", verify_signature, methods=["POST"], response_model=TokenResponse, name="login")

@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    return user
