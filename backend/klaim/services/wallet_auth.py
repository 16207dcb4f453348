import structlog
from eth_account import Account
from eth_account.messages import encode_defunct
from sqlalchemy.ext.asyncio import AsyncSession
from klaim.config import settings
from klaim.core.errors import unauthorized
from klaim.core.security import create_access_token
from klaim.models.user import User
from klaim.services.addresses import normalize_address, addresses_equal
from klaim.services.nonces import get_user_by_wallet, rotate_nonce_if_current

logger = structlog.get_logger(__name__)


def build_login_message(nonce: str) -> str:
    return settings.LOGIN_MESSAGE_TEMPLATE.format(nonce=nonce)


def recover_signer(message: str, signature: str) -> str:
    """EIP-191 personal_sign recovery. Any decoding or curve failure is a 401."""
    try:
        sig_bytes = bytes.fromhex(signature.removeprefix("0x"))
        return Account.recover_message(encode_defunct(text=message), signature=sig_bytes)
    except Exception:
        raise unauthorized("Invalid signature")


async def verify_login(db: AsyncSession, wallet: str, signature: str) -> tuple[User, str]:
    """Check ``signature`` over the login message for the wallet's current nonce.

    On success the nonce is rotated (so the same signature cannot be replayed)
    and a session token is returned. On any failure nothing is written.
    """
    wallet = normalize_address(wallet)
    user = await get_user_by_wallet(db, wallet)
    if not user:
        raise unauthorized("Unknown wallet, request a nonce first")

    used_nonce = user.nonce
    recovered = recover_signer(build_login_message(used_nonce), signature)
    if not addresses_equal(recovered, wallet):
        logger.warning("signature_mismatch", wallet=wallet, recovered=recovered.lower())
        raise unauthorized("Signature mismatch")

    if not await rotate_nonce_if_current(db, wallet, used_nonce):
        await db.rollback()
        logger.warning("nonce_already_used", wallet=wallet)
        raise unauthorized("Nonce already used, request a new one")
    await db.commit()
    await db.refresh(user)

    logger.info("login_succeeded", wallet=wallet, user_id=user.id)
    return user, create_access_token(user.id, user.wallet_address)
