import secrets
from typing import Optional
import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from klaim.config import settings
from klaim.models.user import User
from klaim.services.addresses import normalize_address

logger = structlog.get_logger(__name__)

NONCE_BYTES = 16


def generate_nonce(previous: Optional[str] = None) -> str:
    nonce = secrets.token_hex(NONCE_BYTES)
    while nonce == previous:
        nonce = secrets.token_hex(NONCE_BYTES)
    return nonce


async def get_user_by_wallet(db: AsyncSession, wallet: str) -> Optional[User]:
    return await db.scalar(
        select(User).where(User.wallet_address == normalize_address(wallet))
    )


async def issue_nonce(db: AsyncSession, wallet: str) -> str:
    """Create-or-update the user for ``wallet`` with a fresh nonce and return it.

    Two first-time requests for the same wallet can race on the insert; the
    loser hits the unique constraint and overwrites the winner's nonce instead,
    so there is still a single record and the returned nonce is the live one.
    """
    wallet = normalize_address(wallet)
    user = await get_user_by_wallet(db, wallet)
    if user:
        user.nonce = generate_nonce(user.nonce)
        await db.commit()
        logger.info("nonce_rotated", wallet=wallet, user_id=user.id)
        return user.nonce

    nonce = generate_nonce()
    db.add(User(wallet_address=wallet, nonce=nonce, profile_name=settings.DEFAULT_PROFILE_NAME))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        await db.execute(
            update(User).where(User.wallet_address == wallet).values(nonce=nonce)
        )
        await db.commit()
        logger.info("nonce_issued_after_insert_race", wallet=wallet)
        return nonce

    logger.info("user_created", wallet=wallet)
    return nonce


async def rotate_nonce_if_current(db: AsyncSession, wallet: str, used_nonce: str) -> bool:
    """Replace ``used_nonce`` with a new one, only if it is still the nonce on file.

    Returns False when another request already consumed it. The caller owns
    the commit.
    """
    result = await db.execute(
        update(User)
        .where(User.wallet_address == normalize_address(wallet), User.nonce == used_nonce)
        .values(nonce=generate_nonce(used_nonce))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
