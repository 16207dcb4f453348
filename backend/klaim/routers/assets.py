from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from klaim.database import get_db
from klaim.core.deps import get_current_user
from klaim.core.errors import conflict, not_found
from klaim.models.asset import Asset
from klaim.models.user import User
from klaim.schemas.asset import AssetCreate
from klaim.services.addresses import ADDRESS_PATTERN, normalize_address

router = APIRouter(prefix="/api/assets", tags=["assets"])


def _uint(value) -> Optional[str]:
    # uint256 values travel as decimal strings; JSON numbers lose precision.
    return None if value is None else str(int(value))


def serialize_asset(a: Asset) -> dict:
    return {
        "id": a.id,
        "name": a.name,
        "description": a.description,
        "image_url": a.image_url,
        "image_hash": a.image_hash,
        "metadata_uri": a.metadata_uri,
        "license": a.license,
        "creator_address": a.creator_address,
        "current_owner": a.current_owner,
        "token_id": _uint(a.token_id),
        "ip_id": a.ip_id,
        "license_terms_id": _uint(a.license_terms_id),
        "transaction_hash": a.transaction_hash,
        "is_listed": a.is_listed,
        "listing_id": a.listing_id,
        "price": _uint(a.price),
        "created_at": a.created_at.isoformat() if a.created_at else None,
    }


@router.get("")
async def list_assets(
    listed: Optional[bool] = None,
    owner: Optional[str] = Query(None, pattern=ADDRESS_PATTERN),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Marketplace grid. ``listed=true`` returns only assets currently for sale."""
    stmt = select(Asset)
    if listed is not None:
        stmt = stmt.where(Asset.is_listed == listed)
    if owner:
        stmt = stmt.where(Asset.current_owner == normalize_address(owner))
    stmt = stmt.order_by(Asset.id.desc()).limit(limit).offset(offset)
    return [serialize_asset(a) for a in await db.scalars(stmt)]


@router.get("/{token_id}")
async def get_asset(token_id: int, db: AsyncSession = Depends(get_db)):
    asset = await db.scalar(select(Asset).where(Asset.token_id == token_id))
    if not asset:
        raise not_found("Asset not found")
    return serialize_asset(asset)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_asset(
    body: AssetCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Register an unminted draft owned by the caller.

    The chain watcher adopts it by ``metadata_uri`` once IPAssetCreated is seen.
    """
    asset = Asset(
        name=body.name,
        description=body.description,
        image_url=body.image_url,
        image_hash=body.image_hash,
        metadata_uri=body.metadata_uri,
        license=body.license,
        creator_address=user.wallet_address,
        is_listed=False,
    )
    db.add(asset)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise conflict(f'An asset with image hash "{body.image_hash}" already exists')
    await db.refresh(asset)
    return serialize_asset(asset)
