from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from klaim.database import get_db
from klaim.core.deps import get_current_user
from klaim.core.errors import not_found
from klaim.models.user import User
from klaim.schemas.user import UserOut, ProfileUpdate

router = APIRouter(prefix="/api/users", tags=["users"])

@router.patch("/me", response_model=UserOut)
async def update_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if body.profile_name is not None:
        user.profile_name = body.profile_name
    if body.avatar_url is not None:
        user.avatar_url = body.avatar_url or None
    await db.commit()
    await db.refresh(user)
    return user

@router.get("/{user_id}", response_model=UserOut)
async def get_user_profile(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await db.get(User, user_id)
    if not user:
        raise not_found("User not found")
    return user
