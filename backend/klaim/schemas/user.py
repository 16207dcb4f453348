from datetime import datetime
from typing import Annotated, Optional
from pydantic import BaseModel, AliasChoices, ConfigDict, Field, StringConstraints

ProfileName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    wallet_address: str
    profile_name: str
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None

class ProfileUpdate(BaseModel):
    profile_name: Optional[ProfileName] = Field(
        None, validation_alias=AliasChoices("profileName", "profile_name"),
    )
    avatar_url: Optional[str] = Field(
        None, max_length=2048,
        validation_alias=AliasChoices("avatarUrl", "avatar_url"),
    )
