from typing import Annotated, Optional
from pydantic import BaseModel, AliasChoices, Field, StringConstraints

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

class AssetCreate(BaseModel):
    """Off-chain draft registered before the mint transaction lands."""

    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)] = Field(
        ..., validation_alias=AliasChoices("title", "name"),
    )
    description: Optional[str] = None
    image_hash: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=128)] = Field(
        ..., validation_alias=AliasChoices("imageHash", "image_hash"),
    )
    image_url: Optional[NonBlank] = Field(None, validation_alias=AliasChoices("imageUrl", "image_url"))
    metadata_uri: Optional[NonBlank] = Field(
        None, validation_alias=AliasChoices("metadataURI", "metadataUri", "metadata_uri"),
    )
    license: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=32)] = "Standard"
