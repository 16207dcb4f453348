from pydantic import BaseModel, AliasChoices, Field
from klaim.services.addresses import ADDRESS_PATTERN, SIGNATURE_PATTERN

def wallet_field():
    # Accept the camelCase bodies the web/mobile clients send as well as snake_case.
    return Field(
        ...,
        pattern=ADDRESS_PATTERN,
        validation_alias=AliasChoices("walletAddress", "wallet_address", "wallet", "address"),
    )

class NonceRequest(BaseModel):
    wallet_address: str = wallet_field()

class NonceResponse(BaseModel):
    nonce: str

class VerifyRequest(BaseModel):
    wallet_address: str = wallet_field()
    signature: str = Field(..., pattern=SIGNATURE_PATTERN)

class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    wallet_address: str
