from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str
    REDIS_URL: str = "redis://localhost:6379/0"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # Wallet login. Clients must sign exactly this text.
    LOGIN_MESSAGE_TEMPLATE: str = "Sign this message to log in: {nonce}"
    DEFAULT_PROFILE_NAME: str = "Klaim User"

    # Story RPC + contracts for event reconciliation
    RPC_URL: str = "https://testnet.storyrpc.io"
    IP_CREATOR_ADDRESS: str = ""
    IP_MARKETPLACE_ADDRESS: str = ""
    EVENT_POLL_INTERVAL_SEC: int = 15
    EVENT_BLOCK_BATCH: int = 2000
    EVENT_START_BLOCK: int = 0

    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v):
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator('LOGIN_MESSAGE_TEMPLATE')
    @classmethod
    def require_nonce_placeholder(cls, v):
        if "{nonce}" not in v:
            raise ValueError("LOGIN_MESSAGE_TEMPLATE must contain {nonce}")
        return v

    @property
    def watched_contracts(self) -> list[str]:
        return [a.lower() for a in (self.IP_CREATOR_ADDRESS, self.IP_MARKETPLACE_ADDRESS) if a]

settings = Settings()
