from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from klaim.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    # Always lowercase; see klaim.services.addresses.normalize_address
    wallet_address = Column(String(42), unique=True, nullable=False, index=True)
    nonce = Column(String(64), nullable=False)
    profile_name = Column(String(64), nullable=False)
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
