from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, Text
from sqlalchemy.sql import func
from klaim.database import Base

class Asset(Base):
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True)

    # NFT / IP metadata
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    image_hash = Column(String(128), unique=True, nullable=True)
    metadata_uri = Column(String, nullable=True, index=True)
    creator_address = Column(String(42), nullable=True, index=True)
    license = Column(String(32), default="Standard")

    # On-chain identity
    token_id = Column(Numeric(78, 0), unique=True, nullable=True)
    ip_id = Column(String(42), unique=True, nullable=True)
    license_terms_id = Column(Numeric(78, 0), nullable=True)
    transaction_hash = Column(String(66), nullable=True)
    current_owner = Column(String(42), nullable=True, index=True)

    # Marketplace
    is_listed = Column(Boolean, default=False, nullable=False)
    listing_id = Column(String(66), unique=True, nullable=True)
    price = Column(Numeric(78, 0), nullable=True)  # wei

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
