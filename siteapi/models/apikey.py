import uuid

from sqlalchemy import Column, String, Text, Integer, DateTime, Boolean, ForeignKey, JSON, func
from siteapi.config import DEFAULT_RATE_LIMIT
from siteapi.db import Base
from siteapi.models.organization import Organization  # noqa: F401  (FK target)


class ApiKey(Base):
    __tablename__ = "api_keys"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), ForeignKey("organizations.id"), index=True, nullable=False)
    name = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    key_prefix = Column(String(32), nullable=False)                 # shown in listings
    key_hash = Column(String(64), nullable=False, unique=True, index=True)  # sha256 hex of the secret
    permissions = Column(JSON, nullable=False, default=lambda: ["read"])
    allowed_sites = Column(JSON, nullable=True)                     # NULL = every site of the organization
    rate_limit = Column(Integer, nullable=False, default=DEFAULT_RATE_LIMIT)
    requests_this_hour = Column(Integer, nullable=False, default=0)
    rate_limit_reset_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    last_used_ip = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "key_prefix": self.key_prefix,
            "permissions": list(self.permissions or []),
            "allowed_sites": self.allowed_sites,
            "rate_limit": self.rate_limit,
            "is_active": self.is_active,
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
