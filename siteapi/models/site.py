import uuid

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, func
from siteapi.db import Base
from siteapi.models.organization import Organization  # noqa: F401  (FK target)


class Site(Base):
    __tablename__ = "sites"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), ForeignKey("organizations.id"), index=True, nullable=False)
    name = Column(String(128), nullable=False)
    slug = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    subdomain = Column(String(128), nullable=True)
    custom_domain = Column(String(255), nullable=True)
    status = Column(String(32), nullable=False, default="draft")  # draft | published
    settings = Column(JSON, nullable=False, default=dict)
    integrations = Column(JSON, nullable=False, default=dict)     # {"wordpress": {...}}
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "subdomain": self.subdomain,
            "custom_domain": self.custom_domain,
            "status": self.status,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
