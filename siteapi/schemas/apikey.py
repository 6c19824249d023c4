from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ApiKeyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None
    permissions: List[str] = Field(default_factory=lambda: ["read"])
    allowed_sites: Optional[List[str]] = Field(None, description="Site ids; omit or [] for every site")
    rate_limit: Optional[int] = Field(None, ge=1, description="Requests per hour")
    expires_at: Optional[datetime] = None


class ApiKeyOut(BaseModel):
    id: str
    name: str
    description: Optional[str]
    key_prefix: str
    permissions: List[str]
    allowed_sites: Optional[List[str]]
    rate_limit: int
    is_active: bool
    last_used_at: Optional[str]
    expires_at: Optional[str]
    created_at: Optional[str]


class ApiKeyCreated(BaseModel):
    key: str = Field(..., description="Plain text key; only returned once")
    api_key: ApiKeyOut
