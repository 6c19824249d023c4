from typing import Optional

from pydantic import BaseModel, Field


class SiteOut(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str]
    subdomain: Optional[str]
    custom_domain: Optional[str]
    status: str
    published_at: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]


class SiteDetail(SiteOut):
    settings: dict = Field(default_factory=dict)
    integrations: dict = Field(default_factory=dict)


class WordPressTestResult(BaseModel):
    status: str = Field(..., description="connected | error")
    domain: Optional[str]
    tested_at: str
    error: Optional[str]
