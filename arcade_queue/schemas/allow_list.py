"""
Allow-list Schemas

Request/response models for allow-list management.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class AllowListAdd(BaseModel):
    """Add a user to the current tenant's allow-list."""
    # Either a bare platform user id or a qualified "<platform>:<user>" id
    user_id: str = Field(..., min_length=1, max_length=128)
    user_name: Optional[str] = Field(None, max_length=255)


class AllowListEntryResponse(BaseModel):
    """Allow-list entry response schema."""
    id: int
    tenant_id: str
    user_id: str
    user_name: Optional[str]
    added_by_id: str
    added_by_name: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class AllowListResponse(BaseModel):
    """All allow-list entries of a tenant."""
    entries: List[AllowListEntryResponse]
    total: int


class AllowListClearResponse(BaseModel):
    tenant_id: str
    removed: int
