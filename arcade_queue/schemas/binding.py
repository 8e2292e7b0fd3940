"""
Binding Schemas

Request/response models for group binding operations.
"""
from pydantic import BaseModel, Field
from datetime import datetime


class BindingRequest(BaseModel):
    """Bind the current tenant to a source tenant ("<platform>:<group>")."""
    source_tenant_id: str = Field(..., min_length=1, max_length=128)
    enabled: bool = True


class BindingResponse(BaseModel):
    """Binding response schema."""
    id: int
    source_tenant_id: str
    target_tenant_id: str
    is_enabled: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UnbindResponse(BaseModel):
    """Outcome of removing a binding."""
    tenant_id: str
    source_tenant_id: str
    deleted_arcades: int
