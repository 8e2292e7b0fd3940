"""
Arcade Schemas

Request/response models for arcade operations.

ArcadeView doubles as the resolver's return type: it is a detached snapshot
of a row, so a projection seen through a binding can be annotated without
any risk of the annotation being flushed into the source tenant's row.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class ArcadeView(BaseModel):
    """Read-only snapshot of an arcade, local or projected."""
    id: int
    tenant_id: str
    name: str
    aliases: List[str] = []
    current: int
    average: float
    total_updates: int
    total_people: int
    last_updated: datetime
    last_updater_name: str
    last_updater_id: str
    source_tenant_id: Optional[str] = None
    is_bound: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @classmethod
    def from_row(cls, row) -> "ArcadeView":
        return cls.model_validate(row)

    @classmethod
    def projection(cls, row, source_tenant_id: str) -> "ArcadeView":
        """Snapshot of a foreign row as seen through a binding."""
        return cls.model_validate(row).model_copy(
            update={"is_bound": True, "source_tenant_id": source_tenant_id}
        )


class ArcadeCreate(BaseModel):
    """Schema for creating an arcade."""
    name: str = Field(..., min_length=1, max_length=255)
    aliases: List[str] = []

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Dicapu Carnival (Jiahe)",
                "aliases": ["dkq", "jhc", "jh"]
            }
        }


class QueueUpdate(BaseModel):
    """New queue length for an arcade."""
    # Negative counts are rejected by the service with its own message
    count: int


class QueueUpdateResult(BaseModel):
    """Outcome of a queue update."""
    arcade: ArcadeView
    # True when the query resolved through a binding and a local copy was used
    via_binding: bool = False
    materialized: bool = False


class SearchResult(BaseModel):
    """Result of the general query entry point."""
    query: str
    mode: str  # all, alias_group, exact, fuzzy
    keyword: Optional[str] = None
    arcades: List[ArcadeView]
    total: int


class ArcadeListResponse(BaseModel):
    """All arcades visible to a tenant, local first, sorted by name."""
    arcades: List[ArcadeView]
    total: int


class CountResetResponse(BaseModel):
    """Outcome of zeroing every arcade's queue in a tenant."""
    tenant_id: str
    count: int
    updater: str
    time: datetime
