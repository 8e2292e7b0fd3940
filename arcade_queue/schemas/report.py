"""
Report Schemas

Read-only rollups: tenant report, system status, privilege check and the
result of a full tenant reset.
"""
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime


class AliasUsage(BaseModel):
    alias: str
    # Shorthand that queries every arcade sharing the alias
    group_query: str
    arcades: int


class CrowdedArcade(BaseModel):
    name: str
    current: int


class ArcadeReport(BaseModel):
    """Statistics over every arcade visible to a tenant."""
    tenant_id: str
    local_arcades: int
    bound_arcades: int
    total_arcades: int
    total_current: int
    total_updates: int
    alias_usage: List[AliasUsage]
    most_crowded: Optional[CrowdedArcade] = None
    generated_at: datetime


class TenantStatus(BaseModel):
    """Configuration and live state of a tenant."""
    tenant_id: str
    local_arcades: int
    total_current: int
    bound_source: Optional[str] = None
    daily_reset_time: str
    reset_updater: str
    reset_armed: bool
    max_aliases_per_arcade: int
    admin_roles: List[str]
    allow_list_enabled: bool


class PrivilegeReport(BaseModel):
    """Resolved privilege tiers of the calling actor."""
    tenant_id: str
    user_id: str
    platform_style: str  # guild or group
    is_owner: bool
    is_admin: bool
    is_allow_listed: bool
    can_manage: bool
    member: Optional[Dict[str, Any]] = None


class TenantResetRequest(BaseModel):
    confirmation: str


class TenantResetResponse(BaseModel):
    """Outcome of wiping a tenant's data."""
    tenant_id: str
    arcades_removed: int
    history_removed: int
    allow_list_removed: int
    binding_removed: bool
    executor: str
    time: datetime
