"""
Report and status rollups over the arcades a tenant can see.
"""
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from arcade_queue.config import Settings
from arcade_queue.core.bindings import BindingResolver
from arcade_queue.core.resolver import ALIAS_GROUP_SUFFIX, EntityResolver
from arcade_queue.core.store import RecordStore
from arcade_queue.schemas.arcade import ArcadeView
from arcade_queue.schemas.report import AliasUsage, ArcadeReport, CrowdedArcade, TenantStatus

if TYPE_CHECKING:
    from arcade_queue.core.scheduler import ResetScheduler


class ReportAggregator:
    def __init__(
        self,
        store: RecordStore,
        settings: Settings,
        scheduler: Optional["ResetScheduler"] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.settings = settings
        self.scheduler = scheduler
        self.clock = clock
        self.bindings = BindingResolver(store, clock)
        self.resolver = EntityResolver(store, self.bindings)

    def list_all(self, tenant_id: str) -> List[ArcadeView]:
        return sorted(self.resolver.all_with_binding(tenant_id), key=lambda a: a.name)

    def report(self, tenant_id: str) -> ArcadeReport:
        arcades = self.resolver.all_with_binding(tenant_id)
        bound = sum(1 for arcade in arcades if arcade.is_bound)

        usage: Dict[str, int] = {}
        for arcade in arcades:
            for alias in arcade.aliases:
                usage[alias] = usage.get(alias, 0) + 1
        # Stable sort keeps first-seen order among equal counts
        alias_usage = [
            AliasUsage(alias=alias, group_query=f"{alias}{ALIAS_GROUP_SUFFIX}", arcades=total)
            for alias, total in sorted(usage.items(), key=lambda item: -item[1])
        ]

        most_crowded = None
        for arcade in arcades:
            if most_crowded is None or arcade.current >= most_crowded.current:
                most_crowded = arcade

        return ArcadeReport(
            tenant_id=tenant_id,
            local_arcades=len(arcades) - bound,
            bound_arcades=bound,
            total_arcades=len(arcades),
            total_current=sum(arcade.current for arcade in arcades),
            total_updates=sum(arcade.total_updates for arcade in arcades),
            alias_usage=alias_usage,
            most_crowded=(
                CrowdedArcade(name=most_crowded.name, current=most_crowded.current)
                if most_crowded else None
            ),
            generated_at=self.clock(),
        )

    def status(self, tenant_id: str) -> TenantStatus:
        local = self.store.get("arcade", tenant_id=tenant_id)
        return TenantStatus(
            tenant_id=tenant_id,
            local_arcades=len(local),
            total_current=sum(arcade.current for arcade in local),
            bound_source=self.bindings.get_active_source(tenant_id),
            daily_reset_time=self.settings.DAILY_RESET_TIME,
            reset_updater=self.settings.RESET_UPDATER,
            reset_armed=self.scheduler.is_armed(tenant_id) if self.scheduler else False,
            max_aliases_per_arcade=self.settings.MAX_ALIASES_PER_ARCADE,
            admin_roles=list(self.settings.ADMIN_ROLES),
            allow_list_enabled=self.settings.ALLOW_LIST_ENABLED,
        )
