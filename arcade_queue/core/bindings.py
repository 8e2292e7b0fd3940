"""
Binding Resolver

Looks up and maintains a tenant's read-only mirror of another tenant's
arcades. This module performs no authorization; ArcadeService gates the
mutating calls.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from arcade_queue.core.exceptions import InvalidInputError, NotFoundError
from arcade_queue.core.store import RecordStore
from arcade_queue.models import GroupBinding
from arcade_queue.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class UnbindResult:
    tenant_id: str
    source_tenant_id: str
    deleted_arcades: int


class BindingResolver:
    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = datetime.utcnow):
        self.store = store
        self.clock = clock

    def get_binding(self, tenant_id: str) -> Optional[GroupBinding]:
        return self.store.first("group_binding", target_tenant_id=tenant_id)

    def get_active_source(self, tenant_id: str) -> Optional[str]:
        """Source tenant id when the tenant has an enabled binding."""
        binding = self.get_binding(tenant_id)
        if binding and binding.is_enabled:
            return binding.source_tenant_id
        return None

    def set_binding(self, target_tenant_id: str, source_tenant_id: str, enabled: bool = True) -> GroupBinding:
        """
        Create or replace the target tenant's binding.

        There is never more than one binding row per target; repeat calls
        overwrite source and enabled flag.
        """
        source_tenant_id = (source_tenant_id or "").strip()
        if not source_tenant_id:
            raise InvalidInputError("Source group id is required (format: platform:group)")
        if source_tenant_id == target_tenant_id:
            raise InvalidInputError("A group cannot bind to itself")

        now = self.clock()
        with self.store.transaction():
            existing = self.get_binding(target_tenant_id)
            if existing:
                self.store.set(
                    "group_binding",
                    {"id": existing.id},
                    {"source_tenant_id": source_tenant_id, "is_enabled": enabled, "updated_at": now},
                )
                binding = existing
            else:
                binding = self.store.create(
                    "group_binding",
                    source_tenant_id=source_tenant_id,
                    target_tenant_id=target_tenant_id,
                    is_enabled=enabled,
                    created_at=now,
                    updated_at=now,
                )

        logger.info(
            f"Binding for {target_tenant_id} {'enabled' if enabled else 'disabled'}: source {source_tenant_id}",
            extra={"tenant_id": target_tenant_id}
        )
        return binding

    def unbind(self, target_tenant_id: str) -> UnbindResult:
        """
        Remove the binding and every arcade that came from its source.

        Arcades with that provenance are the bound rows and local copies
        materialized from them; arcades the tenant created have no source
        and are left alone.
        """
        with self.store.transaction():
            binding = self.get_binding(target_tenant_id)
            if not binding or not binding.is_enabled:
                raise NotFoundError("This group is not bound to any other group")

            source_tenant_id = binding.source_tenant_id
            self.store.remove("group_binding", target_tenant_id=target_tenant_id)

            derived = self.store.get(
                "arcade",
                tenant_id=target_tenant_id,
                source_tenant_id=source_tenant_id,
            )
            for arcade in derived:
                self.store.remove("arcade_history", arcade_id=arcade.id)
            self.store.remove("arcade", tenant_id=target_tenant_id, source_tenant_id=source_tenant_id)

        logger.info(
            f"Group {target_tenant_id} unbound from {source_tenant_id}, removed {len(derived)} derived arcades",
            extra={"tenant_id": target_tenant_id}
        )
        return UnbindResult(
            tenant_id=target_tenant_id,
            source_tenant_id=source_tenant_id,
            deleted_arcades=len(derived),
        )
