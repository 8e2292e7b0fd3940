"""
Queue Mutation Engine

ArcadeService applies every state change: queue updates, arcade creation,
count resets, tenant resets, bindings and allow-list changes. Each mutation
runs under the tenant's lock and inside one store transaction, so a caller
never sees current updated while average / total_updates are stale, and a
failed write leaves neither the arcade nor its history entry behind.

Arcades resolved through a binding are projections of another tenant's
row. Updating one never writes to that row: the update lands on a local
arcade of the same name, created from the projection's snapshot when the
tenant has none yet.
"""
from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional

from arcade_queue.config import Settings
from arcade_queue.core.bindings import BindingResolver, UnbindResult
from arcade_queue.core.directory import ActorContext
from arcade_queue.core.exceptions import (
    ArcadeNotFoundError,
    ConfirmationMismatchError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from arcade_queue.core.locking import TenantLocks
from arcade_queue.core.permissions import AuthorizationResolver
from arcade_queue.core.resolver import EntityResolver
from arcade_queue.core.store import RecordStore
from arcade_queue.models import AllowListEntry, GroupBinding
from arcade_queue.schemas.arcade import ArcadeView, CountResetResponse, QueueUpdateResult, SearchResult
from arcade_queue.schemas.report import TenantResetResponse
from arcade_queue.utils.logging import get_logger, log_security_event

if TYPE_CHECKING:
    from arcade_queue.core.scheduler import ResetScheduler

logger = get_logger(__name__)

SYSTEM_UPDATER_ID = "system"
SYSTEM_UPDATER_NAME = "system"

# Fixed path segments under /arcades that a GET /arcades/{query} would never reach
RESERVED_QUERIES = frozenset({"search"})


def zero_counts(
    store: RecordStore,
    tenant_id: str,
    updater_name: str,
    updater_id: str = SYSTEM_UPDATER_ID,
    clock: Callable[[], datetime] = datetime.utcnow,
) -> CountResetResponse:
    """
    Set every local arcade's queue to 0 and record it in the history.

    Running statistics are left as they are; a reset is not a sample. The
    caller holds the tenant lock.
    """
    now = clock()
    with store.transaction():
        arcades = store.get("arcade", tenant_id=tenant_id)
        for arcade in arcades:
            store.set(
                "arcade",
                {"id": arcade.id},
                {
                    "current": 0,
                    "last_updated": now,
                    "last_updater_name": updater_name,
                    "last_updater_id": updater_id,
                    "updated_at": now,
                },
            )
            store.create(
                "arcade_history",
                arcade_id=arcade.id,
                tenant_id=tenant_id,
                count=0,
                updater_name=updater_name,
                updater_id=updater_id,
                created_at=now,
            )

    logger.info(f"Zeroed {len(arcades)} arcades by {updater_name}", extra={"tenant_id": tenant_id})
    return CountResetResponse(tenant_id=tenant_id, count=len(arcades), updater=updater_name, time=now)


class ArcadeService:
    def __init__(
        self,
        store: RecordStore,
        settings: Settings,
        locks: TenantLocks,
        scheduler: Optional["ResetScheduler"] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.settings = settings
        self.locks = locks
        self.scheduler = scheduler
        self.clock = clock

        self.bindings = BindingResolver(store, clock)
        self.resolver = EntityResolver(store, self.bindings)
        self.auth = AuthorizationResolver(settings, store)

    def _activate(self, tenant_id: str) -> None:
        if self.scheduler is not None:
            self.scheduler.activate(tenant_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def search(self, query: Optional[str], tenant_id: str) -> SearchResult:
        return self.resolver.search(query, tenant_id)

    def get_info(self, query: str, tenant_id: str) -> ArcadeView:
        arcade = self.resolver.resolve(query, tenant_id)
        if arcade is None:
            raise ArcadeNotFoundError(query)
        return arcade

    # ------------------------------------------------------------------
    # Arcades
    # ------------------------------------------------------------------

    def _clean_aliases(self, aliases: Optional[List[str]]) -> List[str]:
        cleaned: List[str] = []
        for alias in aliases or []:
            alias = (alias or "").strip()
            if not alias:
                continue
            if alias in cleaned:
                raise InvalidInputError(f'Alias "{alias}" is listed twice')
            cleaned.append(alias)

        limit = self.settings.MAX_ALIASES_PER_ARCADE
        if len(cleaned) > limit:
            raise InvalidInputError(f"An arcade can have at most {limit} aliases")
        return cleaned

    def add_arcade(self, name: str, aliases: Optional[List[str]], actor: ActorContext) -> ArcadeView:
        self.auth.require_manage(actor, "add arcades")

        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Arcade name cannot be empty")
        aliases = self._clean_aliases(aliases)
        reserved = RESERVED_QUERIES.intersection([name, *aliases])
        if reserved:
            raise InvalidInputError(f'"{reserved.pop()}" is reserved and cannot name an arcade')

        tenant_id = actor.tenant_id
        now = self.clock()
        with self.locks.hold(tenant_id), self.store.transaction():
            if self.store.first("arcade", tenant_id=tenant_id, name=name):
                raise ConflictError(f'Arcade "{name}" already exists')

            for existing in self.store.get("arcade", tenant_id=tenant_id):
                for alias in aliases:
                    if existing.matches_alias(alias) or existing.name == alias:
                        raise InvalidInputError(f'Alias "{alias}" is already used by arcade "{existing.name}"')

            arcade = self.store.create(
                "arcade",
                tenant_id=tenant_id,
                name=name,
                aliases=aliases,
                current=0,
                average=0.0,
                total_updates=0,
                total_people=0,
                last_updated=now,
                last_updater_name=SYSTEM_UPDATER_NAME,
                last_updater_id=SYSTEM_UPDATER_ID,
                source_tenant_id=None,
                is_bound=False,
                created_at=now,
                updated_at=now,
            )
            self.store.create(
                "arcade_history",
                arcade_id=arcade.id,
                tenant_id=tenant_id,
                count=0,
                updater_name=SYSTEM_UPDATER_NAME,
                updater_id=SYSTEM_UPDATER_ID,
                created_at=now,
            )

        self._activate(tenant_id)
        logger.info(
            f"Arcade added: {name} by {actor.qualified_id}",
            extra={"tenant_id": tenant_id, "arcade_id": arcade.id}
        )
        return ArcadeView.from_row(arcade)

    def _materialize(self, projection: ArcadeView, tenant_id: str, now: datetime):
        """
        Local writable arcade for a projection.

        Reuses the tenant's arcade of the same name, else creates one seeded
        with the projection's statistics. Aliases already taken in the
        tenant are not copied; a name already used as a local alias is a
        conflict.
        """
        local = self.store.first("arcade", tenant_id=tenant_id, name=projection.name)
        if local is not None:
            return local, False

        taken = set()
        for existing in self.store.get("arcade", tenant_id=tenant_id):
            if existing.matches_alias(projection.name):
                raise ConflictError(
                    f'Cannot copy "{projection.name}" from {projection.source_tenant_id}: '
                    f'the name is an alias of arcade "{existing.name}"'
                )
            taken.add(existing.name)
            taken.update(existing.aliases or [])

        copy = self.store.create(
            "arcade",
            tenant_id=tenant_id,
            name=projection.name,
            aliases=[alias for alias in projection.aliases if alias not in taken],
            current=projection.current,
            average=projection.average,
            total_updates=projection.total_updates,
            total_people=projection.total_people,
            last_updated=projection.last_updated,
            last_updater_name=projection.last_updater_name,
            last_updater_id=projection.last_updater_id,
            source_tenant_id=projection.source_tenant_id,
            is_bound=False,
            created_at=now,
            updated_at=now,
        )
        logger.info(
            f"Materialized local copy of {projection.name} from {projection.source_tenant_id}",
            extra={"tenant_id": tenant_id, "arcade_id": copy.id}
        )
        return copy, True

    def update_queue(self, query: str, count: int, actor: ActorContext) -> QueueUpdateResult:
        """
        Record a new queue length for the arcade query resolves to.

        Anyone in the group may update; no privilege check.
        """
        tenant_id = actor.tenant_id

        with self.locks.hold(tenant_id):
            resolved = self.resolver.resolve(query, tenant_id)
            if resolved is None:
                raise ArcadeNotFoundError(query)
            if isinstance(count, bool) or not isinstance(count, int):
                raise InvalidInputError("Queue length must be a whole number")
            if count < 0:
                raise InvalidInputError("Queue length cannot be negative")

            now = self.clock()
            with self.store.transaction():
                materialized = False
                if resolved.is_bound:
                    row, materialized = self._materialize(resolved, tenant_id, now)
                else:
                    row = self.store.first("arcade", id=resolved.id, tenant_id=tenant_id)
                    if row is None:
                        raise ArcadeNotFoundError(query)

                total_updates = row.total_updates + 1
                total_people = row.total_people + count
                average = round(total_people / total_updates, 2)

                self.store.set(
                    "arcade",
                    {"id": row.id},
                    {
                        "current": count,
                        "average": average,
                        "total_updates": total_updates,
                        "total_people": total_people,
                        "last_updated": now,
                        "last_updater_name": actor.name,
                        "last_updater_id": actor.qualified_id,
                        "updated_at": now,
                    },
                )
                self.store.create(
                    "arcade_history",
                    arcade_id=row.id,
                    tenant_id=tenant_id,
                    count=count,
                    updater_name=actor.name,
                    updater_id=actor.qualified_id,
                    created_at=now,
                )

        if materialized:
            self._activate(tenant_id)

        logger.info(
            f'Arcade "{row.name}" updated: {count} people by {actor.qualified_id}',
            extra={"tenant_id": tenant_id, "arcade_id": row.id}
        )
        return QueueUpdateResult(
            arcade=ArcadeView.from_row(row),
            via_binding=resolved.is_bound,
            materialized=materialized,
        )

    def reset_counts(self, actor: ActorContext) -> CountResetResponse:
        """Zero every queue in the actor's group now."""
        self.auth.require_manage(actor, "reset queue counts")
        with self.locks.hold(actor.tenant_id):
            return zero_counts(
                self.store,
                actor.tenant_id,
                updater_name=actor.name,
                updater_id=actor.qualified_id,
                clock=self.clock,
            )

    def reset_tenant(self, actor: ActorContext, confirmation: str) -> TenantResetResponse:
        """
        Delete all of the group's arcades, history, binding and allow-list.

        DANGER: irreversible. Requires the configured confirmation phrase.
        """
        self.auth.require_manage(actor, "reset this group's data")

        expected = self.settings.RESET_CONFIRMATION_TEXT
        if confirmation != expected:
            raise ConfirmationMismatchError(expected)

        tenant_id = actor.tenant_id
        with self.locks.hold(tenant_id):
            with self.store.transaction():
                history_removed = self.store.remove("arcade_history", tenant_id=tenant_id)
                arcades_removed = self.store.remove("arcade", tenant_id=tenant_id)
                binding_removed = self.store.remove("group_binding", target_tenant_id=tenant_id) > 0
                allow_list_removed = self.store.remove("allow_list", tenant_id=tenant_id)

            if self.scheduler is not None:
                self.scheduler.cancel(tenant_id)

        log_security_event(
            "tenant_reset",
            {
                "tenant_id": tenant_id,
                "user_id": actor.qualified_id,
                "arcades_removed": arcades_removed,
                "history_removed": history_removed,
            },
            logger
        )
        return TenantResetResponse(
            tenant_id=tenant_id,
            arcades_removed=arcades_removed,
            history_removed=history_removed,
            allow_list_removed=allow_list_removed,
            binding_removed=binding_removed,
            executor=actor.name,
            time=self.clock(),
        )

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    def bind(self, source_tenant_id: str, enabled: bool, actor: ActorContext) -> GroupBinding:
        self.auth.require_manage(actor, "bind groups")
        return self.bindings.set_binding(actor.tenant_id, source_tenant_id, enabled)

    def unbind(self, actor: ActorContext) -> UnbindResult:
        self.auth.require_manage(actor, "unbind groups")
        with self.locks.hold(actor.tenant_id):
            return self.bindings.unbind(actor.tenant_id)

    # ------------------------------------------------------------------
    # Allow-list
    # ------------------------------------------------------------------

    @staticmethod
    def _qualify(user_id: str, actor: ActorContext) -> str:
        user_id = (user_id or "").strip()
        if not user_id:
            raise InvalidInputError("User id cannot be empty")
        if ":" not in user_id:
            user_id = f"{actor.platform_id}:{user_id}"
        return user_id

    def list_allow_list(self, tenant_id: str) -> List[AllowListEntry]:
        return self.store.get("allow_list", tenant_id=tenant_id)

    def add_allow_list(self, user_id: str, user_name: Optional[str], actor: ActorContext) -> AllowListEntry:
        self.auth.require_allow_list_manager(actor)
        qualified = self._qualify(user_id, actor)
        tenant_id = actor.tenant_id
        now = self.clock()

        with self.store.transaction():
            if self.store.first("allow_list", tenant_id=tenant_id, user_id=qualified):
                raise ConflictError(f"User {qualified} is already on the allow-list")
            entry = self.store.create(
                "allow_list",
                tenant_id=tenant_id,
                user_id=qualified,
                user_name=user_name or qualified,
                added_by_id=actor.qualified_id,
                added_by_name=actor.name,
                created_at=now,
                updated_at=now,
            )

        logger.info(f"Allow-list add: {qualified} by {actor.qualified_id}", extra={"tenant_id": tenant_id})
        return entry

    def remove_allow_list(self, user_id: str, actor: ActorContext) -> AllowListEntry:
        self.auth.require_allow_list_manager(actor)
        qualified = self._qualify(user_id, actor)
        tenant_id = actor.tenant_id

        with self.store.transaction():
            entry = self.store.first("allow_list", tenant_id=tenant_id, user_id=qualified)
            if entry is None:
                raise NotFoundError(f"User {qualified} is not on the allow-list")
            self.store.remove("allow_list", tenant_id=tenant_id, user_id=qualified)

        logger.info(f"Allow-list remove: {qualified} by {actor.qualified_id}", extra={"tenant_id": tenant_id})
        return entry

    def clear_allow_list(self, actor: ActorContext) -> int:
        self.auth.require_allow_list_manager(actor)
        with self.store.transaction():
            removed = self.store.remove("allow_list", tenant_id=actor.tenant_id)
        logger.info(f"Allow-list cleared, {removed} removed", extra={"tenant_id": actor.tenant_id})
        return removed
