"""
Permission System

Decides whether an actor is the group owner, a group admin, or on the
group's allow-list.

Privilege comes from three places, checked in a strict order:

1. Owner: the configured OWNER_IDS list first, then the chat platform.
2. Admin: platform role markers, then the configured ADMIN_ROLES.
3. Allow-listed: a row in the tenant's allow-list.

Platform answers are unreliable, so each platform style gets a strategy that
returns a tri-state verdict:

    True  -> confirmed
    False -> confirmed not
    None  -> unknown, try the next heuristic

A failed lookup (forbidden, timeout, missing fields) counts as "no data" for
that lookup only. It never becomes an error for the caller.

The privileged-operation gate is a mode switch, not a union of tiers:
with ALLOW_LIST_ENABLED an admin who is neither owner nor allow-listed is
refused.
"""
from typing import Any, Callable, Dict, Optional, Tuple

from arcade_queue.config import Settings
from arcade_queue.core.directory import ActorContext
from arcade_queue.core.exceptions import PermissionDenied
from arcade_queue.core.store import RecordStore
from arcade_queue.schemas.report import PrivilegeReport
from arcade_queue.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

Verdict = Optional[bool]
Member = Optional[Dict[str, Any]]


def _flag_set(value: Any) -> bool:
    # Platforms report flags as booleans or as 0/1
    return value is True or (not isinstance(value, bool) and value == 1)


class PlatformStrategy:
    """Interprets raw member / group records of one platform style."""

    style = "unknown"

    def owner_verdict(self, actor: ActorContext, member: Member,
                      container: Callable[[], Member]) -> Verdict:
        raise NotImplementedError

    def admin_verdict(self, actor: ActorContext, member: Member) -> Verdict:
        raise NotImplementedError


class GuildStrategy(PlatformStrategy):
    """
    Guild-style platforms (channel guilds).

    Member records carry a roles list of numeric markers, e.g.
    ["1", "2"]: 1 member, 2 admin, 4 owner, 5 channel admin.
    """

    style = "guild"

    def __init__(self, owner_role: str = "4", admin_role: str = "2"):
        self.owner_role = owner_role
        self.admin_role = admin_role

    @staticmethod
    def _roles(member: Dict[str, Any]) -> Optional[list]:
        roles = member.get("roles")
        if isinstance(roles, list):
            return [str(role) for role in roles]
        return None

    def owner_verdict(self, actor, member, container):
        if member is None:
            return None

        roles = self._roles(member)
        if roles is not None:
            return self.owner_role in roles

        # Older payloads carry a single role field
        role = member.get("role")
        return role is not None and str(role) == self.owner_role

    def admin_verdict(self, actor, member):
        if member is None:
            return None
        roles = self._roles(member)
        if roles is None:
            return None
        return self.admin_role in roles or self.owner_role in roles


class GroupStrategy(PlatformStrategy):
    """
    Group-style platforms (plain chat groups).

    The transport API is known to be unreliable for ownership here, so the
    member record is probed with several heuristics before asking the group
    metadata for its designated owner.
    """

    style = "group"

    OWNER_ROLES = ("owner", "群主")
    OWNER_AUTHORITY = 3
    OWNER_FLAGS = ("is_owner", "owner", "isOwner", "is_creator", "creator")
    CONTAINER_OWNER_FIELDS = ("owner_id", "ownerId")

    ADMIN_ROLES = ("2", "admin", "管理员")
    ADMIN_AUTHORITY = 2

    def owner_verdict(self, actor, member, container):
        if member is not None:
            role = member.get("role")
            if role is not None and str(role) in self.OWNER_ROLES:
                logger.debug(f"{actor.qualified_id} is owner by role field")
                return True

            if member.get("authority") == self.OWNER_AUTHORITY:
                logger.debug(f"{actor.qualified_id} is owner by authority code")
                return True

            for field in self.OWNER_FLAGS:
                if _flag_set(member.get(field)):
                    logger.debug(f"{actor.qualified_id} is owner by flag {field}")
                    return True

        group = container()
        if group:
            for field in self.CONTAINER_OWNER_FIELDS:
                owner_id = group.get(field)
                if owner_id is not None:
                    return str(owner_id) == actor.user_id

        return None

    def admin_verdict(self, actor, member):
        if member is None:
            return None
        role = member.get("role")
        if role is not None and str(role) in self.ADMIN_ROLES:
            return True
        if member.get("authority") == self.ADMIN_AUTHORITY:
            return True
        return None


class AuthorizationResolver:
    """
    Resolves privilege tiers for actors of one request.

    Member and group lookups are memoized per instance; build one resolver
    per request or per scheduled job.
    """

    def __init__(self, settings: Settings, store: RecordStore):
        self.settings = settings
        self.store = store
        self._guild = GuildStrategy(settings.GUILD_OWNER_ROLE, settings.GUILD_ADMIN_ROLE)
        self._group = GroupStrategy()
        self._lookups: Dict[Tuple[str, str, str], Member] = {}

    def strategy_for(self, actor: ActorContext) -> PlatformStrategy:
        if any(marker in actor.group_id for marker in self.settings.GUILD_MARKERS):
            return self._guild
        return self._group

    def _soft_lookup(self, actor: ActorContext, kind: str, loader: Callable[[], Member]) -> Member:
        key = (kind, actor.tenant_id, actor.user_id)
        if key in self._lookups:
            return self._lookups[key]
        try:
            result = loader()
        except Exception as e:
            logger.warning(
                f"{kind} lookup failed for {actor.qualified_id} in {actor.tenant_id}: {e}",
                extra={"tenant_id": actor.tenant_id, "user_id": actor.qualified_id}
            )
            result = None
        self._lookups[key] = result
        return result

    def _member(self, actor: ActorContext) -> Member:
        return self._soft_lookup(actor, "member", actor.member_lookup)

    def _container(self, actor: ActorContext) -> Member:
        return self._soft_lookup(actor, "group", actor.container_lookup)

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    def is_owner(self, actor: ActorContext) -> bool:
        if actor.qualified_id in self.settings.OWNER_IDS:
            logger.debug(f"{actor.qualified_id} is a configured owner")
            return True

        if not actor.has_directory:
            return False

        strategy = self.strategy_for(actor)
        verdict = strategy.owner_verdict(
            actor,
            self._member(actor),
            lambda: self._container(actor),
        )
        if verdict is None:
            logger.debug(
                f"Owner status of {actor.qualified_id} undetermined on {strategy.style} platform, "
                f"configure OWNER_IDS to grant it"
            )
        return verdict is True

    def _has_admin_role(self, actor: ActorContext) -> bool:
        if not actor.has_directory:
            return False

        member = self._member(actor)
        if member is None:
            return False

        verdict = self.strategy_for(actor).admin_verdict(actor, member)
        if verdict is not None:
            return verdict

        role = member.get("role")
        return role is not None and str(role) in self.settings.ADMIN_ROLES

    def is_admin(self, actor: ActorContext) -> bool:
        """Owner or platform admin."""
        return self.is_owner(actor) or self._has_admin_role(actor)

    def is_allow_listed(self, actor: ActorContext) -> bool:
        entry = self.store.first("allow_list", tenant_id=actor.tenant_id, user_id=actor.qualified_id)
        return entry is not None

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def can_manage(self, actor: ActorContext) -> bool:
        """
        Gate for add / bind / unbind / reset.

        Owner always passes. Otherwise ALLOW_LIST_ENABLED picks exactly one
        other tier: the allow-list when on, the admin role when off.
        """
        if self.is_owner(actor):
            return True
        if self.settings.ALLOW_LIST_ENABLED:
            return self.is_allow_listed(actor)
        return self._has_admin_role(actor)

    def require_manage(self, actor: ActorContext, action: str) -> None:
        if not self.can_manage(actor):
            log_security_event(
                "permission_denied",
                {"tenant_id": actor.tenant_id, "user_id": actor.qualified_id, "action": action},
                logger
            )
            raise PermissionDenied(f"You do not have permission to {action}")

    def can_manage_allow_list(self, actor: ActorContext) -> bool:
        if not self.settings.ALLOW_LIST_REQUIRE_ADMIN:
            return True
        return self.is_admin(actor)

    def require_allow_list_manager(self, actor: ActorContext) -> None:
        if not self.can_manage_allow_list(actor):
            log_security_event(
                "permission_denied",
                {"tenant_id": actor.tenant_id, "user_id": actor.qualified_id, "action": "manage allow-list"},
                logger
            )
            raise PermissionDenied("Only the group owner or admins can manage the allow-list")

    def privileges(self, actor: ActorContext, include_member: bool = False) -> PrivilegeReport:
        """Every tier for the actor, for the permission check command."""
        return PrivilegeReport(
            tenant_id=actor.tenant_id,
            user_id=actor.qualified_id,
            platform_style=self.strategy_for(actor).style,
            is_owner=self.is_owner(actor),
            is_admin=self.is_admin(actor),
            is_allow_listed=self.is_allow_listed(actor),
            can_manage=self.can_manage(actor),
            member=self._member(actor) if include_member and actor.has_directory else None,
        )
