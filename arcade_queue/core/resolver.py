"""
Entity Resolver

Maps free-text queries to arcades across a tenant's own data and, when the
tenant has an enabled binding, the bound tenant's data.

Three query modes exist and are kept separate on purpose:

- resolve(): single arcade. Local exact name, local alias, bound name or
  alias (returned as a projection), then local name substring.
- resolve_by_alias_substring(): the "<keyword>j" group query. Every local
  and bound arcade with an alias containing the keyword. Names are never
  searched in this mode.
- search(): the general entry point used by queries. Falls back to a fuzzy
  scan over names and aliases of local plus projected arcades.

All comparisons are case-sensitive.
"""
from typing import List, Optional

from arcade_queue.core.bindings import BindingResolver
from arcade_queue.core.store import RecordStore
from arcade_queue.schemas.arcade import ArcadeView, SearchResult

# Trailing marker of an alias-group query: "wdj" lists every arcade whose
# alias contains "wd".
ALIAS_GROUP_SUFFIX = "j"


class EntityResolver:
    def __init__(self, store: RecordStore, bindings: BindingResolver):
        self.store = store
        self.bindings = bindings

    def _local(self, tenant_id: str):
        return self.store.get("arcade", tenant_id=tenant_id)

    def _foreign(self, tenant_id: str) -> List[ArcadeView]:
        source = self.bindings.get_active_source(tenant_id)
        if source is None:
            return []
        return [
            ArcadeView.projection(row, source)
            for row in self.store.get("arcade", tenant_id=source)
        ]

    def resolve(self, query: str, tenant_id: str) -> Optional[ArcadeView]:
        """Best single match for query, or None."""
        exact = self.store.first("arcade", tenant_id=tenant_id, name=query)
        if exact:
            return ArcadeView.from_row(exact)

        local = self._local(tenant_id)
        for arcade in local:
            if arcade.matches_alias(query):
                return ArcadeView.from_row(arcade)

        for projected in self._foreign(tenant_id):
            if projected.name == query or query in projected.aliases:
                return projected

        # Substring tier is local only
        for arcade in local:
            if query in arcade.name:
                return ArcadeView.from_row(arcade)

        return None

    def resolve_by_alias_substring(self, keyword: str, tenant_id: str) -> List[ArcadeView]:
        results = [
            ArcadeView.from_row(arcade)
            for arcade in self._local(tenant_id)
            if any(keyword in alias for alias in arcade.aliases or [])
        ]
        results.extend(
            projected
            for projected in self._foreign(tenant_id)
            if any(keyword in alias for alias in projected.aliases)
        )
        return results

    def all_with_binding(self, tenant_id: str) -> List[ArcadeView]:
        """Local arcades followed by projections of the bound tenant's."""
        local = [ArcadeView.from_row(arcade) for arcade in self._local(tenant_id)]
        return local + self._foreign(tenant_id)

    def search(self, query: Optional[str], tenant_id: str) -> SearchResult:
        query = (query or "").strip()

        if not query:
            arcades = sorted(self.all_with_binding(tenant_id), key=lambda a: a.name)
            return SearchResult(query=query, mode="all", arcades=arcades, total=len(arcades))

        if query.endswith(ALIAS_GROUP_SUFFIX):
            keyword = query[:-len(ALIAS_GROUP_SUFFIX)]
            arcades = self.resolve_by_alias_substring(keyword, tenant_id)
            return SearchResult(
                query=query, mode="alias_group", keyword=keyword, arcades=arcades, total=len(arcades)
            )

        arcade = self.resolve(query, tenant_id)
        if arcade:
            return SearchResult(query=query, mode="exact", arcades=[arcade], total=1)

        arcades = [
            candidate
            for candidate in self.all_with_binding(tenant_id)
            if query in candidate.name or any(query in alias for alias in candidate.aliases)
        ]
        return SearchResult(query=query, mode="fuzzy", arcades=arcades, total=len(arcades))
