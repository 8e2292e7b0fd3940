from arcade_queue.core.bindings import BindingResolver
from arcade_queue.core.resolver import EntityResolver

from conftest import GROUP, OTHER_GROUP


def add(store, tenant_id, name, aliases=(), current=0):
    arcade = store.create("arcade", tenant_id=tenant_id, name=name, aliases=list(aliases), current=current)
    store.db.commit()
    return arcade


def bind(store, target=GROUP, source=OTHER_GROUP, enabled=True):
    store.create("group_binding", source_tenant_id=source, target_tenant_id=target, is_enabled=enabled)
    store.db.commit()


def resolver_for(store):
    return EntityResolver(store, BindingResolver(store))


def test_exact_name_wins_over_alias(store):
    add(store, GROUP, "Round1", aliases=["dk"])
    add(store, GROUP, "dk")

    arcade = resolver_for(store).resolve("dk", GROUP)
    assert arcade.name == "dk"
    assert arcade.is_bound is False


def test_local_alias_wins_over_bound_name(store):
    add(store, GROUP, "Wanda Plaza", aliases=["wd"])
    add(store, OTHER_GROUP, "wd")
    bind(store)

    arcade = resolver_for(store).resolve("wd", GROUP)
    assert arcade.name == "Wanda Plaza"
    assert arcade.tenant_id == GROUP


def test_bound_alias_wins_over_local_substring(store):
    add(store, GROUP, "Mega Center")
    add(store, OTHER_GROUP, "Mega Arcade", aliases=["Mega"])
    bind(store)

    arcade = resolver_for(store).resolve("Mega", GROUP)
    assert arcade.name == "Mega Arcade"
    assert arcade.is_bound is True
    assert arcade.source_tenant_id == OTHER_GROUP


def test_substring_tier_is_local_only(store):
    add(store, OTHER_GROUP, "Mega Arcade")
    bind(store)

    assert resolver_for(store).resolve("Mega", GROUP) is None


def test_local_substring_match(store):
    add(store, GROUP, "Dicapu Carnival")
    arcade = resolver_for(store).resolve("Carnival", GROUP)
    assert arcade.name == "Dicapu Carnival"


def test_matching_is_case_sensitive(store):
    add(store, GROUP, "Round1", aliases=["R1"])
    resolver = resolver_for(store)

    assert resolver.resolve("round1", GROUP) is None
    assert resolver.resolve("r1", GROUP) is None


def test_disabled_binding_is_ignored(store):
    add(store, OTHER_GROUP, "Remote", aliases=["rm"])
    bind(store, enabled=False)

    resolver = resolver_for(store)
    assert resolver.resolve("rm", GROUP) is None
    assert resolver.all_with_binding(GROUP) == []


def test_other_tenants_are_invisible_without_binding(store):
    add(store, OTHER_GROUP, "Remote", aliases=["rm"])
    assert resolver_for(store).resolve("Remote", GROUP) is None


def test_projection_does_not_touch_source_row(store, db):
    add(store, OTHER_GROUP, "Remote", aliases=["rm"])
    bind(store)

    projected = resolver_for(store).resolve("rm", GROUP)
    assert projected.is_bound is True

    db.expire_all()
    source = store.first("arcade", tenant_id=OTHER_GROUP, name="Remote")
    assert source.is_bound is False
    assert source.source_tenant_id is None


def test_alias_group_matches_alias_substrings_only(store):
    add(store, GROUP, "Fun Zone", aliases=["f"])
    add(store, GROUP, "Fox Arcade", aliases=["fo"])
    add(store, GROUP, "f-named", aliases=["x"])
    add(store, OTHER_GROUP, "Far Away", aliases=["ff"])
    bind(store)

    result = resolver_for(store).search("fj", GROUP)
    assert result.mode == "alias_group"
    assert result.keyword == "f"
    assert [a.name for a in result.arcades] == ["Fun Zone", "Fox Arcade", "Far Away"]
    assert result.arcades[-1].is_bound is True
    assert result.total == 3


def test_bare_suffix_lists_every_aliased_arcade(store):
    add(store, GROUP, "Aliased", aliases=["a"])
    add(store, GROUP, "Plain")

    result = resolver_for(store).search("j", GROUP)
    assert [a.name for a in result.arcades] == ["Aliased"]


def test_empty_query_lists_all_sorted(store):
    add(store, GROUP, "Zeta")
    add(store, GROUP, "Alpha")
    add(store, OTHER_GROUP, "Mid")
    bind(store)

    result = resolver_for(store).search("  ", GROUP)
    assert result.mode == "all"
    assert [a.name for a in result.arcades] == ["Alpha", "Mid", "Zeta"]


def test_search_exact_then_fuzzy(store):
    add(store, GROUP, "Round1 East", aliases=["r1e"])
    add(store, OTHER_GROUP, "Round1 West")
    bind(store)
    resolver = resolver_for(store)

    exact = resolver.search("r1e", GROUP)
    assert exact.mode == "exact"
    assert exact.total == 1

    # "West" only appears in a bound name, which resolve() does not substring-match
    fuzzy = resolver.search("West", GROUP)
    assert fuzzy.mode == "fuzzy"
    assert [a.name for a in fuzzy.arcades] == ["Round1 West"]

    assert resolver.search("nowhere", GROUP).total == 0


def test_local_name_wins_over_same_bound_name(store):
    local = add(store, GROUP, "A")
    add(store, OTHER_GROUP, "A")
    bind(store)

    arcade = resolver_for(store).resolve("A", GROUP)
    assert arcade.id == local.id
    assert arcade.is_bound is False
