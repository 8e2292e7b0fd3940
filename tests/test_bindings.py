import pytest

from arcade_queue.core.bindings import BindingResolver
from arcade_queue.core.exceptions import InvalidInputError, NotFoundError

from conftest import GROUP, OTHER_GROUP


def test_set_binding_creates_then_updates(store, clock):
    bindings = BindingResolver(store, clock)

    created = bindings.set_binding(GROUP, f" {OTHER_GROUP} ")
    assert created.source_tenant_id == OTHER_GROUP
    assert created.is_enabled is True
    assert bindings.get_active_source(GROUP) == OTHER_GROUP

    clock.advance(hours=1)
    bindings.set_binding(GROUP, "qq:300", enabled=False)

    rows = store.get("group_binding", target_tenant_id=GROUP)
    assert len(rows) == 1
    assert rows[0].source_tenant_id == "qq:300"
    assert rows[0].updated_at == clock.now
    assert bindings.get_active_source(GROUP) is None


def test_set_binding_rejects_empty_and_self(store):
    bindings = BindingResolver(store)
    with pytest.raises(InvalidInputError):
        bindings.set_binding(GROUP, "  ")
    with pytest.raises(InvalidInputError):
        bindings.set_binding(GROUP, GROUP)


def test_unbind_keeps_own_arcades(store):
    bindings = BindingResolver(store)
    bindings.set_binding(GROUP, OTHER_GROUP)

    own = store.create("arcade", tenant_id=GROUP, name="Mine", aliases=[])
    copied = store.create("arcade", tenant_id=GROUP, name="Copied", aliases=[], source_tenant_id=OTHER_GROUP)
    store.create("arcade_history", arcade_id=copied.id, tenant_id=GROUP, count=2,
                 updater_name="someone", updater_id="qq:someone")
    store.db.commit()

    result = bindings.unbind(GROUP)
    assert result.deleted_arcades == 1

    assert [a.name for a in store.get("arcade", tenant_id=GROUP)] == ["Mine"]
    assert store.get("arcade_history", arcade_id=copied.id) == []
    assert bindings.get_binding(GROUP) is None
    assert own.id is not None


def test_unbind_disabled_binding_is_not_found(store):
    bindings = BindingResolver(store)
    bindings.set_binding(GROUP, OTHER_GROUP, enabled=False)

    with pytest.raises(NotFoundError):
        bindings.unbind(GROUP)
    # Nothing was removed
    assert bindings.get_binding(GROUP) is not None
