from arcade_queue.core.reports import ReportAggregator
from arcade_queue.core.scheduler import ResetScheduler
from arcade_queue.database import SessionLocal

from conftest import GROUP, OTHER_GROUP, FakeTimerFactory


def add(store, tenant_id, name, aliases=(), current=0, total_updates=0):
    store.create(
        "arcade", tenant_id=tenant_id, name=name, aliases=list(aliases),
        current=current, total_updates=total_updates
    )
    store.db.commit()


def test_empty_report(store, settings, clock):
    report = ReportAggregator(store, settings, clock=clock).report(GROUP)

    assert report.total_arcades == 0
    assert report.total_current == 0
    assert report.alias_usage == []
    assert report.most_crowded is None
    assert report.generated_at == clock.now


def test_report_over_local_and_bound(store, settings):
    add(store, GROUP, "Round1", aliases=["r1", "wd"], current=3, total_updates=4)
    add(store, GROUP, "Round2", aliases=["wd2"], current=9, total_updates=1)
    add(store, OTHER_GROUP, "Remote", aliases=["wd"], current=1, total_updates=2)
    store.create("group_binding", source_tenant_id=OTHER_GROUP, target_tenant_id=GROUP, is_enabled=True)
    store.db.commit()

    report = ReportAggregator(store, settings).report(GROUP)

    assert report.local_arcades == 2
    assert report.bound_arcades == 1
    assert report.total_arcades == 3
    assert report.total_current == 13
    assert report.total_updates == 7
    assert report.most_crowded.name == "Round2"
    assert report.most_crowded.current == 9

    usage = [(u.alias, u.arcades) for u in report.alias_usage]
    assert usage[0] == ("wd", 2)
    assert sorted(usage[1:]) == [("r1", 1), ("wd2", 1)]
    assert report.alias_usage[0].group_query == "wdj"


def test_list_all_sorted(store, settings):
    add(store, GROUP, "b")
    add(store, GROUP, "a")
    assert [a.name for a in ReportAggregator(store, settings).list_all(GROUP)] == ["a", "b"]


def test_status(store, settings, locks):
    add(store, GROUP, "Round1", current=2)
    add(store, GROUP, "Round2", current=5)
    store.create("group_binding", source_tenant_id=OTHER_GROUP, target_tenant_id=GROUP, is_enabled=True)
    store.db.commit()

    scheduler = ResetScheduler(settings, SessionLocal, locks, timer_factory=FakeTimerFactory())
    reports = ReportAggregator(store, settings, scheduler=scheduler)

    status = reports.status(GROUP)
    assert status.local_arcades == 2
    assert status.total_current == 7
    assert status.bound_source == OTHER_GROUP
    assert status.daily_reset_time == settings.DAILY_RESET_TIME
    assert status.reset_armed is False

    scheduler.activate(GROUP)
    assert reports.status(GROUP).reset_armed is True
