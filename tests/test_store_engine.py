"""
Tests for the document store: seeding, revision-checked saves, reset and
change notifications.
"""

from sqlalchemy import update

from models import StoreDocument
from store_engine import DocumentStore
from store_errors import PersistenceFailure, StaleWrite


# =============================================================================
# Seeding
# =============================================================================

def test_first_load_seeds_demo_dataset(store):
    db = store.load()

    assert [u.id for u in db.users] == ['u0', 'u1', 'u2', 'u3', 'u4']
    assert [o.id for o in db.organizations] == ['CH-9921', 'NGO-5500']
    assert db.inventories['CH-9921'].water == 120
    assert [r.id for r in db.replenishment_requests] == ['req-1', 'req-2']
    assert db.requests == []
    assert db.current_user is None
    assert store.current_revision() == 1


def test_seed_household_counts_are_derived(store):
    db = store.load()
    assert db.find_user('u1').household_members == 3
    assert db.find_user('u2').household_members == 1
    assert db.find_user('u3').household_members == 4


def test_repeated_loads_do_not_write(store):
    store.load()
    store.load()
    assert store.current_revision() == 1


def test_corrupt_document_is_reseeded(store):
    db = store.load()
    db.ticker_message = "Boil water advisory"
    assert store.save(db)

    with store.engine.begin() as conn:
        conn.execute(update(StoreDocument).values(body="{not json"))

    reloaded = store.load()
    assert reloaded.ticker_message == ""
    assert len(reloaded.users) == 5
    assert store.current_revision() == 3


def test_wrong_shape_document_is_reseeded(store):
    store.load()
    with store.engine.begin() as conn:
        conn.execute(update(StoreDocument).values(body='{"users": 5}'))

    assert len(store.load().organizations) == 2


# =============================================================================
# Save / Revision Check
# =============================================================================

def test_save_round_trips_and_bumps_revision(store):
    db = store.load()
    db.ticker_message = "Shelter at capacity"

    assert store.save(db) is True
    assert db.revision == 2
    assert store.load().ticker_message == "Shelter at capacity"


def test_stale_second_writer_is_rejected(store):
    first = store.load()
    second = store.load()

    first.ticker_message = "first"
    assert store.save(first)

    second.ticker_message = "second"
    assert store.save(second) is False
    assert isinstance(store.last_error, StaleWrite)
    assert store.load().ticker_message == "first"


def test_two_store_instances_share_revision_check(store):
    other = DocumentStore(store.engine, key=store.key)
    mine = store.load()

    theirs = other.load()
    theirs.current_user = 'u1'
    assert other.save(theirs)

    mine.current_user = 'u2'
    assert not store.save(mine)
    assert store.load().current_user == 'u1'


def test_save_recomputes_household_count(store):
    db = store.load()
    user = db.find_user('u1')
    user.household = user.household[:1]
    assert store.save(db)

    assert store.load().find_user('u1').household_members == 2


def test_save_failure_sets_last_error(store):
    db = store.load()
    StoreDocument.__table__.drop(store.engine)

    assert store.save(db) is False
    assert isinstance(store.last_error, PersistenceFailure)
    assert not isinstance(store.last_error, StaleWrite)


def test_load_failure_returns_seed_without_raising(store):
    store.load()
    StoreDocument.__table__.drop(store.engine)

    db = store.load()
    assert len(db.users) == 5
    assert store.current_revision() is None


# =============================================================================
# Reset
# =============================================================================

def test_reset_discards_state_and_reseeds(store):
    db = store.load()
    db.ticker_message = "temporary"
    store.save(db)

    assert store.reset() is True
    assert store.current_revision() == 0
    assert store.load().ticker_message == ""
    assert store.current_revision() == 1


# =============================================================================
# Change Notifications
# =============================================================================

def test_on_change_fires_after_successful_save(store):
    events = []
    store.on_change(events.append)

    db = store.load()
    db.ticker_message = "hello"
    store.save(db, topic="ticker")

    assert [e.topic for e in events] == ["seed", "ticker"]
    assert events[-1].revision == 2
    assert events[-1].source == "local"


def test_on_change_not_fired_for_rejected_save(store):
    stale = store.load()
    fresh = store.load()
    store.save(fresh)

    events = []
    store.on_change(events.append)
    assert not store.save(stale)
    assert events == []


def test_unsubscribe_stops_notifications(store):
    events = []
    unsubscribe = store.on_change(events.append)
    unsubscribe()
    unsubscribe()

    store.load()
    assert events == []


def test_failing_listener_does_not_break_save(store):
    def broken(event):
        raise RuntimeError("listener bug")

    seen = []
    store.on_change(broken)
    store.on_change(seen.append)

    db = store.load()
    assert store.save(db)
    assert len(seen) == 2


def test_poll_changes_detects_external_writer(store):
    store.load()
    other = DocumentStore(store.engine, key=store.key)
    events = []
    store.on_change(events.append)

    assert store.poll_changes() is False

    db = other.load()
    db.ticker_message = "from another process"
    other.save(db)

    assert store.poll_changes() is True
    assert events[-1].source == "external"
    assert events[-1].revision == 2
    assert store.poll_changes() is False


def test_read_does_not_hide_external_write_from_poll(store):
    store.load()
    other = DocumentStore(store.engine, key=store.key)
    events = []
    store.on_change(events.append)

    db = other.load()
    db.ticker_message = "from another process"
    assert other.save(db)

    assert store.load().ticker_message == "from another process"
    assert store.poll_changes() is True
    assert [(e.source, e.revision) for e in events] == [("external", 2)]
