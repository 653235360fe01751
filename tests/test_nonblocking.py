import threading

from app.services.document_store import DocumentNotFound
from app.services.nonblocking import (
    WRITES,
    WritePool,
    array_union_nonblocking,
    set_document_nonblocking,
    update_document_nonblocking,
)
from app.services.notifications import NOTICES


def test_dispatch_returns_before_the_write_lands():
    gate = threading.Event()
    pool = WritePool(workers=1)
    ticket = pool.dispatch(gate.wait, 5.0, description="blocked write")
    try:
        assert ticket.done() is False
    finally:
        gate.set()
    assert ticket.result(timeout=5.0) is True
    pool.shutdown()


def test_writes_apply_in_dispatch_order(store):
    for i in range(20):
        set_document_nonblocking("games/g1", {"counter": i}, merge=True, store=store)
    assert WRITES.drain(timeout=5.0)
    assert store.get("games/g1")["counter"] == 19


def test_failed_write_surfaces_a_notice_without_retry(store):
    calls = []
    original_update = store.update

    def counting_update(path, fields):
        calls.append(path)
        return original_update(path, fields)

    store.update = counting_update
    ticket = update_document_nonblocking("games/missing", {"phase": "playing"}, game_id="missing", store=store)
    assert WRITES.drain(timeout=5.0)

    assert isinstance(ticket.error, DocumentNotFound)
    assert calls == ["games/missing"]
    notices = NOTICES.recent("missing")
    assert len(notices) == 1
    assert notices[0].level == "destructive"
    assert notices[0].title == "Error"


def test_ticket_callback_observes_outcome(store):
    store.set("games/g1/hints/h1", {"revealed_for": []})
    seen = []
    ticket = array_union_nonblocking("games/g1/hints/h1", "revealed_for", "A", store=store)
    ticket.add_done_callback(lambda t: seen.append(t.error))
    assert ticket.result(timeout=5.0) is True
    WRITES.drain(timeout=5.0)
    assert seen == [None]
