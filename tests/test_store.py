import re
import threading

import pytest

from cloudprnt_broker.errors import InvalidInput, InvalidState, NotFound
from cloudprnt_broker.models import JobStatus
from cloudprnt_broker.store import JobStore


TOKEN_RE = re.compile(r'^job-(\d+)-(\d+)$')


# ---- create ------------------------------------------------------------------

def test_create_assigns_pending_job_with_token(store):
    job = store.create('Order #1')

    assert job.id == 1
    assert job.status == JobStatus.PENDING
    assert job.content == 'Order #1'
    match = TOKEN_RE.match(job.token)
    assert match and match.group(1) == '1'
    assert store.find_by_token(job.token) == job


def test_ids_increase_and_tokens_are_distinct(store):
    jobs = [store.create(f'order {i}') for i in range(50)]

    ids = [j.id for j in jobs]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)
    assert len({j.token for j in jobs}) == len(jobs)


@pytest.mark.parametrize('content', ['', None, 42, ['text'], {'text': 'x'}])
def test_create_rejects_empty_or_non_text(store, content):
    with pytest.raises(InvalidInput):
        store.create(content)
    assert len(store) == 0


def test_rejected_create_does_not_consume_an_id(store):
    with pytest.raises(InvalidInput):
        store.create('')
    assert store.create('ok').id == 1


# ---- dispatch ----------------------------------------------------------------

def test_next_pending_is_fifo_and_does_not_mutate(store):
    a = store.create('A')
    store.create('B')

    assert store.next_pending() == a
    assert store.next_pending() == a
    assert store.get(a.id).status == JobStatus.PENDING


def test_next_pending_none_when_empty(store):
    assert store.next_pending() is None
    assert store.claim_next_pending() is None


def test_mark_printing_only_from_pending(store):
    job = store.create('A')
    store.mark_printing(job.id)
    stored = store.get(job.id)
    assert stored.status == JobStatus.PRINTING
    assert stored.printing_at is not None

    with pytest.raises(InvalidState):
        store.mark_printing(job.id)


def test_mark_printing_unknown_id(store):
    with pytest.raises(NotFound):
        store.mark_printing(99)


def test_claim_next_pending_dispatches_in_order(store):
    a, b, c = store.create('A'), store.create('B'), store.create('C')

    claimed = [store.claim_next_pending() for _ in range(4)]

    assert [j.id if j else None for j in claimed] == [a.id, b.id, c.id, None]
    assert all(j.status == JobStatus.PRINTING for j in claimed[:3])
    assert all(store.get(j.id).status == JobStatus.PRINTING for j in (a, b, c))


def test_concurrent_claims_never_share_a_job():
    store = JobStore()
    for i in range(20):
        store.create(f'order {i}')

    claimed = []
    claimed_lock = threading.Lock()
    barrier = threading.Barrier(40)

    def worker():
        barrier.wait()
        job = store.claim_next_pending()
        with claimed_lock:
            claimed.append(job)

    threads = [threading.Thread(target=worker) for _ in range(40)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    jobs = [j for j in claimed if j is not None]
    assert len(jobs) == 20
    assert len({j.id for j in jobs}) == 20
    assert claimed.count(None) == 20


# ---- terminal ----------------------------------------------------------------

def test_set_terminal_done_and_error(store):
    a, b = store.create('A'), store.create('B')
    store.claim_next_pending()
    store.claim_next_pending()

    store.set_terminal(a.token, JobStatus.DONE, device_status='0')
    store.set_terminal(b.token, JobStatus.ERROR, device_status='500')

    a, b = store.get(a.id), store.get(b.id)
    assert a.status == JobStatus.DONE
    assert a.device_status == '0'
    assert b.status == JobStatus.ERROR
    assert b.device_status == '500'
    assert a.finished_at is not None


def test_set_terminal_unknown_token(store):
    with pytest.raises(NotFound):
        store.set_terminal('job-1-0', JobStatus.DONE)


def test_set_terminal_is_final(store):
    job = store.create('A')
    store.claim_next_pending()
    store.set_terminal(job.token, JobStatus.DONE)

    with pytest.raises(InvalidState):
        store.set_terminal(job.token, JobStatus.ERROR)
    assert store.get(job.id).status == JobStatus.DONE


def test_set_terminal_requires_dispatch(store):
    job = store.create('A')
    with pytest.raises(InvalidState):
        store.set_terminal(job.token, JobStatus.DONE)
    assert store.get(job.id).status == JobStatus.PENDING


def test_set_terminal_rejects_non_terminal_outcome(store):
    job = store.create('A')
    store.claim_next_pending()
    with pytest.raises(ValueError):
        store.set_terminal(job.token, JobStatus.PENDING)


# ---- introspection & retention -----------------------------------------------

def test_counts_and_list_jobs(store):
    a = store.create('A')
    store.create('B')
    store.claim_next_pending()
    store.set_terminal(a.token, JobStatus.DONE)

    assert store.counts() == {'pending': 1, 'printing': 0, 'done': 1, 'error': 0}
    assert [j.content for j in store.list_jobs()] == ['A', 'B']
    assert store.get(a.id).content == 'A'
    assert store.get(99) is None


def test_max_finished_evicts_oldest_finished_only():
    store = JobStore(max_finished=2)
    jobs = [store.create(f'order {i}') for i in range(4)]
    for job in jobs[:3]:
        store.claim_next_pending()
        store.set_terminal(job.token, JobStatus.DONE)

    remaining = store.list_jobs()
    assert [j.id for j in remaining] == [2, 3, 4]
    assert store.find_by_token(jobs[0].token) is None
    assert store.get(jobs[3].id).status == JobStatus.PENDING
    assert store.get(jobs[0].id) is None

    # Counter is never rewound
    assert store.create('next').id == 5


# ---- ownership -----------------------------------------------------------------

def test_returned_jobs_are_copies(store):
    created = store.create('A')

    store.list_jobs()[0].status = JobStatus.DONE
    store.find_by_token(created.token).content = 'tampered'
    store.get(created.id).fail('9')
    created.start()

    pending = store.next_pending()
    assert pending is not None
    assert pending.id == created.id
    assert pending.status == JobStatus.PENDING
    assert pending.content == 'A'


def test_claimed_and_finished_jobs_are_copies(store):
    store.create('A')

    claimed = store.claim_next_pending()
    claimed.complete('0')
    assert store.get(claimed.id).status == JobStatus.PRINTING

    finished = store.set_terminal(claimed.token, JobStatus.ERROR, device_status='1')
    finished.status = JobStatus.PENDING
    assert store.next_pending() is None
    assert store.get(claimed.id).status == JobStatus.ERROR


def test_to_dicts_serializes_under_lock(store):
    a = store.create('A')
    store.claim_next_pending()
    store.set_terminal(a.token, JobStatus.DONE, device_status='0')

    rows = store.to_dicts()

    assert len(rows) == 1
    assert rows[0]['status'] == 'done'
    assert rows[0]['device_status'] == '0'
    assert isinstance(rows[0]['finished_at'], str)
