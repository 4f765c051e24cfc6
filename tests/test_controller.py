import asyncio
import threading
import time

from builders import NS, make_load_balancer, make_machine
from netclaim.config import config
from netclaim.controller import ReconcileController
from netclaim.models.enums import ReconcileStatus
from netclaim.models.resources import ObjectRef
from netclaim.reconciler import ReconcileResult
from netclaim.store.memory import InMemoryObjectStore

VM1 = ObjectRef("VSphereMachine", NS, "vm1")


class FakeReconciler:
    """Returns scripted results (or raises scripted exceptions) in order."""

    def __init__(self, results=None, delay: float = 0.0):
        self.store = InMemoryObjectStore()
        self.results = list(results or [])
        self.delay = delay
        self.calls: list[ObjectRef] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def reconcile(self, ref: ObjectRef) -> ReconcileResult:
        with self._lock:
            self.calls.append(ref)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            result = self.results.pop(0) if self.results else ReconcileResult(ReconcileStatus.DONE)
        try:
            if self.delay:
                time.sleep(self.delay)
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            with self._lock:
                self.active -= 1


async def wait_for_calls(fake: FakeReconciler, count: int, timeout: float = 5.0) -> None:
    async def poll():
        while len(fake.calls) < count:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)


def test_backoff_doubles_up_to_max():
    controller = ReconcileController(FakeReconciler())

    assert controller.backoff(1) == config.ERROR_BACKOFF_BASE_SECONDS
    assert controller.backoff(2) == 2 * config.ERROR_BACKOFF_BASE_SECONDS
    assert controller.backoff(3) == 4 * config.ERROR_BACKOFF_BASE_SECONDS
    assert controller.backoff(50) == config.ERROR_BACKOFF_MAX_SECONDS


def test_duplicate_keys_are_processed_once():
    fake = FakeReconciler()

    async def scenario():
        controller = ReconcileController(fake, worker_count=2)
        for _ in range(3):
            controller.enqueue(VM1)
        assert controller.pending() == 1

        controller.start(resync=False)
        await controller.join()
        await controller.stop()

    asyncio.run(scenario())

    assert fake.calls == [VM1]


def test_requeue_after_is_honoured():
    fake = FakeReconciler(
        [ReconcileResult(ReconcileStatus.WAIT_FOR_ADDRESS, requeue_after=0.02)]
    )

    async def scenario():
        controller = ReconcileController(fake, worker_count=1)
        controller.start(resync=False)
        controller.enqueue(VM1)
        await wait_for_calls(fake, 2)
        await controller.stop()

    asyncio.run(scenario())

    assert fake.calls == [VM1, VM1]


def test_failure_is_retried_with_backoff(monkeypatch):
    monkeypatch.setattr(config, "ERROR_BACKOFF_BASE_SECONDS", 0.01)
    fake = FakeReconciler([RuntimeError("boom"), ReconcileResult(ReconcileStatus.FAILED)])

    async def scenario():
        controller = ReconcileController(fake, worker_count=1)
        controller.start(resync=False)
        controller.enqueue(VM1)
        await wait_for_calls(fake, 3)
        await controller.join()
        await controller.stop()
        return controller

    controller = asyncio.run(scenario())

    assert len(fake.calls) == 3
    assert controller._failures == {}


def test_key_enqueued_while_processing_runs_again_but_not_concurrently():
    fake = FakeReconciler(delay=0.05)

    async def scenario():
        controller = ReconcileController(fake, worker_count=3)
        controller.start(resync=False)
        controller.enqueue(VM1)
        await wait_for_calls(fake, 1)
        controller.enqueue(VM1)
        controller.enqueue(VM1)
        await wait_for_calls(fake, 2)
        await controller.join()
        await controller.stop()

    asyncio.run(scenario())

    assert fake.calls == [VM1, VM1]
    assert fake.max_active == 1


def test_delayed_enqueue_keeps_earliest_deadline():
    fake = FakeReconciler()

    async def scenario():
        controller = ReconcileController(fake, worker_count=1)
        controller.start(resync=False)
        controller.enqueue(VM1, delay=10)
        controller.enqueue(VM1, delay=0.01)
        controller.enqueue(VM1, delay=20)
        await wait_for_calls(fake, 1, timeout=2)
        await controller.stop()

    asyncio.run(scenario())

    assert fake.calls == [VM1]


def test_resync_enqueues_every_watched_object():
    store = InMemoryObjectStore(
        [make_machine("vm1"), make_machine("vm2"), make_load_balancer("c1")]
    )
    fake = FakeReconciler()

    async def scenario():
        controller = ReconcileController(fake, store=store, worker_count=1)
        count = await controller.resync_once()
        assert controller.pending() == 3
        controller.start(resync=False)
        await controller.join()
        await controller.stop()
        return count

    assert asyncio.run(scenario()) == 3
    assert sorted(str(ref) for ref in fake.calls) == [
        "HAProxyLoadBalancer default/c1",
        "VSphereMachine default/vm1",
        "VSphereMachine default/vm2",
    ]


def test_zero_resync_interval_lists_once():
    store = InMemoryObjectStore([make_machine("vm1")])
    fake = FakeReconciler()

    async def scenario():
        controller = ReconcileController(fake, store=store, worker_count=1, resync_interval=0)
        controller.start(resync=True)
        await wait_for_calls(fake, 1)
        await asyncio.sleep(0.05)
        await controller.stop()

    asyncio.run(scenario())

    assert fake.calls == [VM1]


def test_not_ready_without_requeue_waits_for_resync():
    fake = FakeReconciler([ReconcileResult(ReconcileStatus.WAIT_FOR_POOL)])

    async def scenario():
        controller = ReconcileController(fake, worker_count=1)
        controller.start(resync=False)
        controller.enqueue(VM1)
        await controller.join()
        await asyncio.sleep(0.05)
        pending = controller.pending()
        timers = dict(controller._timers)
        await controller.stop()
        return pending, timers

    pending, timers = asyncio.run(scenario())

    assert fake.calls == [VM1]
    assert pending == 0
    assert timers == {}
