import pytest

from builders import make_cluster, make_machine, make_owner_machine, make_pool
from netclaim.store.memory import InMemoryObjectStore


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore(
        [make_cluster(), make_owner_machine(), make_machine(), make_pool()]
    )
