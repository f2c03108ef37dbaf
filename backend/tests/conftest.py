import pytest

from zennote.services.gateway import MemoryGateway
from zennote.services.mutations import MutationEngine
from zennote.services.store import NoteStore

from tests.factories import AUTOSAVE_DELAY


@pytest.fixture
def gateway() -> MemoryGateway:
    return MemoryGateway("test_store")


@pytest.fixture
def engine(gateway: MemoryGateway) -> MutationEngine:
    return MutationEngine(gateway)


@pytest.fixture
async def store(gateway: MemoryGateway):
    s = NoteStore(gateway, autosave_delay=AUTOSAVE_DELAY)
    await s.load()
    yield s
    await s.aclose()
