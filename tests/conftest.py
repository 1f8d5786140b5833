import pytest

from waterlevel.queues.memory import MemoryQueueClient
from waterlevel.settings import app_settings


@pytest.fixture(autouse=True)
def _isolated_backends(monkeypatch: pytest.MonkeyPatch):
    """Fresh in-process queues for every test and no health check file writes."""
    MemoryQueueClient.reset()
    monkeypatch.setattr(app_settings, "health_check_period", 0)
    yield
    MemoryQueueClient.reset()
