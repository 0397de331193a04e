import pytest
from fastapi.testclient import TestClient

from screentutor.app.main import app
from screentutor.app.providers.fallback import FallbackOrchestrator
from screentutor.app.providers.health import HealthProber
from screentutor.tests.helpers import RecordingHandler, mock_provider_client


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def api_client(handler):
    """Test client whose provider traffic is answered by the ``handler`` fixture."""
    with TestClient(app) as client:
        original = (app.state.orchestrator, app.state.prober)
        provider_client = mock_provider_client(handler)
        app.state.orchestrator = FallbackOrchestrator(provider_client)
        app.state.prober = HealthProber(provider_client)
        try:
            yield client
        finally:
            app.state.orchestrator, app.state.prober = original
