# routeready/conftest.py
import sys
import os
import pytest
from pathlib import Path

# Test environment must be in place before routeready settings are imported
os.environ["ENV"] = "test"
os.environ["TEST_DATABASE_URL"] = "sqlite://"
os.environ.setdefault("CLERK_SECRET_KEY", "test-clerk-secret-key-0123456789abcdef")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_routeready_dummy")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "test-maps-key")
os.environ.setdefault("CHECKOUT_ALLOWED_ORIGINS", "http://localhost:3000,https://routeready.example")
os.environ["RATE_LIMIT_ENABLED"] = "false"

# Add repo root to PYTHONPATH
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """Fresh in-memory schema, gate singletons and counters for every test."""
    from routeready.core.database import reset_database
    from routeready.core.metrics import METRICS
    from routeready.api.deps import reset_dependencies

    reset_database()
    reset_dependencies()
    METRICS.reset()
    yield
    reset_dependencies()


@pytest.fixture
def fake_oracle():
    from routeready.tests.mocks import FakeOracle
    return FakeOracle(distance_miles=570.0, duration_hours=9.2)


@pytest.fixture
def client(fake_oracle):
    """TestClient with the distance oracle swapped for a fake."""
    from fastapi.testclient import TestClient
    from routeready.main import app
    from routeready.api.deps import get_oracle

    app.dependency_overrides[get_oracle] = lambda: fake_oracle
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    from routeready.tests.mocks import make_token

    def _headers(user_id: str = "user_alice", email: str = "alice@example.com") -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, email)}"}
    return _headers
