import pytest
from fastapi.testclient import TestClient

from api.main import app, get_store
from relay.models import Rule
from relay.store import MemoryKV, RuleStore

@pytest.fixture
def store():
  return RuleStore(MemoryKV())

@pytest.fixture
def client(store):
  app.dependency_overrides[get_store] = lambda: store
  yield TestClient(app)
  app.dependency_overrides.clear()

@pytest.fixture
def rule():
  return Rule.model_validate({
    "id": "r1",
    "name": "Greeting",
    "mapping": {"title": "Hi ${n}", "body": "B"},
    "barkUrl": "https://x/y",
  })
