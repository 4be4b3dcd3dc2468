import pytest

import api.main as main_mod
from relay.bark_client import BarkDeliveryError

RULE = {
  "id": "r1",
  "name": "Greeting",
  "mapping": {"title": "Hi ${n}", "body": "B"},
  "barkUrl": "https://x/y",
}

@pytest.fixture
def sent(monkeypatch):
  calls = []
  def fake_push(bark_url, params):
    calls.append((bark_url, params))
    return 200, "ok"
  monkeypatch.setattr(main_mod, "push_to_bark", fake_push)
  return calls

def test_index(client):
  resp = client.get("/")
  assert resp.status_code == 200
  assert resp.text == "Bark-Relay is Working!"

def test_create_and_get_rule(client, store):
  resp = client.post("/rules", json=RULE)
  assert resp.status_code == 200
  assert resp.json() == {"message": "Rule saved successfully", "id": "r1"}
  assert client.get("/rules/r1").json() == RULE
  assert client.get("/rules").json() == [RULE]

def test_update_replaces_whole_rule(client, store):
  client.post("/rules", json={**RULE, "mapping": {**RULE["mapping"], "group": "g"}})
  client.post("/rules", json=RULE)
  assert store.get("r1").mapping.group is None

@pytest.mark.parametrize("broken", [
  {k: v for k, v in RULE.items() if k != "id"},
  {**RULE, "name": ""},
  {k: v for k, v in RULE.items() if k != "mapping"},
  {**RULE, "mapping": {"body": "B"}},
  {**RULE, "mapping": {"title": "T", "body": ""}},
  {**RULE, "barkUrl": ""},
])
def test_create_rejects_missing_fields(client, store, broken):
  resp = client.post("/rules", json=broken)
  assert resp.status_code == 422
  assert store.kv.keys() == []

def test_get_missing_rule(client):
  resp = client.get("/rules/nope")
  assert resp.status_code == 404
  assert resp.json()["detail"] == "Rule not found"

def test_delete_rule(client):
  client.post("/rules", json=RULE)
  resp = client.delete("/rules/r1")
  assert resp.status_code == 200
  assert resp.json() == {"message": "Rule deleted successfully"}
  assert client.get("/rules").json() == []

def test_delete_missing_rule(client, store):
  client.post("/rules", json=RULE)
  resp = client.delete("/rules/nope")
  assert resp.status_code == 404
  assert store.kv.keys() == ["rule:r1"]

def test_push_with_payload_field(client, sent):
  client.post("/rules", json=RULE)
  resp = client.post("/push", json={"ruleId": "r1", "payload": {"n": 42}})
  assert resp.status_code == 200
  assert resp.json() == {"success": True, "message": "Notification sent successfully"}
  assert sent == [("https://x/y", {"title": "Hi 42", "body": "B"})]

def test_push_rule_id_from_query_uses_whole_body(client, sent):
  client.post("/rules", json=RULE)
  resp = client.post("/push?ruleId=r1", json={"n": 7})
  assert resp.status_code == 200
  assert sent[0][1] == {"title": "Hi 7", "body": "B"}

def test_push_requires_rule_id(client, sent):
  resp = client.post("/push", json={"n": 1})
  assert resp.status_code == 400
  assert sent == []

def test_push_unknown_rule(client, sent):
  resp = client.post("/push", json={"ruleId": "ghost"})
  assert resp.status_code == 404
  assert "ghost" in resp.json()["detail"]
  assert sent == []

def test_push_delivery_failure(client, monkeypatch):
  def failing_push(bark_url, params):
    raise BarkDeliveryError("Failed to send to Bark: HTTP 500", 500, "boom")
  monkeypatch.setattr(main_mod, "push_to_bark", failing_push)
  client.post("/rules", json=RULE)
  resp = client.post("/push", json={"ruleId": "r1", "payload": {"n": 1}})
  assert resp.status_code == 502
  assert "HTTP 500" in resp.json()["detail"]
  assert client.get("/rules/r1").json() == RULE

def test_main_serves_app_with_uvicorn(monkeypatch):
  calls = []
  monkeypatch.setattr(main_mod.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
  main_mod.main()
  assert calls[0][0] is main_mod.app
  assert calls[0][1]["port"] == main_mod.PORT
