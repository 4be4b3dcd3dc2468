import os, logging
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from dotenv import load_dotenv
import uvicorn

from relay.bark_client import push_to_bark, BarkDeliveryError
from relay.models import Rule
from relay.rule_engine import render_notification_params
from relay.store import RuleStore, open_rule_store

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Bark Relay API", version="0.1")

# ---------- store ----------
@app.on_event("startup")
def _startup():
  app.state.store = open_rule_store()

@app.on_event("shutdown")
def _shutdown():
  store = getattr(app.state, "store", None)
  if store:
    store.close()

def get_store(request: Request) -> RuleStore:
  return request.app.state.store

# ---------- routes ----------
@app.get("/", response_class=PlainTextResponse)
def index():
  return "Bark-Relay is Working!"

@app.post("/rules")
def save_rule(rule: Rule, store: RuleStore = Depends(get_store)):
  store.put(rule)
  logger.info("rule saved id=%s", rule.id)
  return {"message": "Rule saved successfully", "id": rule.id}

@app.get("/rules")
def list_rules(store: RuleStore = Depends(get_store)):
  return [r.model_dump(exclude_none=True) for r in store.list()]

@app.get("/rules/{rule_id}")
def get_rule(rule_id: str, store: RuleStore = Depends(get_store)):
  rule = store.get(rule_id)
  if not rule:
    raise HTTPException(status_code=404, detail="Rule not found")
  return rule.model_dump(exclude_none=True)

@app.delete("/rules/{rule_id}")
def delete_rule(rule_id: str, store: RuleStore = Depends(get_store)):
  if not store.delete(rule_id):
    raise HTTPException(status_code=404, detail="Rule not found")
  logger.info("rule deleted id=%s", rule_id)
  return {"message": "Rule deleted successfully"}

@app.post("/push")
def push(data: Any = Body(None), ruleId: Optional[str] = None, store: RuleStore = Depends(get_store)):
  body = data if isinstance(data, dict) else {}
  rule_id = body.get("ruleId") or ruleId
  if not rule_id:
    raise HTTPException(status_code=400, detail="Rule ID is required")
  logger.info("webhook received rule_id=%s", rule_id)

  rule = store.get(str(rule_id))
  if not rule:
    raise HTTPException(status_code=404, detail=f"Rule not found with ID: {rule_id}")

  payload = body.get("payload")
  if payload is None:
    payload = data

  params = render_notification_params(rule, payload)
  try:
    push_to_bark(rule.barkUrl, params)
  except BarkDeliveryError as e:
    raise HTTPException(status_code=502, detail=str(e))
  return {"success": True, "message": "Notification sent successfully"}

def main():
  uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL.lower())

if __name__ == "__main__":
  main()
