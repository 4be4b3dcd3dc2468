import os
import logging
import threading
from typing import Optional

import psycopg
from dotenv import load_dotenv

from relay.models import Rule

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "")
RULE_STORE_BACKEND = os.getenv("RULE_STORE_BACKEND", "postgres" if DATABASE_URL else "memory").lower()
RULE_KEY_PREFIX = os.getenv("RULE_KEY_PREFIX", "rule:")

logger = logging.getLogger(__name__)

class MemoryKV:
  def __init__(self):
    self._data: dict[str, str] = {}
    self._lock = threading.Lock()

  def get(self, key: str) -> Optional[str]:
    with self._lock:
      return self._data.get(key)

  def put(self, key: str, value: str):
    with self._lock:
      self._data[key] = value

  def delete(self, key: str):
    with self._lock:
      self._data.pop(key, None)

  def keys(self, prefix: str = "") -> list[str]:
    with self._lock:
      return sorted(k for k in self._data if k.startswith(prefix))

  def close(self):
    pass

class PostgresKV:
  def __init__(self, database_url: str):
    self.database_url = database_url

  def db(self):
    return psycopg.connect(self.database_url)

  def ensure_schema(self):
    with self.db() as conn, conn.cursor() as cur:
      cur.execute("""
                  CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                  )
                  """)

  def get(self, key: str) -> Optional[str]:
    with self.db() as conn, conn.cursor() as cur:
      cur.execute("SELECT value FROM kv_store WHERE key=%s", (key,))
      row = cur.fetchone()
    return row[0] if row else None

  def put(self, key: str, value: str):
    with self.db() as conn, conn.cursor() as cur:
      cur.execute(
          """
          INSERT INTO kv_store(key, value, updated_at)
          VALUES (%s,%s,now())
              ON CONFLICT (key) DO UPDATE SET value=EXCLUDED.value, updated_at=now()
          """,
          (key, value)
      )

  def delete(self, key: str):
    with self.db() as conn, conn.cursor() as cur:
      cur.execute("DELETE FROM kv_store WHERE key=%s", (key,))

  def keys(self, prefix: str = "") -> list[str]:
    # prefix is matched with starts_with so LIKE wildcards in it stay literal
    with self.db() as conn, conn.cursor() as cur:
      cur.execute("SELECT key FROM kv_store WHERE starts_with(key, %s) ORDER BY key", (prefix,))
      return [r[0] for r in cur.fetchall()]

  def close(self):
    pass

class RuleStore:
  def __init__(self, kv, prefix: str = RULE_KEY_PREFIX):
    self.kv = kv
    self.prefix = prefix

  def _key(self, rule_id: str) -> str:
    return f"{self.prefix}{rule_id}"

  def get(self, rule_id: str) -> Optional[Rule]:
    raw = self.kv.get(self._key(rule_id))
    if raw is None:
      return None
    return Rule.model_validate_json(raw)

  def list(self) -> list[Rule]:
    rules = []
    for key in self.kv.keys(self.prefix):
      raw = self.kv.get(key)
      # deleted between listing and reading
      if raw is None:
        continue
      rules.append(Rule.model_validate_json(raw))
    return rules

  def put(self, rule: Rule):
    self.kv.put(self._key(rule.id), rule.model_dump_json(exclude_none=True))

  def delete(self, rule_id: str) -> bool:
    key = self._key(rule_id)
    if self.kv.get(key) is None:
      return False
    self.kv.delete(key)
    return True

  def close(self):
    self.kv.close()

def open_rule_store() -> RuleStore:
  if RULE_STORE_BACKEND == "postgres":
    if not DATABASE_URL:
      raise RuntimeError("RULE_STORE_BACKEND=postgres requires DATABASE_URL")
    kv = PostgresKV(DATABASE_URL)
    kv.ensure_schema()
  elif RULE_STORE_BACKEND == "memory":
    kv = MemoryKV()
  else:
    raise RuntimeError(f"Unknown RULE_STORE_BACKEND: {RULE_STORE_BACKEND}")
  logger.info("rule store backend=%s prefix=%s", RULE_STORE_BACKEND, RULE_KEY_PREFIX)
  return RuleStore(kv)
