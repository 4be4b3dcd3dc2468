import logging
import re

logger = logging.getLogger(__name__)

VALID_PATH = re.compile(r"[A-Za-z0-9_.]+")
FORBIDDEN_SEGMENTS = frozenset({"__proto__", "constructor", "prototype"})

def resolve_path(root, path: str):
  """Walk a dotted path through nested dicts/lists. Returns None when anything is off."""
  if not isinstance(path, str) or not VALID_PATH.fullmatch(path):
    logger.debug("rejected path %r", path)
    return None

  segments = path.split(".")
  for seg in segments:
    if not seg or seg in FORBIDDEN_SEGMENTS:
      logger.debug("rejected path segment %r in %r", seg, path)
      return None

  cur = root
  for seg in segments:
    if isinstance(cur, dict):
      if seg not in cur:
        return None
      cur = cur[seg]
    elif isinstance(cur, list):
      # only canonical indexes: "01" is not an element of a list
      if not seg.isdigit() or str(int(seg)) != seg or int(seg) >= len(cur):
        return None
      cur = cur[int(seg)]
    else:
      return None
  return cur
