"""Restricted ternary expressions for templates.

  condition ? whenTrue : whenFalse

The condition is `left <op> right` with a single operator taken from
OPERATORS. Operands are paths, quoted strings, numbers or true/false.
Branches are quoted strings or paths. Nothing nests, and evaluation never
raises: errors come back as "".
"""
import logging
import math
import operator
import re
from typing import Any, NamedTuple

from relay.paths import resolve_path

logger = logging.getLogger(__name__)

PATH_TOKEN = re.compile(r"[\w.]+", re.ASCII)
QUOTED_TOKEN = re.compile(r"'([^']*)'|\"([^\"]*)\"")
NUMBER_TOKEN = re.compile(r"-?\d+(?:\.\d+)?", re.ASCII)

PATH = "PATH"
STRING = "STRING"
NUMBER = "NUMBER"
BOOL = "BOOL"
OPAQUE = "OPAQUE"

class Operand(NamedTuple):
  kind: str
  text: str
  value: Any = None

def is_truthy(value) -> bool:
  # JavaScript truthiness: empty containers are truthy, NaN is not
  if value is None or value is False:
    return False
  if isinstance(value, (int, float)) and not isinstance(value, bool):
    return value != 0 and not math.isnan(value)
  if isinstance(value, str):
    return value != ""
  return True

def _is_number(value) -> bool:
  return isinstance(value, (int, float)) and not isinstance(value, bool)

def _to_number(value) -> float:
  if isinstance(value, bool):
    return float(value)
  if _is_number(value):
    return float(value)
  if isinstance(value, str):
    text = value.strip()
    if not text:
      return 0.0
    # float() also accepts non-ASCII digits
    if not text.isascii():
      return math.nan
    try:
      return float(text)
    except ValueError:
      return math.nan
  return math.nan

def _strict_equals(left, right) -> bool:
  if left is None or right is None:
    return left is None and right is None
  if isinstance(left, bool) or isinstance(right, bool):
    return isinstance(left, bool) and isinstance(right, bool) and left == right
  if _is_number(left) and _is_number(right):
    return left == right
  if isinstance(left, str) and isinstance(right, str):
    return left == right
  if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
    return left is right
  return False

def _loose_equals(left, right) -> bool:
  if left is None or right is None:
    return left is None and right is None
  if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
    return left is right
  if isinstance(left, str) and isinstance(right, str):
    return left == right
  return _to_number(left) == _to_number(right)

def _ordered(compare):
  def apply(left, right) -> bool:
    if isinstance(left, str) and isinstance(right, str):
      return compare(left, right)
    a, b = _to_number(left), _to_number(right)
    if math.isnan(a) or math.isnan(b):
      return False
    return compare(a, b)
  return apply

# longer tokens first so "===" is never read as "=="
OPERATORS = (
  ("===", _strict_equals),
  ("!==", lambda a, b: not _strict_equals(a, b)),
  ("==", _loose_equals),
  ("!=", lambda a, b: not _loose_equals(a, b)),
  (">=", _ordered(operator.ge)),
  ("<=", _ordered(operator.le)),
  (">", _ordered(operator.gt)),
  ("<", _ordered(operator.lt)),
  ("&&", lambda a, b: b if is_truthy(a) else a),
  ("||", lambda a, b: a if is_truthy(a) else b),
)

def _literal(text: str) -> Operand:
  m = QUOTED_TOKEN.fullmatch(text)
  if m:
    return Operand(STRING, text, m.group(1) if m.group(1) is not None else m.group(2))
  if NUMBER_TOKEN.fullmatch(text):
    return Operand(NUMBER, text, float(text) if "." in text else int(text))
  if text in ("true", "false"):
    return Operand(BOOL, text, text == "true")
  return Operand(OPAQUE, text, text)

def classify_operand(text: str) -> Operand:
  text = text.strip()
  if PATH_TOKEN.fullmatch(text):
    return Operand(PATH, text)
  return _literal(text)

def operand_value(operand: Operand, data):
  if operand.kind != PATH:
    return operand.value
  value = resolve_path(data, operand.text)
  if value is None:
    fallback = _literal(operand.text)
    if fallback.kind in (NUMBER, BOOL):
      return fallback.value
  return value

def _find_unquoted(text: str, char: str, start: int = 0) -> int:
  quote = None
  for i in range(start, len(text)):
    c = text[i]
    if quote:
      if c == quote:
        quote = None
    elif c in ("'", '"'):
      quote = c
    elif c == char:
      return i
  return -1

def split_ternary(expression: str):
  question = _find_unquoted(expression, "?")
  if question < 0:
    return None
  colon = _find_unquoted(expression, ":", question + 1)
  if colon < 0:
    return None
  parts = (expression[:question].strip(), expression[question + 1:colon].strip(), expression[colon + 1:].strip())
  if not all(parts):
    return None
  return parts

def evaluate_condition(condition: str, data) -> bool:
  for token, compare in OPERATORS:
    if token in condition:
      left, right = condition.split(token, 1)
      return is_truthy(compare(operand_value(classify_operand(left), data),
                               operand_value(classify_operand(right), data)))
  return False

def _branch_value(branch: str, data):
  m = QUOTED_TOKEN.fullmatch(branch)
  if m:
    return m.group(1) if m.group(1) is not None else m.group(2)
  value = resolve_path(data, branch.strip())
  return "" if value is None else value

def evaluate_expression(expression: str, data):
  try:
    parts = split_ternary(expression)
    if parts is None:
      value = resolve_path(data, expression.strip())
      return "" if value is None else value
    condition, when_true, when_false = parts
    return _branch_value(when_true if evaluate_condition(condition, data) else when_false, data)
  except Exception:
    logger.warning("failed to evaluate expression %r", expression, exc_info=True)
    return ""
