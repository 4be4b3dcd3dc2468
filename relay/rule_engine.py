import json
import re

from relay.expression import evaluate_expression, is_truthy
from relay.models import Rule
from relay.paths import resolve_path

TOKEN = re.compile(r"\$\{([^}]*)\}")
PLAIN_PATH = re.compile(r"[\w.]+", re.ASCII)

OPTIONAL_FIELDS = ("group", "icon", "url", "sound")

def stringify(value) -> str:
  if value is None:
    return ""
  if isinstance(value, str):
    return value
  if isinstance(value, bool):
    return "true" if value else "false"
  if isinstance(value, float) and value.is_integer():
    return str(int(value))
  if isinstance(value, (dict, list)):
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
  return str(value)

def render_template(template: str, data) -> str:
  def repl(m):
    body = m.group(1)
    if PLAIN_PATH.fullmatch(body):
      return stringify(resolve_path(data, body))
    result = evaluate_expression(body, data)
    return stringify(result) if is_truthy(result) else ""
  return TOKEN.sub(repl, template)

def render_notification_params(rule: Rule, payload) -> dict[str, str]:
  mapping = rule.mapping
  params = {
    "title": render_template(mapping.title, payload),
    "body": render_template(mapping.body, payload),
  }
  for field in OPTIONAL_FIELDS:
    template = getattr(mapping, field)
    if template is not None:
      params[field] = render_template(template, payload)
  return params
