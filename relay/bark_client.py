import os, time, logging
from urllib.parse import urlencode

import httpx
from dotenv import load_dotenv

load_dotenv()

TIMEOUT = float(os.getenv("BARK_TIMEOUT_SECONDS", "5"))
MAX_ATTEMPTS = max(1, int(os.getenv("BARK_MAX_ATTEMPTS", "1")))
BACKOFF_BASE = float(os.getenv("BARK_RETRY_BACKOFF_BASE", "0.5"))

logger = logging.getLogger(__name__)

class BarkDeliveryError(RuntimeError):
  def __init__(self, message: str, status_code=None, response_text=None):
    super().__init__(message)
    self.status_code = status_code
    self.response_text = response_text

def build_bark_url(bark_url: str, params: dict[str, str]) -> str:
  query = urlencode(params)
  sep = "&" if "?" in bark_url else "?"
  return f"{bark_url}{sep}{query}"

def push_to_bark(bark_url: str, params: dict[str, str], transport: httpx.BaseTransport | None = None):
  url = build_bark_url(bark_url, params)
  logger.info("Sending to Bark: %s", url)

  for attempt in range(1, MAX_ATTEMPTS + 1):
    try:
      with httpx.Client(timeout=TIMEOUT, transport=transport, follow_redirects=True) as client:
        resp = client.get(url)
        if 200 <= resp.status_code < 300:
          return resp.status_code, resp.text
        raise BarkDeliveryError(f"Failed to send to Bark: HTTP {resp.status_code}", resp.status_code, resp.text)
    except (httpx.HTTPError, httpx.InvalidURL, BarkDeliveryError) as e:
      logger.warning("bark delivery failed attempt=%s/%s err=%s", attempt, MAX_ATTEMPTS, e)
      if attempt < MAX_ATTEMPTS:
        time.sleep(BACKOFF_BASE * (2 ** (attempt - 1)))
      elif isinstance(e, BarkDeliveryError):
        raise
      else:
        raise BarkDeliveryError(f"Failed to send to Bark: {e}") from e
