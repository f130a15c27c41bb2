# gateways/http.py
import json
import time
from dataclasses import dataclass
from typing import Any, Optional

import requests

from utils.exceptions import UpstreamError
from utils.logger import get_logger

log = get_logger(__name__)

RETRYABLE_STATUS = {500, 502, 503, 504}


@dataclass(frozen=True)
class RequestPolicy:
    """How outbound vendor calls are attempted.

    The default is a single attempt with no backoff; raising ``max_attempts``
    retries connection failures and 5xx answers without touching call sites.
    """
    max_attempts: int = 1
    backoff: float = 0.0
    timeout: float = 60.0

    def send(self, session: requests.Session, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        attempts = max(1, self.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                resp = session.request(method, url, **kwargs)
            except (requests.ConnectionError, requests.Timeout) as e:
                if attempt >= attempts:
                    raise UpstreamError(f"Request to {url} failed: {e}", status=0, body=None, details=str(e)) from e
                log.warning("attempt %d/%d to %s failed: %s", attempt, attempts, url, e)
            else:
                if resp.status_code not in RETRYABLE_STATUS or attempt >= attempts:
                    return resp
                log.warning("attempt %d/%d to %s answered %d", attempt, attempts, url, resp.status_code)
            if self.backoff:
                time.sleep(self.backoff * attempt)
        raise AssertionError("unreachable")


def error_details(resp: requests.Response) -> str:
    """Best human-readable message out of a vendor error body."""
    text = resp.text or ""
    try:
        data = json.loads(text)
    except ValueError:
        return text
    if isinstance(data, dict):
        detail = data.get("detail")
        if isinstance(detail, dict) and detail.get("message"):
            return str(detail["message"])
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        for key in ("message", "error", "detail"):
            if data.get(key):
                return data[key] if isinstance(data[key], str) else json.dumps(data[key])
    return text


def raise_for_vendor(resp: requests.Response, label: str) -> None:
    if resp.ok:
        return
    details = error_details(resp)
    body: Any
    try:
        body = resp.json()
    except ValueError:
        body = resp.text
    raise UpstreamError(f"{label}: {resp.status_code} - {details}", status=resp.status_code, body=body, details=details)


def json_or_none(resp: requests.Response) -> Optional[Any]:
    try:
        return resp.json()
    except ValueError:
        return None
