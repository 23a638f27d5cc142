import requests
import time
import logging
from typing import Any, Optional

from .errors import UpstreamError

logger = logging.getLogger(__name__)


def get(url: str, headers: Optional[dict]=None, retries: int=1, timeout: int=15) -> requests.Response:
    """Perform GET, by default once. Returns the response whatever its status.

    With retries > 1, connection failures are retried with backoff and the last one is re-raised.
    """
    last_exc = None
    for attempt in range(retries):
        try:
            return requests.get(url, headers=headers, timeout=timeout)
        except requests.RequestException as e:
            last_exc = e
            logger.warning('GET %s failed (attempt %s): %s', url, attempt+1, e)
            if attempt + 1 < retries:
                time.sleep(1 + attempt)
    logger.error('GET %s failed after %s attempts: %s', url, retries, last_exc)
    raise last_exc


def post_json(url: str, body: Any, timeout: int=15) -> requests.Response:
    """POST a JSON body once. Submissions are not idempotent, so there are no retries."""
    headers = {'Content-Type': 'application/json'}
    return requests.post(url, json=body, headers=headers, timeout=timeout)


def check(resp: requests.Response, message: str) -> requests.Response:
    """Raise UpstreamError carrying the response body unless the status is 2xx."""
    if not resp.ok:
        logger.warning('%s: HTTP %s %s', message, resp.status_code, resp.text)
        raise UpstreamError(f'{message}: {resp.text}', status_code=resp.status_code, body=resp.text)
    return resp
