from datetime import timedelta

import requests
import requests_cache
import structlog
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from detectgate.core.logging import mask

logger = structlog.get_logger('client')

RETRY_STATUSES = (500, 502, 503, 504)


def log_response(response: requests.Response, *args, **kwargs) -> None:
    """Response hook: one debug event per request, URL masked."""
    if getattr(response, '_logged', False):
        return
    response._logged = True

    cached = getattr(response, 'from_cache', False)
    logger.debug(
        'Black Duck request' if not cached else 'Black Duck request (cached)',
        method=response.request.method,
        url=mask(response.url),
        status=response.status_code,
        elapsed=f"{response.elapsed.total_seconds():.3f}s",
        _style='dim' if cached else None,
    )


def build_retry(retries: int) -> Retry:
    # Token authentication is a POST and is safe to repeat
    return Retry(
        total=retries,
        backoff_factor=1,
        status_forcelist=list(RETRY_STATUSES),
        allowed_methods=['GET', 'POST'],
        raise_on_status=False,
    )


def get_http_client(
    expire_after: int = 300,
    retries: int = 3,
    pool_size: int = 10,
) -> requests_cache.CachedSession:
    """
    Returns a requests session with per-session caching and retry logic.

    The cache lives in memory and dies with the session, so a scan run never
    sees Black Duck data fetched by another run. Only successful GETs are
    cached.
    """
    session = requests_cache.CachedSession(
        backend='memory',
        expire_after=timedelta(seconds=expire_after),
        allowable_codes=[200],
        allowable_methods=['GET'],
    )
    session.hooks['response'].append(log_response)

    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=build_retry(retries),
    )
    for prefix in ('https://', 'http://'):
        session.mount(prefix, adapter)

    logger.debug('HTTP client ready', expire_after=expire_after, retries=retries)
    return session
