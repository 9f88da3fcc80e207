import time
import functools
import httpx
import logging

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (httpx.ReadError, httpx.RemoteProtocolError, httpx.ConnectError)

def retry_on_transient_error(func):
    """
    Retry a Supabase call when the HTTP transport drops the connection.
    Any other error is raised immediately.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        max_retries = 3
        for attempt in range(max_retries):
            try:
                return func(*args, **kwargs)
            except TRANSIENT_ERRORS as e:
                if attempt < max_retries - 1:
                    logger.warning(f"Transient error on {func.__name__}: {e}. Retrying in 0.5 seconds... (Attempt {attempt + 1}/{max_retries})")
                    time.sleep(0.5)
                else:
                    logger.error(f"{func.__name__} failed after {max_retries} attempts: {e}")
                    raise
    return wrapper
