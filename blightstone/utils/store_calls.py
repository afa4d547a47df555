import asyncio
import logging
import time
from contextlib import asynccontextmanager

import httpx
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from blightstone.exceptions import DependencyError, DuplicateError, ValidationError
from blightstone.settings import app_settings

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


@asynccontextmanager
async def store_call(label: str, timeout: float | None = None):
    """Bound a call to a backing store and translate its failures.

    Usage::

        async with store_call("profile lookup"):
            result = await db.execute(...)

    Timeouts and driver errors become ``DependencyError`` (retryable), unique
    constraint violations become ``DuplicateError``. Errors already in the
    ``BlightstoneError`` taxonomy pass through untouched.
    """
    t0 = time.perf_counter()
    try:
        async with asyncio.timeout(timeout or app_settings.store_timeout_seconds):
            yield
    except TimeoutError as e:
        logger.warning("%s timed out after %.1fs", label, time.perf_counter() - t0)
        raise DependencyError(f"{label} timed out", detail=str(e)) from e
    except IntegrityError as e:
        logger.info("%s violated a constraint: %s", label, e.orig)
        if getattr(e.orig, "sqlstate", None) == UNIQUE_VIOLATION:
            raise DuplicateError(detail=str(e.orig)) from e
        raise ValidationError("Invalid reference", detail=str(e.orig)) from e
    except (SQLAlchemyError, RedisError, httpx.HTTPError) as e:
        logger.error("%s failed: %s", label, e)
        raise DependencyError(detail=str(e)) from e
    finally:
        logger.debug("%s: %.1fms", label, (time.perf_counter() - t0) * 1000)
