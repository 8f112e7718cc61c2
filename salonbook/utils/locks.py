"""
Booking lock: serializes writers for one professional on one tenant-local date.

The slot a customer picked is re-checked right before the insert; holding
`salonbook:lock:booking:<professional>:<date>` around that re-check keeps two
customers from both seeing the same gap. The key expires on its own (SET NX EX)
so a crashed worker never wedges a professional's day. When Redis cannot be
reached the booking still goes ahead, guarded only by the re-check.
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional

from salonbook.config import get_settings

logger = logging.getLogger(__name__)

LOCK_POLL_INTERVAL = 0.1  # seconds between SET NX retries

# DEL only when the key still holds our token; a lock that expired and was
# taken by another writer must survive our release.
RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class LockTimeoutError(Exception):
    """Another booking held the professional's day past the wait budget."""
    pass


def booking_lock_key(professional_id: str, day: date) -> str:
    return f"salonbook:lock:booking:{professional_id}:{day.isoformat()}"


@asynccontextmanager
async def professional_lock(
    professional_id: str,
    day: date,
    ttl: Optional[int] = None,
    wait: Optional[float] = None,
):
    """
    Hold the booking lock for `professional_id` on `day`.

    ttl and wait default to booking_lock_ttl_seconds / booking_lock_wait_seconds.
    Raises LockTimeoutError if the key is still taken after `wait` seconds.
    """
    settings = get_settings()
    ttl = settings.booking_lock_ttl_seconds if ttl is None else ttl
    wait = settings.booking_lock_wait_seconds if wait is None else wait

    key = booking_lock_key(str(professional_id), day)
    token = uuid.uuid4().hex

    if not await _acquire(key, token, ttl, wait):
        raise LockTimeoutError(
            f"Booking lock for professional {str(professional_id)[:8]} on {day.isoformat()} "
            f"still held after {wait}s"
        )
    try:
        yield
    finally:
        await _release(key, token)


async def _acquire(key: str, token: str, ttl: int, wait: float) -> bool:
    """SET NX now, then retry every LOCK_POLL_INTERVAL until `wait` runs out."""
    try:
        from salonbook.utils.redis import get_redis
        redis = await get_redis()

        waited = 0.0
        while True:
            if await redis.set(key, token, nx=True, ex=ttl):
                return True
            if waited >= wait:
                break
            await asyncio.sleep(LOCK_POLL_INTERVAL)
            waited += LOCK_POLL_INTERVAL

        logger.warning("Booking lock busy after %.1fs: %s", wait, key)
        return False
    except Exception as e:
        logger.warning("Booking lock skipped, Redis unavailable (%s): %s", key, str(e))
        return True


async def _release(key: str, token: str) -> None:
    try:
        from salonbook.utils.redis import get_redis
        redis = await get_redis()
        await redis.eval(RELEASE_SCRIPT, 1, key, token)
    except Exception as e:
        # The TTL clears it
        logger.warning("Booking lock release failed for %s: %s", key, str(e))
