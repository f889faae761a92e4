import asyncio
from typing import Any, Awaitable, Callable, Dict

from inkas.config import COMPLETENESS_MAX_RETRIES, COMPLETENESS_RETRY_DELAY, logger
from inkas.dates import DayLike
from inkas.device_api import DeviceApiError


async def fetch_with_retry(
    client,
    device_id: str,
    day: DayLike,
    *,
    max_retries: int = COMPLETENESS_MAX_RETRIES,
    retry_delay: float = COMPLETENESS_RETRY_DELAY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Dict[str, Any]:
    """Collections of one device for one day, with a bounded number of attempts.

    Only transport failures are retried. Returns {"error": ...} instead of raising.
    """
    attempts = max(1, int(max_retries))
    last = "no attempts made"
    for attempt in range(1, attempts + 1):
        try:
            return await client.fetch_collections_raw(device_id, day, day)
        except DeviceApiError as e:
            last = str(e)
            logger.warning("attempt %s/%s failed for device %s on %s: %s", attempt, attempts, device_id, day, last)
        if attempt < attempts:
            await sleep(retry_delay)
    logger.error("all %s attempts failed for device %s on %s", attempts, device_id, day)
    return {"error": f"All attempts failed: {last}"}
