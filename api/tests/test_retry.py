import asyncio

from inkas.device_api import DeviceApiError
from inkas.retry import fetch_with_retry


class FlakyClient:
    def __init__(self, failures, result=None):
        self.failures = failures
        self.result = result or {"status": "success", "data": [{"banknotes": "10"}]}
        self.attempts = 0

    async def fetch_collections_raw(self, device_id, start, end):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise DeviceApiError(f"timeout #{self.attempts}")
        return self.result


def _run(client, **kw):
    delays = []

    async def sleep(d):
        delays.append(d)

    out = asyncio.run(fetch_with_retry(client, "7", "2025-01-10", max_retries=3, retry_delay=2, sleep=sleep, **kw))
    return out, delays


def test_succeeds_on_third_attempt():
    client = FlakyClient(failures=2)
    out, delays = _run(client)
    assert out == client.result
    assert client.attempts == 3
    assert delays == [2, 2]


def test_all_attempts_fail():
    client = FlakyClient(failures=10)
    out, delays = _run(client)
    assert out["error"].startswith("All attempts failed: ")
    assert "timeout #3" in out["error"]
    assert client.attempts == 3
    # no sleep after the last attempt
    assert delays == [2, 2]


def test_api_error_status_is_not_retried():
    client = FlakyClient(failures=0, result={"error": "Device not found"})
    out, delays = _run(client)
    assert out == {"error": "Device not found"}
    assert client.attempts == 1
    assert delays == []
