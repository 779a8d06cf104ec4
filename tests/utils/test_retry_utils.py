import httpx
import pytest

from community_calendar.utils.retry_utils import async_retry, is_retryable_upstream_error

REQUEST = httpx.Request("GET", "https://upstream.test")


def status_error(code: int) -> httpx.HTTPStatusError:
    return httpx.HTTPStatusError("status", request=REQUEST, response=httpx.Response(code, request=REQUEST))


def test_error_classification():
    assert is_retryable_upstream_error(httpx.ConnectError("down", request=REQUEST))
    assert is_retryable_upstream_error(status_error(503))
    assert is_retryable_upstream_error(status_error(429))
    assert not is_retryable_upstream_error(status_error(404))
    assert not is_retryable_upstream_error(ValueError("bad"))


@pytest.mark.asyncio
async def test_transient_failures_are_retried_until_success():
    attempts = []

    @async_retry(max_retries=3, delay_seconds=0)
    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise httpx.ConnectError("down", request=REQUEST)
        return "ok"

    assert await flaky() == "ok"
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_permanent_failures_are_raised_immediately():
    attempts = []

    @async_retry(max_retries=3, delay_seconds=0)
    async def broken():
        attempts.append(1)
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        await broken()
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_last_transient_error_is_raised_when_exhausted():
    @async_retry(max_retries=2, delay_seconds=0)
    async def down():
        raise status_error(502)

    with pytest.raises(httpx.HTTPStatusError):
        await down()
