# /src/easy_amm/core/decorators.py
# Retry policy for read-only node calls.
import asyncio
import logging

import aiohttp
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential
from web3.exceptions import TimeExhausted

from easy_amm.core.logger import get_logger

log = get_logger(__name__)

# Transport-level failures only; a reverted call fails the same way on retry
TRANSIENT_ERRORS = (ConnectionError, asyncio.TimeoutError, aiohttp.ClientError, TimeExhausted)

def retriable_read(attempts: int = 3, max_wait: float = 5):
    return retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=max_wait),
        before_sleep=before_sleep_log(log, logging.WARNING),
        reraise=True,
    )

retriable_network_call = retriable_read()
