# /src/easy_amm/adapters/blocks.py
import asyncio
from web3 import AsyncWeb3

from easy_amm.core.config import settings
from easy_amm.core.events import Event
from easy_amm.core.logger import get_logger

log = get_logger(__name__)

class BlockWatcher:
    """
    Polls the node for the latest block height and publishes every new height
    on ``new_block``. Token handles and the reserve synchronizer subscribe to
    that event, so they never depend on this transport directly.
    """
    def __init__(self, w3: AsyncWeb3, poll_interval: float | None = None):
        self.w3 = w3
        self.poll_interval = poll_interval if poll_interval is not None else settings.BLOCK_POLL_INTERVAL
        self.new_block: Event[int] = Event("new_block")
        self.last_block: int | None = None
        self._running = False

    async def poll_once(self) -> int | None:
        """Publish the current height if it moved. Returns the published height."""
        number = await self.w3.eth.block_number
        if self.last_block is not None and number <= self.last_block:
            return None
        self.last_block = number
        log.debug("NEW_BLOCK", block=number)
        self.new_block.publish(number)
        return number

    async def run(self):
        self._running = True
        log.info("BLOCK_WATCHER_STARTED", poll_interval=self.poll_interval)
        while self._running:
            try:
                await self.poll_once()
            except Exception as e:
                log.warning("BLOCK_POLL_FAILED", error=str(e))
            await asyncio.sleep(self.poll_interval)
        log.info("BLOCK_WATCHER_STOPPED", last_block=self.last_block)

    def stop(self):
        self._running = False
