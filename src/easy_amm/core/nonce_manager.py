# /src/easy_amm/core/nonce_manager.py

import asyncio
from web3 import AsyncWeb3
from easy_amm.core.logger import get_logger

log = get_logger(__name__)

class NonceManager:
    """
    Hands out one nonce per transaction for a single wallet.

    The first call reads the pending transaction count from the node; every
    later call increments purely in memory, so transactions that were sent but
    are not yet visible to the node never cause a reused nonce. Assignment
    happens under an ``asyncio.Lock`` whose waiters are served FIFO, so the Nth
    caller always receives ``initial + N - 1``.
    """
    def __init__(self, w3: AsyncWeb3, address: str):
        self.w3 = w3
        self.address = address
        self.nonce: int | None = None
        self._lock = asyncio.Lock()

    async def next_nonce(self) -> int:
        async with self._lock:
            if self.nonce is None:
                self.nonce = await self.w3.eth.get_transaction_count(self.address, "pending")
                log.info("NONCE_FROM_RPC", address=self.address, nonce=self.nonce)
            nonce = self.nonce
            self.nonce += 1
        log.debug("NONCE_ASSIGNED", address=self.address, nonce=nonce)
        return nonce

    def peek(self) -> int | None:
        """Next nonce that will be assigned, or None before first use."""
        return self.nonce

    def reset(self):
        """Forget the in-memory counter; the next call re-reads the node."""
        self.nonce = None
        log.warning("NONCE_RESET", address=self.address)
