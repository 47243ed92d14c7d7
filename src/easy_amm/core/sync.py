# /src/easy_amm/core/sync.py
# Block-driven refresh of cached on-chain state: token balances and pair reserves
# are re-read on every chain tick. A failed refresh keeps the last good value and
# is only logged and counted.

import asyncio
from dataclasses import dataclass
from decimal import Decimal

from easy_amm.abis import UNISWAP_V2_PAIR_ABI
from easy_amm.core.amm import mid_price
from easy_amm.core.events import Event
from easy_amm.core.logger import PRICE_UPDATES, REFRESH_FAILURES, get_logger

log = get_logger(__name__)

class RefreshFailure(Exception):
    """A background re-fetch failed; the previous state is kept."""
    pass

class BlockDrivenRefresher:
    """
    Subscribes ``refresh()`` to a chain-tick event.

    Refreshes of one component never overlap. Ticks that arrive while a refresh
    is running are folded into a single follow-up refresh, so the cached state
    always ends up reflecting a read taken after the latest tick.
    """
    component = "component"

    def _attach(self, blocks: Event[int]):
        self._blocks = blocks
        self._refresh_task: asyncio.Task | None = None
        self._pending_block: int | None = None
        self._closed = False
        blocks.subscribe(self._on_block)

    async def refresh(self):
        raise NotImplementedError

    def _on_block(self, block_number: int):
        if self._refresh_task is not None and not self._refresh_task.done():
            self._pending_block = block_number
            log.debug("REFRESH_QUEUED", component=self.component, block=block_number)
            return
        self._refresh_task = asyncio.create_task(self._refresh_until_current(block_number))

    async def _refresh_until_current(self, block_number: int | None):
        while block_number is not None and not self._closed:
            await self._refresh_quietly(block_number)
            block_number, self._pending_block = self._pending_block, None

    async def _refresh_quietly(self, block_number: int):
        try:
            await self.refresh()
        except RefreshFailure as e:
            REFRESH_FAILURES.labels(self.component).inc()
            log.warning("REFRESH_FAILED", component=self.component, block=block_number, error=str(e))
        except Exception as e:
            REFRESH_FAILURES.labels(self.component).inc()
            log.error("REFRESH_CRASHED", component=self.component, block=block_number, error=str(e), exc_info=True)

    def close(self):
        """Stop following chain ticks; a queued follow-up refresh is dropped."""
        self._closed = True
        self._pending_block = None
        self._blocks.unsubscribe(self._on_block)

@dataclass(frozen=True)
class Reserves:
    """One ``getReserves()`` snapshot in on-chain token order."""
    reserve0: int
    reserve1: int
    block_timestamp_last: int = 0

    def oriented(self, base_is_token0: bool) -> tuple[int, int]:
        """Return ``(reserve_base, reserve_quote)``."""
        if base_is_token0:
            return self.reserve0, self.reserve1
        return self.reserve1, self.reserve0

async def fetch_reserves(chain, pair_address: str) -> Reserves:
    reserve0, reserve1, timestamp = await chain.call(pair_address, UNISWAP_V2_PAIR_ABI, "getReserves")
    if reserve0 < 0 or reserve1 < 0:
        raise ValueError(f"negative reserves from {pair_address}: {reserve0}, {reserve1}")
    return Reserves(int(reserve0), int(reserve1), int(timestamp))

class ReserveSync(BlockDrivenRefresher):
    """
    Keeps a pair's reserves and mid-price fresh. ``reserves`` is replaced as a
    whole on each successful refresh, after which the new price is published on
    ``price_changed``.
    """
    component = "reserves"

    def __init__(
        self,
        chain,
        pair_address: str,
        reserves: Reserves,
        base_is_token0: bool,
        base_decimals: int,
        quote_decimals: int,
        blocks: Event[int],
    ):
        self.chain = chain
        self.pair_address = pair_address
        self.base_is_token0 = base_is_token0
        self.base_decimals = base_decimals
        self.quote_decimals = quote_decimals
        self.reserves = reserves
        self.price = self._price_of(reserves)
        self.price_changed: Event[Decimal] = Event("price_changed")
        self._attach(blocks)

    def _price_of(self, reserves: Reserves) -> Decimal:
        reserve_base, reserve_quote = reserves.oriented(self.base_is_token0)
        return mid_price(reserve_base, reserve_quote, self.base_decimals, self.quote_decimals)

    def oriented(self) -> tuple[int, int]:
        return self.reserves.oriented(self.base_is_token0)

    async def refresh(self) -> Decimal:
        try:
            reserves = await fetch_reserves(self.chain, self.pair_address)
            price = self._price_of(reserves)
        except Exception as e:
            raise RefreshFailure(f"reserve refresh for {self.pair_address} failed: {e}") from e

        self.reserves = reserves
        self.price = price
        PRICE_UPDATES.inc()
        log.debug("PRICE_UPDATED", pair=self.pair_address, price=str(price))
        self.price_changed.publish(price)
        return price
