# /src/easy_amm/core/token.py
# ERC-20 handle for the trading wallet.

import asyncio
from dataclasses import dataclass
from decimal import Decimal

from easy_amm.abis import ERC20_ABI, MAX_UINT256
from easy_amm.core.events import Event
from easy_amm.core.logger import get_logger
from easy_amm.core.sync import BlockDrivenRefresher, RefreshFailure
from easy_amm.core.tx import PendingTransaction
from easy_amm.core.units import from_base_units, to_base_units, to_decimal

log = get_logger(__name__)

class ConstructionFailure(Exception):
    """A discovery call failed while setting up a token or pair."""
    pass

@dataclass(frozen=True)
class TokenInfo:
    address: str
    symbol: str
    decimals: int
    balance: int

async def discover_token(chain, address: str, owner: str) -> TokenInfo:
    """Read symbol, decimals and ``owner``'s raw balance concurrently."""
    symbol, decimals, balance = await asyncio.gather(
        chain.call(address, ERC20_ABI, "symbol"),
        chain.call(address, ERC20_ABI, "decimals"),
        chain.call(address, ERC20_ABI, "balanceOf", owner),
    )
    return TokenInfo(address=address, symbol=symbol, decimals=int(decimals), balance=int(balance))

class Token(BlockDrivenRefresher):
    """
    Handle for one ERC-20 token held by the trading wallet.

    ``balance`` caches the wallet's balance and is re-read on every chain tick.
    """

    component = "balance"

    def __init__(self, info: TokenInfo, chain, tx_manager, blocks: Event[int]):
        self.address = info.address
        self.symbol = info.symbol
        self.decimals = info.decimals
        self.balance = from_base_units(info.balance, info.decimals)
        self.chain = chain
        self.tx_manager = tx_manager
        self.owner = tx_manager.address
        self.balance_changed: Event[Decimal] = Event(f"{info.symbol}.balance_changed")
        self._attach(blocks)

    @classmethod
    async def create(cls, chain, tx_manager, address: str, blocks: Event[int]) -> "Token":
        try:
            info = await discover_token(chain, address, tx_manager.address)
        except Exception as e:
            log.error("TOKEN_DISCOVERY_FAILED", address=address, error=str(e))
            raise ConstructionFailure(f"could not discover token {address}: {e}") from e
        return cls(info, chain, tx_manager, blocks)

    async def balance_of(self, address: str) -> Decimal:
        raw = await self.chain.call(self.address, ERC20_ABI, "balanceOf", address)
        return from_base_units(raw, self.decimals)

    async def allowance(self, owner: str, spender: str) -> Decimal:
        raw = await self.chain.call(self.address, ERC20_ABI, "allowance", owner, spender)
        return from_base_units(raw, self.decimals)

    async def approve(self, spender: str, amount=None) -> PendingTransaction:
        """Approve ``spender``. No amount (or zero) approves the maximum uint256."""
        if amount is None or to_decimal(amount) == 0:
            value = MAX_UINT256
        else:
            value = to_base_units(amount, self.decimals)
        tx = self.chain.build_transaction(self.address, ERC20_ABI, "approve", spender, value)
        log.info("TOKEN_APPROVE", token=self.symbol, spender=spender, unlimited=value == MAX_UINT256)
        return await self.tx_manager.send_transaction(tx, kind="approve")

    async def transfer(self, to: str, amount) -> PendingTransaction:
        value = to_base_units(amount, self.decimals)
        tx = self.chain.build_transaction(self.address, ERC20_ABI, "transfer", to, value)
        log.info("TOKEN_TRANSFER", token=self.symbol, to=to, amount=str(amount))
        return await self.tx_manager.send_transaction(tx, kind="transfer")

    async def refresh(self) -> Decimal:
        try:
            balance = await self.balance_of(self.owner)
        except Exception as e:
            raise RefreshFailure(f"{self.symbol} balance refresh failed: {e}") from e
        if balance != self.balance:
            self.balance = balance
            log.info("BALANCE_UPDATED", token=self.symbol, balance=str(balance))
            self.balance_changed.publish(balance)
        return balance

    def __repr__(self) -> str:
        return f"Token({self.symbol!r}, address={self.address!r}, decimals={self.decimals})"
