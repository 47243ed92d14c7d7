# /src/easy_amm/core/pair.py
# Trading engine for one base/quote AMM pair: quotes come from the cached reserve
# snapshot, orders go through approve-if-needed then swap.

import asyncio
import time
from decimal import Decimal
from enum import Enum

from easy_amm.abis import UNISWAP_V2_PAIR_ABI, UNISWAP_V2_ROUTER_ABI
from easy_amm.core.amm import DEFAULT_FEE_BPS, fee_multiplier, get_amount_in, get_amount_out
from easy_amm.core.config import settings
from easy_amm.core.events import Event
from easy_amm.core.logger import ORDERS_PLACED, get_logger
from easy_amm.core.sync import ReserveSync, fetch_reserves
from easy_amm.core.token import ConstructionFailure, Token, discover_token
from easy_amm.core.tx import PendingTransaction
from easy_amm.core.units import PRECISE_CONTEXT, from_base_units, to_base_units, to_decimal

log = get_logger(__name__)

DEFAULT_SLIPPAGE_TOLERANCE = Decimal("0.0025")

class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"

class ExecutionFailure(Exception):
    """An order could not be submitted. ``stage`` says which step failed."""

    stage = "execution"

class ApprovalFailure(ExecutionFailure):
    stage = "approval"

class SwapFailure(ExecutionFailure):
    stage = "swap"

class TradingPair:
    def __init__(
        self,
        base: Token,
        quote: Token,
        reserves: ReserveSync,
        router_address: str,
        chain,
        tx_manager,
        fee_bps: int = DEFAULT_FEE_BPS,
        slippage_tolerance=DEFAULT_SLIPPAGE_TOLERANCE,
        deadline_seconds: int | None = None,
    ):
        self.base = base
        self.quote = quote
        self.reserves = reserves
        self.router_address = router_address
        self.chain = chain
        self.tx_manager = tx_manager
        self.fee_bps = fee_bps
        self.fee = fee_multiplier(fee_bps)
        self.slippage_tolerance = to_decimal(slippage_tolerance)
        self.deadline_seconds = deadline_seconds if deadline_seconds is not None else settings.ORDER_DEADLINE_SECONDS

    @property
    def base_is_token0(self) -> bool:
        return self.reserves.base_is_token0

    @property
    def price(self) -> Decimal:
        return self.reserves.price

    @property
    def price_changed(self) -> Event[Decimal]:
        return self.reserves.price_changed

    @property
    def base_balance(self) -> Decimal:
        return self.base.balance

    @property
    def quote_balance(self) -> Decimal:
        return self.quote.balance

    def _quote_leg(self, amount: Decimal, side: OrderSide) -> tuple[int, Decimal]:
        """Base leg in base units and the slippage-adjusted quote leg as a decimal."""
        if amount <= 0:
            raise ValueError(f"amount must be positive, got {amount}")
        base_units = to_base_units(amount, self.base.decimals)
        # One snapshot read; a concurrent refresh swaps the whole object
        reserve_base, reserve_quote = self.reserves.oriented()

        if side is OrderSide.BUY:
            amount_in = get_amount_in(base_units, reserve_quote, reserve_base, self.fee)
            factor = 1 + self.slippage_tolerance
            quote_units = amount_in
        else:
            amount_out = get_amount_out(base_units, reserve_base, reserve_quote, self.fee)
            factor = 1 - self.slippage_tolerance
            quote_units = amount_out

        quote_amount = PRECISE_CONTEXT.multiply(from_base_units(quote_units, self.quote.decimals), factor)
        return base_units, quote_amount

    def quote_price_for_amount(self, amount, side) -> Decimal:
        """Effective quote-per-base price, slippage included, for trading ``amount`` of base.

        For a buy this is the most the order may spend per unit; for a sell the
        least it will accept.
        """
        amount = to_decimal(amount)
        _, quote_amount = self._quote_leg(amount, OrderSide(side))
        return quote_amount / amount

    async def place_order(self, amount, side) -> PendingTransaction:
        """Approve the spent token if needed, then submit the swap.

        Returns as soon as the swap is broadcast, without waiting for inclusion.

        Raises:
            InsufficientLiquidity: the cached reserves cannot fill the order.
            ApprovalFailure: the allowance check or approval failed; no swap was sent.
            SwapFailure: the swap could not be sent.
        """
        side = OrderSide(side)
        amount = to_decimal(amount)
        base_units, quote_amount = self._quote_leg(amount, side)
        quote_units = to_base_units(quote_amount, self.quote.decimals)
        deadline = int(time.time()) + self.deadline_seconds
        recipient = self.tx_manager.address

        if side is OrderSide.BUY:
            await self._ensure_allowance(self.quote, quote_units)
            # exact base out, bounded quote in
            tx = self.chain.build_transaction(
                self.router_address, UNISWAP_V2_ROUTER_ABI, "swapTokensForExactTokens",
                base_units, quote_units, [self.quote.address, self.base.address], recipient, deadline,
            )
        else:
            await self._ensure_allowance(self.base, base_units)
            # exact base in, bounded quote out
            tx = self.chain.build_transaction(
                self.router_address, UNISWAP_V2_ROUTER_ABI, "swapExactTokensForTokens",
                base_units, quote_units, [self.base.address, self.quote.address], recipient, deadline,
            )

        try:
            pending = await self.tx_manager.send_transaction(tx, kind="swap")
        except Exception as e:
            log.error("SWAP_SEND_FAILED", side=side.value, amount=str(amount), error=str(e))
            raise SwapFailure(f"{side.value} {amount} {self.base.symbol}: swap failed: {e}") from e

        ORDERS_PLACED.labels(side.value).inc()
        log.info(
            "ORDER_PLACED",
            side=side.value,
            base=self.base.symbol,
            amount=str(amount),
            quote_limit=str(quote_amount),
            deadline=deadline,
            tx_hash=pending.hash,
        )
        return pending

    async def _ensure_allowance(self, token: Token, required: int):
        owner = self.tx_manager.address
        try:
            allowance = await token.allowance(owner, self.router_address)
            if to_base_units(allowance, token.decimals) >= required:
                log.debug("APPROVAL_NOT_NEEDED", token=token.symbol, allowance=str(allowance))
                return
            pending = await token.approve(self.router_address)
            await pending.wait()
        except Exception as e:
            log.error("APPROVAL_FAILED", token=token.symbol, error=str(e))
            raise ApprovalFailure(f"approval of {token.symbol} for {self.router_address} failed: {e}") from e
        log.info("APPROVAL_CONFIRMED", token=token.symbol, tx_hash=pending.hash)

    def close(self):
        """Unsubscribe the pair and both tokens from chain ticks."""
        self.reserves.close()
        self.base.close()
        self.quote.close()

    def __repr__(self) -> str:
        return f"TradingPair({self.base.symbol}/{self.quote.symbol}, price={self.price})"

async def create_trading_pair(
    router_address: str,
    pair_address: str,
    base_symbol: str,
    tx_manager,
    chain,
    blocks: Event[int],
    slippage_tolerance=DEFAULT_SLIPPAGE_TOLERANCE,
    fee_bps: int = DEFAULT_FEE_BPS,
    deadline_seconds: int | None = None,
) -> TradingPair:
    """Discover the pair and return it ready for quoting and trading.

    If any discovery read or setup step fails, ConstructionFailure is raised
    and nothing stays subscribed to ``blocks``.
    """
    slippage_tolerance = to_decimal(slippage_tolerance)
    if not 0 <= slippage_tolerance < 1:
        raise ValueError(f"slippage_tolerance must be in [0, 1), got {slippage_tolerance}")
    fee_multiplier(fee_bps)

    owner = tx_manager.address
    try:
        token0, token1, reserves = await asyncio.gather(
            chain.call(pair_address, UNISWAP_V2_PAIR_ABI, "token0"),
            chain.call(pair_address, UNISWAP_V2_PAIR_ABI, "token1"),
            fetch_reserves(chain, pair_address),
        )
        info0, info1 = await asyncio.gather(
            discover_token(chain, token0, owner),
            discover_token(chain, token1, owner),
        )
    except Exception as e:
        log.error("PAIR_CONSTRUCTION_FAILED", pair=pair_address, error=str(e))
        raise ConstructionFailure(f"could not discover pair {pair_address}: {e}") from e

    if base_symbol == info0.symbol:
        base_is_token0 = True
    elif base_symbol == info1.symbol:
        base_is_token0 = False
    else:
        log.error("PAIR_BASE_SYMBOL_NOT_FOUND", pair=pair_address, base=base_symbol, symbols=[info0.symbol, info1.symbol])
        raise ConstructionFailure(f"{base_symbol} is neither {info0.symbol} nor {info1.symbol} in pair {pair_address}")

    base_info, quote_info = (info0, info1) if base_is_token0 else (info1, info0)
    # Each part subscribes to blocks as it is built; unwind them all on failure
    built = []
    try:
        reserve_sync = ReserveSync(
            chain, pair_address, reserves, base_is_token0, base_info.decimals, quote_info.decimals, blocks
        )
        built.append(reserve_sync)
        base = Token(base_info, chain, tx_manager, blocks)
        built.append(base)
        quote = Token(quote_info, chain, tx_manager, blocks)
        built.append(quote)
        pair = TradingPair(
            base=base,
            quote=quote,
            reserves=reserve_sync,
            router_address=router_address,
            chain=chain,
            tx_manager=tx_manager,
            fee_bps=fee_bps,
            slippage_tolerance=slippage_tolerance,
            deadline_seconds=deadline_seconds,
        )
    except Exception as e:
        for part in built:
            part.close()
        log.error("PAIR_CONSTRUCTION_FAILED", pair=pair_address, error=str(e))
        raise ConstructionFailure(f"could not set up pair {pair_address}: {e}") from e

    log.info(
        "TRADING_PAIR_READY",
        base=pair.base.symbol,
        quote=pair.quote.symbol,
        base_is_token0=base_is_token0,
        price=str(pair.price),
        fee_bps=fee_bps,
        slippage=str(slippage_tolerance),
    )
    return pair
