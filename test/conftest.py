# /test/conftest.py
# Shared fixtures built on the in-memory mock adapters.
import asyncio
from decimal import Decimal

import pytest

from easy_amm.adapters.mock import MOCK_WALLET, MockChain, MockTransactionManager
from easy_amm.core.events import Event
from easy_amm.core.pair import create_trading_pair

ROUTER_ADDR = "0x10ED43C718714eb63d5aA57B78B54704E256024E"
PAIR_ADDR = "0x2ed957a5180bacfc93f4b8790cb59e304514eec6"
BASE_ADDR = "0x000000000000000000000000000000000000bA5E"
QUOTE_ADDR = "0x000000000000000000000000000000000000Cafe"


@pytest.fixture
def chain():
    return MockChain()


@pytest.fixture
def tx_manager(chain):
    return MockTransactionManager(chain, from_address=MOCK_WALLET)


@pytest.fixture
def blocks():
    return Event("new_block")


@pytest.fixture
def settle():
    """Let tasks scheduled by block handlers run to completion."""
    async def _settle(rounds: int = 10):
        for _ in range(rounds):
            await asyncio.sleep(0)
    return _settle


@pytest.fixture
def setup_pair(chain):
    """Register the DCB/BUSD tokens and pair on the mock chain."""
    def _setup(
        base_decimals: int = 0,
        quote_decimals: int = 0,
        reserve_base: int = 1_000_000,
        reserve_quote: int = 2_000_000,
        base_is_token0: bool = True,
        base_balance: int = 5_000,
        quote_balance: int = 10_000,
    ):
        chain.add_token(BASE_ADDR, "DCB", base_decimals, {MOCK_WALLET: base_balance})
        chain.add_token(QUOTE_ADDR, "BUSD", quote_decimals, {MOCK_WALLET: quote_balance})
        if base_is_token0:
            chain.add_pair(PAIR_ADDR, BASE_ADDR, QUOTE_ADDR, reserve_base, reserve_quote)
        else:
            chain.add_pair(PAIR_ADDR, QUOTE_ADDR, BASE_ADDR, reserve_quote, reserve_base)
    return _setup


@pytest.fixture
def make_pair(chain, tx_manager, blocks, setup_pair):
    created = []

    async def _make(slippage=Decimal("0.0025"), fee_bps: int = 25, **pool):
        setup_pair(**pool)
        pair = await create_trading_pair(
            ROUTER_ADDR, PAIR_ADDR, "DCB", tx_manager, chain, blocks,
            slippage_tolerance=slippage, fee_bps=fee_bps,
        )
        created.append(pair)
        return pair

    yield _make
    for pair in created:
        pair.close()
