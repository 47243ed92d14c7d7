# /test/test_forked_sim.py
# Runs the REAL adapters against a local Anvil fork of Ethereum mainnet:
#   anvil --fork-url $MAINNET_RPC
# Skipped when no node answers on 127.0.0.1:8545.

from decimal import Decimal

import pytest
from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3

from easy_amm.adapters.blocks import BlockWatcher
from easy_amm.adapters.chain import Web3Chain
from easy_amm.core.pair import create_trading_pair
from easy_amm.core.tx import TransactionManager

ANVIL_URL = "http://127.0.0.1:8545"
# Uniswap V2 WETH/USDC; same interface as the PancakeSwap pairs
UNISWAP_V2_ROUTER = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
WETH_USDC_PAIR = "0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc"
# Anvil's first default account
ANVIL_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


@pytest.mark.forked
@pytest.mark.asyncio
async def test_real_pair_quotes_on_forked_mainnet():
    w3 = AsyncWeb3(AsyncHTTPProvider(ANVIL_URL))
    if not await w3.is_connected():
        pytest.skip("Could not connect to a local Anvil fork on 127.0.0.1:8545.")

    tx_manager = TransactionManager(w3, Account.from_key(ANVIL_KEY))
    watcher = BlockWatcher(w3, poll_interval=0)
    pair = await create_trading_pair(
        UNISWAP_V2_ROUTER, WETH_USDC_PAIR, "WETH", tx_manager, Web3Chain(w3), watcher.new_block, fee_bps=30
    )
    try:
        assert (pair.base.decimals, pair.quote.decimals) == (18, 6)
        assert pair.price > 0
        buy = pair.quote_price_for_amount(Decimal("1"), "buy")
        sell = pair.quote_price_for_amount(Decimal("1"), "sell")
        assert buy > pair.price > sell

        await watcher.poll_once()
        assert watcher.last_block is not None
    finally:
        pair.close()
