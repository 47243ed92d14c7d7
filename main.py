# /main.py
# Connects to the node, builds the configured pair, logs quotes for a few
# order sizes and then follows the pair's price until interrupted.
import asyncio
from aiohttp import web
from web3 import AsyncWeb3, AsyncHTTPProvider

from easy_amm.core.config import settings
from easy_amm.core.config_validator import validate as validate_config
from easy_amm.core.logger import bind_pair, configure_logging, get_logger
from easy_amm.core.pair import OrderSide, create_trading_pair
from easy_amm.core.tx import TransactionManager
from easy_amm.adapters.blocks import BlockWatcher
from easy_amm.adapters.chain import Web3Chain

def make_healthz(pair, watcher: BlockWatcher):
    async def healthz(request):
        """JSON health status with the pair's cached state."""
        return web.json_response({
            "status": "ok",
            "pair": f"{pair.base.symbol}/{pair.quote.symbol}",
            "price": str(pair.price),
            "base_balance": str(pair.base_balance),
            "quote_balance": str(pair.quote_balance),
            "last_block": watcher.last_block,
        })
    return healthz

async def main():
    configure_logging()
    log = get_logger("EasyAMM.System")
    validate_config()
    log.info("EASY_AMM_STARTING")

    w3 = AsyncWeb3(AsyncHTTPProvider(settings.provider_url, request_kwargs={"timeout": 10}))
    tx_manager = TransactionManager.from_settings(w3)
    chain = Web3Chain(w3)
    watcher = BlockWatcher(w3)

    pair = await create_trading_pair(
        settings.ROUTER_ADDRESS,
        settings.PAIR_ADDRESS,
        settings.BASE_SYMBOL,
        tx_manager,
        chain,
        watcher.new_block,
        slippage_tolerance=settings.SLIPPAGE_TOLERANCE,
        fee_bps=settings.FEE_BPS,
    )
    bind_pair(pair.base.symbol, pair.quote.symbol)

    for side in (OrderSide.BUY, OrderSide.SELL):
        for size in settings.QUOTE_SIZES:
            try:
                price = pair.quote_price_for_amount(size, side)
                log.info("QUOTE", side=side.value, amount=str(size), price=str(price))
            except Exception as e:
                log.warning("QUOTE_UNAVAILABLE", side=side.value, amount=str(size), error=str(e))

    pair.price_changed.subscribe(lambda price: log.info("NEW_PRICE", price=str(price)))

    app = web.Application()
    app.add_routes([web.get("/healthz", make_healthz(pair, watcher))])
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", settings.HEALTH_PORT)
    await site.start()
    log.info(f"HEALTHCHECK_SERVER_STARTED on port {settings.HEALTH_PORT}")

    try:
        await watcher.run()
    finally:
        pair.close()
        await runner.cleanup()
        log.warning("SYSTEM_SHUTDOWN_COMPLETE")

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
