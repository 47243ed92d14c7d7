# /src/easy_amm/core/config.py
from decimal import Decimal
from typing import List
from pydantic_settings import BaseSettings
from pydantic import SecretStr

class Settings(BaseSettings):
    # Node & signer
    PROVIDER_URL: SecretStr | None = None
    MNEMONIC: SecretStr | None = None
    EXECUTOR_PRIVATE_KEY: SecretStr | None = None
    DERIVATION_PATH: str = "m/44'/60'/0'/0/0"

    # Read from the node when unset
    chain_id: int | None = None

    # Pair defaults (PancakeSwap v2 router, DCB/BUSD pair)
    ROUTER_ADDRESS: str = "0x10ED43C718714eb63d5aA57B78B54704E256024E"
    PAIR_ADDRESS: str = "0x2ed957a5180bacfc93f4b8790cb59e304514eec6"
    BASE_SYMBOL: str = "DCB"

    # Trading parameters
    SLIPPAGE_TOLERANCE: Decimal = Decimal("0.0025")
    FEE_BPS: int = 25
    ORDER_DEADLINE_SECONDS: int = 300
    TX_RECEIPT_TIMEOUT: int = 120
    BLOCK_POLL_INTERVAL: float = 3.0
    QUOTE_SIZES: List[Decimal] = [Decimal("1000"), Decimal("100000"), Decimal("10000000")]

    # Operational Settings
    LOG_LEVEL: str = "INFO"
    HEALTH_PORT: int = 8080
    SENTRY_DSN: SecretStr | None = None

    @property
    def provider_url(self) -> str | None:
        return self.PROVIDER_URL.get_secret_value() if self.PROVIDER_URL else None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

try:
    settings = Settings()
except Exception as e:
    # logger.py imports settings, so log through an unconfigured structlog logger
    import structlog
    structlog.get_logger("EasyAMM.Config").critical("FAILED_TO_LOAD_SETTINGS", error=str(e))
    raise SystemExit(1)
