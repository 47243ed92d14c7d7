# /src/easy_amm/core/logger.py
import logging
import structlog
from structlog.contextvars import bind_contextvars
import sentry_sdk
from prometheus_client import Counter
from easy_amm.core.config import settings

# --- Prometheus Metrics ---
TRANSACTIONS_SENT = Counter("easy_amm_transactions_sent_total", "Total number of transactions broadcast", ["kind"])
ORDERS_PLACED = Counter("easy_amm_orders_placed_total", "Total number of swap orders submitted", ["side"])
REFRESH_FAILURES = Counter("easy_amm_refresh_failures_total", "Background refreshes that failed and kept stale state", ["component"])
PRICE_UPDATES = Counter("easy_amm_price_updates_total", "Mid-price updates published after a reserve refresh")

def configure_logging():
    if settings.SENTRY_DSN:
        sentry_sdk.init(dsn=settings.SENTRY_DSN.get_secret_value(), traces_sample_rate=1.0)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(settings.LOG_LEVEL)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

def get_logger(name: str):
    return structlog.get_logger(name)

def bind_pair(base: str, quote: str):
    """Tag every subsequent log line in this context with the traded pair."""
    bind_contextvars(pair=f"{base}/{quote}")

configure_logging()
log = get_logger("EasyAMM.System")
