# /src/easy_amm/core/config_validator.py
# Run at startup to validate the node endpoint and signing secrets.
from easy_amm.core.config import settings
from easy_amm.core.logger import log

def validate():
    log.info("--- CONFIG VALIDATION START ---")
    errors = []

    if not settings.PROVIDER_URL:
        errors.append("Missing required configuration: PROVIDER_URL")
    if not (settings.MNEMONIC or settings.EXECUTOR_PRIVATE_KEY):
        errors.append("Missing required configuration: MNEMONIC or EXECUTOR_PRIVATE_KEY")
    if not 0 <= settings.SLIPPAGE_TOLERANCE < 1:
        errors.append(f"SLIPPAGE_TOLERANCE must be in [0, 1), got {settings.SLIPPAGE_TOLERANCE}")
    if not 0 <= settings.FEE_BPS < 10000:
        errors.append(f"FEE_BPS must be in [0, 10000), got {settings.FEE_BPS}")

    if errors:
        for error in errors:
            log.critical(error)
        raise ValueError("System configuration is incomplete. Halting.")

    log.info("--- CONFIG VALIDATION PASSED ---")

if __name__ == "__main__":
    validate()
