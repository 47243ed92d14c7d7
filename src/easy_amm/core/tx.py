# /src/easy_amm/core/tx.py
# Signs and broadcasts transactions for a single wallet with sequenced nonces.
from typing import Dict, Any
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3

from easy_amm.core.config import settings
from easy_amm.core.logger import get_logger, TRANSACTIONS_SENT
from easy_amm.core.nonce_manager import NonceManager

log = get_logger(__name__)

class TransactionReverted(Exception):
    """A mined transaction whose receipt reports failure."""
    def __init__(self, tx_hash: str, receipt: Dict[str, Any] | None = None):
        super().__init__(f"Transaction {tx_hash} reverted")
        self.tx_hash = tx_hash
        self.receipt = receipt

class PendingTransaction:
    """Handle for a broadcast transaction that may not be mined yet."""
    def __init__(self, w3: AsyncWeb3, tx_hash: str, nonce: int):
        self.w3 = w3
        self.hash = tx_hash
        self.nonce = nonce

    async def wait(self, timeout: float | None = None) -> Dict[str, Any]:
        """Wait for inclusion and return the receipt. Raises TransactionReverted on status 0."""
        receipt = await self.w3.eth.wait_for_transaction_receipt(
            self.hash, timeout=timeout if timeout is not None else settings.TX_RECEIPT_TIMEOUT
        )
        if receipt["status"] != 1:
            log.error("TRANSACTION_REVERTED", tx_hash=self.hash, nonce=self.nonce)
            raise TransactionReverted(self.hash, dict(receipt))
        log.info("TRANSACTION_MINED", tx_hash=self.hash, block=receipt["blockNumber"])
        return receipt

    def __repr__(self) -> str:
        return f"PendingTransaction(hash={self.hash!r}, nonce={self.nonce})"

class TransactionManager:
    """
    Wraps the signing wallet. Every transaction gets its nonce from the injected
    NonceManager; building and broadcasting are not serialized, so several
    transactions can be outstanding at once.
    """
    def __init__(self, w3: AsyncWeb3, account: LocalAccount, nonce_manager: NonceManager | None = None, chain_id: int | None = None):
        self.w3 = w3
        self.account = account
        self.address = account.address
        self.nonce_manager = nonce_manager or NonceManager(w3, self.address)
        self.chain_id = chain_id if chain_id is not None else settings.chain_id
        log.info("TRANSACTION_MANAGER_INITIALIZED", address=self.address)

    @classmethod
    def from_settings(cls, w3: AsyncWeb3) -> "TransactionManager":
        """Build the signer from EXECUTOR_PRIVATE_KEY, or MNEMONIC + DERIVATION_PATH."""
        if settings.EXECUTOR_PRIVATE_KEY:
            account = Account.from_key(settings.EXECUTOR_PRIVATE_KEY.get_secret_value())
        elif settings.MNEMONIC:
            Account.enable_unaudited_hdwallet_features()
            account = Account.from_mnemonic(
                settings.MNEMONIC.get_secret_value(), account_path=settings.DERIVATION_PATH
            )
        else:
            raise ValueError("Either EXECUTOR_PRIVATE_KEY or MNEMONIC must be configured.")
        return cls(w3, account)

    async def _get_chain_id(self) -> int:
        if self.chain_id is None:
            self.chain_id = await self.w3.eth.chain_id
        return self.chain_id

    async def send_transaction(self, tx_params: Dict[str, Any], kind: str = "call") -> PendingTransaction:
        """Assigns a nonce, fills gas fields, signs and broadcasts ``tx_params``."""
        nonce = await self.nonce_manager.next_nonce()
        try:
            full_tx_params = {
                **tx_params,
                'from': self.address,
                'nonce': nonce,
                'chainId': await self._get_chain_id(),
            }

            # Estimate gas if not provided
            if 'gas' not in full_tx_params:
                full_tx_params['gas'] = await self.w3.eth.estimate_gas(full_tx_params)

            # Node's suggested legacy gas price unless the caller set fees
            if 'gasPrice' not in full_tx_params and 'maxFeePerGas' not in full_tx_params:
                full_tx_params['gasPrice'] = await self.w3.eth.gas_price

            signed_tx = self.account.sign_transaction(full_tx_params)
            tx_hash = Web3.to_hex(await self.w3.eth.send_raw_transaction(signed_tx.raw_transaction))
        except Exception as e:
            log.error("TRANSACTION_FAILURE", kind=kind, nonce=nonce, error=str(e), exc_info=True)
            raise

        TRANSACTIONS_SENT.labels(kind).inc()
        log.info("TRANSACTION_BROADCASTED", kind=kind, tx_hash=tx_hash, nonce=nonce)
        return PendingTransaction(self.w3, tx_hash, nonce)
