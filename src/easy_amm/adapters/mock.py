# /src/easy_amm/adapters/mock.py
# In-memory stand-ins for the chain and the signing wallet.
# Used for simulation-first development and for the unit tests.

from typing import Any, Dict, List, Tuple

from easy_amm.adapters.chain import Web3Chain
from easy_amm.core.logger import get_logger
from easy_amm.core.tx import PendingTransaction, TransactionManager, TransactionReverted

log = get_logger(__name__)

MOCK_WALLET = "0x00000000000000000000000000000000000000E1"

class MockChain(Web3Chain):
    """
    Serves ERC-20 and Uniswap-V2 pair reads from dictionaries.
    Transactions sent through a linked MockTransactionManager are applied here.
    """
    def __init__(self):
        self.tokens: Dict[str, Dict[str, Any]] = {}
        self.pairs: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, tuple]] = []
        self._failures: Dict[str, Exception] = {}
        log.info("MOCK_CHAIN_INITIALIZED")

    def add_token(self, address: str, symbol: str, decimals: int, balances: Dict[str, int] | None = None):
        self.tokens[address] = {
            "symbol": symbol,
            "decimals": decimals,
            "balances": dict(balances or {}),
            "allowances": {},
        }

    def add_pair(self, address: str, token0: str, token1: str, reserve0: int, reserve1: int):
        self.pairs[address] = {"token0": token0, "token1": token1, "reserves": (reserve0, reserve1, 0)}

    def set_reserves(self, address: str, reserve0: int, reserve1: int, timestamp: int = 0):
        self.pairs[address]["reserves"] = (reserve0, reserve1, timestamp)

    def set_balance(self, token: str, owner: str, amount: int):
        self.tokens[token]["balances"][owner] = amount

    def set_allowance(self, token: str, owner: str, spender: str, amount: int):
        self.tokens[token]["allowances"][(owner, spender)] = amount

    def fail_calls(self, fn_name: str, error: Exception | None = None):
        """Make every read of ``fn_name`` raise until clear_failures()."""
        self._failures[fn_name] = error or ConnectionError(f"mock node failed on {fn_name}")

    def clear_failures(self):
        self._failures.clear()

    async def call(self, address: str, abi: List[dict], fn_name: str, *args) -> Any:
        self.calls.append((address, fn_name, args))
        if fn_name in self._failures:
            raise self._failures[fn_name]

        if address in self.pairs:
            pair = self.pairs[address]
            if fn_name == "getReserves":
                return pair["reserves"]
            if fn_name in ("token0", "token1"):
                return pair[fn_name]
        elif address in self.tokens:
            token = self.tokens[address]
            if fn_name in ("symbol", "decimals"):
                return token[fn_name]
            if fn_name == "balanceOf":
                return token["balances"].get(args[0], 0)
            if fn_name == "allowance":
                return token["allowances"].get((args[0], args[1]), 0)
        raise ValueError(f"No mock for {fn_name} at {address}")

    def build_transaction(self, address: str, abi: List[dict], fn_name: str, *args) -> Dict[str, Any]:
        return {
            "to": address,
            "data": f"{fn_name}({', '.join(str(a) for a in args)})",
            "value": 0,
            "fn": fn_name,
            "args": args,
        }

    def apply(self, tx: Dict[str, Any], sender: str):
        """Apply the state change of a mined token call."""
        token = self.tokens.get(tx["to"])
        if token is None:
            return
        if tx["fn"] == "approve":
            spender, amount = tx["args"]
            token["allowances"][(sender, spender)] = amount
        elif tx["fn"] == "transfer":
            to, amount = tx["args"]
            balances = token["balances"]
            balances[sender] = balances.get(sender, 0) - amount
            balances[to] = balances.get(to, 0) + amount


class MockPendingTransaction(PendingTransaction):
    def __init__(self, tx_hash: str, nonce: int, reverted: bool = False):
        self.w3 = None
        self.hash = tx_hash
        self.nonce = nonce
        self.reverted = reverted

    async def wait(self, timeout: float | None = None) -> Dict[str, Any]:
        if self.reverted:
            log.error("MOCK_TX_REVERTED", tx_hash=self.hash)
            raise TransactionReverted(self.hash, {"status": 0})
        return {"status": 1, "transactionHash": self.hash, "blockNumber": 0}


class MockTransactionManager(TransactionManager):
    """
    Records transactions instead of signing them. Nonces count up from zero.
    """
    def __init__(self, chain: MockChain | None = None, from_address: str = MOCK_WALLET):
        self.address = from_address
        self.chain = chain
        self.nonce = 0
        self.sent_transactions: List[Dict[str, Any]] = []
        self._must_fail = False
        self._must_revert = False
        log.info("MOCK_TRANSACTION_MANAGER_INITIALIZED", address=self.address)

    def set_next_call_to_fail(self, fail: bool = True):
        """Raise on the next send_transaction call."""
        self._must_fail = fail

    def set_next_receipt_to_fail(self, fail: bool = True):
        """Broadcast the next transaction but report it reverted on wait()."""
        self._must_revert = fail

    async def send_transaction(self, tx_params: Dict[str, Any], kind: str = "call") -> MockPendingTransaction:
        if self._must_fail:
            self._must_fail = False # Reset after firing
            log.error("MOCK_TX_FORCED_FAILURE", kind=kind, to=tx_params.get("to"))
            raise ValueError("Forced failure for testing.")

        tx_hash = f"0xfake_tx_hash_{self.nonce}"
        full_tx = {"hash": tx_hash, "nonce": self.nonce, "kind": kind, **tx_params}
        self.sent_transactions.append(full_tx)
        self.nonce += 1

        reverted, self._must_revert = self._must_revert, False
        if self.chain is not None and not reverted:
            self.chain.apply(full_tx, self.address)
        log.info("MOCK_TRANSACTION_SENT", kind=kind, tx_hash=tx_hash, fn=tx_params.get("fn"))
        return MockPendingTransaction(tx_hash, full_tx["nonce"], reverted)
