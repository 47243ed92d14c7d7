# /src/easy_amm/adapters/chain.py
from typing import Any, Dict, List, Tuple
from web3 import AsyncWeb3, Web3
from web3.contract.async_contract import AsyncContract

from easy_amm.core.decorators import retriable_network_call
from easy_amm.core.logger import get_logger

log = get_logger(__name__)

class Web3Chain:
    """
    Read calls and unsigned call builders against deployed contracts.
    Signing and broadcasting live in TransactionManager.
    """
    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3
        self._contracts: Dict[Tuple[str, int], AsyncContract] = {}

    def contract(self, address: str, abi: List[dict]) -> AsyncContract:
        checksum = Web3.to_checksum_address(address)
        key = (checksum, id(abi))
        if key not in self._contracts:
            self._contracts[key] = self.w3.eth.contract(address=checksum, abi=abi)
        return self._contracts[key]

    @retriable_network_call
    async def call(self, address: str, abi: List[dict], fn_name: str, *args) -> Any:
        """ABI-decoded result of a view call."""
        func = getattr(self.contract(address, abi).functions, fn_name)
        try:
            return await func(*args).call()
        except Exception as e:
            log.error("CHAIN_CALL_FAILED", address=address, fn=fn_name, error=str(e))
            raise

    def build_transaction(self, address: str, abi: List[dict], fn_name: str, *args) -> Dict[str, Any]:
        """Unsigned call for ``fn_name(*args)``; nonce and gas are filled by the sender."""
        contract = self.contract(address, abi)
        data = getattr(contract.functions, fn_name)(*args)._encode_transaction_data()
        return {"to": contract.address, "data": data, "value": 0}
