"""ABI fragments for the contracts the client talks to."""

from easy_amm.abis.erc20 import ERC20_ABI, MAX_UINT256
from easy_amm.abis.uniswap_v2 import UNISWAP_V2_PAIR_ABI, UNISWAP_V2_ROUTER_ABI

__all__ = ["ERC20_ABI", "MAX_UINT256", "UNISWAP_V2_PAIR_ABI", "UNISWAP_V2_ROUTER_ABI"]
