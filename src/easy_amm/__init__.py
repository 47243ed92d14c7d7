"""Quoting and order execution client for Uniswap-V2-style AMM pairs."""

__version__ = "0.1.0"
