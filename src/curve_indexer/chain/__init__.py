"""Chain layer -- bonding-curve contract access over JSON-RPC via web3.py."""

from curve_indexer.chain.client import CurveClient
from curve_indexer.chain.web3_client import Web3CurveClient, event_from_decoded

__all__ = ["CurveClient", "Web3CurveClient", "event_from_decoded"]
