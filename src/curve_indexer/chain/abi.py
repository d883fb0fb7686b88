"""Bonding-curve contract ABI fragments used by the indexer.

Only the three events the aggregator consumes and the two views used to seed
the curve snapshot are declared. Trading methods (buy/sell/quote*) are not
needed: the indexer never writes to or quotes against the curve.
"""

from web3 import Web3


def _uint(name: str) -> dict:
    return {"indexed": False, "internalType": "uint256", "name": name, "type": "uint256"}


TRADE_EVENT = {
    "anonymous": False,
    "name": "Trade",
    "type": "event",
    "inputs": [
        {"indexed": True, "internalType": "address", "name": "trader", "type": "address"},
        {"indexed": False, "internalType": "bool", "name": "isBuy", "type": "bool"},
        _uint("qty"),
        _uint("costOrProceeds"),
        _uint("stepIndex"),
    ],
}

GRADUATED_EVENT = {
    "anonymous": False,
    "name": "Graduated",
    "type": "event",
    "inputs": [_uint("tokensSoldOnCurve"), _uint("nativeReserve"), _uint("timestamp")],
}

STEP_ADVANCED_EVENT = {
    "anonymous": False,
    "name": "StepAdvanced",
    "type": "event",
    "inputs": [_uint("newStep"), _uint("newPrice")],
}


def _view(name: str) -> dict:
    return {
        "inputs": [],
        "name": name,
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    }


CURVE_ABI: list[dict] = [
    TRADE_EVENT,
    GRADUATED_EVENT,
    STEP_ADVANCED_EVENT,
    _view("getCurrentStep"),
    _view("getCurrentPrice"),
]

# Canonical signatures -> topic0, keyed by event name
EVENT_SIGNATURES = {
    "Trade": "Trade(address,bool,uint256,uint256,uint256)",
    "Graduated": "Graduated(uint256,uint256,uint256)",
    "StepAdvanced": "StepAdvanced(uint256,uint256)",
}

EVENT_TOPICS: dict[str, str] = {
    name: Web3.to_hex(Web3.keccak(text=sig)) for name, sig in EVENT_SIGNATURES.items()
}
TOPIC_TO_EVENT: dict[str, str] = {topic: name for name, topic in EVENT_TOPICS.items()}
