from .chain import FakeChain, FakeClock
from .constants import (
    CASHFLOW_NFT_ARTIFACT,
    FDAI,
    FDAIX,
    OTHER_ACCOUNT,
    RECEIVER,
    TEST_NETWORK,
    TEST_PRIV_KEY,
    TOKEN_MOCK_ARTIFACT,
    NO_ARGS_ARTIFACT,
)

__all__ = [
    "FakeChain",
    "FakeClock",
    "CASHFLOW_NFT_ARTIFACT",
    "FDAI",
    "FDAIX",
    "OTHER_ACCOUNT",
    "RECEIVER",
    "TEST_NETWORK",
    "TEST_PRIV_KEY",
    "TOKEN_MOCK_ARTIFACT",
    "NO_ARGS_ARTIFACT",
]
