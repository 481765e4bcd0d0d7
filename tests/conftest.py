"""
Pytest fixtures for the flowdeploy tests.
"""
import time

import pytest

from flowdeploy.artifacts import ArtifactRegistry
from flowdeploy.config import NetworkConfig
from flowdeploy.executor import DeploymentExecutor
from flowdeploy.ledger import DeploymentLedger
from flowdeploy.signer import LocalSigner
from flowdeploy.submitter import TransactionSubmitter
from tests.test_helpers import (
    CASHFLOW_NFT_ARTIFACT,
    NO_ARGS_ARTIFACT,
    TEST_NETWORK,
    TEST_PRIV_KEY,
    TOKEN_MOCK_ARTIFACT,
    FakeChain,
)


@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    """Make time.sleep instantaneous so polling doesn't slow the suite down"""
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _reset_network_cache():
    NetworkConfig._networks_cache = None
    yield
    NetworkConfig._networks_cache = None


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for var in ("PRIVATE_RPC", "MUMBAI_RPC_URL", "OWNER_ADDRESS", "FLOWDEPLOY_LEDGER_PATH"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def signer():
    return LocalSigner.from_key(TEST_PRIV_KEY)


@pytest.fixture
def submitter(chain, signer):
    return TransactionSubmitter(chain.w3, signer, timeout=30, poll_interval=1.0)


@pytest.fixture
def registry():
    return ArtifactRegistry.from_source(
        {
            "TokenMock": TOKEN_MOCK_ARTIFACT,
            "CashflowNFT": CASHFLOW_NFT_ARTIFACT,
            "LendiesCore": NO_ARGS_ARTIFACT,
        }
    )


@pytest.fixture
def ledger(tmp_path):
    return DeploymentLedger(str(tmp_path / "deployments" / "ledger.json"))


@pytest.fixture
def executor(registry, ledger, submitter):
    return DeploymentExecutor(registry, ledger, submitter, TEST_NETWORK)
