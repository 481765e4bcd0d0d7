"""
Deployment declarations.

A plan is an ordered list of DeploymentRequests. Constructor arguments may
hold placeholders: ContractRef (resolved by the executor from addresses
produced during the run), and NetworkRef, TokenRef and AccountRef (bound to
concrete values for the target network by bind()).
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Union

from .config import NetworkConfig
from .exceptions import UnknownSuperToken
from .models import AccountRef, ContractRef, DeploymentRequest, NetworkRef, TokenRef

logger = logging.getLogger(__name__)

DEFAULT_REQUESTS: List[DeploymentRequest] = [
    DeploymentRequest(
        name="TradeableCashflow",
        constructor_args=(
            AccountRef(name="owner"),
            "Tradeable Cashflow",
            "TCF",
            NetworkRef(key="host"),
            TokenRef(symbol="fDAIx"),
        ),
        tags={"all", "TradeableCashflow"},
    ),
    DeploymentRequest(name="LendiesCore", tags={"all", "LendiesCore"}),
    DeploymentRequest(
        name="ERC20MockContract",
        constructor_args=("Mock ERC20", "MER"),
        tags={"all", "ERC20MockContract"},
    ),
]

_MARKERS = {
    "$ref": lambda value: ContractRef(name=value),
    "$network": lambda value: NetworkRef(key=value),
    "$token": lambda value: TokenRef(symbol=value),
    "$account": lambda value: AccountRef(name=value),
}


def _parse_arg(value: Any) -> Any:
    if isinstance(value, dict):
        if len(value) == 1:
            marker, target = next(iter(value.items()))
            if marker in _MARKERS:
                return _MARKERS[marker](target)
        raise ValueError(f"Unsupported constructor argument object: {value}")
    if isinstance(value, list):
        return [_parse_arg(item) for item in value]
    return value


def parse_plan(entries: Sequence[Mapping[str, Any]]) -> List[DeploymentRequest]:
    """
    Build requests from plain data.

    Each entry has "name", optional "args" and optional "tags". Arguments
    can use {"$ref": name}, {"$network": key}, {"$token": symbol} and
    {"$account": name}.
    """
    requests = []
    for entry in entries:
        if "name" not in entry:
            raise ValueError(f"Deployment entry without a name: {entry}")
        requests.append(
            DeploymentRequest(
                name=entry["name"],
                constructor_args=tuple(_parse_arg(arg) for arg in entry.get("args", [])),
                tags=set(entry.get("tags", [])),
            )
        )
    return requests


def load_plan(path: Union[str, Path]) -> List[DeploymentRequest]:
    """Load a JSON deployment plan file"""
    with open(path, "r") as f:
        entries = json.load(f)
    if not isinstance(entries, list):
        raise ValueError(f"Deployment plan {path} must be a JSON list")
    requests = parse_plan(entries)
    logger.debug(f"Loaded {len(requests)} deployment requests from {path}")
    return requests


def _bind_arg(value: Any, network: str, accounts: Mapping[str, str]) -> Any:
    if isinstance(value, NetworkRef):
        return NetworkConfig.get_framework_address(network, value.key)
    if isinstance(value, TokenRef):
        token = NetworkConfig.get_super_token(network, value.symbol)
        if token is None:
            raise UnknownSuperToken(value.symbol, network)
        return token["address"]
    if isinstance(value, AccountRef):
        if value.name not in accounts:
            raise ValueError(f"Named account '{value.name}' is not configured")
        return accounts[value.name]
    if isinstance(value, (list, tuple)):
        return [_bind_arg(item, network, accounts) for item in value]
    return value


def bind(
    requests: Sequence[DeploymentRequest],
    network: str,
    accounts: Mapping[str, str],
) -> List[DeploymentRequest]:
    """
    Substitute network, token and account placeholders.

    ContractRefs are left in place for the executor.

    Args:
        requests: Declared requests
        network: Target network name
        accounts: Named accounts, e.g. {"deployer": ..., "owner": ...}
    """
    bound = []
    for request in requests:
        args = tuple(_bind_arg(arg, network, accounts) for arg in request.constructor_args)
        bound.append(request.model_copy(update={"constructor_args": args}))
    return bound


def named_accounts(deployer: str, owner: Union[str, None] = None) -> Dict[str, str]:
    """Named accounts available to deployment plans"""
    return {"deployer": deployer, "owner": owner or deployer}
