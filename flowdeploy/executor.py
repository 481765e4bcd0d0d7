"""
Deployment executor.

Runs resolved deployment requests one after another: resolves references to
earlier deployments, skips contracts whose constructor arguments match the
ledger, submits creation transactions for the rest and records the results.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from web3 import Web3

from .artifacts import ArtifactRegistry
from .exceptions import ConfirmationTimeout, DeploymentFailed, SubmissionRejected
from .ledger import DeploymentLedger, fingerprint
from .models import (
    Artifact,
    ContractRef,
    DeploymentRecord,
    DeploymentRequest,
    TransactionIntent,
)
from .submitter import TransactionSubmitter

logger = logging.getLogger(__name__)

ACTION_DEPLOY = "deploy"
ACTION_REUSE = "reuse"


@dataclass
class PlannedStep:
    """Outcome a request would have if applied now"""
    name: str
    action: str
    address: Optional[str] = None
    constructor_args: List[Any] = field(default_factory=list)


class _PendingAddress(Exception):
    """A referenced contract has not been deployed yet (dry runs only)"""


def encode_creation(artifact: Artifact, args: Sequence[Any]) -> str:
    """
    Contract creation payload: bytecode followed by the ABI-encoded constructor args.

    Raises:
        ValueError: If the arguments do not match the constructor inputs
    """
    types = artifact.constructor_types
    if len(args) != len(types):
        raise ValueError(f"constructor takes {len(types)} arguments, got {len(args)}")
    try:
        encoded = encode(types, list(args)) if types else b""
    except (EncodingError, TypeError, ValueError) as e:
        raise ValueError(f"cannot encode constructor arguments: {e}") from e
    return artifact.bytecode + encoded.hex()


class DeploymentExecutor:
    """Applies an ordered list of deployment requests to one network"""

    def __init__(
        self,
        registry: ArtifactRegistry,
        ledger: DeploymentLedger,
        submitter: TransactionSubmitter,
        network: str,
        logger: Optional[logging.Logger] = None,
    ):
        self.registry = registry
        self.ledger = ledger
        self.submitter = submitter
        self.network = network
        self.logger = logger or logging.getLogger(__name__)

    def _resolve_value(self, owner: str, value: Any, produced: Dict[str, Optional[str]]) -> Any:
        if isinstance(value, ContractRef):
            # Addresses from this run win over the ledger
            if value.name in produced:
                address = produced[value.name]
                if address is None:
                    raise _PendingAddress(value.name)
                return address
            record = self.ledger.lookup(value.name, self.network)
            if record is None:
                raise DeploymentFailed(
                    owner, f"unresolved reference to '{value.name}': not deployed on {self.network}"
                )
            return record.address
        if isinstance(value, (list, tuple)):
            return [self._resolve_value(owner, item, produced) for item in value]
        return value

    def _resolve_args(self, request: DeploymentRequest, produced: Dict[str, Optional[str]]) -> List[Any]:
        return [self._resolve_value(request.name, arg, produced) for arg in request.constructor_args]

    def _reusable(self, name: str, args_fingerprint: str) -> Optional[DeploymentRecord]:
        record = self.ledger.lookup(name, self.network)
        if record is not None and record.constructor_args_fingerprint == args_fingerprint:
            return record
        return None

    def _deploy(self, request: DeploymentRequest, args: List[Any], args_fingerprint: str) -> DeploymentRecord:
        artifact = self.registry.get(request.name)
        try:
            data = encode_creation(artifact, args)
        except ValueError as e:
            raise DeploymentFailed(request.name, str(e)) from e

        intent = TransactionIntent(to=None, data=data, from_address=self.submitter.address)
        try:
            receipt = self.submitter.submit(intent)
        except SubmissionRejected as e:
            self.logger.error(
                f"Deployment of {request.name} was not broadcast: {e.reason}",
                extra={"contract": request.name, "network": self.network},
            )
            raise SubmissionRejected(e.reason, name=request.name) from e
        except ConfirmationTimeout as e:
            self.logger.error(
                f"Deployment of {request.name} not confirmed: {e.transaction_hash}",
                extra={"contract": request.name, "network": self.network},
            )
            raise ConfirmationTimeout(e.transaction_hash, e.timeout, name=request.name) from e
        if not receipt.succeeded:
            raise DeploymentFailed(request.name, "contract creation reverted", receipt.transaction_hash)
        if not receipt.contract_address:
            raise DeploymentFailed(
                request.name, "receipt carries no contract address", receipt.transaction_hash
            )

        record = DeploymentRecord(
            name=request.name,
            network=self.network,
            address=Web3.to_checksum_address(receipt.contract_address),
            constructor_args_fingerprint=args_fingerprint,
            block_number=receipt.block_number,
            timestamp=int(time.time()),
            transaction_hash=receipt.transaction_hash,
            constructor_args=args,
        )
        self.ledger.commit(record)
        return record

    def apply(self, ordered_requests: Sequence[DeploymentRequest]) -> List[DeploymentRecord]:
        """
        Deploy the requests in order.

        The first failure aborts the remaining requests; records committed
        before it stay in the ledger, so re-running resumes where it stopped.

        Returns:
            One record per request, reused or newly deployed

        Raises:
            UnknownArtifact: If a request has no registered artifact
            DeploymentFailed: If a reference cannot be resolved, the arguments
                do not fit the constructor, or the creation reverts
            SubmissionRejected: If a creation transaction was not broadcast
            ConfirmationTimeout: If a creation transaction was not mined in time
        """
        produced: Dict[str, Optional[str]] = {}
        results: List[DeploymentRecord] = []
        for request in ordered_requests:
            self.registry.get(request.name)
            args = self._resolve_args(request, produced)
            try:
                args_fingerprint = fingerprint(args)
            except ValueError as e:
                raise DeploymentFailed(request.name, str(e)) from e

            record = self._reusable(request.name, args_fingerprint)
            action = "reused"
            if record is None:
                self.logger.debug(f"Deploying {request.name} with args {args}")
                record = self._deploy(request, args, args_fingerprint)
                action = "deployed"

            self.logger.info(
                f"{action.capitalize()} {record.name} at {record.address} on {self.network}",
                extra={
                    "contract": record.name,
                    "address": record.address,
                    "network": self.network,
                    "action": action,
                },
            )
            produced[request.name] = record.address
            results.append(record)
        return results

    def plan(self, ordered_requests: Sequence[DeploymentRequest]) -> List[PlannedStep]:
        """
        Report what apply() would do, without submitting anything.

        Requests that reference a contract which would be freshly deployed
        are reported as deployments too, with unknown arguments.
        """
        produced: Dict[str, Optional[str]] = {}
        steps: List[PlannedStep] = []
        for request in ordered_requests:
            self.registry.get(request.name)
            try:
                args = self._resolve_args(request, produced)
            except _PendingAddress:
                steps.append(PlannedStep(name=request.name, action=ACTION_DEPLOY))
                produced[request.name] = None
                continue

            record = self._reusable(request.name, fingerprint(args))
            if record is not None:
                steps.append(PlannedStep(request.name, ACTION_REUSE, record.address, args))
                produced[request.name] = record.address
            else:
                steps.append(PlannedStep(request.name, ACTION_DEPLOY, None, args))
                produced[request.name] = None
        return steps
