"""
Exceptions for the flowdeploy package.

Every core operation either returns a value or raises exactly one of the
subclasses of FlowDeployError below. None of them are retried internally.
"""
from typing import Iterable, List, Optional


class FlowDeployError(Exception):
    """Base exception for flowdeploy errors."""

    @property
    def kind(self) -> str:
        """Name of the error kind, as printed by the CLI"""
        return type(self).__name__


class UnknownArtifact(FlowDeployError):
    """Raised when no build artifact is registered under a contract name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No artifact registered for contract '{name}'")


class CyclicDependency(FlowDeployError):
    """Raised when deployment requests reference each other in a cycle."""

    def __init__(self, names: Iterable[str]):
        self.names: List[str] = list(names)
        super().__init__(
            f"Cyclic constructor dependency between: {' -> '.join(self.names)}"
        )


class DeploymentFailed(FlowDeployError):
    """Raised when a contract deployment could not be completed."""

    def __init__(self, name: str, reason: str, transaction_hash: Optional[str] = None):
        self.name = name
        self.reason = reason
        self.transaction_hash = transaction_hash
        message = f"Deployment of '{name}' failed: {reason}"
        if transaction_hash:
            message += f" (tx {transaction_hash})"
        super().__init__(message)


class FlowValidationError(FlowDeployError):
    """Base class for flow operation validation failures."""
    pass


class UnknownSuperToken(FlowValidationError):
    """Raised when a token is not a known super token wrapper on the network."""

    def __init__(self, token: str, network: Optional[str] = None, reason: Optional[str] = None):
        self.token = token
        self.network = network
        where = f" on network '{network}'" if network else ""
        message = f"'{token}' is not a known super token{where}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidFlowRate(FlowValidationError):
    """Raised when a flow rate is negative, non-integral or out of range."""

    def __init__(self, flow_rate, reason: str):
        self.flow_rate = flow_rate
        self.reason = reason
        super().__init__(f"Invalid flow rate {flow_rate!r}: {reason}")


class InvalidReceiver(FlowValidationError):
    """Raised when a flow receiver is malformed or equals the sender."""

    def __init__(self, receiver, reason: str):
        self.receiver = receiver
        self.reason = reason
        super().__init__(f"Invalid receiver {receiver!r}: {reason}")


class ConfirmationTimeout(FlowDeployError):
    """
    Raised when a broadcast transaction is not included before the timeout.

    The outcome is indeterminate: the transaction may still be mined later.
    """

    def __init__(self, transaction_hash: str, timeout: float, name: Optional[str] = None):
        self.transaction_hash = transaction_hash
        self.timeout = timeout
        self.name = name
        subject = f"Transaction {transaction_hash}"
        if name:
            subject += f" deploying '{name}'"
        super().__init__(f"{subject} not confirmed within {timeout}s")


class SubmissionRejected(FlowDeployError):
    """Raised when a transaction is definitively not broadcast."""

    def __init__(self, reason: str, name: Optional[str] = None):
        self.reason = reason
        self.name = name
        subject = f"Transaction deploying '{name}'" if name else "Transaction"
        super().__init__(f"{subject} rejected: {reason}")


class LedgerError(FlowDeployError):
    """Raised when the deployment ledger file cannot be read or written."""
    pass
