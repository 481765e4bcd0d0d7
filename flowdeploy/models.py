"""
Data models for the flowdeploy package.
"""
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ConstructorParam(BaseModel):
    """A single constructor input taken from a contract ABI"""
    model_config = ConfigDict(frozen=True)

    name: str
    type: str


class Artifact(BaseModel):
    """Compiled contract: interface, creation bytecode and constructor schema"""
    model_config = ConfigDict(frozen=True)

    name: str
    abi: Tuple[Dict[str, Any], ...]
    bytecode: str
    constructor_params: Tuple[ConstructorParam, ...] = ()

    @property
    def constructor_types(self) -> List[str]:
        return [param.type for param in self.constructor_params]


class ContractRef(BaseModel):
    """Placeholder for the address produced by another named deployment"""
    model_config = ConfigDict(frozen=True)

    name: str


class NetworkRef(BaseModel):
    """Placeholder for a Superfluid framework address of the target network"""
    model_config = ConfigDict(frozen=True)

    key: str


class TokenRef(BaseModel):
    """Placeholder for a super token address of the target network"""
    model_config = ConfigDict(frozen=True)

    symbol: str


class AccountRef(BaseModel):
    """Placeholder for a named account such as the deployer"""
    model_config = ConfigDict(frozen=True)

    name: str


PLACEHOLDER_TYPES = (ContractRef, NetworkRef, TokenRef, AccountRef)


def ref(name: str) -> ContractRef:
    """Shorthand for a reference to another deployment's address"""
    return ContractRef(name=name)


def _walk_refs(value: Any, found: List[str]) -> None:
    if isinstance(value, ContractRef):
        if value.name not in found:
            found.append(value.name)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _walk_refs(item, found)


class DeploymentRequest(BaseModel):
    """A named deployment declaration"""
    model_config = ConfigDict(frozen=True)

    name: str
    constructor_args: Tuple[Any, ...] = ()
    tags: FrozenSet[str] = frozenset()

    def dependencies(self) -> List[str]:
        """Names of the deployments referenced by the constructor args, in first-use order"""
        found: List[str] = []
        _walk_refs(self.constructor_args, found)
        return found


class DeploymentRecord(BaseModel):
    """A confirmed deployment of one contract on one network"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    network: str
    address: str
    constructor_args_fingerprint: str = Field(..., alias="constructorArgsFingerprint")
    block_number: int = Field(..., alias="blockNumber")
    timestamp: int
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")
    constructor_args: List[Any] = Field(default_factory=list, alias="constructorArgs")

    @field_serializer("constructor_args")
    def _serialize_args(self, args: List[Any]) -> List[Any]:
        return [_jsonable(arg) for arg in args]


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


class FlowKind(str, Enum):
    """Constant flow agreement operation"""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class FlowOperationSpec(BaseModel):
    """Request to open, change or close a flow between two accounts"""
    model_config = ConfigDict(frozen=True)

    kind: FlowKind
    sender: str
    receiver: str
    token_address: str
    flow_rate: Any = 0
    expected_super_token: Optional[str] = None


class TransactionIntent(BaseModel):
    """An unsigned transaction, as handed to the submitter"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    to: Optional[str] = None
    data: str
    from_address: str = Field(..., alias="from")
    value: int = 0
    nonce: Optional[int] = None
    gas_limit: Optional[int] = None


class ReceiptStatus(str, Enum):
    SUCCESS = "success"
    REVERTED = "reverted"


class TransactionReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    transaction_hash: str = Field(..., alias="transactionHash")
    status: ReceiptStatus
    block_number: int = Field(..., alias="blockNumber")
    gas_used: int = Field(..., alias="gasUsed")
    contract_address: Optional[str] = Field(None, alias="contractAddress")
    logs: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def _status_from_int(cls, value):
        # Nodes report 1 for success and 0 for a revert
        if isinstance(value, int) and not isinstance(value, bool):
            return ReceiptStatus.SUCCESS if value == 1 else ReceiptStatus.REVERTED
        return value

    @property
    def succeeded(self) -> bool:
        return self.status == ReceiptStatus.SUCCESS
