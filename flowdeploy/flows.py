"""
Flow operation builder for the Superfluid constant flow agreement (CFAv1).

Turns a FlowOperationSpec into an unsigned host.callAgreement transaction.
Building is a pure transformation: validation and ABI encoding only, no
network access.
"""
import logging
from typing import Dict, List, Optional, Tuple

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector
from web3 import Web3

from .config import NetworkConfig
from .exceptions import InvalidFlowRate, InvalidReceiver, UnknownSuperToken
from .models import FlowKind, FlowOperationSpec, TransactionIntent

logger = logging.getLogger(__name__)

# CFAv1 stores flow rates as int96
FLOW_RATE_BITS = 96
MAX_FLOW_RATE = 2 ** (FLOW_RATE_BITS - 1) - 1

CALL_AGREEMENT_SIGNATURE = "callAgreement(address,bytes,bytes)"
CFA_SIGNATURES: Dict[FlowKind, str] = {
    FlowKind.CREATE: "createFlow(address,address,int96,bytes)",
    FlowKind.UPDATE: "updateFlow(address,address,int96,bytes)",
    FlowKind.DELETE: "deleteFlow(address,address,address,bytes)",
}


def _encode_call(signature: str, types: List[str], args: list) -> bytes:
    return function_signature_to_4byte_selector(signature) + encode(types, args)


def _arg_types(signature: str) -> List[str]:
    return signature[signature.index("(") + 1:-1].split(",")


class FlowOperationBuilder:
    """Builds create/update/delete flow transactions for one network"""

    def __init__(
        self,
        host_address: str,
        cfa_address: str,
        super_tokens: Dict[str, Dict[str, str]],
        network: Optional[str] = None,
    ):
        """
        Initialize the builder

        Args:
            host_address: Superfluid host contract
            cfa_address: Constant flow agreement (CFAv1) contract
            super_tokens: Super tokens keyed by symbol, each with an "address"
                and optionally the "underlying" base token address
            network: Network name, used in error messages
        """
        self.host_address = Web3.to_checksum_address(host_address)
        self.cfa_address = Web3.to_checksum_address(cfa_address)
        self.network = network
        self._by_address: Dict[str, str] = {}
        self._by_underlying: Dict[str, str] = {}
        for symbol, entry in super_tokens.items():
            self._by_address[Web3.to_checksum_address(entry["address"])] = symbol
            if entry.get("underlying"):
                self._by_underlying[Web3.to_checksum_address(entry["underlying"])] = symbol

    @classmethod
    def from_network(cls, network: str) -> "FlowOperationBuilder":
        return cls(
            host_address=NetworkConfig.get_host_address(network),
            cfa_address=NetworkConfig.get_cfa_address(network),
            super_tokens=NetworkConfig.get_super_tokens(network),
            network=network,
        )

    def _check_token(self, spec: FlowOperationSpec) -> Tuple[str, str]:
        token = spec.token_address
        if not isinstance(token, str) or not Web3.is_address(token):
            raise UnknownSuperToken(str(token), self.network, "not a valid address")
        token = Web3.to_checksum_address(token)
        symbol = self._by_address.get(token)
        if symbol is None:
            wrapped = self._by_underlying.get(token)
            reason = f"it is the underlying token of {wrapped}, use the super token instead" if wrapped else None
            raise UnknownSuperToken(token, self.network, reason)
        if spec.expected_super_token and spec.expected_super_token != symbol:
            raise UnknownSuperToken(
                token, self.network, f"expected {spec.expected_super_token} but the address is {symbol}"
            )
        return token, symbol

    @staticmethod
    def _check_flow_rate(flow_rate) -> int:
        if isinstance(flow_rate, bool) or not isinstance(flow_rate, int):
            raise InvalidFlowRate(flow_rate, "must be an integer amount of wei per second")
        if flow_rate < 0:
            raise InvalidFlowRate(flow_rate, "must not be negative")
        if flow_rate > MAX_FLOW_RATE:
            raise InvalidFlowRate(flow_rate, f"exceeds the int{FLOW_RATE_BITS} maximum {MAX_FLOW_RATE}")
        return flow_rate

    @staticmethod
    def _check_receiver(spec: FlowOperationSpec) -> Tuple[str, str]:
        if not isinstance(spec.receiver, str) or not Web3.is_address(spec.receiver):
            raise InvalidReceiver(spec.receiver, "not a valid account address")
        if not isinstance(spec.sender, str) or not Web3.is_address(spec.sender):
            raise InvalidReceiver(spec.receiver, f"sender {spec.sender!r} is not a valid account address")
        receiver = Web3.to_checksum_address(spec.receiver)
        sender = Web3.to_checksum_address(spec.sender)
        if receiver == sender:
            raise InvalidReceiver(receiver, "a flow cannot be opened to the sender itself")
        return sender, receiver

    def build(self, spec: FlowOperationSpec) -> TransactionIntent:
        """
        Validate a flow operation and encode it as an unsigned transaction.

        Raises:
            UnknownSuperToken: If the token is not a super token of the network
            InvalidFlowRate: If a create/update rate is not a valid int96 >= 0
            InvalidReceiver: If the receiver is malformed or equals the sender
        """
        token, symbol = self._check_token(spec)
        flow_rate = None
        if spec.kind in (FlowKind.CREATE, FlowKind.UPDATE):
            flow_rate = self._check_flow_rate(spec.flow_rate)
        sender, receiver = self._check_receiver(spec)

        signature = CFA_SIGNATURES[spec.kind]
        if spec.kind == FlowKind.DELETE:
            args = [token, sender, receiver, b""]
        else:
            args = [token, receiver, flow_rate, b""]
        call_data = _encode_call(signature, _arg_types(signature), args)

        data = _encode_call(
            CALL_AGREEMENT_SIGNATURE,
            ["address", "bytes", "bytes"],
            [self.cfa_address, call_data, b""],
        )
        logger.debug(
            f"Built {spec.kind.value} flow {sender} -> {receiver} of {symbol}"
            + (f" at {flow_rate} wei/s" if flow_rate is not None else "")
        )
        return TransactionIntent(to=self.host_address, data=Web3.to_hex(data), from_address=sender)
