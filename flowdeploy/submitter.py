"""
Transaction submitter: nonce, gas, signing, broadcast and confirmation polling.

Shared by the deployment executor and the flow commands. Nothing here is
retried: a rejected transaction is reported as SubmissionRejected, a
transaction that is not mined in time as ConfirmationTimeout.
"""
import logging
import time
from collections.abc import Mapping
from typing import Any, Dict, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception

from .exceptions import ConfirmationTimeout, FlowDeployError, SubmissionRejected
from .models import TransactionIntent, TransactionReceipt
from .signer import Signer

logger = logging.getLogger(__name__)


def _to_plain(value: Any) -> Any:
    """Convert web3 receipt values (AttributeDict, HexBytes) into plain JSON-able data"""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    if isinstance(value, Mapping):
        return {key: _to_plain(item) for key, item in dict(value).items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    return value


class TransactionSubmitter:
    """
    Signs and submits transactions for a single account.

    Calls are sequential; the nonce is read from the node's pending count for
    each submission, so two submitters must not share an account.
    """

    def __init__(
        self,
        w3: Web3,
        signer: Signer,
        timeout: float = 120,
        poll_interval: float = 1.0,
        gas_buffer: float = 1.2,
        default_gas: int = 3_000_000,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the submitter

        Args:
            w3: Connected Web3 instance
            signer: Signer holding the sending account
            timeout: Seconds to wait for a transaction to be mined
            poll_interval: Seconds between receipt polls
            gas_buffer: Multiplier applied to gas estimates
            default_gas: Gas limit used when estimation fails for a reason
                other than a revert
            logger: Optional logger instance
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.w3 = w3
        self.signer = signer
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.gas_buffer = gas_buffer
        self.default_gas = default_gas
        self.logger = logger or logging.getLogger(__name__)

    @property
    def address(self) -> str:
        return self.signer.address

    def _prepare(self, intent: TransactionIntent) -> Dict[str, Any]:
        sender = Web3.to_checksum_address(intent.from_address)
        if sender != Web3.to_checksum_address(self.address):
            raise SubmissionRejected(
                f"intent is from {sender} but the signing account is {self.address}"
            )

        tx: Dict[str, Any] = {
            "from": sender,
            "data": intent.data,
            "value": intent.value,
            "chainId": self.w3.eth.chain_id,
        }
        if intent.to is not None:
            tx["to"] = Web3.to_checksum_address(intent.to)

        if intent.nonce is not None:
            tx["nonce"] = intent.nonce
        else:
            tx["nonce"] = self.w3.eth.get_transaction_count(sender, "pending")

        if intent.gas_limit is not None:
            tx["gas"] = intent.gas_limit
        else:
            tx["gas"] = self._estimate_gas(tx)

        tx["gasPrice"] = self.w3.eth.gas_price
        return tx

    def _estimate_gas(self, tx: Dict[str, Any]) -> int:
        estimate_fields = {key: tx[key] for key in ("from", "to", "data", "value") if key in tx}
        try:
            gas = self.w3.eth.estimate_gas(estimate_fields)
        except ContractLogicError as e:
            raise SubmissionRejected(f"execution reverted during gas estimation: {e}") from e
        except Exception as e:
            self.logger.warning(f"Gas estimation failed, using default: {self.default_gas}. Error: {e}")
            return self.default_gas
        gas = int(gas * self.gas_buffer)
        self.logger.debug(f"Estimated gas: {gas}")
        return gas

    def submit(self, intent: TransactionIntent) -> TransactionReceipt:
        """
        Sign, broadcast and wait for a transaction.

        Args:
            intent: Unsigned transaction; nonce and gas limit are filled in
                when absent

        Returns:
            Receipt of the mined transaction, which may have reverted

        Raises:
            SubmissionRejected: If the transaction was not broadcast
            ConfirmationTimeout: If it was broadcast but not mined in time
        """
        try:
            tx = self._prepare(intent)
        except FlowDeployError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to prepare transaction: {e}")
            raise SubmissionRejected(f"could not prepare transaction: {e}") from e

        try:
            signed_tx = self.signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise SubmissionRejected(f"failed to sign transaction: {e}") from e

        try:
            tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed_tx.raw_transaction))
        except Exception as e:
            self.logger.error(f"Failed to send transaction: {e}")
            raise SubmissionRejected(str(e)) from e
        self.logger.info(f"Transaction sent: {tx_hash} (nonce {tx['nonce']})")

        return self.wait_for_receipt(tx_hash)

    def wait_for_receipt(self, tx_hash: str) -> TransactionReceipt:
        """
        Poll until the transaction is mined.

        Can be called again after a ConfirmationTimeout to keep waiting.

        Raises:
            ConfirmationTimeout: If no receipt appeared within the timeout
        """
        deadline = time.monotonic() + self.timeout
        while True:
            receipt = None
            try:
                receipt = self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                pass
            except (OSError, ValueError, Web3Exception) as e:
                self.logger.warning(f"Receipt poll for {tx_hash} failed: {e}")

            if receipt is not None:
                converted = self._convert_receipt(receipt)
                self.logger.debug(
                    f"Transaction {tx_hash} mined in block {converted.block_number} "
                    f"with status {converted.status.value}"
                )
                return converted

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.logger.error(f"Timed out waiting for {tx_hash}")
                raise ConfirmationTimeout(tx_hash, self.timeout)
            time.sleep(min(self.poll_interval, remaining))

    def _convert_receipt(self, web3_receipt: Any) -> TransactionReceipt:
        """Convert a web3 receipt to our TransactionReceipt model"""
        receipt_dict = _to_plain(web3_receipt)
        receipt_dict.setdefault("status", 1)
        return TransactionReceipt.model_validate(receipt_dict)
