"""
Deployment ledger: persisted record of confirmed deployments.

One live record per (contract name, network). Commits replace the ledger file
atomically so that a crash leaves either the old or the new content on disk.
"""
import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import portalocker
from web3 import Web3

from .exceptions import LedgerError
from .models import PLACEHOLDER_TYPES, DeploymentRecord

logger = logging.getLogger(__name__)

LEDGER_VERSION = 1
DEFAULT_LEDGER_PATH = os.path.join("deployments", "ledger.json")


def _canonical(value: Any) -> Any:
    """Type-tagged JSON form of a constructor argument"""
    if isinstance(value, PLACEHOLDER_TYPES):
        raise ValueError(f"Cannot fingerprint unresolved placeholder {value!r}")
    if isinstance(value, bool):
        return ["bool", value]
    if isinstance(value, int):
        return ["int", str(value)]
    if isinstance(value, (bytes, bytearray)):
        return ["bytes", bytes(value).hex()]
    if isinstance(value, str):
        if value.startswith("0x") and Web3.is_address(value):
            return ["address", Web3.to_checksum_address(value)]
        return ["str", value]
    if isinstance(value, (list, tuple)):
        return ["list", [_canonical(item) for item in value]]
    raise ValueError(f"Unsupported constructor argument type: {type(value).__name__}")


def fingerprint(constructor_args: Sequence[Any]) -> str:
    """
    Deterministic hash of resolved constructor arguments.

    Sensitive to order, value and type. Addresses are compared in checksum
    form, so the same address written in a different case does not change
    the fingerprint.
    """
    canonical = json.dumps([_canonical(arg) for arg in constructor_args], separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class DeploymentLedger:
    """File-backed, process-safe deployment ledger"""

    def __init__(self, path: Optional[str] = None):
        """
        Initialize the ledger.

        Args:
            path: Ledger file; defaults to FLOWDEPLOY_LEDGER_PATH or
                deployments/ledger.json
        """
        self.path = Path(path or os.environ.get("FLOWDEPLOY_LEDGER_PATH", DEFAULT_LEDGER_PATH))

    def _get_lock_path(self) -> str:
        return str(self.path) + ".lock"

    def _read_unlocked(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"version": LEDGER_VERSION, "deployments": {}}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise LedgerError(f"Cannot read deployment ledger {self.path}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("deployments"), dict):
            raise LedgerError(f"Deployment ledger {self.path} has an unexpected layout")
        return data

    def _write_unlocked(self, data: Dict[str, Any]) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=self.path.name + ".", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def read(self) -> Dict[str, Any]:
        """Read the whole ledger under the lock"""
        if not self.path.exists():
            return {"version": LEDGER_VERSION, "deployments": {}}
        with portalocker.Lock(self._get_lock_path(), timeout=10):
            return self._read_unlocked()

    def lookup(self, name: str, network: str) -> Optional[DeploymentRecord]:
        """
        Get the live record for a contract on a network.

        Returns:
            The record, or None if the contract was never deployed there
        """
        entry = self.read()["deployments"].get(network, {}).get(name)
        if entry is None:
            return None
        return DeploymentRecord.model_validate(entry)

    def records(self, network: str) -> List[DeploymentRecord]:
        entries = self.read()["deployments"].get(network, {})
        return [DeploymentRecord.model_validate(entry) for _, entry in sorted(entries.items())]

    def commit(self, record: DeploymentRecord) -> None:
        """
        Store a record, replacing any prior record for (name, network).

        Raises:
            LedgerError: If the existing ledger cannot be read or the new one written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with portalocker.Lock(self._get_lock_path(), timeout=10):
            data = self._read_unlocked()
            data["version"] = LEDGER_VERSION
            data["deployments"].setdefault(record.network, {})[record.name] = record.model_dump(
                mode="json", by_alias=True
            )
            try:
                self._write_unlocked(data)
            except OSError as e:
                raise LedgerError(f"Cannot write deployment ledger {self.path}: {e}") from e
        logger.debug(f"Committed {record.name} on {record.network} to {self.path}")
