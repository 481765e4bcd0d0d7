"""
Artifact registry: contract name -> compiled ABI, bytecode and constructor schema.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from .exceptions import UnknownArtifact
from .models import Artifact, ConstructorParam

logger = logging.getLogger(__name__)

ArtifactSource = Union[str, Path, Mapping[str, Dict[str, Any]]]


def _constructor_params(abi: List[Dict[str, Any]]) -> List[ConstructorParam]:
    for entry in abi:
        if entry.get("type") == "constructor":
            return [
                ConstructorParam(name=item.get("name", ""), type=item["type"])
                for item in entry.get("inputs", [])
            ]
    return []


def _normalize_bytecode(bytecode: Any) -> str:
    # solc emits {"object": "..."} while hardhat emits a plain hex string
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object", "")
    bytecode = (bytecode or "").strip()
    if bytecode and not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return bytecode


def artifact_from_json(name: str, data: Dict[str, Any]) -> Optional[Artifact]:
    """
    Build an Artifact from a hardhat/solc style JSON document.

    Returns:
        The Artifact, or None if the contract has no creation bytecode
        (interfaces and abstract contracts)
    """
    abi = data.get("abi") or []
    bytecode = _normalize_bytecode(data.get("bytecode"))
    if bytecode in ("", "0x"):
        return None
    return Artifact(
        name=name,
        abi=tuple(abi),
        bytecode=bytecode,
        constructor_params=tuple(_constructor_params(abi)),
    )


class ArtifactRegistry:
    """Loaded once at start-up; lookups afterwards are pure reads."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._artifacts: Dict[str, Artifact] = {}
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_source(cls, source: ArtifactSource) -> "ArtifactRegistry":
        registry = cls()
        registry.register_all(source)
        return registry

    def register(self, artifact: Artifact) -> None:
        if artifact.name in self._artifacts:
            self.logger.warning(f"Artifact '{artifact.name}' registered twice, keeping the latest")
        self._artifacts[artifact.name] = artifact

    def register_all(self, source: ArtifactSource) -> int:
        """
        Load every deployable artifact from a source.

        Args:
            source: A hardhat artifacts directory, or a mapping of contract
                name to {"abi": ..., "bytecode": ...}

        Returns:
            Number of artifacts registered

        Raises:
            FileNotFoundError: If a directory source does not exist
        """
        if isinstance(source, Mapping):
            items = list(source.items())
        else:
            items = list(self._scan_directory(Path(source)))

        count = 0
        for name, data in items:
            artifact = artifact_from_json(name, data)
            if artifact is None:
                self.logger.debug(f"Skipping '{name}': no creation bytecode")
                continue
            self.register(artifact)
            count += 1
        self.logger.debug(f"Registered {count} artifacts")
        return count

    def _scan_directory(self, directory: Path) -> Iterator:
        if not directory.is_dir():
            raise FileNotFoundError(f"Artifact directory not found: {directory}")
        for path in sorted(directory.rglob("*.json")):
            if path.name.endswith(".dbg.json") or "build-info" in path.parts:
                continue
            try:
                with open(path, "r") as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                self.logger.warning(f"Ignoring unreadable artifact {path}: {e}")
                continue
            if not isinstance(data, dict) or "abi" not in data:
                continue
            yield data.get("contractName") or path.stem, data

    def get(self, name: str) -> Artifact:
        """
        Get an artifact by contract name.

        Raises:
            UnknownArtifact: If nothing was registered under the name
        """
        try:
            return self._artifacts[name]
        except KeyError:
            raise UnknownArtifact(name) from None

    def names(self) -> List[str]:
        return sorted(self._artifacts)

    def __contains__(self, name: str) -> bool:
        return name in self._artifacts

    def __len__(self) -> int:
        return len(self._artifacts)
