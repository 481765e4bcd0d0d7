"""
Transaction signers.
"""
from typing import Any, Dict, Protocol

from .local import LocalSigner

__all__ = ["Signer", "LocalSigner"]


class Signer(Protocol):
    """Protocol for transaction signers"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        ...
