"""
Local private-key signer with scoped key access.
"""
import logging
import os
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator

from eth_account import Account
from eth_account.signers.local import LocalAccount

logger = logging.getLogger(__name__)

KeyProvider = Callable[[], str]


class LocalSigner:
    """
    Signs with a private key fetched from a provider on every use.

    The key is only held for the duration of a signature (and once at
    construction, to derive the address); the signer keeps no reference
    to it or to the derived account beyond what the provider itself holds.
    """

    def __init__(self, key_provider: KeyProvider):
        if not callable(key_provider):
            raise TypeError("key_provider must be a callable returning a private key")
        self._key_provider = key_provider
        with self._unlocked() as account:
            self.address: str = account.address

    @classmethod
    def from_env(cls, var: str = "PRIVATE_KEY") -> "LocalSigner":
        """
        Create a signer that reads its key from an environment variable.

        Raises:
            ValueError: If the variable is unset or empty
        """
        def provider() -> str:
            value = os.environ.get(var)
            if not value:
                raise ValueError(f"{var} environment variable is required for signing")
            return value

        return cls(provider)

    @classmethod
    def from_key(cls, priv_key: str) -> "LocalSigner":
        """
        Create a signer around an in-memory key, for tests and scripts.

        The provider closes over the key, so it stays in memory for the
        lifetime of the signer. Use from_env or a custom provider otherwise.
        """
        return cls(lambda: priv_key)

    @contextmanager
    def _unlocked(self) -> Iterator[LocalAccount]:
        account = Account.from_key(self._key_provider())
        try:
            yield account
        finally:
            del account

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        with self._unlocked() as account:
            return account.sign_transaction(transaction_dict)
