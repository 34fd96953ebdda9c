"""Signing and verification key material for access and refresh tokens."""

from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

import structlog
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from cosmos.core.errors import ConfigError, UnknownKeyError
from cosmos.crypto.keys import generate_rsa_key, load_key_record, new_key_id
from cosmos.crypto.types import KeyRecord

logger = structlog.get_logger()


class KeyRing:
    """Read-only set of RSA keys indexed by sortable key id.

    Key ids are creation ordered (uuid7, KSUID, ULID) so the greatest id is
    the newest key and the only one used for signing. Every loaded key stays
    available for verification, which lets operators rotate by adding a key
    with a greater id and restarting; tokens signed by the retired key keep
    verifying until the key is removed from configuration.
    """

    def __init__(self, records: Mapping[str, KeyRecord], current_kid: str) -> None:
        self._records = MappingProxyType(dict(records))
        self._current_kid = current_kid
        self._public_keys = MappingProxyType(
            {kid: record.public_key for kid, record in self._records.items()}
        )

    @classmethod
    def from_records(cls, records: Iterable[KeyRecord]) -> "KeyRing":
        """Build a key ring, keeping the private half of the newest key only."""
        by_kid = {record.kid: record for record in records}
        if not by_kid:
            raise ConfigError("at least one token key is required")

        current_kid = max(by_kid)
        current = by_kid[current_kid]
        if current.private_key is None:
            raise ConfigError(f"current key {current_kid} has no private key")

        kept = {
            kid: KeyRecord(kid=kid, public_key=record.public_key)
            for kid, record in by_kid.items()
            if kid != current_kid
        }
        kept[current_kid] = current
        return cls(kept, current_kid)

    @classmethod
    def load(cls, key_paths: Mapping[str, str | Path]) -> "KeyRing":
        """Load PEM private keys from ``{kid: path}``; fails with ConfigError."""
        if not key_paths:
            raise ConfigError("at least one token key is required")

        records = [load_key_record(kid, path) for kid, path in key_paths.items()]
        keyring = cls.from_records(records)
        logger.info(
            "keyring.loaded",
            keys=len(keyring),
            current_kid=keyring.current_key_id,
        )
        return keyring

    @classmethod
    def generate(cls) -> "KeyRing":
        """Key ring with a single fresh in-memory key, for tests."""
        private_key = generate_rsa_key()
        record = KeyRecord(
            kid=new_key_id(),
            public_key=private_key.public_key(),
            private_key=private_key,
        )
        return cls.from_records([record])

    @property
    def current_key_id(self) -> str:
        return self._current_kid

    def signing_key(self) -> tuple[str, RSAPrivateKey]:
        """Return the id and private key used to sign new tokens."""
        private_key = self._records[self._current_kid].private_key
        assert private_key is not None
        return self._current_kid, private_key

    def verification_key(self, kid: str) -> RSAPublicKey:
        """Return the public key for ``kid`` or raise UnknownKeyError."""
        try:
            return self._public_keys[kid]
        except KeyError:
            raise UnknownKeyError(f"unknown signing key {kid!r}") from None

    def verification_keys(self) -> Mapping[str, RSAPublicKey]:
        """All public keys, including retired ones."""
        return self._public_keys

    def __contains__(self, kid: object) -> bool:
        return kid in self._public_keys

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._public_keys))

    def __len__(self) -> int:
        return len(self._public_keys)
