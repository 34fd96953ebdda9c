"""RSA key generation, PEM loading, and JWK conversion."""

import base64
from pathlib import Path

import uuid_utils
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from cosmos.core.errors import ConfigError
from cosmos.crypto.types import JWKEntry, KeyRecord, SigningKeyData

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537


def new_key_id() -> str:
    """Return a time-ordered key id; later ids sort after earlier ones."""
    return str(uuid_utils.uuid7())


def generate_rsa_key() -> RSAPrivateKey:
    """Generate a new RSA-2048 private key for token signing."""
    return rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT,
        key_size=RSA_KEY_SIZE,
    )


def generate_rsa_keypair(kid: str | None = None) -> SigningKeyData:
    """Generate a new RSA keypair serialized as PEM."""
    private_key = generate_rsa_key()
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return SigningKeyData(
        kid=kid or new_key_id(),
        private_key_pem=private_pem,
        public_key_pem=public_pem,
    )


def load_private_key(path: str | Path) -> RSAPrivateKey:
    """Read an unencrypted PEM RSA private key from disk."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"could not read key file {path}: {exc}") from exc

    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"{path} is not a valid PEM private key") from exc

    if not isinstance(key, RSAPrivateKey):
        raise ConfigError(f"{path} does not contain an RSA private key")
    return key


def load_key_record(kid: str, path: str | Path) -> KeyRecord:
    """Load a key file into a record holding both halves of the key."""
    private_key = load_private_key(path)
    return KeyRecord(kid=kid, public_key=private_key.public_key(), private_key=private_key)


def _int_to_base64url(value: int) -> str:
    """Encode an integer as base64url without padding."""
    byte_length = (value.bit_length() + 7) // 8
    raw = value.to_bytes(byte_length, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def public_key_to_jwk(public_key: RSAPublicKey, kid: str) -> JWKEntry:
    """Convert an RSA public key to JWK format."""
    numbers = public_key.public_numbers()
    return JWKEntry(
        kid=kid,
        n=_int_to_base64url(numbers.n),
        e=_int_to_base64url(numbers.e),
    )
