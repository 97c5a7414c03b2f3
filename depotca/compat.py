"""Type aliases shared between modules, cryptography version differences.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple, Type, TypeAlias, Union, cast

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from .exceptions import CryptoError

__all__ = (
    "PrivateKeyTypes", "PublicKeyTypes",
    "PrivateKeyClasses", "PublicKeyClasses",
    "X509Types", "AllowedHashTypes",
    "MaybePassword", "OIDList",
    "get_utc_datetime", "get_utc_datetime_opt", "utc_now", "to_utc",
    "valid_private_key", "valid_public_key",
)


PrivateKeyTypes: TypeAlias = Union[
    rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey,
]
PrivateKeyClasses: Tuple[Type[PrivateKeyTypes], ...] = (
    rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey,
)
PublicKeyTypes: TypeAlias = Union[
    rsa.RSAPublicKey, ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey,
]
PublicKeyClasses: Tuple[Type[PublicKeyTypes], ...] = (
    rsa.RSAPublicKey, ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey,
)

X509Types: TypeAlias = Union[
    x509.Certificate, x509.CertificateSigningRequest, x509.CertificateRevocationList,
]

AllowedHashTypes: TypeAlias = Union[hashes.SHA256, hashes.SHA384, hashes.SHA512]

MaybePassword: TypeAlias = Optional[Union[str, bytes]]
OIDList: TypeAlias = List[x509.ObjectIdentifier]


def get_utc_datetime_opt(obj: Any, field: str) -> Optional[datetime]:
    field_utc = field + "_utc"
    if hasattr(obj, field_utc):
        return cast(datetime, getattr(obj, field_utc))
    dt = getattr(obj, field)
    if dt is None:
        return None
    return cast(datetime, dt.replace(tzinfo=timezone.utc))


def get_utc_datetime(obj: Any, field: str) -> datetime:
    dt = get_utc_datetime_opt(obj, field)
    assert dt, "get_utc_datetime expects not-None"
    return dt


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def valid_private_key(key: Any) -> PrivateKeyTypes:
    if isinstance(key, PrivateKeyClasses):
        return cast(PrivateKeyTypes, key)
    raise CryptoError("Unsupported private key type: %s" % type(key).__name__)


def valid_public_key(key: Any) -> PublicKeyTypes:
    if isinstance(key, PublicKeyClasses):
        return cast(PublicKeyTypes, key)
    raise CryptoError("Unsupported public key type: %s" % type(key).__name__)
