"""Key handling
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Type, TypeAlias, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.decrepit.ciphers.algorithms import TripleDES
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, modes
from cryptography.hazmat.primitives.hashes import SHA1, SHA256, SHA384, SHA512
from cryptography.hazmat.primitives.padding import PKCS7
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption, Encoding, NoEncryption, PrivateFormat,
    PublicFormat, load_der_private_key, load_pem_private_key,
)

from .compat import (
    AllowedHashTypes, MaybePassword, PrivateKeyTypes, PublicKeyTypes,
    valid_private_key, valid_public_key,
)
from .exceptions import CryptoError, ParseError, UnsupportedParameter
from .formats import as_password, pem_decode, pem_encode

__all__ = (
    "RSAAlgorithm", "ECDSAAlgorithm", "Ed25519Algorithm", "KeyAlgorithm",
    "EC_CURVES", "parse_key_algorithm", "get_ec_curves",
    "Key", "create_key", "create_rsa_key", "create_ecdsa_key", "create_ed25519_key",
    "subject_key_id", "same_public_key", "get_key_name", "get_hash_algo",
    "new_serial_number",
)

logger = logging.getLogger(__name__)

RSA_PRIVATE_KEY = "RSA PRIVATE KEY"
PKCS8_PRIVATE_KEY = "PRIVATE KEY"
ENCRYPTED_PKCS8_PRIVATE_KEY = "ENCRYPTED PRIVATE KEY"

EC_CURVES: Dict[str, Type[ec.EllipticCurve]] = {
    "P224": ec.SECP224R1,
    "P256": ec.SECP256R1,
    "P384": ec.SECP384R1,
    "P521": ec.SECP521R1,
}

# name used by cryptography -> short name
_CURVE_ALIASES = {cls.name: short for short, cls in EC_CURVES.items()}


#
# Key parameters
#

@dataclass(frozen=True)
class RSAAlgorithm:
    bits: int = 2048


@dataclass(frozen=True)
class ECDSAAlgorithm:
    curve: str = "P256"


@dataclass(frozen=True)
class Ed25519Algorithm:
    pass


KeyAlgorithm: TypeAlias = Union[RSAAlgorithm, ECDSAAlgorithm, Ed25519Algorithm]


def get_ec_curves() -> List[str]:
    """Return supported curve names.
    """
    return list(EC_CURVES)


def _curve_name(name: str) -> str:
    key = name.upper().replace("-", "")
    if key in EC_CURVES:
        return key
    if name.lower() in _CURVE_ALIASES:
        return _CURVE_ALIASES[name.lower()]
    raise UnsupportedParameter("Unknown curve: %s, expected one of %s" % (name, ", ".join(EC_CURVES)))


def parse_key_algorithm(desc: str) -> KeyAlgorithm:
    """Parse key description: rsa:<bits>, ecdsa:<curve> or ed25519.
    """
    short = {"rsa": "rsa:2048", "ec": "ecdsa:P256", "ecdsa": "ecdsa:P256"}
    desc = short.get(desc.lower(), desc)

    t, _, v = desc.partition(":")
    t = t.lower()
    if t == "rsa":
        try:
            return RSAAlgorithm(int(v))
        except ValueError:
            raise UnsupportedParameter("Bad value for RSA bits: %s" % v) from None
    elif t in ("ec", "ecdsa"):
        return ECDSAAlgorithm(_curve_name(v))
    elif t == "ed25519" and not v:
        return Ed25519Algorithm()
    raise UnsupportedParameter("Bad key spec: %s" % desc)


def create_rsa_key(bits: int = 2048) -> "Key":
    """New RSA key.
    """
    if bits < 1024:
        raise UnsupportedParameter("Bad value for RSA bits: %d" % bits)
    return Key.from_private(rsa.generate_private_key(public_exponent=65537, key_size=bits))


def create_ecdsa_key(curve: str = "P256") -> "Key":
    """New ECDSA key on one of the NIST curves.
    """
    curve_cls = EC_CURVES[_curve_name(curve)]
    return Key.from_private(ec.generate_private_key(curve_cls()))


def create_ed25519_key() -> "Key":
    """New Ed25519 key.
    """
    return Key.from_private(ed25519.Ed25519PrivateKey.generate())


def create_key(algo: KeyAlgorithm) -> "Key":
    """Create new key for validated algorithm.
    """
    if isinstance(algo, RSAAlgorithm):
        key = create_rsa_key(algo.bits)
    elif isinstance(algo, ECDSAAlgorithm):
        key = create_ecdsa_key(algo.curve)
    elif isinstance(algo, Ed25519Algorithm):
        key = create_ed25519_key()
    else:
        raise UnsupportedParameter("Unsupported key algorithm: %r" % (algo,))
    logger.debug("New key: %s", get_key_name(key))
    return key


def subject_key_id(pubkey: PublicKeyTypes) -> bytes:
    """SHA-1 over subjectPublicKey bits, RFC5280 4.2.1.2 method 1.
    """
    if isinstance(pubkey, rsa.RSAPublicKey):
        # SEQUENCE { modulus, publicExponent }
        data = pubkey.public_bytes(Encoding.DER, PublicFormat.PKCS1)
    elif isinstance(pubkey, ec.EllipticCurvePublicKey):
        data = pubkey.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
    elif isinstance(pubkey, ed25519.Ed25519PublicKey):
        data = pubkey.public_bytes(Encoding.Raw, PublicFormat.Raw)
    else:
        raise CryptoError("Unsupported key type: %s" % type(pubkey).__name__)
    h = hashes.Hash(SHA1())
    h.update(data)
    return h.finalize()


def get_hash_algo(privkey: PrivateKeyTypes) -> Optional[AllowedHashTypes]:
    """Return signature hash algo based on privkey.
    """
    if isinstance(privkey, ed25519.Ed25519PrivateKey):
        return None
    elif isinstance(privkey, ec.EllipticCurvePrivateKey):
        if privkey.key_size > 500:
            return SHA512()
        if privkey.key_size > 300:
            return SHA384()
    return SHA256()


def get_key_name(key: Union[PublicKeyTypes, PrivateKeyTypes, "Key"]) -> str:
    """Return key type.
    """
    if isinstance(key, Key):
        key = key.public
    if isinstance(key, (rsa.RSAPublicKey, rsa.RSAPrivateKey)):
        return "rsa:%d" % key.key_size
    if isinstance(key, (ec.EllipticCurvePublicKey, ec.EllipticCurvePrivateKey)):
        return "ecdsa:%s" % _CURVE_ALIASES.get(key.curve.name, key.curve.name)
    if isinstance(key, (ed25519.Ed25519PublicKey, ed25519.Ed25519PrivateKey)):
        return "ed25519"
    return "<unknown key type>"


def same_public_key(k1: PublicKeyTypes, k2: PublicKeyTypes) -> bool:
    """Compare public keys.
    """
    fmt = PublicFormat.SubjectPublicKeyInfo
    return k1.public_bytes(Encoding.DER, fmt) == k2.public_bytes(Encoding.DER, fmt)


def new_serial_number() -> int:
    """Return random positive 128-bit serial number.
    """
    try:
        while True:
            seed = int.from_bytes(os.urandom(16), "big", signed=False)
            if seed:
                return seed
    except OSError as ex:
        raise CryptoError("failed to generate serial number: %s" % ex) from ex


#
# Legacy PEM encryption, RFC1423 with OpenSSL key derivation
#

def _evp_bytes_to_key(password: bytes, salt: bytes, size: int) -> bytes:
    res = b""
    prev = b""
    while len(res) < size:
        h = hashes.Hash(hashes.MD5())
        h.update(prev + password + salt)
        prev = h.finalize()
        res += prev
    return res[:size]


def _encrypt_legacy_pem(label: str, der: bytes, password: bytes) -> bytes:
    iv = os.urandom(8)
    key = _evp_bytes_to_key(password, iv, 24)
    padder = PKCS7(64).padder()
    data = padder.update(der) + padder.finalize()
    enc = Cipher(TripleDES(key), modes.CBC(iv)).encryptor()
    headers = {
        "Proc-Type": "4,ENCRYPTED",
        "DEK-Info": "DES-EDE3-CBC,%s" % iv.hex().upper(),
    }
    return pem_encode(label, enc.update(data) + enc.finalize(), headers)


class Key:
    """Public key with optional private half.
    """
    public: PublicKeyTypes
    private: Optional[PrivateKeyTypes]

    def __init__(self, public: PublicKeyTypes, private: Optional[PrivateKeyTypes] = None) -> None:
        self.public = valid_public_key(public)
        self.private = valid_private_key(private) if private is not None else None

    @classmethod
    def from_private(cls, private: PrivateKeyTypes) -> "Key":
        priv = valid_private_key(private)
        return cls(priv.public_key(), priv)

    @classmethod
    def from_private_pem(cls, data: Union[str, bytes]) -> "Key":
        """Load unencrypted PKCS1 or PKCS8 private key.
        """
        block = pem_decode(data)
        if block.label not in (RSA_PRIVATE_KEY, PKCS8_PRIVATE_KEY):
            raise ParseError("unknown PEM block type %r" % block.label)
        if block.headers:
            raise ParseError("PEM block %r has unexpected headers" % block.label)
        try:
            priv = load_der_private_key(block.data, password=None)
        except TypeError as ex:
            raise CryptoError("private key is encrypted: %s" % ex) from None
        except ValueError as ex:
            raise ParseError("cannot parse %s: %s" % (block.label, ex)) from None
        except UnsupportedAlgorithm as ex:
            raise CryptoError("unsupported key type: %s" % ex) from None
        return cls.from_private(priv)

    @classmethod
    def from_encrypted_private_pem(cls, data: Union[str, bytes], password: MaybePassword) -> "Key":
        """Load private key protected by passphrase.
        """
        psw = as_password(password)
        block = pem_decode(data)
        if block.label == RSA_PRIVATE_KEY:
            if "ENCRYPTED" not in block.headers.get("Proc-Type", ""):
                raise CryptoError("PEM block is not encrypted")
        elif block.label != ENCRYPTED_PKCS8_PRIVATE_KEY:
            raise ParseError("unsupported PEM block type %r" % block.label)
        if not psw:
            raise CryptoError("passphrase required for encrypted private key")
        try:
            priv = load_pem_private_key(pem_encode(block.label, block.data, block.headers), password=psw)
        except (ValueError, TypeError) as ex:
            raise CryptoError("cannot decrypt private key: %s" % ex) from None
        except UnsupportedAlgorithm as ex:
            raise CryptoError("unsupported key encryption: %s" % ex) from None
        return cls.from_private(priv)

    @property
    def algorithm(self) -> KeyAlgorithm:
        pub = self.public
        if isinstance(pub, rsa.RSAPublicKey):
            return RSAAlgorithm(pub.key_size)
        elif isinstance(pub, ec.EllipticCurvePublicKey):
            return ECDSAAlgorithm(_curve_name(pub.curve.name))
        elif isinstance(pub, ed25519.Ed25519PublicKey):
            return Ed25519Algorithm()
        raise CryptoError("Unsupported key type: %s" % type(pub).__name__)

    def require_private(self) -> PrivateKeyTypes:
        if self.private is None:
            raise CryptoError("private key not available")
        return self.private

    def export_private(self) -> bytes:
        """PEM: PKCS1 for RSA, PKCS8 for others.
        """
        priv = self.require_private()
        if isinstance(priv, rsa.RSAPrivateKey):
            return priv.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption())
        elif isinstance(priv, (ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey)):
            return priv.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())
        raise CryptoError("Unsupported key type: %s" % type(priv).__name__)

    def export_encrypted_private(self, password: MaybePassword) -> bytes:
        """PEM: legacy 3DES PKCS1 for RSA, AES-256 PKCS8 for others.
        """
        psw = as_password(password)
        if not psw:
            raise CryptoError("empty passphrase")
        priv = self.require_private()
        if isinstance(priv, rsa.RSAPrivateKey):
            der = priv.private_bytes(Encoding.DER, PrivateFormat.TraditionalOpenSSL, NoEncryption())
            return _encrypt_legacy_pem(RSA_PRIVATE_KEY, der, psw)
        elif isinstance(priv, (ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey)):
            return priv.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, BestAvailableEncryption(psw))
        raise CryptoError("Unsupported key type: %s" % type(priv).__name__)

    def export_public(self) -> bytes:
        return self.public.public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)

    def subject_key_id(self) -> bytes:
        return subject_key_id(self.public)

    def __repr__(self) -> str:
        return "<Key %s%s>" % (get_key_name(self.public), "" if self.private else " public")
