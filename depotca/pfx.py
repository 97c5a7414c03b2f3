"""PKCS#12 export.
"""

import logging
from typing import Optional, Sequence

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption, KeySerializationEncryption,
    NoEncryption, PrivateFormat, pkcs12,
)
from cryptography.x509.oid import NameOID

from .certinfo import Certificate
from .compat import MaybePassword
from .exceptions import CryptoError
from .formats import as_password
from .keys import Key, same_public_key

__all__ = ("export_personal_information_exchange",)

logger = logging.getLogger(__name__)


def _friendly_name(cert: Certificate) -> Optional[bytes]:
    attrs = cert.get_raw().subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return None
    value = attrs[0].value
    return value.encode("utf8") if isinstance(value, str) else value


def _encryption(password: Optional[bytes], legacy: bool) -> KeySerializationEncryption:
    if not password:
        return NoEncryption()
    if legacy:
        # 3DES + SHA1 MAC, readable by old Java and Windows keystores
        return (PrivateFormat.PKCS12.encryption_builder()
                .kdf_rounds(2048)
                .key_cert_algorithm(pkcs12.PBES.PBESv1SHA1And3KeyTripleDESCBC)
                .hmac_hash(hashes.SHA1())
                .build(password))
    return BestAvailableEncryption(password)


def export_personal_information_exchange(cert: Certificate,
                                         key: Key,
                                         chain: Sequence[Certificate],
                                         passphrase: MaybePassword,
                                         legacy: bool = False,
                                         ) -> bytes:
    """Bundle certificate, private key and CA chain as DER PKCS#12.

    Empty passphrase produces unprotected archive.
    """
    priv = key.require_private()
    crt = cert.get_raw()
    if not same_public_key(priv.public_key(), crt.public_key()):
        raise CryptoError("private key does not match certificate")
    cas = [c.get_raw() for c in chain]

    psw = as_password(passphrase)
    try:
        data = pkcs12.serialize_key_and_certificates(
            _friendly_name(cert), priv, crt, cas or None, _encryption(psw, legacy))
    except (ValueError, TypeError) as ex:
        raise CryptoError("cannot create PKCS#12 archive: %s" % ex) from None
    logger.debug("Exported PKCS#12 with %d chain certificates", len(cas))
    return data
