"""Certificate Revocation List handling.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.serialization import Encoding

from .certinfo import Certificate, check_issuer
from .compat import get_utc_datetime, get_utc_datetime_opt, to_utc, utc_now
from .exceptions import CryptoError, ParseError, PolicyViolation
from .formats import as_bytes, check_asn1_time, pem_decode, pem_encode, render_serial
from .keys import Key, get_hash_algo, same_public_key, subject_key_id

__all__ = (
    "CertificateRevocationList",
    "create_certificate_revocation_list", "revoke_certificate",
)

logger = logging.getLogger(__name__)

CRL_LABEL = "X509 CRL"


class CertificateRevocationList:
    """Signed CRL, kept as DER and parsed on demand.
    """
    def __init__(self, der: bytes, crl: Optional[x509.CertificateRevocationList] = None) -> None:
        self.der = der
        self._crl = crl

    @classmethod
    def from_pem(cls, data: Union[str, bytes]) -> "CertificateRevocationList":
        block = pem_decode(data)
        if block.label != CRL_LABEL:
            raise ParseError("unexpected PEM block type %r, expected %r" % (block.label, CRL_LABEL))
        return cls(block.data)

    @classmethod
    def from_der(cls, der: bytes) -> "CertificateRevocationList":
        return cls(as_bytes(der))

    def export(self) -> bytes:
        return pem_encode(CRL_LABEL, self.der)

    def get_raw(self) -> x509.CertificateRevocationList:
        if self._crl is None:
            try:
                self._crl = x509.load_der_x509_crl(self.der)
            except ValueError as ex:
                raise ParseError("cannot parse CRL: %s" % ex) from None
        return self._crl

    def revoked_serials(self) -> List[int]:
        """Serial numbers in list order.
        """
        return [rcert.serial_number for rcert in self.get_raw()]

    def __len__(self) -> int:
        return len(self.get_raw())

    def get_next_update(self) -> Optional[datetime]:
        return get_utc_datetime_opt(self.get_raw(), "next_update")

    def check_signature_from(self, ca_cert: Certificate) -> None:
        crl = self.get_raw()
        if crl.issuer != ca_cert.get_raw().subject:
            raise CryptoError("CRL issuer does not match certificate subject")
        try:
            valid = crl.is_signature_valid(ca_cert.get_raw().public_key())
        except (InvalidSignature, TypeError, ValueError) as ex:
            raise CryptoError("cannot verify CRL signature: %s" % ex) from None
        if not valid:
            raise CryptoError("CRL signature does not match CA key")


def _copy_entry(old: x509.RevokedCertificate) -> x509.RevokedCertificate:
    builder = (x509.RevokedCertificateBuilder()
               .serial_number(old.serial_number)
               .revocation_date(get_utc_datetime(old, "revocation_date")))
    for ext in old.extensions:
        builder = builder.add_extension(ext.value, critical=ext.critical)
    return builder.build()


def _build_crl(ca_key: Key, ca_cert: Certificate,
               revoked: Sequence[x509.RevokedCertificate],
               this_update: datetime, next_update: datetime) -> CertificateRevocationList:
    check_issuer(ca_cert)
    priv = ca_key.require_private()
    if not same_public_key(priv.public_key(), ca_cert.public_key().public):
        raise CryptoError("CA private key does not match certificate")
    next_update = check_asn1_time(next_update, "next update")
    if next_update < this_update:
        raise PolicyViolation("CRL next update %s is before last update %s"
                              % (next_update.isoformat(), this_update.isoformat()))

    builder = (x509.CertificateRevocationListBuilder()
               .issuer_name(ca_cert.get_raw().subject)
               .last_update(this_update)
               .next_update(next_update))
    for rcert in revoked:
        builder = builder.add_revoked_certificate(rcert)

    aki = x509.AuthorityKeyIdentifier(subject_key_id(ca_cert.public_key().public), None, None)
    builder = builder.add_extension(aki, critical=False)

    try:
        crl = builder.sign(private_key=priv, algorithm=get_hash_algo(priv))
    except (ValueError, TypeError) as ex:
        raise CryptoError("Cannot sign CRL: %s" % ex) from None
    return CertificateRevocationList(crl.public_bytes(Encoding.DER), crl)


def create_certificate_revocation_list(ca_key: Key, ca_cert: Certificate, expiry: datetime,
                                       now: Optional[datetime] = None) -> CertificateRevocationList:
    """Empty CRL for CA.
    """
    now = to_utc(now) if now else utc_now()
    crl = _build_crl(ca_key, ca_cert, [], now, expiry)
    logger.debug("Created empty CRL for %s", ca_cert.get_raw().subject.rfc4514_string())
    return crl


def revoke_certificate(ca_key: Key, ca_cert: Certificate, crl: CertificateRevocationList,
                       serial_number: int, next_update: datetime,
                       now: Optional[datetime] = None) -> CertificateRevocationList:
    """Return new CRL with serial appended, existing entries kept as-is.
    """
    now = to_utc(now) if now else utc_now()
    crl.check_signature_from(ca_cert)
    if serial_number in crl.revoked_serials():
        raise PolicyViolation("Serial %s is already revoked" % render_serial(serial_number))

    revoked = [_copy_entry(old) for old in crl.get_raw()]
    rcert = (x509.RevokedCertificateBuilder()
             .serial_number(serial_number)
             .revocation_date(now)
             .build())
    revoked.append(rcert)

    new_crl = _build_crl(ca_key, ca_cert, revoked, now, next_update)
    logger.info("Revoked serial %s, CRL now has %d entries", render_serial(serial_number), len(revoked))
    return new_crl
