"""Certificate support and certificate templates.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple, Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import ExtendedKeyUsageOID, ExtensionOID

from .compat import OIDList, PrivateKeyTypes, get_utc_datetime, to_utc, utc_now
from .csrinfo import CertificateSigningRequest
from .exceptions import CryptoError, ParseError, PolicyViolation
from .formats import as_bytes, check_asn1_time, pem_decode, pem_encode
from .keys import (
    Key, get_hash_algo, new_serial_number, same_public_key, subject_key_id,
)
from .objects import (
    extract_san, find_extension, make_ext_key_usage, make_key_usage,
    make_san, make_subject,
)

__all__ = (
    "Certificate", "CertOptions", "ParentAuthority",
    "create_authority", "create_intermediate", "create_host",
    "check_issuer", "NOT_BEFORE_SKEW",
)

logger = logging.getLogger(__name__)

CERTIFICATE_LABEL = "CERTIFICATE"

# clock difference tolerance between machines
NOT_BEFORE_SKEW = timedelta(minutes=10)

DEFAULT_HOST_EKU: OIDList = [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]


class Certificate:
    """X.509 certificate, kept as DER and parsed on demand.
    """
    def __init__(self, der: bytes, crt: Optional[x509.Certificate] = None) -> None:
        self.der = der
        self._crt = crt

    @classmethod
    def from_pem(cls, data: Union[str, bytes]) -> "Certificate":
        block = pem_decode(data)
        if block.label != CERTIFICATE_LABEL:
            raise ParseError("unexpected PEM block type %r, expected %r" % (block.label, CERTIFICATE_LABEL))
        return cls(block.data)

    @classmethod
    def from_der(cls, der: bytes) -> "Certificate":
        return cls(as_bytes(der))

    @classmethod
    def from_x509(cls, crt: x509.Certificate) -> "Certificate":
        return cls(crt.public_bytes(Encoding.DER), crt)

    def export(self) -> bytes:
        return pem_encode(CERTIFICATE_LABEL, self.der)

    def get_raw(self) -> x509.Certificate:
        """Parsed certificate, ParseError if DER is invalid.
        """
        if self._crt is None:
            try:
                self._crt = x509.load_der_x509_certificate(self.der)
            except ValueError as ex:
                raise ParseError("cannot parse certificate: %s" % ex) from None
        return self._crt

    def raw_subject(self) -> bytes:
        return self.get_raw().subject.public_bytes()

    def get_expiration(self) -> datetime:
        return get_utc_datetime(self.get_raw(), "not_valid_after")

    def get_not_before(self) -> datetime:
        return get_utc_datetime(self.get_raw(), "not_valid_before")

    def get_serial_number(self) -> int:
        return self.get_raw().serial_number

    def basic_constraints(self) -> Optional[x509.BasicConstraints]:
        ext = find_extension(self.get_raw(), ExtensionOID.BASIC_CONSTRAINTS)
        return ext.value if ext else None

    def is_ca(self) -> bool:
        bc = self.basic_constraints()
        return bool(bc and bc.ca)

    def is_self_signed(self) -> bool:
        crt = self.get_raw()
        if crt.issuer != crt.subject:
            return False
        try:
            self.check_signature_from(self)
        except CryptoError:
            return False
        return True

    def public_key(self) -> Key:
        try:
            return Key(self.get_raw().public_key())
        except UnsupportedAlgorithm as ex:
            raise CryptoError("unsupported public key: %s" % ex) from None

    def check_signature_from(self, parent: "Certificate") -> None:
        """Verify that parent key signed this certificate.
        """
        try:
            self.get_raw().verify_directly_issued_by(parent.get_raw())
        except InvalidSignature:
            raise CryptoError("certificate signature does not match issuer key") from None
        except (ValueError, TypeError) as ex:
            raise CryptoError("cannot verify certificate signature: %s" % ex) from None

    def verify(self, parent: "Certificate", name: Optional[str] = None,
               at: Optional[datetime] = None) -> None:
        """Check signature, validity period and optionally DNS name.
        """
        self.check_signature_from(parent)
        now = to_utc(at) if at else utc_now()
        if now < self.get_not_before():
            raise PolicyViolation("certificate is not yet valid")
        if now > self.get_expiration():
            raise PolicyViolation("certificate has expired")
        if name:
            _, domains, _ = extract_san(self.get_raw())
            if name.lower() not in [d.lower() for d in domains]:
                raise PolicyViolation("certificate is not valid for %s" % name)

    def __repr__(self) -> str:
        try:
            return "<Certificate %s>" % self.get_raw().subject.rfc4514_string()
        except ParseError:
            return "<Certificate unparsed>"


@dataclass
class CertOptions:
    """Tunables for authority and host templates.
    """
    path_length: Optional[int] = None
    exclude_path_length: bool = False
    permitted_domains: List[str] = field(default_factory=list)
    ext_key_usage: Optional[OIDList] = None
    extra_extensions: List[x509.Extension] = field(default_factory=list)
    allow_legacy_issuer: bool = True

    def validate(self) -> "CertOptions":
        if self.path_length is not None and self.path_length < 0:
            raise PolicyViolation("path length cannot be negative: %d" % self.path_length)
        if self.path_length is not None and self.exclude_path_length:
            raise PolicyViolation("path length and exclude path length are mutually exclusive")
        if self.ext_key_usage is not None and not self.ext_key_usage:
            raise PolicyViolation("empty extended key usage list")
        return self

    def get_path_length(self) -> Optional[int]:
        """Path length for BasicConstraints, None means unconstrained.
        """
        if self.exclude_path_length:
            return None
        return self.path_length or 0


@dataclass
class ParentAuthority:
    """Existing CA that signs a new authority.
    """
    certificate: Certificate
    key: Key


#
# Template helpers
#

def check_issuer(issuer_cert: Certificate, allow_legacy: bool = True) -> None:
    """Issuer must be CA, or v1 self-signed cert when legacy issuers are allowed.
    """
    bc = issuer_cert.basic_constraints()
    if bc is not None:
        if not bc.ca:
            raise PolicyViolation("Selected CA certificate is not allowed to sign certificates.")
        return
    if allow_legacy and issuer_cert.is_self_signed():
        logger.info("Accepting legacy issuer without basic constraints: %r", issuer_cert)
        return
    raise PolicyViolation("Selected CA certificate is not allowed to sign certificates.")


def _issuer_private_key(issuer_cert: Certificate, issuer_key: Key) -> PrivateKeyTypes:
    priv = issuer_key.require_private()
    if not same_public_key(priv.public_key(), issuer_cert.public_key().public):
        raise CryptoError("Issuer private key does not match certificate")
    return priv


def _validity(now: datetime, not_after: datetime,
              issuer_cert: Optional[Certificate] = None) -> Tuple[datetime, datetime]:
    not_after = check_asn1_time(not_after)
    if issuer_cert is not None:
        not_after = min(not_after, issuer_cert.get_expiration())
    not_before = now - NOT_BEFORE_SKEW
    if not_after < not_before:
        raise PolicyViolation("Cannot create certificate: expiry %s is before validity start %s"
                              % (not_after.isoformat(), not_before.isoformat()))
    return not_before, not_after


def _add_extensions(builder: x509.CertificateBuilder,
                    extensions: Sequence[x509.Extension]) -> x509.CertificateBuilder:
    for ext in extensions:
        try:
            builder = builder.add_extension(ext.value, critical=ext.critical)
        except ValueError as ex:
            raise PolicyViolation("Cannot add extension %s: %s" % (ext.oid.dotted_string, ex)) from None
    return builder


def _ca_extensions(builder: x509.CertificateBuilder, options: CertOptions) -> x509.CertificateBuilder:
    builder = builder.add_extension(
        x509.BasicConstraints(ca=True, path_length=options.get_path_length()), critical=True)
    builder = builder.add_extension(make_key_usage(key_cert_sign=True, crl_sign=True), critical=True)
    if options.permitted_domains:
        permitted = [x509.DNSName(d) for d in options.permitted_domains]
        builder = builder.add_extension(x509.NameConstraints(permitted, None), critical=True)
    return builder


def _sign(builder: x509.CertificateBuilder, priv: PrivateKeyTypes) -> Certificate:
    try:
        crt = builder.sign(private_key=priv, algorithm=get_hash_algo(priv))
    except (ValueError, TypeError) as ex:
        raise CryptoError("Cannot sign certificate: %s" % ex) from None
    return Certificate.from_x509(crt)


def _csr_builder(issuer_cert: Certificate, csr: CertificateSigningRequest,
                 not_before: datetime, not_after: datetime) -> x509.CertificateBuilder:
    csr.check_signature()
    req = csr.get_raw()
    pub = csr.public_key().public
    builder = (x509.CertificateBuilder()
               .subject_name(req.subject)
               .issuer_name(issuer_cert.get_raw().subject)
               .not_valid_before(not_before)
               .not_valid_after(not_after)
               .serial_number(new_serial_number())
               .public_key(pub))
    san = make_san(*extract_san(req))
    if san is not None:
        builder = builder.add_extension(san, critical=False)
    builder = builder.add_extension(x509.SubjectKeyIdentifier(subject_key_id(pub)), critical=False)
    issuer_pub = issuer_cert.public_key().public
    builder = builder.add_extension(
        x509.AuthorityKeyIdentifier(subject_key_id(issuer_pub), None, None), critical=False)
    return builder


#
# Certificate kinds
#

def create_authority(key: Key,
                     org_unit: Optional[str],
                     org: Optional[str],
                     country: Optional[str],
                     province: Optional[str],
                     locality: Optional[str],
                     common_name: Optional[str],
                     not_after: datetime,
                     options: Optional[CertOptions] = None,
                     parent: Optional[ParentAuthority] = None,
                     now: Optional[datetime] = None,
                     ) -> Certificate:
    """Create root CA, or CA signed by parent authority.
    """
    options = (options or CertOptions()).validate()
    now = to_utc(now) if now else utc_now()
    subject = make_subject(org_unit, org, country, province, locality, common_name)
    ski = subject_key_id(key.public)

    if parent is None:
        priv = key.require_private()
        issuer_name = subject
        serial = 1
        not_before, not_after = _validity(now, not_after)
    else:
        check_issuer(parent.certificate, options.allow_legacy_issuer)
        priv = _issuer_private_key(parent.certificate, parent.key)
        issuer_name = parent.certificate.get_raw().subject
        serial = new_serial_number()
        not_before, not_after = _validity(now, not_after, parent.certificate)

    builder = (x509.CertificateBuilder()
               .subject_name(subject)
               .issuer_name(issuer_name)
               .not_valid_before(not_before)
               .not_valid_after(not_after)
               .serial_number(serial)
               .public_key(key.public))
    builder = _ca_extensions(builder, options)
    builder = builder.add_extension(x509.SubjectKeyIdentifier(ski), critical=False)
    if parent is not None:
        aki = subject_key_id(parent.certificate.public_key().public)
        builder = builder.add_extension(x509.AuthorityKeyIdentifier(aki, None, None), critical=False)
    builder = _add_extensions(builder, options.extra_extensions)

    crt = _sign(builder, priv)
    logger.info("Created authority %s, serial %d, expires %s",
                subject.rfc4514_string(), serial, not_after.isoformat())
    return crt


def create_intermediate(issuer_cert: Certificate,
                        issuer_key: Key,
                        csr: CertificateSigningRequest,
                        proposed_expiry: datetime,
                        options: Optional[CertOptions] = None,
                        now: Optional[datetime] = None,
                        ) -> Certificate:
    """Sign CSR as intermediate CA.
    """
    options = (options or CertOptions()).validate()
    now = to_utc(now) if now else utc_now()
    check_issuer(issuer_cert, options.allow_legacy_issuer)
    priv = _issuer_private_key(issuer_cert, issuer_key)
    not_before, not_after = _validity(now, proposed_expiry, issuer_cert)

    builder = _csr_builder(issuer_cert, csr, not_before, not_after)
    builder = _ca_extensions(builder, options)
    builder = _add_extensions(builder, options.extra_extensions)

    crt = _sign(builder, priv)
    logger.info("Created intermediate %s, expires %s", crt.get_raw().subject.rfc4514_string(), not_after.isoformat())
    return crt


def create_host(issuer_cert: Certificate,
                issuer_key: Key,
                csr: CertificateSigningRequest,
                expiry: datetime,
                options: Optional[CertOptions] = None,
                now: Optional[datetime] = None,
                ) -> Certificate:
    """Sign CSR as leaf certificate.
    """
    options = (options or CertOptions()).validate()
    now = to_utc(now) if now else utc_now()
    check_issuer(issuer_cert, options.allow_legacy_issuer)
    priv = _issuer_private_key(issuer_cert, issuer_key)
    not_before, not_after = _validity(now, expiry, issuer_cert)

    builder = _csr_builder(issuer_cert, csr, not_before, not_after)
    builder = builder.add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
    builder = builder.add_extension(make_key_usage(digital_signature=True, key_encipherment=True), critical=True)

    extra_oids = [ext.oid for ext in options.extra_extensions]
    if ExtensionOID.EXTENDED_KEY_USAGE not in extra_oids:
        if options.ext_key_usage:
            eku = make_ext_key_usage(options.ext_key_usage)
        else:
            eku = find_extension(csr.get_raw(), ExtensionOID.EXTENDED_KEY_USAGE)
            if eku is None:
                eku = x509.Extension(ExtensionOID.EXTENDED_KEY_USAGE, False, x509.ExtendedKeyUsage(DEFAULT_HOST_EKU))
        builder = builder.add_extension(eku.value, critical=eku.critical)
    builder = _add_extensions(builder, options.extra_extensions)

    crt = _sign(builder, priv)
    logger.info("Created host certificate %s, expires %s", crt.get_raw().subject.rfc4514_string(), not_after.isoformat())
    return crt
