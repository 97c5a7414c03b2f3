"""CertificateSigningRequest support.
"""

import ipaddress
import logging
from typing import List, Optional, Sequence, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import Encoding

from .compat import OIDList
from .exceptions import CryptoError, ParseError
from .formats import (
    as_bytes, parse_and_validate_ips, parse_and_validate_uris,
    pem_decode, pem_encode, validate_ips, validate_uris,
)
from .keys import Key, get_hash_algo
from .objects import make_ext_key_usage, make_san, make_subject

__all__ = (
    "CertificateSigningRequest", "create_certificate_signing_request",
    "build_ext_key_usage_extension",
    "parse_and_validate_ips", "parse_and_validate_uris",
)

logger = logging.getLogger(__name__)

CSR_LABEL = "CERTIFICATE REQUEST"
LEGACY_CSR_LABEL = "NEW CERTIFICATE REQUEST"

IPInput = Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address]


class CertificateSigningRequest:
    """PKCS#10 request, kept as DER and parsed on demand.
    """
    def __init__(self, der: bytes, req: Optional[x509.CertificateSigningRequest] = None) -> None:
        self.der = der
        self._req = req

    @classmethod
    def from_pem(cls, data: Union[str, bytes]) -> "CertificateSigningRequest":
        block = pem_decode(data)
        if block.label not in (CSR_LABEL, LEGACY_CSR_LABEL):
            raise ParseError("unexpected PEM block type %r, expected %r" % (block.label, CSR_LABEL))
        return cls(block.data)

    @classmethod
    def from_der(cls, der: bytes) -> "CertificateSigningRequest":
        return cls(as_bytes(der))

    def export(self) -> bytes:
        return pem_encode(CSR_LABEL, self.der)

    def get_raw(self) -> x509.CertificateSigningRequest:
        if self._req is None:
            try:
                self._req = x509.load_der_x509_csr(self.der)
            except ValueError as ex:
                raise ParseError("cannot parse certificate request: %s" % ex) from None
        return self._req

    def raw_subject(self) -> bytes:
        return self.get_raw().subject.public_bytes()

    def public_key(self) -> Key:
        try:
            return Key(self.get_raw().public_key())
        except (ValueError, UnsupportedAlgorithm) as ex:
            raise CryptoError("unsupported public key in request: %s" % ex) from None

    def check_signature(self) -> None:
        """Verify self-signature, no trust decision.
        """
        if not self.get_raw().is_signature_valid:
            raise CryptoError("certificate request signature is invalid")

    def __repr__(self) -> str:
        try:
            return "<CertificateSigningRequest %s>" % self.get_raw().subject.rfc4514_string()
        except ParseError:
            return "<CertificateSigningRequest unparsed>"


def build_ext_key_usage_extension(oids: OIDList) -> x509.Extension:
    """ExtendedKeyUsage extension, critical unless anyExtendedKeyUsage is included.
    """
    return make_ext_key_usage(oids)


def create_certificate_signing_request(key: Key,
                                       org_unit: Optional[str],
                                       ips: Sequence[IPInput],
                                       domains: Sequence[str],
                                       uris: Sequence[str],
                                       org: Optional[str],
                                       country: Optional[str],
                                       province: Optional[str],
                                       locality: Optional[str],
                                       common_name: Optional[str],
                                       extra_extensions: Optional[Sequence[x509.Extension]] = None,
                                       ) -> CertificateSigningRequest:
    """Create CSR signed by key.
    """
    priv = key.require_private()
    ip_list: List[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]] = []
    for ip in ips:
        if isinstance(ip, str):
            ip_list.extend(validate_ips([ip]))
        else:
            ip_list.append(ip)
    uri_list = validate_uris(uris)

    builder = x509.CertificateSigningRequestBuilder()
    builder = builder.subject_name(make_subject(org_unit, org, country, province, locality, common_name))
    san = make_san(ip_list, list(domains), uri_list)
    if san is not None:
        builder = builder.add_extension(san, critical=False)
    for ext in extra_extensions or []:
        try:
            builder = builder.add_extension(ext.value, critical=ext.critical)
        except ValueError as ex:
            raise ParseError("Cannot add extension %s: %s" % (ext.oid.dotted_string, ex)) from None

    try:
        req = builder.sign(private_key=priv, algorithm=get_hash_algo(priv))
    except (ValueError, TypeError) as ex:
        raise CryptoError("Cannot sign certificate request: %s" % ex) from None
    logger.debug("Created certificate request for %s", req.subject.rfc4514_string())
    return CertificateSigningRequest(req.public_bytes(Encoding.DER), req)
