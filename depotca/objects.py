"""Python objects <> cryptography objects.
"""

import ipaddress
from typing import List, Optional, Sequence, Tuple, Union

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID, ExtensionOID, NameOID

from .compat import OIDList
from .exceptions import ParseError

__all__ = (
    "make_subject", "make_san", "make_key_usage", "make_ext_key_usage",
    "extract_san", "find_extension", "ANY_EXTENDED_KEY_USAGE",
)

ANY_EXTENDED_KEY_USAGE = ExtendedKeyUsageOID.ANY_EXTENDED_KEY_USAGE

AddressTypes = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def make_subject(org_unit: Optional[str] = None,
                 org: Optional[str] = None,
                 country: Optional[str] = None,
                 province: Optional[str] = None,
                 locality: Optional[str] = None,
                 common_name: Optional[str] = None,
                 ) -> x509.Name:
    """Create Name from subject fields, empty fields are skipped.
    """
    # same RDN order as openssl-style C/O/OU/L/ST/CN tools
    pairs = [
        (NameOID.COUNTRY_NAME, country),
        (NameOID.ORGANIZATION_NAME, org),
        (NameOID.ORGANIZATIONAL_UNIT_NAME, org_unit),
        (NameOID.LOCALITY_NAME, locality),
        (NameOID.STATE_OR_PROVINCE_NAME, province),
        (NameOID.COMMON_NAME, common_name),
    ]
    attlist = []
    for oid, val in pairs:
        if not val:
            continue
        try:
            attlist.append(x509.NameAttribute(oid, val))
        except ValueError as ex:
            raise ParseError("Invalid subject field %s: %s" % (oid._name, ex)) from None
    return x509.Name(attlist)


def make_san(ips: Sequence[AddressTypes],
             domains: Sequence[str],
             uris: Sequence[str],
             ) -> Optional[x509.SubjectAlternativeName]:
    """Collect SAN entries, None if empty.
    """
    gnames: List[x509.GeneralName] = []
    gnames.extend(x509.DNSName(d) for d in domains)
    gnames.extend(x509.IPAddress(ip) for ip in ips)
    gnames.extend(x509.UniformResourceIdentifier(u) for u in uris)
    if not gnames:
        return None
    return x509.SubjectAlternativeName(gnames)


def extract_san(obj: Union[x509.Certificate, x509.CertificateSigningRequest],
                ) -> Tuple[List[AddressTypes], List[str], List[str]]:
    """Return (ips, domains, uris) from SubjectAlternativeName.
    """
    ext = find_extension(obj, ExtensionOID.SUBJECT_ALTERNATIVE_NAME)
    if ext is None:
        return [], [], []
    san = ext.value
    ips = [ip for ip in san.get_values_for_type(x509.IPAddress)
           if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address))]
    domains = san.get_values_for_type(x509.DNSName)
    uris = san.get_values_for_type(x509.UniformResourceIdentifier)
    return ips, domains, uris


def find_extension(obj: Union[x509.Certificate, x509.CertificateSigningRequest],
                   oid: x509.ObjectIdentifier) -> Optional[x509.Extension]:
    """Lookup extension, None if missing.
    """
    try:
        return obj.extensions.get_extension_for_oid(oid)
    except x509.ExtensionNotFound:
        return None
    except ValueError as ex:
        raise ParseError("Invalid extensions: %s" % ex) from None


def make_key_usage(digital_signature: bool = False, content_commitment: bool = False,
                   key_encipherment: bool = False, data_encipherment: bool = False,
                   key_agreement: bool = False, key_cert_sign: bool = False,
                   crl_sign: bool = False, encipher_only: bool = False,
                   decipher_only: bool = False) -> x509.KeyUsage:
    """Default arguments for KeyUsage.
    """
    return x509.KeyUsage(digital_signature=digital_signature, content_commitment=content_commitment,
                         key_encipherment=key_encipherment, data_encipherment=data_encipherment,
                         key_agreement=key_agreement, key_cert_sign=key_cert_sign, crl_sign=crl_sign,
                         encipher_only=encipher_only, decipher_only=decipher_only)


def make_ext_key_usage(oids: OIDList) -> x509.Extension:
    """ExtendedKeyUsage, critical unless anyExtendedKeyUsage is listed.
    """
    if not oids:
        raise ParseError("ExtendedKeyUsage needs at least one OID")
    value = x509.ExtendedKeyUsage(list(oids))
    critical = ANY_EXTENDED_KEY_USAGE not in oids
    return x509.Extension(ExtensionOID.EXTENDED_KEY_USAGE, critical, value)
