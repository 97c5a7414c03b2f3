"""String <> Python objects.
"""

import binascii
import ipaddress
import re
from datetime import datetime
from typing import (
    Dict, List, NamedTuple, Optional, Sequence, Union,
)
from urllib.parse import urlparse

from cryptography import x509

from .compat import OIDList, to_utc
from .exceptions import ParseError, PolicyViolation

__all__ = (
    "as_bytes", "as_password",
    "PemBlock", "pem_decode", "pem_encode",
    "parse_list", "parse_and_validate_ips", "parse_and_validate_uris",
    "validate_ips", "validate_uris", "parse_oid", "parse_oid_list",
    "check_asn1_time", "render_serial",
)


def as_bytes(s: Union[str, bytes]) -> bytes:
    """Return byte-string.
    """
    if not isinstance(s, bytes):
        return s.encode("utf8")
    return s


def as_password(password: Optional[Union[str, bytes]]) -> Optional[bytes]:
    if not password:
        return None
    if not isinstance(password, (bytes, bytearray, memoryview)):
        password = password.encode("utf8")
    return bytes(password)


def render_serial(snum: int) -> str:
    """Format certificate serial number as string.
    """
    s = "%x" % snum
    s = "0" * (len(s) & 1) + s
    s = re.sub(r"..", r":\g<0>", s).strip(":")
    return s


#
# PEM framing
#

_pem_rc = re.compile(
    rb"-----BEGIN ([A-Z0-9][A-Z0-9 ]*)-----\r?\n(.*?)-----END \1-----", re.S)


class PemBlock(NamedTuple):
    """Single decoded PEM stanza.
    """
    label: str
    headers: Dict[str, str]
    data: bytes


def pem_decode(data: Union[str, bytes]) -> PemBlock:
    """Decode first PEM block found in data.
    """
    m = _pem_rc.search(as_bytes(data))
    if not m:
        raise ParseError("cannot find the next PEM formatted block")
    label = m.group(1).decode("ascii")
    headers: Dict[str, str] = {}
    body = m.group(2).decode("ascii", "replace")
    lines = body.splitlines()
    if lines and ":" in lines[0]:
        while lines and lines[0].strip():
            k, _, v = lines.pop(0).partition(":")
            headers[k.strip()] = v.strip()
    try:
        der = binascii.a2b_base64("".join(lines).encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as ex:
        raise ParseError("invalid base64 in PEM block %r: %s" % (label, ex)) from None
    return PemBlock(label, headers, der)


def pem_encode(label: str, der: bytes, headers: Optional[Dict[str, str]] = None) -> bytes:
    """Encode DER as PEM, 64 columns per line.
    """
    res = ["-----BEGIN %s-----\n" % label]
    if headers:
        for k, v in headers.items():
            res.append("%s: %s\n" % (k, v))
        res.append("\n")
    b64 = binascii.b2a_base64(der, newline=False).decode("ascii")
    for pos in range(0, len(b64), 64):
        res.append(b64[pos:pos + 64] + "\n")
    res.append("-----END %s-----\n" % label)
    return "".join(res).encode("ascii")


#
# Input lists
#


def parse_list(slist: Optional[str]) -> List[str]:
    """Parse comma-separated list to strings.
    """
    res = []
    for v in (slist or "").split(","):
        v = v.strip()
        if v:
            res.append(v)
    return res


def validate_ips(values: Sequence[str]) -> List[ipaddress._BaseAddress]:
    """Convert strings to ip addresses, fail on first bad one.
    """
    res = []
    for val in values:
        try:
            res.append(ipaddress.ip_address(val.strip()))
        except ValueError:
            raise ParseError("Invalid IP address: %s" % val) from None
    return res


def validate_uris(values: Sequence[str]) -> List[str]:
    """Require scheme on all URIs, fail on first bad one.
    """
    res = []
    for val in values:
        val = val.strip()
        try:
            scheme = urlparse(val).scheme
        except ValueError:
            scheme = ""
        if not scheme:
            raise ParseError("Invalid URI: %s" % val)
        res.append(val)
    return res


def parse_and_validate_ips(sval: Optional[str]) -> List[ipaddress._BaseAddress]:
    """Parse comma-separated IP list.
    """
    return validate_ips(parse_list(sval))


def parse_and_validate_uris(sval: Optional[str]) -> List[str]:
    """Parse comma-separated URI list.
    """
    return validate_uris(parse_list(sval))


def parse_oid(sval: str) -> x509.ObjectIdentifier:
    """Parse dotted-decimal OID.
    """
    sval = sval.strip()
    if not re.match(r"^[0-9]+(\.[0-9]+)+$", sval):
        raise ParseError("Invalid OID: %r" % sval)
    try:
        return x509.ObjectIdentifier(sval)
    except ValueError as ex:
        raise ParseError("Invalid OID: %r: %s" % (sval, ex)) from None


def parse_oid_list(sval: Union[str, Sequence[str]]) -> OIDList:
    """Parse comma-separated OID list.
    """
    if isinstance(sval, str):
        sval = parse_list(sval)
    return [parse_oid(v) for v in sval]


def check_asn1_time(dt: datetime, desc: str = "expiry") -> datetime:
    """Convert to UTC, refuse timestamps that X.509 Time cannot carry.
    """
    try:
        dt = to_utc(dt)
    except OverflowError:
        raise PolicyViolation("Cannot create certificate: %s %s is not in range 0..9999" % (desc, dt)) from None
    if not 0 <= dt.year <= 9999:
        raise PolicyViolation("Cannot create certificate: %s year %d is not in range 0..9999" % (desc, dt.year))
    return dt
