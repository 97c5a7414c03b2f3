"""Depot-level operations: init, request, sign, revoke, export.
"""

import errno
import logging
import os
import re
from datetime import datetime
from typing import Optional, Sequence

from .certinfo import (
    Certificate, CertOptions, ParentAuthority,
    create_authority, create_host, create_intermediate,
)
from .compat import MaybePassword, OIDList
from .config import Settings
from .crlinfo import (
    CertificateRevocationList, create_certificate_revocation_list, revoke_certificate,
)
from .csrinfo import (
    CertificateSigningRequest, build_ext_key_usage_extension,
    create_certificate_signing_request,
)
from .depot import (
    FileDepot, Tag, crl_tag, crt_tag, csr_tag, get_certificate,
    get_certificate_revocation_list, get_signing_request, pfx_tag,
    private_key_tag, put_certificate, put_certificate_revocation_list,
    put_encrypted_private_key, put_personal_information_exchange,
    put_private_key, put_signing_request, read_key,
    replace_certificate_revocation_list,
)
from .exceptions import ArtifactExists, ParseError
from .keys import Key, KeyAlgorithm, create_key
from .pfx import export_personal_information_exchange

__all__ = (
    "format_name", "init_authority", "request_certificate",
    "sign_request", "revoke", "export_pfx",
)

logger = logging.getLogger(__name__)

_bad_name_rc = re.compile(r"[^a-zA-Z0-9._-]")


def format_name(name: str) -> str:
    """Make name usable as depot file name.
    """
    return _bad_name_rc.sub("_", name)


def _refuse_existing(depot: FileDepot, *tags: Tag) -> None:
    for tag in tags:
        fn = depot.path(tag.name)
        if os.path.lexists(fn):
            raise ArtifactExists(errno.EEXIST, "artifact already exists", fn)


def _store_key(depot: FileDepot, name: str, key: Key, passphrase: MaybePassword) -> None:
    if passphrase:
        put_encrypted_private_key(depot, name, key, passphrase)
        logger.info("Created %s (encrypted by passphrase)", depot.path(private_key_tag(name).name))
    else:
        put_private_key(depot, name, key)
        logger.info("Created %s", depot.path(private_key_tag(name).name))


def init_authority(depot: FileDepot,
                   name: Optional[str],
                   org_unit: Optional[str] = None,
                   org: Optional[str] = None,
                   country: Optional[str] = None,
                   province: Optional[str] = None,
                   locality: Optional[str] = None,
                   common_name: Optional[str] = None,
                   not_after: Optional[datetime] = None,
                   key: Optional[Key] = None,
                   algorithm: Optional[KeyAlgorithm] = None,
                   passphrase: MaybePassword = None,
                   options: Optional[CertOptions] = None,
                   parent_name: Optional[str] = None,
                   parent_passphrase: MaybePassword = None,
                   settings: Optional[Settings] = None,
                   ) -> Certificate:
    """Create CA key, certificate and empty CRL in depot.

    Key algorithm and issuer options default to settings.
    """
    settings = settings or Settings()
    name = format_name(name or common_name or "")
    if not name:
        raise ParseError("Must supply name or common name for authority")
    if not_after is None:
        raise ParseError("Must supply expiry for authority")
    _refuse_existing(depot, crt_tag(name), private_key_tag(name))

    parent = None
    if parent_name:
        parent_name = format_name(parent_name)
        parent = ParentAuthority(get_certificate(depot, parent_name),
                                 read_key(depot, parent_name, parent_passphrase))

    if key is None:
        key = create_key(algorithm or settings.ca_key)
    crt = create_authority(key, org_unit, org, country, province, locality, common_name,
                           not_after, options or settings.cert_options(), parent)

    put_certificate(depot, name, crt)
    logger.info("Created %s", depot.path(crt_tag(name).name))
    _store_key(depot, name, key, passphrase)

    # some clients refuse CA without CRL
    crl = create_certificate_revocation_list(key, crt, crt.get_expiration())
    put_certificate_revocation_list(depot, name, crl)
    logger.info("Created %s", depot.path(crl_tag(name).name))
    return crt


def request_certificate(depot: FileDepot,
                        name: Optional[str],
                        org_unit: Optional[str] = None,
                        org: Optional[str] = None,
                        country: Optional[str] = None,
                        province: Optional[str] = None,
                        locality: Optional[str] = None,
                        common_name: Optional[str] = None,
                        ips: Sequence[str] = (),
                        domains: Sequence[str] = (),
                        uris: Sequence[str] = (),
                        algorithm: Optional[KeyAlgorithm] = None,
                        passphrase: MaybePassword = None,
                        ext_key_usage: Optional[OIDList] = None,
                        key: Optional[Key] = None,
                        settings: Optional[Settings] = None,
                        ) -> CertificateSigningRequest:
    """Create key and CSR in depot.

    Name defaults to common name, then first domain, then first IP.
    """
    if not common_name:
        if domains:
            common_name = domains[0]
        elif ips:
            common_name = str(ips[0])
    name = format_name(name or common_name or "")
    if not name:
        raise ParseError("Must supply common name, domain or IP address")
    _refuse_existing(depot, csr_tag(name), private_key_tag(name))

    extra = []
    if ext_key_usage:
        extra.append(build_ext_key_usage_extension(ext_key_usage))

    if key is None:
        key = create_key(algorithm or (settings or Settings()).host_key)
    csr = create_certificate_signing_request(key, org_unit, ips, domains, uris, org, country,
                                             province, locality, common_name, extra)

    put_signing_request(depot, name, csr)
    logger.info("Created %s", depot.path(csr_tag(name).name))
    _store_key(depot, name, key, passphrase)
    return csr


def sign_request(depot: FileDepot,
                 name: str,
                 ca_name: str,
                 expiry: datetime,
                 intermediate: bool = False,
                 ca_passphrase: MaybePassword = None,
                 options: Optional[CertOptions] = None,
                 settings: Optional[Settings] = None,
                 ) -> Certificate:
    """Sign stored CSR with stored CA, store resulting certificate.
    """
    options = options or (settings or Settings()).cert_options()
    name = format_name(name)
    ca_name = format_name(ca_name)
    _refuse_existing(depot, crt_tag(name))

    csr = get_signing_request(depot, name)
    ca_crt = get_certificate(depot, ca_name)
    ca_key = read_key(depot, ca_name, ca_passphrase)

    if intermediate:
        crt = create_intermediate(ca_crt, ca_key, csr, expiry, options)
    else:
        crt = create_host(ca_crt, ca_key, csr, expiry, options)

    put_certificate(depot, name, crt)
    logger.info("Created %s from %s signed by %s", depot.path(crt_tag(name).name),
                depot.path(csr_tag(name).name), depot.path(private_key_tag(ca_name).name))
    return crt


def revoke(depot: FileDepot,
           ca_name: str,
           cn: str,
           next_update: Optional[datetime] = None,
           ca_passphrase: MaybePassword = None,
           settings: Optional[Settings] = None,
           ) -> CertificateRevocationList:
    """Add certificate serial to CA's CRL.

    Next update defaults to crl_days from settings.
    """
    if next_update is None:
        next_update = (settings or Settings()).crl_next_update()
    ca_name = format_name(ca_name)
    cn = format_name(cn)

    ca_crt = get_certificate(depot, ca_name)
    crt = get_certificate(depot, cn)
    crl = get_certificate_revocation_list(depot, ca_name)
    ca_key = read_key(depot, ca_name, ca_passphrase)

    new_crl = revoke_certificate(ca_key, ca_crt, crl, crt.get_serial_number(), next_update)
    replace_certificate_revocation_list(depot, ca_name, new_crl)
    logger.info("Revoked %s in %s", cn, depot.path(crl_tag(ca_name).name))
    return new_crl


def export_pfx(depot: FileDepot,
               name: str,
               chain_names: Optional[Sequence[str]] = None,
               passphrase: MaybePassword = None,
               key_passphrase: MaybePassword = None,
               settings: Optional[Settings] = None,
               ) -> bytes:
    """Store cert, key and chain as PKCS#12 in depot.

    Chain defaults to pfx_chain from settings.
    """
    if chain_names is None:
        chain_names = (settings or Settings()).pfx_chain
    name = format_name(name)
    _refuse_existing(depot, pfx_tag(name))

    crt = get_certificate(depot, name)
    key = read_key(depot, name, key_passphrase)
    chain = [get_certificate(depot, format_name(cname)) for cname in chain_names]

    data = export_personal_information_exchange(crt, key, chain, passphrase)
    put_personal_information_exchange(depot, name, data)
    logger.info("Created %s", depot.path(pfx_tag(name).name))
    return data
