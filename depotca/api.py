"""Public API
"""

# pylint: disable=unused-import

from . import FULL_VERSION
from .certinfo import (
    Certificate, CertOptions, ParentAuthority, check_issuer,
    create_authority, create_host, create_intermediate,
)
from .compat import (
    PrivateKeyClasses, PrivateKeyTypes, PublicKeyClasses, PublicKeyTypes,
    get_utc_datetime, get_utc_datetime_opt, valid_private_key, valid_public_key,
)
from .config import Settings, load_settings, load_settings_file
from .crlinfo import (
    CertificateRevocationList, create_certificate_revocation_list, revoke_certificate,
)
from .csrinfo import (
    CertificateSigningRequest, build_ext_key_usage_extension,
    create_certificate_signing_request,
)
from .depot import (
    BRANCH_PERM, LEAF_PERM, DepotFile, FileDepot, Tag,
    check_certificate, check_personal_information_exchange,
    check_private_key, check_signing_request, crl_tag, crt_tag, csr_tag,
    delete_certificate, delete_signing_request, get_certificate,
    get_certificate_revocation_list, get_encrypted_private_key,
    get_private_key, get_signing_request, name_from_crl_tag,
    name_from_crt_tag, name_from_csr_tag, name_from_private_key_tag,
    pfx_tag, private_key_tag, put_certificate,
    put_certificate_revocation_list, put_encrypted_private_key,
    put_personal_information_exchange, put_private_key, put_signing_request,
    read_key, replace_certificate_revocation_list,
)
from .exceptions import (
    ArtifactExists, ArtifactMissing, CryptoError, DepotCAError, ParseError,
    PermissionTooLax, PolicyViolation, StorageError, UnsupportedParameter,
)
from .formats import (
    parse_and_validate_ips, parse_and_validate_uris, parse_list,
    parse_oid_list, render_serial,
)
from .keys import (
    ECDSAAlgorithm, Ed25519Algorithm, Key, KeyAlgorithm, RSAAlgorithm,
    create_ecdsa_key, create_ed25519_key, create_key, create_rsa_key,
    get_ec_curves, get_key_name, parse_key_algorithm, same_public_key,
    subject_key_id,
)
from .pfx import export_personal_information_exchange
from .workflow import (
    export_pfx, format_name, init_authority, request_certificate,
    revoke, sign_request,
)

__all__ = (
    "FULL_VERSION",
    "DepotCAError", "ParseError", "CryptoError", "PolicyViolation",
    "UnsupportedParameter", "StorageError", "ArtifactExists",
    "ArtifactMissing", "PermissionTooLax",
    "PrivateKeyClasses", "PrivateKeyTypes", "PublicKeyClasses", "PublicKeyTypes",
    "get_utc_datetime", "get_utc_datetime_opt", "valid_private_key", "valid_public_key",
    "Key", "KeyAlgorithm", "RSAAlgorithm", "ECDSAAlgorithm", "Ed25519Algorithm",
    "create_key", "create_rsa_key", "create_ecdsa_key", "create_ed25519_key",
    "parse_key_algorithm", "get_ec_curves", "get_key_name",
    "same_public_key", "subject_key_id",
    "Certificate", "CertOptions", "ParentAuthority", "check_issuer",
    "create_authority", "create_intermediate", "create_host",
    "CertificateSigningRequest", "create_certificate_signing_request",
    "build_ext_key_usage_extension",
    "CertificateRevocationList", "create_certificate_revocation_list",
    "revoke_certificate",
    "export_personal_information_exchange",
    "Tag", "DepotFile", "FileDepot", "BRANCH_PERM", "LEAF_PERM",
    "crt_tag", "csr_tag", "private_key_tag", "crl_tag", "pfx_tag",
    "name_from_crt_tag", "name_from_csr_tag",
    "name_from_private_key_tag", "name_from_crl_tag",
    "put_certificate", "get_certificate", "check_certificate", "delete_certificate",
    "put_signing_request", "get_signing_request", "check_signing_request",
    "delete_signing_request",
    "put_private_key", "get_private_key", "check_private_key",
    "put_encrypted_private_key", "get_encrypted_private_key", "read_key",
    "put_certificate_revocation_list", "get_certificate_revocation_list",
    "replace_certificate_revocation_list",
    "put_personal_information_exchange", "check_personal_information_exchange",
    "Settings", "load_settings", "load_settings_file",
    "parse_list", "parse_and_validate_ips", "parse_and_validate_uris",
    "parse_oid_list", "render_serial",
    "format_name", "init_authority", "request_certificate",
    "sign_request", "revoke", "export_pfx",
)
