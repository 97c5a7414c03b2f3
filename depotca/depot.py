"""Permission-checked artifact storage.
"""

import contextlib
import errno
import logging
import os
import stat
import sys
from typing import List, NamedTuple

from .certinfo import Certificate
from .compat import MaybePassword
from .crlinfo import CertificateRevocationList
from .csrinfo import CertificateSigningRequest
from .exceptions import (
    ArtifactExists, ArtifactMissing, PermissionTooLax, StorageError,
)
from .keys import Key

__all__ = (
    "Tag", "FileDepot", "DepotFile", "BRANCH_PERM", "LEAF_PERM",
    "crt_tag", "csr_tag", "private_key_tag", "crl_tag", "pfx_tag",
    "name_from_crt_tag", "name_from_csr_tag",
    "name_from_private_key_tag", "name_from_crl_tag",
    "put_certificate", "get_certificate", "check_certificate", "delete_certificate",
    "put_signing_request", "get_signing_request", "check_signing_request", "delete_signing_request",
    "put_private_key", "get_private_key", "check_private_key",
    "put_encrypted_private_key", "get_encrypted_private_key",
    "put_certificate_revocation_list", "get_certificate_revocation_list",
    "replace_certificate_revocation_list",
    "put_personal_information_exchange", "check_personal_information_exchange",
    "read_key",
)

logger = logging.getLogger(__name__)

DEFAULT_DEPOT_DIR = "out"

if sys.platform == "win32":
    # only all-read or all-write bits are available
    BRANCH_PERM = 0o444
    LEAF_PERM = 0o444
else:
    BRANCH_PERM = 0o440
    LEAF_PERM = 0o444

CRT_SUFFIX = ".crt"
CSR_SUFFIX = ".csr"
KEY_SUFFIX = ".key"
CRL_SUFFIX = ".crl"
PFX_SUFFIX = ".pfx"


class Tag(NamedTuple):
    """File name inside depot and maximum allowed mode.
    """
    name: str
    perm: int


class DepotFile(NamedTuple):
    """Artifact contents with its stat info.
    """
    info: os.stat_result
    data: bytes


def check_permissions(allowed: int, mode: int) -> bool:
    """True if mode bits are subset of allowed.
    """
    return stat.S_IMODE(mode) & ~allowed == 0


class FileDepot:
    """Flat directory of artifacts, no caching.
    """
    def __init__(self, root: str = DEFAULT_DEPOT_DIR) -> None:
        self.root = os.path.abspath(root)

    def path(self, name: str) -> str:
        return os.path.join(self.root, name)

    def put(self, tag: Tag, data: bytes) -> None:
        """Create new artifact, never overwrite existing one.
        """
        if not data:
            raise StorageError("data is empty for %s" % tag.name)
        try:
            os.makedirs(self.root, mode=0o755, exist_ok=True)
        except OSError as ex:
            raise StorageError(ex.errno, "cannot create depot directory: %s" % ex.strerror, self.root) from ex

        fn = self.path(tag.name)
        try:
            fd = os.open(fn, os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0), tag.perm)
        except FileExistsError:
            raise ArtifactExists(errno.EEXIST, "artifact already exists", fn) from None
        except OSError as ex:
            raise StorageError(ex.errno, ex.strerror, fn) from ex

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except BaseException as ex:
            with contextlib.suppress(OSError):
                os.remove(fn)
            if isinstance(ex, OSError):
                raise StorageError(ex.errno, ex.strerror, fn) from ex
            raise
        logger.debug("Stored %s (%o)", fn, tag.perm)

    def _stat(self, tag: Tag) -> os.stat_result:
        fn = self.path(tag.name)
        try:
            st = os.stat(fn)
        except FileNotFoundError:
            raise ArtifactMissing(errno.ENOENT, "artifact not found", fn) from None
        except OSError as ex:
            raise StorageError(ex.errno, ex.strerror, fn) from ex
        if not check_permissions(tag.perm, st.st_mode):
            raise PermissionTooLax(errno.EACCES,
                                   "permissions too lax: required no more than %o, found %o"
                                   % (tag.perm, stat.S_IMODE(st.st_mode)), fn)
        return st

    def check(self, tag: Tag) -> bool:
        """Artifact exists and its mode is not more permissive than tag allows.
        """
        try:
            self._stat(tag)
        except StorageError:
            return False
        return True

    def get_file(self, tag: Tag) -> DepotFile:
        st = self._stat(tag)
        fn = self.path(tag.name)
        try:
            with open(fn, "rb") as f:
                data = f.read()
        except OSError as ex:
            raise StorageError(ex.errno, ex.strerror, fn) from ex
        return DepotFile(st, data)

    def get(self, tag: Tag) -> bytes:
        return self.get_file(tag).data

    def delete(self, tag: Tag) -> None:
        fn = self.path(tag.name)
        try:
            os.remove(fn)
        except FileNotFoundError:
            raise ArtifactMissing(errno.ENOENT, "artifact not found", fn) from None
        except OSError as ex:
            raise StorageError(ex.errno, ex.strerror, fn) from ex
        logger.debug("Deleted %s", fn)

    def list(self) -> List[Tag]:
        """Regular files directly under root, as (name, actual mode).
        """
        res: List[Tag] = []
        try:
            entries = list(os.scandir(self.root))
        except FileNotFoundError:
            return res
        for ent in entries:
            if not ent.is_file(follow_symlinks=False):
                continue
            res.append(Tag(ent.name, stat.S_IMODE(ent.stat(follow_symlinks=False).st_mode)))
        res.sort()
        return res

    def __repr__(self) -> str:
        return "<FileDepot %s>" % self.root


#
# Tags
#

def crt_tag(name: str) -> Tag:
    return Tag(name + CRT_SUFFIX, LEAF_PERM)


def csr_tag(name: str) -> Tag:
    return Tag(name + CSR_SUFFIX, LEAF_PERM)


def private_key_tag(name: str) -> Tag:
    return Tag(name + KEY_SUFFIX, BRANCH_PERM)


def crl_tag(name: str) -> Tag:
    return Tag(name + CRL_SUFFIX, LEAF_PERM)


def pfx_tag(name: str) -> Tag:
    return Tag(name + PFX_SUFFIX, LEAF_PERM)


def _name_from_tag(tag: Tag, suffix: str) -> str:
    if not tag.name.endswith(suffix):
        return ""
    return tag.name[:-len(suffix)]


def name_from_crt_tag(tag: Tag) -> str:
    return _name_from_tag(tag, CRT_SUFFIX)


def name_from_csr_tag(tag: Tag) -> str:
    return _name_from_tag(tag, CSR_SUFFIX)


def name_from_private_key_tag(tag: Tag) -> str:
    return _name_from_tag(tag, KEY_SUFFIX)


def name_from_crl_tag(tag: Tag) -> str:
    return _name_from_tag(tag, CRL_SUFFIX)


#
# Typed access
#

def put_certificate(depot: FileDepot, name: str, cert: Certificate) -> None:
    depot.put(crt_tag(name), cert.export())


def get_certificate(depot: FileDepot, name: str) -> Certificate:
    return Certificate.from_pem(depot.get(crt_tag(name)))


def check_certificate(depot: FileDepot, name: str) -> bool:
    return depot.check(crt_tag(name))


def delete_certificate(depot: FileDepot, name: str) -> None:
    depot.delete(crt_tag(name))


def put_signing_request(depot: FileDepot, name: str, csr: CertificateSigningRequest) -> None:
    depot.put(csr_tag(name), csr.export())


def get_signing_request(depot: FileDepot, name: str) -> CertificateSigningRequest:
    return CertificateSigningRequest.from_pem(depot.get(csr_tag(name)))


def check_signing_request(depot: FileDepot, name: str) -> bool:
    return depot.check(csr_tag(name))


def delete_signing_request(depot: FileDepot, name: str) -> None:
    depot.delete(csr_tag(name))


def put_private_key(depot: FileDepot, name: str, key: Key) -> None:
    depot.put(private_key_tag(name), key.export_private())


def get_private_key(depot: FileDepot, name: str) -> Key:
    return Key.from_private_pem(depot.get(private_key_tag(name)))


def check_private_key(depot: FileDepot, name: str) -> bool:
    return depot.check(private_key_tag(name))


def put_encrypted_private_key(depot: FileDepot, name: str, key: Key, passphrase: MaybePassword) -> None:
    depot.put(private_key_tag(name), key.export_encrypted_private(passphrase))


def get_encrypted_private_key(depot: FileDepot, name: str, passphrase: MaybePassword) -> Key:
    return Key.from_encrypted_private_pem(depot.get(private_key_tag(name)), passphrase)


def put_certificate_revocation_list(depot: FileDepot, name: str, crl: CertificateRevocationList) -> None:
    depot.put(crl_tag(name), crl.export())


def get_certificate_revocation_list(depot: FileDepot, name: str) -> CertificateRevocationList:
    return CertificateRevocationList.from_pem(depot.get(crl_tag(name)))


def replace_certificate_revocation_list(depot: FileDepot, name: str, crl: CertificateRevocationList) -> None:
    """Delete old CRL, then store new one.
    """
    depot.delete(crl_tag(name))
    put_certificate_revocation_list(depot, name, crl)


def put_personal_information_exchange(depot: FileDepot, name: str, data: bytes) -> None:
    depot.put(pfx_tag(name), data)


def check_personal_information_exchange(depot: FileDepot, name: str) -> bool:
    return depot.check(pfx_tag(name))


def read_key(depot: FileDepot, name: str, passphrase: MaybePassword = None) -> Key:
    """Load private key, decrypting when it is stored encrypted.
    """
    data = depot.get(private_key_tag(name))
    if b"ENCRYPTED" in data:
        return Key.from_encrypted_private_pem(data, passphrase)
    return Key.from_private_pem(data)
