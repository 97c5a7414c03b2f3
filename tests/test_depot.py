
import os
import stat
import sys
from pathlib import Path

import pytest
from helpers import new_cert, new_csr, new_key, new_root

import depotca.api as depotca
from depotca import depot as depot_module

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX modes")


def test_put_get(tmp_path: Path) -> None:
    depot = depotca.FileDepot(str(tmp_path / "sub" / "depot"))
    tag = depotca.crt_tag("host1")
    depot.put(tag, b"data1")
    assert os.path.isdir(depot.root)
    assert depot.check(tag)
    assert depot.get(tag) == b"data1"

    f = depot.get_file(tag)
    assert f.data == b"data1"
    assert stat.S_IMODE(f.info.st_mode) & ~depotca.LEAF_PERM == 0


def test_put_exclusive(tmp_path: Path) -> None:
    depot = depotca.FileDepot(str(tmp_path))
    tag = depotca.crt_tag("host1")
    depot.put(tag, b"original")
    with pytest.raises(depotca.ArtifactExists, match="already exists"):
        depot.put(tag, b"other")
    assert depot.get(tag) == b"original"


def test_put_empty(tmp_path: Path) -> None:
    depot = depotca.FileDepot(str(tmp_path))
    with pytest.raises(depotca.StorageError):
        depot.put(depotca.crt_tag("x"), b"")
    assert not os.path.exists(depot.path("x.crt"))


def test_put_rollback(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    depot = depotca.FileDepot(str(tmp_path))

    def fail_fdopen(fd: int, mode: str) -> None:
        os.close(fd)
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(depot_module.os, "fdopen", fail_fdopen)
    with pytest.raises(depotca.StorageError, match="No space"):
        depot.put(depotca.private_key_tag("ca"), b"secret")
    assert os.listdir(str(tmp_path)) == []


def test_put_rollback_any_error(tmp_path: Path) -> None:
    depot = depotca.FileDepot(str(tmp_path))
    with pytest.raises(TypeError):
        depot.put(depotca.crt_tag("x"), "not bytes")  # type: ignore[arg-type]
    assert os.listdir(str(tmp_path)) == []

    depot.put(depotca.crt_tag("x"), b"retry works")
    assert depot.get(depotca.crt_tag("x")) == b"retry works"


def test_put_rollback_keeps_original_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    depot = depotca.FileDepot(str(tmp_path))

    def fail_fdopen(fd: int, mode: str) -> None:
        os.close(fd)
        raise OSError(28, "No space left on device")

    def fail_remove(fn: str) -> None:
        raise PermissionError(13, "Permission denied", fn)

    monkeypatch.setattr(depot_module.os, "fdopen", fail_fdopen)
    monkeypatch.setattr(depot_module.os, "remove", fail_remove)
    with pytest.raises(depotca.StorageError, match="No space"):
        depot.put(depotca.crt_tag("y"), b"data")


@posix_only
def test_permissions_too_lax(tmp_path: Path) -> None:
    depot = depotca.FileDepot(str(tmp_path))
    tag = depotca.Tag("ca.key", 0o600)
    fn = depot.path(tag.name)
    with open(fn, "wb") as f:
        f.write(b"secret")
    os.chmod(fn, 0o644)

    assert not depot.check(tag)
    with pytest.raises(depotca.PermissionTooLax):
        depot.get(tag)

    os.chmod(fn, 0o600)
    assert depot.check(tag)
    assert depot.get(tag) == b"secret"

    os.chmod(fn, 0o400)
    assert depot.get(tag) == b"secret"


@posix_only
def test_branch_perm(tmp_path: Path) -> None:
    depot = depotca.FileDepot(str(tmp_path))
    key = new_key()
    depotca.put_private_key(depot, "ca", key)
    fn = depot.path("ca.key")
    assert stat.S_IMODE(os.stat(fn).st_mode) & ~0o440 == 0
    assert depotca.check_private_key(depot, "ca")

    os.chmod(fn, 0o444)
    assert not depotca.check_private_key(depot, "ca")
    with pytest.raises(depotca.PermissionTooLax):
        depotca.get_private_key(depot, "ca")


def test_missing(tmp_path: Path) -> None:
    depot = depotca.FileDepot(str(tmp_path))
    tag = depotca.csr_tag("nothere")
    assert not depot.check(tag)
    with pytest.raises(depotca.ArtifactMissing):
        depot.get(tag)
    with pytest.raises(depotca.ArtifactMissing):
        depot.delete(tag)


def test_delete_and_list(tmp_path: Path) -> None:
    depot = depotca.FileDepot(str(tmp_path / "d"))
    assert depot.list() == []
    depot.put(depotca.crt_tag("a"), b"1")
    depot.put(depotca.csr_tag("a"), b"2")
    depot.put(depotca.private_key_tag("b"), b"3")
    os.mkdir(depot.path("subdir"))
    with open(os.path.join(depot.path("subdir"), "c.crt"), "wb") as f:
        f.write(b"nested")

    names = [t.name for t in depot.list()]
    assert names == ["a.crt", "a.csr", "b.key"]
    assert all(isinstance(t.perm, int) for t in depot.list())

    depot.delete(depotca.csr_tag("a"))
    assert [t.name for t in depot.list()] == ["a.crt", "b.key"]


def test_tags() -> None:
    assert depotca.crt_tag("x") == depotca.Tag("x.crt", depotca.LEAF_PERM)
    assert depotca.private_key_tag("x") == depotca.Tag("x.key", depotca.BRANCH_PERM)
    assert depotca.crl_tag("x").name == "x.crl"
    assert depotca.pfx_tag("x").name == "x.pfx"
    assert depotca.name_from_crt_tag(depotca.crt_tag("host1")) == "host1"
    assert depotca.name_from_csr_tag(depotca.csr_tag("host1")) == "host1"
    assert depotca.name_from_private_key_tag(depotca.private_key_tag("k")) == "k"
    assert depotca.name_from_crl_tag(depotca.crl_tag("c")) == "c"
    assert depotca.name_from_crt_tag(depotca.csr_tag("host1")) == ""


def test_typed_helpers(tmp_path: Path) -> None:
    depot = depotca.FileDepot(str(tmp_path))
    ca_key, ca_cert = new_root("rsa:1024")
    key, csr = new_csr()
    _, cert = new_cert(ca_key, ca_cert)

    depotca.put_certificate(depot, "ca", ca_cert)
    assert depotca.check_certificate(depot, "ca")
    assert depotca.get_certificate(depot, "ca").der == ca_cert.der

    depotca.put_signing_request(depot, "host1", csr)
    assert depotca.check_signing_request(depot, "host1")
    assert depotca.get_signing_request(depot, "host1").der == csr.der
    depotca.delete_signing_request(depot, "host1")
    assert not depotca.check_signing_request(depot, "host1")

    depotca.put_encrypted_private_key(depot, "ca", ca_key, b"psw")
    loaded = depotca.get_encrypted_private_key(depot, "ca", b"psw")
    assert loaded.subject_key_id() == ca_key.subject_key_id()
    assert depotca.read_key(depot, "ca", b"psw").subject_key_id() == ca_key.subject_key_id()
    with pytest.raises(depotca.CryptoError):
        depotca.read_key(depot, "ca", b"bad")

    depotca.put_private_key(depot, "host1", key)
    assert depotca.read_key(depot, "host1").subject_key_id() == key.subject_key_id()

    crl = depotca.create_certificate_revocation_list(ca_key, ca_cert, ca_cert.get_expiration())
    depotca.put_certificate_revocation_list(depot, "ca", crl)
    crl2 = depotca.revoke_certificate(ca_key, ca_cert, crl, cert.get_serial_number(), ca_cert.get_expiration())
    with pytest.raises(depotca.ArtifactExists):
        depotca.put_certificate_revocation_list(depot, "ca", crl2)
    depotca.replace_certificate_revocation_list(depot, "ca", crl2)
    assert depotca.get_certificate_revocation_list(depot, "ca").revoked_serials() == [cert.get_serial_number()]

    depotca.put_personal_information_exchange(depot, "host1", b"\x30\x00")
    assert depotca.check_personal_information_exchange(depot, "host1")

    depotca.delete_certificate(depot, "ca")
    assert not depotca.check_certificate(depot, "ca")
