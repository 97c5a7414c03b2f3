
import hashlib

import pytest
from cryptography.hazmat.primitives.asymmetric import dsa
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from helpers import KEY_ALGOS, new_key

import depotca.api as depotca
from depotca.formats import pem_decode


@pytest.mark.parametrize("desc", KEY_ALGOS)
def test_private_roundtrip(desc: str) -> None:
    key = new_key(desc)
    pem = key.export_private()
    key2 = depotca.Key.from_private_pem(pem)
    assert key2.subject_key_id() == key.subject_key_id()
    assert depotca.same_public_key(key.public, key2.public)


@pytest.mark.parametrize("desc", KEY_ALGOS)
def test_encrypted_roundtrip(desc: str) -> None:
    key = new_key(desc)
    pem = key.export_encrypted_private(b"secret")
    key2 = depotca.Key.from_encrypted_private_pem(pem, b"secret")
    assert key2.subject_key_id() == key.subject_key_id()

    with pytest.raises(depotca.CryptoError):
        depotca.Key.from_encrypted_private_pem(pem, b"wrong")
    with pytest.raises(depotca.CryptoError):
        depotca.Key.from_encrypted_private_pem(pem, None)


def test_export_labels() -> None:
    assert pem_decode(new_key("rsa:1024").export_private()).label == "RSA PRIVATE KEY"
    assert pem_decode(new_key("ecdsa:P256").export_private()).label == "PRIVATE KEY"
    assert pem_decode(new_key("ed25519").export_private()).label == "PRIVATE KEY"

    block = pem_decode(new_key("rsa:1024").export_encrypted_private("psw"))
    assert block.label == "RSA PRIVATE KEY"
    assert block.headers["Proc-Type"] == "4,ENCRYPTED"
    assert block.headers["DEK-Info"].startswith("DES-EDE3-CBC,")

    block = pem_decode(new_key("ed25519").export_encrypted_private("psw"))
    assert block.label == "ENCRYPTED PRIVATE KEY"
    assert not block.headers


def test_import_errors() -> None:
    key = new_key("ecdsa:P256")
    pem = key.export_private().replace(b"PRIVATE KEY", b"EC PRIVATE KEY")
    with pytest.raises(depotca.ParseError):
        depotca.Key.from_private_pem(pem)
    with pytest.raises(depotca.ParseError):
        depotca.Key.from_private_pem(b"garbage")
    with pytest.raises(depotca.ParseError):
        depotca.Key.from_encrypted_private_pem(key.export_private(), b"psw")
    with pytest.raises(depotca.CryptoError):
        depotca.Key.from_encrypted_private_pem(new_key("rsa:1024").export_private(), b"psw")
    with pytest.raises(depotca.CryptoError):
        key.export_encrypted_private(b"")


@pytest.mark.parametrize("curve", ["P224", "P256", "P384", "P521"])
def test_ec_curves(curve: str) -> None:
    key = depotca.create_ecdsa_key(curve)
    assert depotca.get_key_name(key) == "ecdsa:" + curve
    assert key.algorithm == depotca.ECDSAAlgorithm(curve)
    assert len(key.subject_key_id()) == 20


def test_parse_key_algorithm() -> None:
    assert depotca.parse_key_algorithm("rsa:4096") == depotca.RSAAlgorithm(4096)
    assert depotca.parse_key_algorithm("rsa") == depotca.RSAAlgorithm(2048)
    assert depotca.parse_key_algorithm("ecdsa:P384") == depotca.ECDSAAlgorithm("P384")
    assert depotca.parse_key_algorithm("ec:secp521r1") == depotca.ECDSAAlgorithm("P521")
    assert depotca.parse_key_algorithm("ed25519") == depotca.Ed25519Algorithm()

    for bad in ["rsa:x", "ecdsa:P999", "dsa:1024", "ed25519:1"]:
        with pytest.raises(depotca.UnsupportedParameter):
            depotca.parse_key_algorithm(bad)
    with pytest.raises(depotca.UnsupportedParameter):
        depotca.create_rsa_key(512)


def test_subject_key_id_fixed() -> None:
    key = new_key("ed25519")
    raw = key.public.public_bytes(Encoding.Raw, PublicFormat.Raw)
    assert depotca.subject_key_id(key.public) == hashlib.sha1(raw).digest()


def test_unsupported_key_type() -> None:
    priv = dsa.generate_private_key(1024)
    with pytest.raises(depotca.CryptoError):
        depotca.Key.from_private(priv)  # type: ignore[arg-type]
    with pytest.raises(depotca.CryptoError):
        depotca.subject_key_id(priv.public_key())  # type: ignore[arg-type]


def test_public_only() -> None:
    key = new_key("ecdsa:P256")
    pub = depotca.Key(key.public)
    assert pub.export_public() == key.export_public()
    assert "public" in repr(pub)
    with pytest.raises(depotca.CryptoError):
        pub.export_private()
