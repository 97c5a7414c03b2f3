
from datetime import datetime, timedelta, timezone

import pytest
from cryptography.x509.oid import ExtensionOID
from helpers import new_cert, new_key, new_root, utcnow

import depotca.api as depotca
from depotca.formats import pem_decode


def test_empty_crl() -> None:
    ca_key, ca_cert = new_root(common_name="CrlCA")
    crl = depotca.create_certificate_revocation_list(ca_key, ca_cert, ca_cert.get_expiration())
    assert len(crl) == 0
    assert crl.revoked_serials() == []
    assert crl.get_raw().issuer == ca_cert.get_raw().subject
    assert crl.get_next_update() == ca_cert.get_expiration()
    crl.check_signature_from(ca_cert)

    aki = crl.get_raw().extensions.get_extension_for_oid(ExtensionOID.AUTHORITY_KEY_IDENTIFIER)
    assert aki.value.key_identifier == depotca.subject_key_id(ca_key.public)

    pem = crl.export()
    assert pem_decode(pem).label == "X509 CRL"
    assert depotca.CertificateRevocationList.from_pem(pem).der == crl.der


def test_revoke_appends() -> None:
    ca_key, ca_cert = new_root("rsa:1024")
    _, cert1 = new_cert(ca_key, ca_cert)
    _, cert2 = new_cert(ca_key, ca_cert)
    next_update = utcnow() + timedelta(days=730)

    crl = depotca.create_certificate_revocation_list(ca_key, ca_cert, next_update)
    crl1 = depotca.revoke_certificate(ca_key, ca_cert, crl, cert1.get_serial_number(), next_update)
    assert crl1.revoked_serials() == [cert1.get_serial_number()]

    crl2 = depotca.revoke_certificate(ca_key, ca_cert, crl1, cert2.get_serial_number(), next_update)
    assert len(crl2) == len(crl1) + 1
    assert crl2.revoked_serials() == [cert1.get_serial_number(), cert2.get_serial_number()]
    crl2.check_signature_from(ca_cert)

    old = crl1.get_raw().get_revoked_certificate_by_serial_number(cert1.get_serial_number())
    new = crl2.get_raw().get_revoked_certificate_by_serial_number(cert1.get_serial_number())
    assert old.revocation_date_utc == new.revocation_date_utc


def test_revoke_twice() -> None:
    ca_key, ca_cert = new_root()
    _, cert = new_cert(ca_key, ca_cert)
    next_update = utcnow() + timedelta(days=30)
    crl = depotca.create_certificate_revocation_list(ca_key, ca_cert, next_update)
    crl = depotca.revoke_certificate(ca_key, ca_cert, crl, cert.get_serial_number(), next_update)
    with pytest.raises(depotca.PolicyViolation):
        depotca.revoke_certificate(ca_key, ca_cert, crl, cert.get_serial_number(), next_update)


def test_crl_wrong_ca() -> None:
    ca_key, ca_cert = new_root(common_name="CA1")
    ca2_key, ca2_cert = new_root(common_name="CA2")
    next_update = utcnow() + timedelta(days=30)
    crl = depotca.create_certificate_revocation_list(ca_key, ca_cert, next_update)
    with pytest.raises(depotca.CryptoError):
        crl.check_signature_from(ca2_cert)
    with pytest.raises(depotca.CryptoError):
        depotca.revoke_certificate(ca2_key, ca2_cert, crl, 5, next_update)
    with pytest.raises(depotca.CryptoError):
        depotca.create_certificate_revocation_list(new_key(), ca_cert, next_update)


def test_crl_needs_ca() -> None:
    ca_key, ca_cert = new_root()
    leaf_key, leaf_cert = new_cert(ca_key, ca_cert)
    with pytest.raises(depotca.PolicyViolation):
        depotca.create_certificate_revocation_list(leaf_key, leaf_cert, utcnow() + timedelta(days=1))
    with pytest.raises(depotca.PolicyViolation):
        depotca.create_certificate_revocation_list(ca_key, ca_cert, utcnow() - timedelta(days=1))


def test_crl_next_update_year_range() -> None:
    ca_key, ca_cert = new_root()
    late = datetime(9999, 12, 31, 23, 0, tzinfo=timezone(timedelta(hours=-5)))
    with pytest.raises(depotca.PolicyViolation, match="next update"):
        depotca.create_certificate_revocation_list(ca_key, ca_cert, late)

    crl = depotca.create_certificate_revocation_list(ca_key, ca_cert, ca_cert.get_expiration())
    _, cert = new_cert(ca_key, ca_cert)
    with pytest.raises(depotca.PolicyViolation, match="next update"):
        depotca.revoke_certificate(ca_key, ca_cert, crl, cert.get_serial_number(), late)
