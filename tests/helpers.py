
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Tuple

import depotca.api as depotca

# small keys keep tests fast
KEY_ALGOS = ["rsa:1024", "ecdsa:P256", "ed25519"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def new_key(desc: str = "ecdsa:P256") -> depotca.Key:
    return depotca.create_key(depotca.parse_key_algorithm(desc))


def new_root(ktype: str = "ecdsa:P256", days: int = 365, common_name: str = "TestCA",
             **kwargs: Any) -> Tuple[depotca.Key, depotca.Certificate]:
    ca_key = new_key(ktype)
    ca_cert = depotca.create_authority(ca_key, None, "Org", "US", None, None, common_name,
                                       utcnow() + timedelta(days=days), **kwargs)
    return ca_key, ca_cert


def new_csr(ktype: str = "ecdsa:P256", common_name: str = "host1",
            domains: Optional[list] = None, **kwargs: Any,
            ) -> Tuple[depotca.Key, depotca.CertificateSigningRequest]:
    key = new_key(ktype)
    csr = depotca.create_certificate_signing_request(
        key, "Unit", kwargs.pop("ips", []), domains or [], kwargs.pop("uris", []),
        "Org", "US", "CA", "San Francisco", common_name, **kwargs)
    return key, csr


def new_cert(ca_key: depotca.Key, ca_cert: depotca.Certificate,
             ktype: str = "ecdsa:P256", days: int = 30, **kwargs: Any,
             ) -> Tuple[depotca.Key, depotca.Certificate]:
    key, csr = new_csr(ktype, domains=["host1.example.com"])
    cert = depotca.create_host(ca_cert, ca_key, csr, utcnow() + timedelta(days=days), **kwargs)
    return key, cert
