"""Load depot settings from config file.
"""

import configparser
import os
from configparser import ConfigParser, ExtendedInterpolation
from datetime import datetime, timedelta
from typing import List, Mapping, Optional

from .certinfo import CertOptions
from .compat import utc_now
from .depot import FileDepot
from .exceptions import ParseError, UnsupportedParameter
from .formats import parse_list
from .keys import KeyAlgorithm, parse_key_algorithm

__all__ = ("Settings", "load_settings", "load_settings_file", "DEPOT_DIR_ENV", "SECTION")

SECTION = "depotca"
DEPOT_DIR_ENV = "DEPOTCA_DEPOT_DIR"

DEFAULTS = {
    "depot_dir": "out",
    "ca_key": "rsa:4096",
    "host_key": "rsa:2048",
    "pfx_chain": "",
    "allow_legacy_issuer": "true",
    "crl_days": "730",
}


class Settings:
    """Validated configuration values.
    """
    depot_dir: str
    ca_key: KeyAlgorithm
    host_key: KeyAlgorithm
    pfx_chain: List[str]
    allow_legacy_issuer: bool
    crl_days: int

    def __init__(self, depot_dir: str = DEFAULTS["depot_dir"],
                 ca_key: str = DEFAULTS["ca_key"],
                 host_key: str = DEFAULTS["host_key"],
                 pfx_chain: str = DEFAULTS["pfx_chain"],
                 allow_legacy_issuer: bool = True,
                 crl_days: int = 730) -> None:
        self.depot_dir = depot_dir
        try:
            self.ca_key = parse_key_algorithm(ca_key)
            self.host_key = parse_key_algorithm(host_key)
        except UnsupportedParameter as ex:
            raise ParseError("Invalid config: %s" % ex) from None
        self.pfx_chain = parse_list(pfx_chain)
        self.allow_legacy_issuer = allow_legacy_issuer
        if crl_days <= 0:
            raise ParseError("crl_days must be positive: %d" % crl_days)
        self.crl_days = crl_days

    def open_depot(self) -> FileDepot:
        return FileDepot(self.depot_dir)

    def cert_options(self) -> CertOptions:
        return CertOptions(allow_legacy_issuer=self.allow_legacy_issuer)

    def crl_next_update(self, now: Optional[datetime] = None) -> datetime:
        return (now or utc_now()) + timedelta(days=self.crl_days)


def load_settings(cf: ConfigParser, env: Optional[Mapping[str, str]] = None) -> Settings:
    """Settings from already loaded config, env overrides depot_dir.
    """
    if env is None:
        env = os.environ
    if not cf.has_section(SECTION):
        cf.add_section(SECTION)
    sect = cf[SECTION]
    try:
        depot_dir = env.get(DEPOT_DIR_ENV) or sect.get("depot_dir", DEFAULTS["depot_dir"])
        ca_key = sect.get("ca_key", DEFAULTS["ca_key"])
        host_key = sect.get("host_key", DEFAULTS["host_key"])
        pfx_chain = sect.get("pfx_chain", DEFAULTS["pfx_chain"])
        allow_legacy_issuer = sect.getboolean("allow_legacy_issuer", True)
        crl_days = sect.getint("crl_days", 730)
    except (ValueError, configparser.Error) as ex:
        raise ParseError("Invalid config: %s" % ex) from None
    return Settings(depot_dir=depot_dir, ca_key=ca_key, host_key=host_key, pfx_chain=pfx_chain,
                    allow_legacy_issuer=allow_legacy_issuer, crl_days=crl_days)


def load_settings_file(fn: Optional[str] = None,
                       env: Optional[Mapping[str, str]] = None,
                       defs: Optional[Mapping[str, str]] = None) -> Settings:
    """Read INI file, missing keys take defaults.
    """
    cf = ConfigParser(defaults=dict(DEFAULTS, **(defs or {})), interpolation=ExtendedInterpolation(),
                      delimiters=['='], comment_prefixes=['#'], inline_comment_prefixes=['#'])
    if fn:
        with open(fn, "r", encoding="utf8") as f:
            cf.read_file(f, fn)
    return load_settings(cf, env)
