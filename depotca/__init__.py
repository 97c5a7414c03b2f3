"""DepotCA - small PKI with permission-checked file depot.
"""

# pylint: disable=import-outside-toplevel

__version__ = "1.0"


def _version_info():
    """Info string with library versions.
    """
    try:
        import cryptography
        from cryptography.hazmat.backends.openssl import backend
        cver = getattr(cryptography, "__version__", "?")
        return "%s (cryptography %s, %s)" % (__version__, cver, backend.openssl_version_text())
    except ImportError:
        return __version__ + " (no cryptography)"


FULL_VERSION = _version_info()
