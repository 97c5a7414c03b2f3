
from setuptools import setup

# load version without importing
import re
src = open("depotca/__init__.py", "r").read()
version = re.search(r"""^__version__\s*=\s*['"]([^'"]+)['"]""", src, re.M).group(1)

# load description
longdesc = open("README.rst", "r").read().split("\nUsage\n")[0].strip()
desc = longdesc.splitlines()[0].split("-", 1)[1].strip()

setup(
    name="depotca",
    version=version,
    description=desc,
    long_description=longdesc,
    license="ISC",
    packages=["depotca"],
    zip_safe=True,
    python_requires=">=3.10",
    install_requires=["cryptography>=43"],
    extras_require={
        "test": ["pytest"],
    },
    keywords=["x509", "tls", "ssl", "certificate", "authority", "crl", "pkcs12"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: ISC License (ISCL)",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Security :: Cryptography",
        "Topic :: System :: Systems Administration",
    ]
)
