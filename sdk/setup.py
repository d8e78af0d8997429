# SPDX-License-Identifier: Apache-2.0
from setuptools import setup, find_packages

setup(
    name="sealedtally",
    version="0.1.0",
    packages=find_packages(exclude=["tests"]),
    install_requires=["requests", "tenseal", "click"],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["sealedtally=sealedtally.cli:main"]},
)
