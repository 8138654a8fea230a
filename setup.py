#!/usr/bin/env python3
import os
from typing import List

from setuptools import find_packages, setup

DESCRIPTION = "Parity wallet contracts, a bytecode linker and a typed JSON-RPC client"
VERSION = "0.1.0"


def read_requirements(path: str) -> List[str]:
    assert os.path.isfile(path)
    with open(path) as requirements:
        return requirements.read().split()


requirements = read_requirements("requirements.txt")

config = {
    "version": VERSION,
    "scripts": [],
    "name": "parity-contracts",
    "description": DESCRIPTION,
    "license": "MIT",
    "keywords": "parity ethereum wallet linker json-rpc",
    "install_requires": requirements,
    "extras_require": {"test": read_requirements("requirements-dev.txt")},
    "packages": find_packages(),
    "include_package_data": True,
    "classifiers": [
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Programming Language :: Python :: 3",
    ],
    "entry_points": {
        "console_scripts": ["parity-contracts = parity_contracts.deploy.__main__:main"]
    },
    "zip_safe": False,
    "package_data": {"parity_contracts": ["py.typed", "data/*.json"]},
}

setup(**config)
