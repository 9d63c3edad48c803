#!/usr/bin/env python3
"""
E-Invoice Signing Setup
"""

from setuptools import setup, find_packages
import os

# Read version from file
def read_version():
    version_file = os.path.join(os.path.dirname(__file__), 'einvoice_signing', '_version.py')
    namespace = {}
    with open(version_file, 'r') as f:
        exec(f.read(), namespace)
    return namespace['__version__']

# Read README for long description
def read_readme():
    readme_file = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_file):
        with open(readme_file, 'r', encoding='utf-8') as f:
            return f.read()
    return "Enveloped JSON digital signatures for UBL-JSON e-invoice documents"

setup(
    name="einvoice-signing",
    version=read_version(),
    description="Enveloped JSON digital signatures for UBL-JSON e-invoice documents",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    author="E-Invoice Signing Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Security :: Cryptography",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Office/Business",
    ],
    python_requires=">=3.9",
    install_requires=[
        "cryptography>=41.0.0",
        "pydantic>=2.0.0",
        "httpx>=0.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "einvoice-sign=einvoice_signing.cli:main",
        ],
    },
    include_package_data=True,
    package_data={
        "einvoice_signing": ["py.typed"],
    },
    keywords=[
        "e-invoice", "ubl", "digital-signatures", "xades",
        "myinvois", "crypto", "signing", "certificates"
    ],
    zip_safe=False,
)
