from setuptools import setup, find_packages


setup(
    name="identikey",
    version="0.1",
    packages=find_packages(include=["identikey", "identikey.*"]),
    description="Content-addressed encrypted blob storage for Curve25519 keys.",
    author="identikey",
    python_requires=">=3.9",
    install_requires=[
        "pycryptodomex>=3.23.0",
        "argon2-cffi>=23.1.0",
        "cbor2>=6.1",
        "base58>=2.1",
    ],
    extras_require={
        "test": [
            "pytest",
            "pynacl>=1.5",
        ],
    },
    entry_points={
        "console_scripts": [
            "identikey=identikey.cli:main",
        ]
    },
)
