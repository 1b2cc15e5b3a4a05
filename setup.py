
# setup.py
from setuptools import setup, find_packages

setup(
    name="lat_engine",
    version="0.1.0",
    packages=find_packages(include=["lat_engine", "lat_engine.*"]),
    install_requires=[
        "cryptography",      # ECDSA claim signatures
        "pycryptodome",      # keccak-256
        "msgpack",           # signature envelope, state snapshots
        "plyvel",            # snapshot store
        "prometheus_client", # metrics
        "psutil",            # monitoring
    ],
    extras_require={
        "test": ["pytest"],
    },
)
