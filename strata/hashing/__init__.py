"""
Hash algorithm strategies, registry and tree digests.

Fingerprints and artifact content digests go through this package so the
algorithm stays a configuration choice (``hash.primary``).
"""

from .registry import HashAlgorithmRegistry
from .strategies import (
    Blake3Strategy,
    HashStrategy,
    MD5Strategy,
    SHA256Strategy,
    SHA512Strategy,
)
from .tree import TreeHasher

__all__ = [
    "Blake3Strategy",
    "HashAlgorithmRegistry",
    "HashStrategy",
    "MD5Strategy",
    "SHA256Strategy",
    "SHA512Strategy",
    "TreeHasher",
]
