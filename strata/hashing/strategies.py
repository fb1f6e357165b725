"""
Hash algorithm strategy implementations.

Each strategy wraps one hash algorithm behind a common interface so that
fingerprints and content digests can switch algorithms through config.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Any, ClassVar

try:
    import blake3 as _blake3

    blake3: Any | None = _blake3
except ImportError:
    blake3 = None


class HashStrategy(ABC):
    """
    Abstract base class for hash algorithm strategies.

    Subclasses set ``algorithm_name`` and implement ``create_hasher()``.
    The returned hasher must expose ``update(bytes)`` and ``hexdigest()``.
    """

    algorithm_name: ClassVar[str]

    @abstractmethod
    def create_hasher(self) -> Any:
        """Create a new hasher instance."""
        pass

    def digest(self, data: bytes) -> str:
        """Hash a byte string in one call."""
        hasher = self.create_hasher()
        hasher.update(data)
        return hasher.hexdigest()


class Blake3Strategy(HashStrategy):
    """BLAKE3 - fast cryptographic hash, the default for fingerprints."""

    algorithm_name = "blake3"

    def create_hasher(self) -> Any:
        if blake3 is None:
            raise ImportError("blake3 package not installed")
        return blake3.blake3()


class SHA256Strategy(HashStrategy):
    """SHA-256 - widely compatible."""

    algorithm_name = "sha256"

    def create_hasher(self) -> Any:
        return hashlib.sha256()


class SHA512Strategy(HashStrategy):
    """SHA-512 - stronger variant of SHA-2."""

    algorithm_name = "sha512"

    def create_hasher(self) -> Any:
        return hashlib.sha512()


class MD5Strategy(HashStrategy):
    """MD5 - legacy compatibility only, never for new caches."""

    algorithm_name = "md5"

    def create_hasher(self) -> Any:
        return hashlib.md5(usedforsecurity=False)
