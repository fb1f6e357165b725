"""
Hash algorithm registry.

Maps algorithm names to strategies so callers pick an algorithm by
configuration name instead of importing hashlib/blake3 directly.
"""

from typing import Any

from .strategies import (
    Blake3Strategy,
    HashStrategy,
    MD5Strategy,
    SHA256Strategy,
    SHA512Strategy,
)


class HashAlgorithmRegistry:
    """
    Registry for hash algorithm strategies.

    Example:
        registry = HashAlgorithmRegistry()
        digest = registry.compute_hash("blake3", b"payload")

        # Register a custom algorithm
        registry.register(MyCustomStrategy())
    """

    def __init__(self, register_defaults: bool = True):
        """
        Initialize the registry.

        Args:
            register_defaults: If True, register built-in algorithms
        """
        self._strategies: dict[str, HashStrategy] = {}
        if register_defaults:
            for strategy in (Blake3Strategy(), SHA256Strategy(), SHA512Strategy(), MD5Strategy()):
                self.register(strategy)

    def register(self, strategy: HashStrategy) -> None:
        """Register (or replace) a hash strategy under its algorithm name."""
        self._strategies[strategy.algorithm_name] = strategy

    def get(self, algorithm: str) -> HashStrategy | None:
        """Get strategy by algorithm name, or None if unknown."""
        return self._strategies.get(algorithm)

    def require(self, algorithm: str) -> HashStrategy:
        """
        Get strategy by algorithm name.

        Raises:
            ValueError: If algorithm not registered
        """
        strategy = self.get(algorithm)
        if strategy is None:
            raise ValueError(f"Unknown hash algorithm: {algorithm}")
        return strategy

    def create_hasher(self, algorithm: str) -> Any:
        """Create an incremental hasher for the given algorithm."""
        return self.require(algorithm).create_hasher()

    def compute_hash(self, algorithm: str, data: bytes) -> str:
        """
        Compute hash of data using the specified algorithm.

        Returns:
            Hex-encoded hash digest
        """
        return self.require(algorithm).digest(data)

    @property
    def available_algorithms(self) -> list[str]:
        """List available algorithm names."""
        return list(self._strategies.keys())

    def __contains__(self, algorithm: str) -> bool:
        return algorithm in self._strategies
