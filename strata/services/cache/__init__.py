"""Layer cache and stage fingerprints."""

from .fingerprint import FINGERPRINT_VERSION, FingerprintService
from .layer_cache import CacheStats, LayerCache

__all__ = ["FINGERPRINT_VERSION", "CacheStats", "FingerprintService", "LayerCache"]
