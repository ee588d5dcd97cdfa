# =============================================================================
# LeafScan-Hybrid
# services/cache.py - Result Cache
#
# Fingerprint -> DetectionResult mapping owned by one InferenceService.
# Entries are never evicted; the cache is cleared only on dispose.
# =============================================================================

import logging
from typing import Dict, Optional

from leafscan.models import DetectionResult

logger = logging.getLogger(__name__)


class ResultCache:
    """
    In-memory result cache keyed by content fingerprint.

    Concurrent misses on the same key may both insert; the last write
    wins. Values for a key are identical apart from timestamp, so the
    race is harmless.
    """

    def __init__(self):
        self._results: Dict[str, DetectionResult] = {}
        self.hits = 0
        self.misses = 0

    def get(self, fingerprint: str) -> Optional[DetectionResult]:
        result = self._results.get(fingerprint)
        if result is None:
            self.misses += 1
        else:
            self.hits += 1
        return result

    def put(self, fingerprint: str, result: DetectionResult) -> None:
        self._results[fingerprint] = result

    def clear(self) -> None:
        logger.debug(f"Clearing {len(self._results)} cached results")
        self._results.clear()

    def stats(self) -> Dict[str, int]:
        return {'size': len(self._results), 'hits': self.hits, 'misses': self.misses}

    def __contains__(self, fingerprint: str) -> bool:
        return fingerprint in self._results

    def __len__(self) -> int:
        return len(self._results)
