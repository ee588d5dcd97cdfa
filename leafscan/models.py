# =============================================================================
# LeafScan-Hybrid
# models.py - Data Models
#
# Value objects passed between the engine and its callers:
# DetectionResult for analysis output and CameraFrame/Plane for live
# camera input.
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from leafscan.constants import SOURCE_MODEL, SOURCE_UNKNOWN, UNKNOWN_LABEL


def now_iso() -> str:
    """Current local time as ISO-8601 text."""
    return datetime.now().isoformat()


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of a single leaf analysis.

    Attributes:
        disease: Label from the fixed disease list (or a debug marker)
        confidence: Score in [0, 1]
        severity: Percentage of affected tissue in [0, 100]
        timestamp: Creation instant, ISO-8601 text
        source: Which predictor produced the result (model, fallback, debug)
    """
    disease: str
    confidence: float
    severity: float
    timestamp: str = field(default_factory=now_iso)
    source: str = SOURCE_UNKNOWN

    @property
    def is_healthy(self) -> bool:
        return self.disease.lower() == 'healthy'

    @property
    def is_synthetic(self) -> bool:
        """True when no real inference produced this result."""
        return self.source != SOURCE_MODEL

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to the flat record used by history and display layers.

        Returns:
            Dictionary with disease, confidence, severity, timestamp, source
        """
        return {
            'disease': self.disease,
            'confidence': self.confidence,
            'severity': self.severity,
            'timestamp': self.timestamp,
            'source': self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DetectionResult':
        """
        Rebuild a result from its flat record.

        Missing keys fall back to "Unknown", 0.0 and the current time.
        """
        return cls(
            disease=data.get('disease') or UNKNOWN_LABEL,
            confidence=float(data.get('confidence') or 0.0),
            severity=float(data.get('severity') or 0.0),
            timestamp=data.get('timestamp') or now_iso(),
            source=data.get('source') or SOURCE_UNKNOWN,
        )


@dataclass(frozen=True)
class Plane:
    """One plane of a camera image buffer."""
    bytes: bytes
    bytes_per_row: Optional[int] = None
    bytes_per_pixel: Optional[int] = None


@dataclass(frozen=True)
class CameraFrame:
    """
    A raw frame delivered by a camera stream.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        image_format: Plane layout, one of 'yuv420', 'nv21', 'bgra8888'
        planes: Image planes in the order the camera delivers them
    """
    width: int
    height: int
    image_format: str
    planes: List[Plane]
