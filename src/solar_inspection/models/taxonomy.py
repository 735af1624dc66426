"""
Anomaly taxonomy shared by the small-site and mega-solar data models.

Severity naming is canonicalized to critical/moderate/minor. Records written by
older dashboards used high/medium/low; those labels are still accepted on input.
"""

from enum import Enum


class Severity(Enum):
    """Qualitative defect-impact tier."""
    CRITICAL = "critical"
    MODERATE = "moderate"
    MINOR = "minor"

    @classmethod
    def from_label(cls, label: str) -> "Severity":
        """
        Parse a severity label, accepting the legacy high/medium/low vocabulary.
        
        Args:
            label: Severity label (case-insensitive)
            
        Returns:
            Matching Severity member
        """
        normalized = str(label).strip().lower()
        normalized = _LEGACY_SEVERITY_LABELS.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown severity label: {label!r}") from None


_LEGACY_SEVERITY_LABELS = {
    "high": "critical",
    "medium": "moderate",
    "low": "minor",
}


class AnomalyCategory(Enum):
    """Display grouping for anomaly types."""
    HOTSPOT = "hotspot"
    BYPASS_DIODE = "bypass_diode"
    VEGETATION = "vegetation"
    SOILING = "soiling"


class AnomalyType(Enum):
    """Specific kinds of panel defect."""
    HOTSPOT_SINGLE = "hotspot_single"
    HOTSPOT_MULTI = "hotspot_multi"
    BYPASS_DIODE = "bypass_diode"
    SOILING = "soiling"
    VEGETATION = "vegetation"

    @property
    def category(self) -> AnomalyCategory:
        """Display category this type is grouped under."""
        if "hotspot" in self.value:
            return AnomalyCategory.HOTSPOT
        return AnomalyCategory(self.value)

    @property
    def is_hotspot(self) -> bool:
        return self.category is AnomalyCategory.HOTSPOT


class IECClass(Enum):
    """IEC TS 62446-3 style defect class, used only as a label."""
    IEC1 = "IEC1"
    IEC2 = "IEC2"
    IEC3 = "IEC3"
    UNCLASSIFIED = "unclassified"
