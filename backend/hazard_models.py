# hazard_models.py
# Value types shared by the hazard aggregation engine.
# Assessments are immutable once built; to_dict() renders the camelCase
# shape consumed by the UI layer.

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Tuple


class NioshTable(str, Enum):
    TABLE_1 = "Table 1"
    TABLE_2 = "Table 2"
    NONE = "none"


class PhysicalForm(str, Enum):
    POWDER = "powder"
    LIQUID = "liquid"
    SOLID = "solid"
    GAS = "gas"


class RiskTier(str, Enum):
    BASIC = "basic"
    ENHANCED = "enhanced"
    MAXIMUM = "maximum"

    @property
    def rank(self):
        return _TIER_RANK[self]


_TIER_RANK = {RiskTier.BASIC: 0, RiskTier.ENHANCED: 1, RiskTier.MAXIMUM: 2}


class HazardLevel(str, Enum):
    HIGH = "High Hazard"
    MODERATE = "Moderate Hazard"
    NON_HAZARDOUS = "Non-Hazardous"


@dataclass(frozen=True)
class HazardClassification:
    code: str
    category: str
    description: str
    source: str

    def to_dict(self):
        return {
            "code": self.code,
            "category": self.category,
            "description": self.description,
            "source": self.source,
        }


@dataclass(frozen=True)
class NioshEntry:
    tier: NioshTable
    hazard_types: Tuple[str, ...] = ()
    requires_special_handling: bool = False

    @property
    def is_hazardous(self):
        return self.requires_special_handling or self.tier is NioshTable.TABLE_1

    @property
    def has_reproductive_toxicity(self):
        return any("reproductive" in t.lower() for t in self.hazard_types)

    @property
    def is_carcinogenic(self):
        return any("carcinogen" in t.lower() for t in self.hazard_types)

    def to_dict(self):
        return {
            "table": None if self.tier is NioshTable.NONE else self.tier.value,
            "hazardTypes": list(self.hazard_types),
            "category": ", ".join(self.hazard_types),
            "requiresSpecialHandling": self.requires_special_handling,
            "isHazardous": self.is_hazardous,
            "hasReproductiveToxicity": self.has_reproductive_toxicity,
            "isCarcinogenic": self.is_carcinogenic,
        }


@dataclass(frozen=True)
class PhysicalProperties:
    # Unknown form is treated as powder, the most protective assumption
    physical_form: PhysicalForm = PhysicalForm.POWDER
    solubility: str = "unknown"
    molecular_weight: Optional[float] = None

    def to_dict(self):
        data = {
            "physicalForm": self.physical_form.value,
            "solubility": self.solubility,
        }
        if self.molecular_weight is not None:
            data["molecularWeight"] = self.molecular_weight
        return data


@dataclass(frozen=True)
class PPERequirement:
    type: str
    specification: str

    def to_dict(self):
        return {"type": self.type, "specification": self.specification}


@dataclass(frozen=True)
class DataSource:
    name: str
    url: str = ""

    def to_dict(self):
        return {"name": self.name, "url": self.url}


@dataclass(frozen=True)
class SafetyInfo:
    handling_precautions: Tuple[str, ...]
    ppe_requirements: Tuple[PPERequirement, ...]
    engineering_controls: Tuple[str, ...]
    spill_response: Tuple[str, ...]
    tier: RiskTier = RiskTier.MAXIMUM

    def to_dict(self):
        return {
            "tier": self.tier.value,
            "handlingPrecautions": list(self.handling_precautions),
            "ppeRequirements": [p.to_dict() for p in self.ppe_requirements],
            "engineeringControls": list(self.engineering_controls),
            "spillResponse": list(self.spill_response),
        }


@dataclass(frozen=True)
class DataQuality:
    sources: Tuple[DataSource, ...]
    confidence: float
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    warnings: Tuple[str, ...] = ()

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    def to_dict(self):
        return {
            "sources": [s.to_dict() for s in self.sources],
            "confidence": round(self.confidence, 4),
            "lastUpdated": self.last_updated.isoformat(),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class HazardAssessment:
    ingredient_name: str
    normalized_name: str
    ghs: Tuple[HazardClassification, ...]
    physical_properties: PhysicalProperties
    safety_info: SafetyInfo
    data_quality: DataQuality
    niosh: Optional[NioshEntry] = None
    regulatory: Tuple[Any, ...] = ()
    cas_number: Optional[str] = None
    iupac_name: Optional[str] = None
    signal_word: Optional[str] = None
    pictograms: Tuple[str, ...] = ()

    def to_dict(self):
        data = {
            "ingredientName": self.ingredient_name,
            "normalizedName": self.normalized_name,
            "hazardClassifications": {
                "ghs": [c.to_dict() for c in self.ghs],
                "signalWord": self.signal_word,
                "pictograms": list(self.pictograms),
                "niosh": self.niosh.to_dict() if self.niosh else None,
                "regulatory": list(self.regulatory),
            },
            "physicalProperties": self.physical_properties.to_dict(),
            "safetyInfo": self.safety_info.to_dict(),
            "dataQuality": self.data_quality.to_dict(),
        }
        if self.cas_number:
            data["casNumber"] = self.cas_number
        if self.iupac_name:
            data["iupacName"] = self.iupac_name
        return data


@dataclass(frozen=True)
class ChemicalRecord:
    """What a remote chemical database returned for one substance"""

    title: str
    classifications: Tuple[HazardClassification, ...] = ()
    properties: Optional[PhysicalProperties] = None
    cid: Optional[int] = None
    iupac_name: Optional[str] = None
    cas_number: Optional[str] = None
    synonyms: Tuple[str, ...] = ()
    signal_word: Optional[str] = None
    pictograms: Tuple[str, ...] = ()
    data_quality: float = 0.0
    source: DataSource = DataSource("PubChem", "https://pubchem.ncbi.nlm.nih.gov")
    source_key: str = "pubchem"


# Tagged outcome of querying one source

@dataclass(frozen=True)
class Found:
    data: Any

    @property
    def value(self):
        return self.data


@dataclass(frozen=True)
class NotFound:
    @property
    def value(self):
        return None


@dataclass(frozen=True)
class Failed:
    error: BaseException

    @property
    def value(self):
        return None


@dataclass(frozen=True)
class StrategyResult:
    strategy_name: str
    confidence: float
    duration_ms: float
    data: Any = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self):
        return self.error is None
