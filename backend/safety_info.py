# safety_info.py
# Maps a resolved risk tier to fixed handling, PPE, engineering and
# spill-response lists. Each tier extends the one below it.

import logging

from hazard_models import NioshTable, PhysicalForm, PPERequirement, RiskTier, SafetyInfo

logger = logging.getLogger(__name__)

HIGH_HAZARD_KEYWORDS = ("fatal", "toxic", "cancer", "reproductive")

_BASIC_HANDLING = (
    "Wash hands thoroughly after handling",
    "Avoid contact with eyes and skin",
    "Use in well-ventilated area",
)
_ENHANCED_HANDLING = _BASIC_HANDLING + (
    "Minimize dust generation",
    "Use dedicated equipment",
    "Decontaminate work surfaces after use",
)
_MAXIMUM_HANDLING = _ENHANCED_HANDLING + (
    "Use closed-system drug transfer devices",
    "Double-bag all waste",
    "Shower and change clothes after handling",
    "Monitor for exposure symptoms",
)

_BASIC_PPE = (
    PPERequirement("gloves", "Nitrile gloves"),
    PPERequirement("eyewear", "Safety glasses"),
)
_ENHANCED_PPE = (
    PPERequirement("gloves", "Double nitrile gloves"),
    PPERequirement("eyewear", "Safety goggles"),
    PPERequirement("gown", "Lab coat or disposable gown"),
    PPERequirement("respirator", "N95 respirator for powder handling"),
)
_MAXIMUM_PPE = (
    PPERequirement("gloves", "Double chemotherapy-tested nitrile gloves"),
    PPERequirement("eyewear", "Safety goggles with face shield"),
    PPERequirement("gown", "Disposable chemo gown with closed front"),
    PPERequirement("respirator", "N95 or P100 respirator"),
    PPERequirement("shoe covers", "Disposable shoe covers"),
    PPERequirement("hair cover", "Disposable hair cover"),
)

_BASIC_ENGINEERING = (
    "Good general ventilation",
    "Eye wash station available",
)
_ENHANCED_ENGINEERING = _BASIC_ENGINEERING + (
    "Fume hood or powder containment hood",
    "Dedicated work area",
    "Spill kit readily available",
)
_MAXIMUM_ENGINEERING = _ENHANCED_ENGINEERING + (
    "Class II Type B2 BSC or containment isolator",
    "Negative pressure room",
    "HEPA-filtered exhaust",
    "Dedicated HVAC system",
    "Continuous air monitoring",
)

_BASIC_SPILL = (
    "Absorb spill with appropriate material",
    "Clean area with appropriate cleaner",
    "Dispose of waste properly",
)
_ENHANCED_SPILL = _BASIC_SPILL + (
    "Alert others in area",
    "Don appropriate PPE before cleanup",
    "Decontaminate area after cleanup",
)
_MAXIMUM_SPILL = _ENHANCED_SPILL + (
    "Evacuate immediate area",
    "Post warning signs",
    "Don maximum PPE including respirator",
    "Use certified spill kit",
    "Double-bag all contaminated materials",
    "Decontaminate area multiple times",
    "Document incident and notify safety officer",
)

TIER_TABLE = {
    RiskTier.BASIC: SafetyInfo(_BASIC_HANDLING, _BASIC_PPE, _BASIC_ENGINEERING, _BASIC_SPILL, RiskTier.BASIC),
    RiskTier.ENHANCED: SafetyInfo(
        _ENHANCED_HANDLING, _ENHANCED_PPE, _ENHANCED_ENGINEERING, _ENHANCED_SPILL, RiskTier.ENHANCED
    ),
    RiskTier.MAXIMUM: SafetyInfo(
        _MAXIMUM_HANDLING, _MAXIMUM_PPE, _MAXIMUM_ENGINEERING, _MAXIMUM_SPILL, RiskTier.MAXIMUM
    ),
}


def has_high_hazard(ghs):
    return any(
        keyword in (classification.description or "").lower()
        for classification in ghs
        for keyword in HIGH_HAZARD_KEYWORDS
    )


def _raise_to(current, floor):
    return floor if floor.rank > current.rank else current


class SafetyInfoGenerator:
    """Table-driven safety guidance keyed by RiskTier"""

    def __init__(self, tiers=None):
        self._tiers = dict(TIER_TABLE if tiers is None else tiers)

    def for_tier(self, tier):
        return self._tiers[RiskTier(tier)]

    def resolve_tier(self, ghs, niosh, physical_form):
        """
        Decision ladder; each rung can only raise the tier:
        NIOSH Table 1 -> maximum, Table 2 -> enhanced,
        high-hazard GHS wording -> maximum, powder -> at least enhanced.
        """
        tier = RiskTier.BASIC
        if niosh is not None:
            if niosh.tier is NioshTable.TABLE_1:
                tier = RiskTier.MAXIMUM
            elif niosh.tier is NioshTable.TABLE_2:
                tier = RiskTier.ENHANCED

        if has_high_hazard(ghs):
            tier = _raise_to(tier, RiskTier.MAXIMUM)

        if PhysicalForm(physical_form) is PhysicalForm.POWDER:
            tier = _raise_to(tier, RiskTier.ENHANCED)

        return tier

    def generate(self, ghs, niosh=None, physical_form=PhysicalForm.POWDER):
        tier = self.resolve_tier(ghs, niosh, physical_form)
        logger.debug(f"[Safety] Resolved tier {tier.value}")
        return self.for_tier(tier)
