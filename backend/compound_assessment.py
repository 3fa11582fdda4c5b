# compound_assessment.py
# Full compound workflow: look up each ingredient, derive classifier facts,
# assign the NAPRA level and attach PPE and engineering-control guidance.

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Tuple

from hazard_models import HazardLevel, PhysicalForm
from risk_classifier import (
    RESPIRATORY_KEYWORDS,
    ActiveIngredient,
    CompoundFacts,
    PreparationDetails,
    RiskLevel,
    SafetyChecks,
    WorkflowConsiderations,
    classify,
)

logger = logging.getLogger(__name__)

NARCOTIC_KEYWORDS = (
    "ketamine", "codeine", "morphine", "fentanyl",
    "hydrocodone", "oxycodone", "hydromorphone", "methadone",
    "buprenorphine", "tramadol", "opioid", "diazepam",
    "lorazepam", "alprazolam", "clonazepam", "midazolam",
)
NOT_NARCOTIC = ("baclofen",)

PPE_BY_HAZARD = {
    HazardLevel.HIGH: {
        "gloves": "Chemotherapy",
        "gown": "Disposable Hazardous Gown",
        "mask": "N95",
        "eyeProtection": True,
        "otherPPE": ["Head covers", "Shoe covers"],
    },
    HazardLevel.MODERATE: {
        "gloves": "Regular",
        "gown": "Designated Compounding Jacket",
        "mask": "Surgical mask",
        "eyeProtection": True,
        "otherPPE": ["Hair covers"],
    },
    HazardLevel.NON_HAZARDOUS: {
        "gloves": "Regular",
        "gown": "Designated Compounding Jacket",
        "mask": "Surgical mask",
        "eyeProtection": False,
        "otherPPE": [],
    },
}

_HAZARD_RANK = {HazardLevel.NON_HAZARDOUS: 0, HazardLevel.MODERATE: 1, HazardLevel.HIGH: 2}


def is_narcotic(name):
    lowered = (name or "").strip().lower()
    if lowered in NOT_NARCOTIC:
        return False
    return any(keyword in lowered for keyword in NARCOTIC_KEYWORDS)


def worst_hazard_level(levels):
    return max(levels, key=_HAZARD_RANK.__getitem__, default=HazardLevel.NON_HAZARDOUS)


def ppe_recommendations(hazard_level):
    recommendation = PPE_BY_HAZARD[HazardLevel(hazard_level)]
    return {**recommendation, "otherPPE": list(recommendation["otherPPE"])}


def engineering_controls(level, any_powder):
    level = RiskLevel(level)
    if level is RiskLevel.C:
        return [
            "Containment Primary Engineering Control (C-PEC)",
            "Dedicated room with negative pressure",
            "HEPA filtration",
            "External ventilation",
        ]
    if level is RiskLevel.B:
        controls = ["Powder containment hood"] if any_powder else []
        return controls + ["Segregated compounding area", "Local exhaust ventilation"]
    controls = ["Non-segregated compounding area"]
    if any_powder:
        controls.append("General ventilation")
    return controls


@dataclass(frozen=True)
class IngredientAssessment:
    facts: ActiveIngredient
    assessment: object
    hazard_level: HazardLevel
    is_powder: bool
    is_narcotic: bool

    def to_dict(self):
        return {
            **self.facts.to_dict(),
            "hazardLevel": self.hazard_level.value,
            "isPowder": self.is_powder,
            "isNarcotic": self.is_narcotic,
            "assessment": self.assessment.to_dict(),
        }


@dataclass(frozen=True)
class CompoundAssessment:
    compound_name: str
    din: str
    ingredients: Tuple[IngredientAssessment, ...]
    facts: CompoundFacts
    risk_level: RiskLevel
    rationale: str
    ppe: dict
    engineering_controls: List[str]
    warnings: Tuple[str, ...] = ()
    timestamp: float = field(default_factory=time.time)

    @property
    def narcotic_ingredients(self):
        return [i.facts.name for i in self.ingredients if i.is_narcotic]

    def to_dict(self):
        return {
            "compoundName": self.compound_name,
            "din": self.din,
            "activeIngredients": [i.to_dict() for i in self.ingredients],
            "physicalCharacteristics": list(self.facts.physical_characteristics),
            "riskLevel": self.risk_level.value,
            "riskLevelLabel": self.risk_level.label,
            "rationale": self.rationale,
            "ppe": self.ppe,
            "engineeringControls": list(self.engineering_controls),
            "narcoticIngredients": self.narcotic_ingredients,
            "warnings": list(self.warnings),
            "timestamp": self.timestamp,
        }


class CompoundAssessor:
    def __init__(self, orchestrator):
        self.orchestrator = orchestrator

    async def assess_compound(self, compound_name, ingredient_names, physical_characteristics=(),
                              din="", equipment_required=(), force_refresh=False):
        logger.info(f"[Compound] Assessing '{compound_name}' with {len(ingredient_names)} ingredients")

        assessments = await asyncio.gather(*(
            self.orchestrator.get_comprehensive_hazard_data(name, force_refresh=force_refresh)
            for name in ingredient_names
        ))

        ingredients = []
        for name, assessment in zip(ingredient_names, assessments):
            facts = ActiveIngredient.from_assessment(assessment)
            ingredients.append(IngredientAssessment(
                facts=facts,
                assessment=assessment,
                hazard_level=facts.niosh_status.hazard_level,
                is_powder=assessment.physical_properties.physical_form is PhysicalForm.POWDER,
                is_narcotic=is_narcotic(name),
            ))

        hazardous = any(i.hazard_level is not HazardLevel.NON_HAZARDOUS for i in ingredients)
        ventilation = any(
            i.is_powder or any(k in i.facts.sds_description.lower() for k in RESPIRATORY_KEYWORDS)
            for i in ingredients
        )

        facts = CompoundFacts(
            compound_name=compound_name,
            din=din,
            active_ingredients=tuple(i.facts for i in ingredients),
            preparation_details=PreparationDetails(concentration_risk=hazardous),
            physical_characteristics=tuple(physical_characteristics),
            equipment_required=tuple(equipment_required),
            safety_checks=SafetyChecks(special_education_required=hazardous, ventilation_required=ventilation),
            workflow=WorkflowConsiderations(cross_contamination_risk=hazardous),
        )

        level, rationale = classify(facts)
        worst = worst_hazard_level(i.hazard_level for i in ingredients)

        warnings = []
        for ingredient in ingredients:
            warnings.extend(ingredient.assessment.data_quality.warnings)
        narcotics = [i.facts.name for i in ingredients if i.is_narcotic]
        if narcotics:
            warnings.append(f"Controlled substances present: {', '.join(narcotics)}")

        return CompoundAssessment(
            compound_name=compound_name,
            din=din,
            ingredients=tuple(ingredients),
            facts=facts,
            risk_level=level,
            rationale=rationale,
            ppe=ppe_recommendations(worst),
            engineering_controls=engineering_controls(level, any(i.is_powder for i in ingredients)),
            warnings=tuple(dict.fromkeys(warnings)),
        )
