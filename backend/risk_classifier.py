# risk_classifier.py
# NAPRA risk level (A / B / C) for a compound, from per-ingredient hazard
# facts plus preparation and workflow facts. Pure and deterministic.

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from hazard_merger import hazard_level_for
from hazard_models import HazardLevel, NioshTable

logger = logging.getLogger(__name__)

REPRODUCTIVE_KEYWORDS = ("reproductive", "fertility", "teratogenic", "embryo", "fetus")
RESPIRATORY_KEYWORDS = ("respiratory", "inhalation", "inhale", "airborne")
COMPLEXITY_THRESHOLD = 2


class RiskLevel(str, Enum):
    A = "A"
    B = "B"
    C = "C"

    @property
    def label(self):
        return f"Level {self.value}"


def _parse_table(value):
    """Accepts 'Table 1', '1', 1, NioshTable or None"""
    if value is None or value == "":
        return None
    if isinstance(value, NioshTable):
        return None if value is NioshTable.NONE else value
    text = str(value).strip().lower().replace("table", "").strip()
    if text == "1":
        return NioshTable.TABLE_1
    if text == "2":
        return NioshTable.TABLE_2
    return None


def _parse_hazard_level(value):
    if isinstance(value, HazardLevel):
        return value
    for level in HazardLevel:
        if str(value or "").strip().lower() == level.value.lower():
            return level
    return HazardLevel.NON_HAZARDOUS


def _mentions(text, keywords):
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in keywords)


@dataclass(frozen=True)
class NioshStatus:
    is_on_niosh_list: bool = False
    table: Optional[NioshTable] = None
    hazard_level: HazardLevel = HazardLevel.NON_HAZARDOUS
    hazard_types: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        table = _parse_table(data.get("table"))
        hazard_types = data.get("hazardType") or data.get("hazardTypes") or ()
        if isinstance(hazard_types, str):
            hazard_types = (hazard_types,)
        return cls(
            is_on_niosh_list=bool(data.get("isOnNioshList", table is not None)),
            table=table,
            hazard_level=_parse_hazard_level(data.get("hazardLevel")),
            hazard_types=tuple(hazard_types),
        )

    def to_dict(self):
        return {
            "isOnNioshList": self.is_on_niosh_list,
            "table": self.table.value if self.table else None,
            "hazardLevel": self.hazard_level.value,
            "hazardType": list(self.hazard_types),
        }


@dataclass(frozen=True)
class ActiveIngredient:
    name: str
    manufacturer: str = ""
    niosh_status: NioshStatus = field(default_factory=NioshStatus)
    reproductive_toxicity: bool = False
    whmis_hazards: bool = False
    sds_description: str = ""
    monograph_warnings: str = ""

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=data.get("name", ""),
            manufacturer=data.get("manufacturer", ""),
            niosh_status=NioshStatus.from_dict(data.get("nioshStatus")),
            reproductive_toxicity=bool(data.get("reproductiveToxicity", False)),
            whmis_hazards=bool(data.get("whmisHazards", False)),
            sds_description=data.get("sdsDescription", "") or "",
            monograph_warnings=data.get("monographWarnings", "") or "",
        )

    @classmethod
    def from_assessment(cls, assessment, manufacturer=""):
        """Classifier facts for one ingredient derived from its HazardAssessment"""
        entry = assessment.niosh
        listed = entry is not None and entry.tier is not NioshTable.NONE
        hazard_types = entry.hazard_types if entry is not None else ()
        descriptions = [c.description for c in assessment.ghs if c.description]
        reproductive = (entry is not None and entry.has_reproductive_toxicity) or any(
            _mentions(text, REPRODUCTIVE_KEYWORDS) for text in descriptions
        )
        return cls(
            name=assessment.ingredient_name,
            manufacturer=manufacturer,
            niosh_status=NioshStatus(
                is_on_niosh_list=listed,
                table=entry.tier if listed else None,
                hazard_level=hazard_level_for(assessment),
                hazard_types=tuple(hazard_types),
            ),
            reproductive_toxicity=reproductive,
            whmis_hazards=any(c.code.upper().startswith("H3") for c in assessment.ghs),
            sds_description="; ".join(descriptions),
        )

    def to_dict(self):
        return {
            "name": self.name,
            "manufacturer": self.manufacturer,
            "nioshStatus": self.niosh_status.to_dict(),
            "reproductiveToxicity": self.reproductive_toxicity,
            "whmisHazards": self.whmis_hazards,
            "sdsDescription": self.sds_description,
            "monographWarnings": self.monograph_warnings,
        }


@dataclass(frozen=True)
class PreparationDetails:
    frequency: str = "Less"
    quantity: str = ""
    concentration_risk: bool = False

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            frequency=data.get("frequency", "Less"),
            quantity=str(data.get("quantity", "")),
            concentration_risk=bool(data.get("concentrationRisk", False)),
        )

    def to_dict(self):
        return {"frequency": self.frequency, "quantity": self.quantity, "concentrationRisk": self.concentration_risk}


@dataclass(frozen=True)
class SafetyChecks:
    special_education_required: bool = False
    special_education_description: str = ""
    verification_required: bool = False
    equipment_available: bool = True
    ventilation_required: bool = False

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        education = data.get("specialEducation") or {}
        return cls(
            special_education_required=bool(education.get("required", False)),
            special_education_description=education.get("description", "") or "",
            verification_required=bool(data.get("verificationRequired", False)),
            equipment_available=bool(data.get("equipmentAvailable", True)),
            ventilation_required=bool(data.get("ventilationRequired", False)),
        )

    def to_dict(self):
        return {
            "specialEducation": {
                "required": self.special_education_required,
                "description": self.special_education_description,
            },
            "verificationRequired": self.verification_required,
            "equipmentAvailable": self.equipment_available,
            "ventilationRequired": self.ventilation_required,
        }


@dataclass(frozen=True)
class WorkflowConsiderations:
    uninterrupted_workflow: bool = True
    uninterrupted_measures: str = ""
    microbial_contamination_risk: bool = False
    cross_contamination_risk: bool = False

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        workflow = data.get("uninterruptedWorkflow") or {}
        return cls(
            uninterrupted_workflow=bool(workflow.get("status", True)),
            uninterrupted_measures=workflow.get("measures", "") or "",
            microbial_contamination_risk=bool(data.get("microbialContaminationRisk", False)),
            cross_contamination_risk=bool(data.get("crossContaminationRisk", False)),
        )

    def to_dict(self):
        return {
            "uninterruptedWorkflow": {"status": self.uninterrupted_workflow, "measures": self.uninterrupted_measures},
            "microbialContaminationRisk": self.microbial_contamination_risk,
            "crossContaminationRisk": self.cross_contamination_risk,
        }


@dataclass(frozen=True)
class CompoundFacts:
    """Everything the classifier reads about one compound"""

    compound_name: str
    active_ingredients: Tuple[ActiveIngredient, ...]
    din: str = ""
    preparation_details: PreparationDetails = field(default_factory=PreparationDetails)
    physical_characteristics: Tuple[str, ...] = ()
    equipment_required: Tuple[str, ...] = ()
    safety_checks: SafetyChecks = field(default_factory=SafetyChecks)
    workflow: WorkflowConsiderations = field(default_factory=WorkflowConsiderations)
    exposure_risks: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data):
        """Build from the camelCase compound record used by the UI"""
        return cls(
            compound_name=data.get("compoundName", ""),
            din=str(data.get("din", "") or ""),
            active_ingredients=tuple(ActiveIngredient.from_dict(i) for i in data.get("activeIngredients", [])),
            preparation_details=PreparationDetails.from_dict(data.get("preparationDetails")),
            physical_characteristics=tuple(data.get("physicalCharacteristics", [])),
            equipment_required=tuple(data.get("equipmentRequired", [])),
            safety_checks=SafetyChecks.from_dict(data.get("safetyChecks")),
            workflow=WorkflowConsiderations.from_dict(data.get("workflowConsiderations")),
            exposure_risks=tuple(data.get("exposureRisks", [])),
        )

    def to_dict(self):
        return {
            "compoundName": self.compound_name,
            "din": self.din,
            "activeIngredients": [i.to_dict() for i in self.active_ingredients],
            "preparationDetails": self.preparation_details.to_dict(),
            "physicalCharacteristics": list(self.physical_characteristics),
            "equipmentRequired": list(self.equipment_required),
            "safetyChecks": self.safety_checks.to_dict(),
            "workflowConsiderations": self.workflow.to_dict(),
            "exposureRisks": list(self.exposure_risks),
        }


@dataclass(frozen=True)
class Trigger:
    level: RiskLevel
    reason: str


def complexity_factors(facts):
    """Names of the workflow complexity factors present, one point each"""
    factors = []
    if facts.safety_checks.ventilation_required:
        factors.append("ventilation required")
    if facts.workflow.microbial_contamination_risk:
        factors.append("microbial contamination risk")
    if facts.workflow.cross_contamination_risk:
        factors.append("cross-contamination risk")
    if facts.safety_checks.special_education_required:
        factors.append("special education required")
    if any("powder" in c.lower() for c in facts.physical_characteristics):
        factors.append("powder physical characteristic")
    return factors


def _collect_triggers(facts):
    """Every fact that pushes the compound above Level A, in rule order"""
    triggers = []

    for ingredient in facts.active_ingredients:
        status = ingredient.niosh_status
        if status.table is NioshTable.TABLE_1:
            detail = f" ({', '.join(status.hazard_types)})" if status.hazard_types else ""
            triggers.append(Trigger(
                RiskLevel.C, f"{ingredient.name} is classified as a NIOSH Table 1 hazardous drug{detail}"
            ))
        elif status.hazard_level is HazardLevel.HIGH:
            triggers.append(Trigger(RiskLevel.C, f"{ingredient.name} has a High Hazard classification"))

    for ingredient in facts.active_ingredients:
        status = ingredient.niosh_status
        if ingredient.whmis_hazards:
            triggers.append(Trigger(RiskLevel.B, f"{ingredient.name} has WHMIS health hazards"))
        if ingredient.reproductive_toxicity:
            triggers.append(Trigger(RiskLevel.B, f"{ingredient.name} has reproductive toxicity"))
        if _mentions(ingredient.sds_description, RESPIRATORY_KEYWORDS):
            triggers.append(Trigger(RiskLevel.B, f"{ingredient.name} safety data describes a respiratory risk"))
        if status.table is NioshTable.TABLE_2:
            triggers.append(Trigger(RiskLevel.B, f"{ingredient.name} is classified as a NIOSH Table 2 hazardous drug"))
        if status.hazard_level is HazardLevel.MODERATE:
            triggers.append(Trigger(RiskLevel.B, f"{ingredient.name} has a Moderate Hazard classification"))

    factors = complexity_factors(facts)
    if len(factors) >= COMPLEXITY_THRESHOLD:
        triggers.append(Trigger(
            RiskLevel.B, f"the preparation has {len(factors)} complexity factors ({', '.join(factors)})"
        ))

    if facts.equipment_required and facts.safety_checks.special_education_required:
        triggers.append(Trigger(RiskLevel.B, "specialized equipment and specialized knowledge are both required"))

    return triggers


def determine_risk_level(facts):
    """First matching rule wins: C, then B, otherwise A"""
    levels = {trigger.level for trigger in _collect_triggers(facts)}
    if RiskLevel.C in levels:
        return RiskLevel.C
    if RiskLevel.B in levels:
        return RiskLevel.B
    return RiskLevel.A


def generate_rationale(facts, level):
    """Template rationale citing only the facts behind the given level"""
    level = RiskLevel(level)
    reasons = [t.reason for t in _collect_triggers(facts) if t.level is level]
    names = ", ".join(i.name for i in facts.active_ingredients) or "no listed ingredients"

    if level is not RiskLevel.A and not reasons:
        return f"{level.label} assigned without a qualifying hazard or workflow fact."
    if level is RiskLevel.C:
        return (
            f"Level C assigned because {'; '.join(reasons)}. "
            "Hazardous drug handling requires a containment primary engineering control "
            "in a dedicated negative-pressure room."
        )
    if level is RiskLevel.B:
        return (
            f"Level B assigned because {'; '.join(reasons)}. "
            "Compounding requires a segregated area with additional safety measures."
        )
    return (
        f"Level A assigned: {names} showed no NIOSH listing, hazard classification "
        "or workflow complexity requiring segregation. Simple non-sterile compounding applies."
    )


def classify(facts):
    level = determine_risk_level(facts)
    rationale = generate_rationale(facts, level)
    logger.info(f"[Risk] {facts.compound_name or 'compound'} classified as {level.label}")
    return level, rationale
