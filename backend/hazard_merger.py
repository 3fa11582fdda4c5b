# hazard_merger.py
# Fuses static-table and remote-source outcomes into one HazardAssessment.
# Source priority decides the tier; confidence is the mean of fixed
# per-source weights over the sources that actually answered.

import logging

from hazard_errors import NoHazardDataError
from hazard_models import (
    DataQuality,
    DataSource,
    Failed,
    Found,
    HazardAssessment,
    HazardLevel,
    NioshTable,
    PhysicalProperties,
)
from niosh_table import NIOSH_SOURCE_NAME, NIOSH_SOURCE_URL
from safety_info import SafetyInfoGenerator, has_high_hazard

logger = logging.getLogger(__name__)

SOURCE_WEIGHTS = {
    "niosh": 1.0,
    "pubchem": 0.8,
    "rxnorm": 0.7,
    "dailymed": 0.7,
}
UNKNOWN_SOURCE_WEIGHT = 0.5

NIOSH_SOURCE = DataSource(NIOSH_SOURCE_NAME, NIOSH_SOURCE_URL)


def hazard_level_for(assessment):
    """Collapse an assessment to the High / Moderate / Non-Hazardous scale"""
    niosh = assessment.niosh
    if niosh is not None:
        if niosh.tier is NioshTable.TABLE_1:
            return HazardLevel.HIGH
        if niosh.tier is NioshTable.TABLE_2:
            return HazardLevel.MODERATE
    if has_high_hazard(assessment.ghs):
        return HazardLevel.HIGH
    if any(c.code.upper().startswith("H3") for c in assessment.ghs):
        return HazardLevel.MODERATE
    return HazardLevel.NON_HAZARDOUS


class DataMerger:
    def __init__(self, safety=None, weights=None):
        self.safety = safety or SafetyInfoGenerator()
        self.weights = dict(SOURCE_WEIGHTS if weights is None else weights)

    def _weight(self, source_key):
        return self.weights.get(source_key, UNKNOWN_SOURCE_WEIGHT)

    def merge_hazard_data(self, ingredient_name, niosh, pubchem, others=(), normalized_name=None):
        """
        Merge tagged outcomes (Found / NotFound / Failed) into an assessment.
        Raises NoHazardDataError when no outcome is Found.
        """
        sources = []
        weights = []
        warnings = []
        ghs = []

        niosh_entry = None
        if isinstance(niosh, Found):
            niosh_entry = niosh.data
            sources.append(NIOSH_SOURCE)
            weights.append(self._weight("niosh"))
        elif isinstance(niosh, Failed):
            warnings.append(f"NIOSH lookup unavailable: {niosh.error}")

        records = []
        for outcome in (pubchem, *others):
            if isinstance(outcome, Found):
                records.append(outcome.data)
            elif isinstance(outcome, Failed):
                source = getattr(outcome.error, "source", "remote source")
                warnings.append(f"{source} lookup unavailable")
                logger.warning(f"[Merger] Excluding {source} for '{ingredient_name}': {outcome.error}")

        for record in records:
            ghs.extend(record.classifications)
            sources.append(record.source)
            weights.append(self._weight(record.source_key))

        if not weights:
            raise NoHazardDataError(f"No source returned data for '{ingredient_name}'")

        properties = next((r.properties for r in records if r.properties is not None), None)
        if properties is None:
            properties = PhysicalProperties()

        cas_number = next((r.cas_number for r in records if r.cas_number), None)
        iupac_name = next((r.iupac_name for r in records if r.iupac_name), None)
        signal_words = {r.signal_word for r in records if r.signal_word}
        signal_word = "Danger" if "Danger" in signal_words else next(iter(signal_words), None)
        pictograms = tuple(sorted({p for r in records for p in r.pictograms}))
        safety = self.safety.generate(ghs, niosh_entry, properties.physical_form)
        confidence = sum(weights) / len(weights)

        logger.info(
            f"[Merger] '{ingredient_name}': {len(sources)} sources, {len(ghs)} GHS entries, "
            f"tier {safety.tier.value}, confidence {confidence:.2f}"
        )

        return HazardAssessment(
            ingredient_name=ingredient_name,
            normalized_name=normalized_name or ingredient_name,
            cas_number=cas_number,
            iupac_name=iupac_name,
            signal_word=signal_word,
            pictograms=pictograms,
            ghs=tuple(ghs),
            niosh=niosh_entry,
            physical_properties=properties,
            safety_info=safety,
            data_quality=DataQuality(
                sources=tuple(sources),
                confidence=confidence,
                warnings=tuple(warnings),
            ),
        )
