# hazard_strategies.py
# The four ways of producing a HazardAssessment, from most to least
# informed. Every strategy except the conservative default raises
# NoHazardDataError (or a source error) when it has nothing to return.

import asyncio
import logging
from datetime import datetime, timezone

from hazard_errors import NoHazardDataError
from hazard_fallback import Strategy
from hazard_merger import NIOSH_SOURCE, DataMerger
from hazard_models import (
    DataQuality,
    DataSource,
    Failed,
    Found,
    HazardAssessment,
    HazardClassification,
    NioshEntry,
    NioshTable,
    NotFound,
    PhysicalProperties,
    RiskTier,
)

logger = logging.getLogger(__name__)

INTEGRATED = "integrated_assessment"
PUBCHEM_ONLY = "pubchem_only"
STATIC_NIOSH = "static_niosh"
CONSERVATIVE_DEFAULT = "conservative_default"

STRATEGY_CONFIDENCE = {
    INTEGRATED: 0.9,
    PUBCHEM_ONLY: 0.7,
    STATIC_NIOSH: 0.5,
    CONSERVATIVE_DEFAULT: 0.1,
}

NIOSH_ONLY_CONFIDENCE = 0.8
NIOSH_DATASET_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)
PUBCHEM_ONLY_DEFAULT_CONFIDENCE = 0.7

DEFAULT_CONFIDENCE = 0.1
DEFAULT_SOURCE = DataSource("Conservative Default", "")
DEFAULT_WARNINGS = (
    "No hazard data available - using maximum safety protocols",
    "Manual verification strongly recommended",
    "Consult safety officer before handling",
)
DEFAULT_CLASSIFICATION = HazardClassification(
    code="DEFAULT",
    category="Unknown Hazard",
    description="Assume highest risk - data unavailable",
    source="System Default",
)
DEFAULT_NIOSH = NioshEntry(
    tier=NioshTable.TABLE_1,
    hazard_types=("Unknown - Assume Hazardous",),
    requires_special_handling=True,
)


def _as_outcome(result):
    """Turn a gather() slot into a tagged outcome"""
    if isinstance(result, BaseException):
        return Failed(result)
    return result


class AssessmentStrategies:
    """
    Holds the collaborators every strategy needs. Remote adapters expose
    source_key and an async fetch_hazard_data(name) returning Found/NotFound.
    """

    def __init__(self, niosh_table, remote, cache, merger=None, extra_sources=()):
        self.niosh_table = niosh_table
        self.remote = remote
        self.cache = cache
        self.merger = merger or DataMerger()
        self.safety = self.merger.safety
        self.extra_sources = tuple(extra_sources)

    async def _check_niosh(self, name):
        return self.niosh_table.check(name)

    async def _cached_lookup(self, adapter, name, force_refresh=False):
        async def fetch():
            outcome = await adapter.fetch_hazard_data(name)
            return outcome.data if isinstance(outcome, Found) else None

        record = await self.cache.get_or_fetch(name, fetch, adapter.source_key, force_refresh=force_refresh)
        return NotFound() if record is None else Found(record)

    async def integrated(self, name, force_refresh=False):
        """NIOSH and every remote source queried concurrently, settle-all"""
        adapters = (self.remote, *self.extra_sources)
        results = await asyncio.gather(
            self._check_niosh(name),
            *(self._cached_lookup(adapter, name, force_refresh) for adapter in adapters),
            return_exceptions=True,
        )
        niosh, pubchem, *others = (_as_outcome(r) for r in results)

        outcomes = (niosh, pubchem, *others)
        if not any(isinstance(o, Found) for o in outcomes):
            failures = [o.error for o in outcomes if isinstance(o, Failed)]
            if failures:
                raise NoHazardDataError(f"All sources failed for '{name}': {failures[0]}")
            raise NoHazardDataError(f"No source knows '{name}'")

        return self.merger.merge_hazard_data(name, niosh, pubchem, others, normalized_name=name)

    async def pubchem_only(self, name):
        outcome = await self._cached_lookup(self.remote, name)
        if not isinstance(outcome, Found):
            raise NoHazardDataError(f"PubChem has no data for '{name}'")

        record = outcome.data
        properties = record.properties or PhysicalProperties()
        return HazardAssessment(
            ingredient_name=name,
            normalized_name=name,
            cas_number=record.cas_number,
            iupac_name=record.iupac_name,
            signal_word=record.signal_word,
            pictograms=record.pictograms,
            ghs=tuple(record.classifications),
            niosh=None,
            physical_properties=properties,
            safety_info=self.safety.generate(record.classifications, None, properties.physical_form),
            data_quality=DataQuality(
                sources=(record.source,),
                confidence=record.data_quality or PUBCHEM_ONLY_DEFAULT_CONFIDENCE,
            ),
        )

    async def static_niosh(self, name):
        outcome = self.niosh_table.check(name)
        if not isinstance(outcome, Found):
            raise NoHazardDataError(f"'{name}' is not on the NIOSH list")

        entry = outcome.data
        tier = RiskTier.MAXIMUM if entry.tier is NioshTable.TABLE_1 else RiskTier.ENHANCED
        return HazardAssessment(
            ingredient_name=name,
            normalized_name=name,
            ghs=(),
            niosh=entry,
            physical_properties=PhysicalProperties(),
            safety_info=self.safety.for_tier(tier),
            data_quality=DataQuality(
                sources=(NIOSH_SOURCE,),
                confidence=NIOSH_ONLY_CONFIDENCE,
                last_updated=NIOSH_DATASET_DATE,
                warnings=("Using static NIOSH 2024 data",),
            ),
        )

    def conservative_default(self, name):
        """Maximum-safety assessment built without any source; must not fail"""
        return HazardAssessment(
            ingredient_name=name,
            normalized_name=name,
            ghs=(DEFAULT_CLASSIFICATION,),
            niosh=DEFAULT_NIOSH,
            physical_properties=PhysicalProperties(),
            safety_info=self.safety.for_tier(RiskTier.MAXIMUM),
            data_quality=DataQuality(
                sources=(DEFAULT_SOURCE,),
                confidence=DEFAULT_CONFIDENCE,
                warnings=DEFAULT_WARNINGS,
            ),
        )

    def strategies_for(self, name, force_refresh=False):
        """Ordered strategy list, highest confidence first"""
        return [
            Strategy(INTEGRATED, STRATEGY_CONFIDENCE[INTEGRATED], lambda: self.integrated(name, force_refresh)),
            Strategy(PUBCHEM_ONLY, STRATEGY_CONFIDENCE[PUBCHEM_ONLY], lambda: self.pubchem_only(name)),
            Strategy(STATIC_NIOSH, STRATEGY_CONFIDENCE[STATIC_NIOSH], lambda: self.static_niosh(name)),
            Strategy(
                CONSERVATIVE_DEFAULT,
                STRATEGY_CONFIDENCE[CONSERVATIVE_DEFAULT],
                lambda: self.conservative_default(name),
            ),
        ]
