# hazard_orchestrator.py
# Entry point for single-ingredient hazard lookups

import dataclasses
import logging
import re

from hazard_cache import CacheLayer
from hazard_config import Settings
from hazard_fallback import FallbackOrchestrator
from hazard_merger import DataMerger
from hazard_strategies import CONSERVATIVE_DEFAULT, AssessmentStrategies
from niosh_table import NioshHazardTable

logger = logging.getLogger(__name__)

ASSESSMENT_NAMESPACE = "assessment"


def normalize_ingredient_name(name):
    """Lowercase, trim, drop punctuation other than hyphens, collapse whitespace"""
    text = (name or "").lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    return re.sub(r"\s+", " ", text).strip()


class DataOrchestrator:
    def __init__(self, niosh_table, remote, cache=None, fallback=None, merger=None, extra_sources=()):
        self.cache = cache or CacheLayer()
        self.fallback = fallback or FallbackOrchestrator()
        self.strategies = AssessmentStrategies(
            niosh_table=niosh_table,
            remote=remote,
            cache=self.cache,
            merger=merger or DataMerger(),
            extra_sources=extra_sources,
        )

    @classmethod
    def from_settings(cls, settings=None, remote=None):
        """Wire the production collaborators from Settings"""
        from pubchem_client import PubChemClient

        settings = settings or Settings.from_env()
        return cls(
            niosh_table=NioshHazardTable(),
            remote=remote or PubChemClient(settings),
            cache=CacheLayer(settings.cache_policies(), default_max_items=settings.cache_max_items),
            fallback=FallbackOrchestrator(default_timeout=settings.strategy_timeout),
        )

    normalize = staticmethod(normalize_ingredient_name)

    async def get_comprehensive_hazard_data(self, ingredient_name, force_refresh=False):
        """
        Always returns a HazardAssessment. Data problems end in the
        conservative default; only ConfigurationError propagates.
        """
        normalized = self.normalize(ingredient_name)

        display_name = (ingredient_name or "").strip()

        if not force_refresh:
            cached = self.cache.get(normalized, ASSESSMENT_NAMESPACE)
            if cached is not None:
                logger.debug(f"[Orchestrator] Assessment cache hit for '{normalized}'")
                return dataclasses.replace(cached, ingredient_name=display_name)

        label = f"Hazard assessment for {ingredient_name}"
        result = await self.fallback.execute_with_fallback(
            self.strategies.strategies_for(normalized, force_refresh), label
        )

        assessment = result.data
        if result.warning:
            quality = dataclasses.replace(
                assessment.data_quality,
                warnings=assessment.data_quality.warnings + (result.warning,),
            )
            assessment = dataclasses.replace(assessment, data_quality=quality)

        if result.strategy_name != CONSERVATIVE_DEFAULT:
            self.cache.set(normalized, assessment, ASSESSMENT_NAMESPACE)

        logger.info(
            f"[Orchestrator] '{normalized}' resolved by {result.strategy_name} "
            f"(data confidence {assessment.data_quality.confidence:.2f})"
        )
        return dataclasses.replace(assessment, ingredient_name=display_name)

    def get_stats(self):
        return {
            "operationStats": self.fallback.get_operation_stats(),
            "cacheStats": self.cache.stats(),
        }
