# hazard_config.py
# Environment-driven settings for the hazard engine and its HTTP surface

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60

# Namespace -> default TTL in seconds
DEFAULT_TTLS = {
    "pubchem": 7 * DAY,
    "rxnorm": 30 * DAY,
    "dailymed": DAY,
    "assessment": 60 * 60,
    "niosh": 365 * DAY,
}


def _getenv_float(name, default):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"[Config] Ignoring non-numeric {name}={value!r}, using {default}")
        return default


def _getenv_int(name, default):
    return int(_getenv_float(name, default))


@dataclass
class NamespacePolicy:
    ttl_seconds: float
    max_items: int


@dataclass
class Settings:
    pubchem_rest_url: str = "https://pubchem.ncbi.nlm.nih.gov/rest/pug"
    pubchem_view_url: str = "https://pubchem.ncbi.nlm.nih.gov/rest/pug_view"
    http_timeout: float = 10.0
    remote_lookup_timeout: float = 15.0
    strategy_timeout: float = 30.0
    cache_max_items: int = 1000
    cache_ttls: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TTLS))
    circuit_failure_threshold: int = 5
    circuit_reset_seconds: float = 60.0
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    port: int = 5000

    @classmethod
    def from_env(cls):
        """Build settings from environment variables (and .env, if present)"""
        defaults = cls()
        ttls = {
            namespace: _getenv_float(f"CACHE_TTL_{namespace.upper()}", ttl)
            for namespace, ttl in DEFAULT_TTLS.items()
        }
        origins = os.getenv("CORS_ORIGINS", "")
        return cls(
            pubchem_rest_url=os.getenv("PUBCHEM_REST_URL", defaults.pubchem_rest_url).rstrip("/"),
            pubchem_view_url=os.getenv("PUBCHEM_VIEW_URL", defaults.pubchem_view_url).rstrip("/"),
            http_timeout=_getenv_float("PUBCHEM_HTTP_TIMEOUT", defaults.http_timeout),
            remote_lookup_timeout=_getenv_float("REMOTE_LOOKUP_TIMEOUT", defaults.remote_lookup_timeout),
            strategy_timeout=_getenv_float("STRATEGY_TIMEOUT", defaults.strategy_timeout),
            cache_max_items=_getenv_int("CACHE_MAX_ITEMS", defaults.cache_max_items),
            cache_ttls=ttls,
            circuit_failure_threshold=_getenv_int("CIRCUIT_FAILURE_THRESHOLD", defaults.circuit_failure_threshold),
            circuit_reset_seconds=_getenv_float("CIRCUIT_RESET_SECONDS", defaults.circuit_reset_seconds),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or defaults.cors_origins,
            port=_getenv_int("PORT", defaults.port),
        )

    def cache_policies(self):
        """Per-namespace cache policies derived from the TTL table"""
        return {
            namespace: NamespacePolicy(ttl_seconds=ttl, max_items=self.cache_max_items)
            for namespace, ttl in self.cache_ttls.items()
        }
