# pubchem_client.py
# Remote chemical-properties adapter backed by PubChem (pubchempy for the
# name search, PUG-REST / PUG-View over requests for the rest).

import asyncio
import logging
import re

import pubchempy as pcp
import requests
from rdkit import Chem
from rdkit.Chem import Descriptors

from hazard_config import Settings
from hazard_errors import SourceUnavailableError
from hazard_fallback import CircuitBreaker
from hazard_models import (
    ChemicalRecord,
    DataSource,
    Found,
    HazardClassification,
    NotFound,
    PhysicalForm,
    PhysicalProperties,
)

logger = logging.getLogger(__name__)

SOURCE_KEY = "pubchem"
PUBCHEM_SOURCE = DataSource("PubChem", "https://pubchem.ncbi.nlm.nih.gov")
GHS_SOURCE_LABEL = "PubChem GHS"

PICTOGRAM_KEYWORDS = {
    "explosive": "GHS01",
    "flammable": "GHS02",
    "oxidizing": "GHS03",
    "compressed": "GHS04",
    "corrosive": "GHS05",
    "toxic": "GHS06",
    "harmful": "GHS07",
    "health hazard": "GHS08",
    "environmental": "GHS09",
}

DANGER_KEYWORDS = ("fatal", "toxic", "cancer", "mutagenic", "reproductive")

# "H301 (97.4%): Toxic if swallowed [Danger Acute toxicity, oral]"
HAZARD_STATEMENT_RE = re.compile(
    r"^(?P<code>H\d{3}[A-Za-z]*(?:\+H\d{3}[A-Za-z]*)*)"
    r"\s*(?:\([^)]*\))?\s*:?\s*"
    r"(?P<text>[^\[]*?)\s*"
    r"(?:\[(?P<category>[^\]]*)\])?\s*$"
)
CAS_RE = re.compile(r"^\d{2,7}-\d{2}-\d$")
GAS_RE = re.compile(r"\b(gas|gases|vapou?r)\b")


def sanitize_name(name):
    """Strip characters PubChem name search cannot take and cap the length"""
    cleaned = re.sub(r"[^\w\s\-()]", "", (name or "").strip())
    return cleaned[:100].strip()


def infer_physical_form(description):
    desc = (description or "").lower()
    if "powder" in desc or "crystalline" in desc:
        return PhysicalForm.POWDER
    if "liquid" in desc or "solution" in desc:
        return PhysicalForm.LIQUID
    if GAS_RE.search(desc):
        return PhysicalForm.GAS
    # Pharmaceutical actives are assumed to be handled as powders
    return PhysicalForm.POWDER


def infer_solubility(xlogp):
    if xlogp is None:
        return "unknown"
    if xlogp < -1:
        return "highly water soluble"
    if xlogp < 1:
        return "water soluble"
    if xlogp < 3:
        return "moderately soluble"
    return "poorly water soluble"


def map_pictograms(classifications):
    found = []
    for classification in classifications:
        desc = classification.description.lower()
        for keyword, pictogram in PICTOGRAM_KEYWORDS.items():
            if keyword in desc and pictogram not in found:
                found.append(pictogram)
    return tuple(sorted(found))


def determine_signal_word(classifications):
    for classification in classifications:
        desc = classification.description.lower()
        if any(keyword in desc for keyword in DANGER_KEYWORDS):
            return "Danger"
    return "Warning"


def parse_hazard_statement(statement):
    """Parse one PUG-View GHS hazard statement into a HazardClassification"""
    match = HAZARD_STATEMENT_RE.match(statement.strip())
    if not match:
        return None
    category = (match.group("category") or "").strip()
    for signal in ("Danger ", "Warning "):
        if category.startswith(signal):
            category = category[len(signal):]
            break
    description = match.group("text").strip() or category
    return HazardClassification(
        code=match.group("code"),
        category=category or "Unclassified",
        description=description,
        source=GHS_SOURCE_LABEL,
    )


def _iter_sections(sections):
    for section in sections or []:
        yield section
        yield from _iter_sections(section.get("Section"))


def extract_hazard_statements(pug_view):
    """Pull the GHS hazard statement strings out of a PUG-View record"""
    record = (pug_view or {}).get("Record", {})
    statements = []
    for section in _iter_sections(record.get("Section")):
        for info in section.get("Information", []):
            if info.get("Name") != "GHS Hazard Statements":
                continue
            for item in info.get("Value", {}).get("StringWithMarkup", []):
                text = item.get("String", "").strip()
                if text and text not in statements:
                    statements.append(text)
    return statements


def _to_float(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def molecular_weight_from_smiles(smiles):
    if not smiles:
        return None
    mol = Chem.MolFromSmiles(smiles)
    if mol is None:
        logger.warning(f"[PubChem] RDKit could not parse SMILES {smiles!r}")
        return None
    return round(Descriptors.MolWt(mol), 2)


class PubChemClient:
    """
    Blocking PubChem calls live in the get_* methods; fetch_hazard_data is
    the async entry point used by the assessment strategies.
    """

    source_key = SOURCE_KEY
    source = PUBCHEM_SOURCE

    def __init__(self, settings=None, session=None, breaker=None):
        self.settings = settings or Settings()
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/json", "User-Agent": "compounding-hazard-engine/1.0"}
        self.breaker = breaker or CircuitBreaker(
            SOURCE_KEY,
            failure_threshold=self.settings.circuit_failure_threshold,
            reset_seconds=self.settings.circuit_reset_seconds,
        )

    def _get_json(self, url):
        """GET a PubChem JSON document; 404 means no data, other errors raise"""
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.settings.http_timeout)
        except requests.RequestException as e:
            raise SourceUnavailableError(SOURCE_KEY, f"network error: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code == 503:
            raise SourceUnavailableError(SOURCE_KEY, "service busy or rate limited (503)")
        if response.status_code != 200:
            raise SourceUnavailableError(SOURCE_KEY, f"HTTP {response.status_code} for {url}")

        try:
            return response.json()
        except ValueError as e:
            raise SourceUnavailableError(SOURCE_KEY, f"invalid JSON from {url}") from e

    def search_compound(self, name):
        """Name search via pubchempy; returns the first Compound or None"""
        try:
            compounds = pcp.get_compounds(name, "name")
        except Exception as e:
            raise SourceUnavailableError(SOURCE_KEY, f"compound search failed: {e}") from e
        if not compounds:
            logger.info(f"[PubChem] No compound found for '{name}'")
            return None
        return compounds[0]

    def get_ghs_classifications(self, cid):
        url = f"{self.settings.pubchem_view_url}/data/compound/{cid}/JSON?heading=GHS+Classification"
        data = self._get_json(url)
        classifications = []
        for statement in extract_hazard_statements(data):
            parsed = parse_hazard_statement(statement)
            if parsed is not None:
                classifications.append(parsed)
        return classifications

    def get_description(self, cid):
        data = self._get_json(f"{self.settings.pubchem_rest_url}/compound/cid/{cid}/description/JSON")
        if not data:
            return ""
        parts = [
            info["Description"]
            for info in data.get("InformationList", {}).get("Information", [])
            if info.get("Description")
        ]
        return " ".join(parts)

    def get_synonyms(self, cid):
        data = self._get_json(f"{self.settings.pubchem_rest_url}/compound/cid/{cid}/synonyms/JSON")
        if not data:
            return []
        information = data.get("InformationList", {}).get("Information", [{}])
        return information[0].get("Synonym", []) if information else []

    def get_properties(self, compound, description=""):
        mw = _to_float(getattr(compound, "molecular_weight", None))
        if mw is None:
            smiles = getattr(compound, "isomeric_smiles", None) or getattr(compound, "canonical_smiles", None)
            mw = molecular_weight_from_smiles(smiles)
        return PhysicalProperties(
            physical_form=infer_physical_form(description),
            solubility=infer_solubility(_to_float(getattr(compound, "xlogp", None))),
            molecular_weight=mw,
        )

    async def _lookup(self, name):
        sanitized = sanitize_name(name)
        if not sanitized:
            return NotFound()

        compound = await asyncio.to_thread(self.search_compound, sanitized)
        if compound is None:
            return NotFound()

        cid = compound.cid
        ghs, description, synonyms = await asyncio.gather(
            asyncio.to_thread(self.get_ghs_classifications, cid),
            asyncio.to_thread(self.get_description, cid),
            asyncio.to_thread(self.get_synonyms, cid),
            return_exceptions=True,
        )
        if isinstance(ghs, Exception):
            logger.warning(f"[PubChem] GHS lookup failed for CID {cid}: {ghs}")
            ghs = []
        if isinstance(description, Exception):
            logger.warning(f"[PubChem] Description lookup failed for CID {cid}: {description}")
            description = ""
        if isinstance(synonyms, Exception):
            logger.warning(f"[PubChem] Synonym lookup failed for CID {cid}: {synonyms}")
            synonyms = []

        properties = self.get_properties(compound, description)
        cas_number = next((s for s in synonyms if CAS_RE.match(s)), None)
        quality = (0.5 if ghs else 0.0) + (0.3 if properties.molecular_weight else 0.0) + (0.2 if synonyms else 0.0)

        record = ChemicalRecord(
            title=sanitized,
            classifications=tuple(ghs),
            properties=properties,
            cid=cid,
            iupac_name=getattr(compound, "iupac_name", None),
            cas_number=cas_number,
            synonyms=tuple(synonyms[:10]),
            signal_word=determine_signal_word(ghs) if ghs else None,
            pictograms=map_pictograms(ghs),
            data_quality=round(quality, 2),
            source=PUBCHEM_SOURCE,
            source_key=SOURCE_KEY,
        )
        logger.info(f"[PubChem] CID {cid} for '{sanitized}': {len(ghs)} GHS statements, quality {record.data_quality}")
        return Found(record)

    async def _bounded_lookup(self, name):
        timeout = self.settings.remote_lookup_timeout
        try:
            return await asyncio.wait_for(self._lookup(name), timeout)
        except asyncio.TimeoutError as e:
            raise SourceUnavailableError(SOURCE_KEY, f"lookup timed out after {timeout}s") from e

    async def fetch_hazard_data(self, name):
        """
        Found(ChemicalRecord) or NotFound(). Raises SourceUnavailableError on
        network failure, timeout or an open circuit. No retries.
        """
        return await self.breaker.call(self._bounded_lookup, name)
