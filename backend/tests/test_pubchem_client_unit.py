import asyncio
import time
from types import SimpleNamespace

import pytest
import requests

from hazard_config import Settings
from hazard_errors import CircuitOpenError, SourceUnavailableError
from hazard_fallback import CircuitBreaker
from hazard_models import Found, NotFound, PhysicalForm
from hazard_stubs import ghs
from pubchem_client import (
    PubChemClient,
    determine_signal_word,
    extract_hazard_statements,
    infer_physical_form,
    infer_solubility,
    map_pictograms,
    molecular_weight_from_smiles,
    parse_hazard_statement,
    sanitize_name,
)

ASPIRIN = SimpleNamespace(
    cid=2244,
    molecular_weight="180.16",
    xlogp=1.2,
    iupac_name="2-acetyloxybenzoic acid",
    isomeric_smiles="CC(=O)OC1=CC=CC=C1C(=O)O",
)


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    def get(self, url, headers=None, timeout=None):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.response


def _client(**settings):
    return PubChemClient(Settings(**settings), session=FakeSession(FakeResponse(404)))


def test_parse_hazard_statement() -> None:
    parsed = parse_hazard_statement("H301 (100%): Toxic if swallowed [Danger Acute toxicity, oral]")
    assert parsed.code == "H301"
    assert parsed.description == "Toxic if swallowed"
    assert parsed.category == "Acute toxicity, oral"

    combined = parse_hazard_statement("H302+H312: Harmful if swallowed or in contact with skin [Warning Acute toxicity]")
    assert combined.code == "H302+H312"
    assert combined.category == "Acute toxicity"

    assert parse_hazard_statement("Not Classified") is None


def test_extract_hazard_statements_walks_nested_sections() -> None:
    pug_view = {
        "Record": {
            "Section": [{
                "TOCHeading": "Safety and Hazards",
                "Section": [{
                    "TOCHeading": "GHS Classification",
                    "Information": [
                        {"Name": "Signal", "Value": {"StringWithMarkup": [{"String": "Danger"}]}},
                        {"Name": "GHS Hazard Statements", "Value": {"StringWithMarkup": [
                            {"String": "H350 (90%): May cause cancer [Danger Carcinogenicity]"},
                            {"String": "H350 (90%): May cause cancer [Danger Carcinogenicity]"},
                            {"String": "H315 (10%): Causes skin irritation [Warning Skin corrosion/irritation]"},
                        ]}},
                    ],
                }],
            }]
        }
    }
    assert extract_hazard_statements(pug_view) == [
        "H350 (90%): May cause cancer [Danger Carcinogenicity]",
        "H315 (10%): Causes skin irritation [Warning Skin corrosion/irritation]",
    ]
    assert extract_hazard_statements(None) == []


def test_infer_physical_form() -> None:
    assert infer_physical_form("White crystalline powder") is PhysicalForm.POWDER
    assert infer_physical_form("A clear colorless liquid") is PhysicalForm.LIQUID
    assert infer_physical_form("Colorless gas with a faint odor") is PhysicalForm.GAS
    assert infer_physical_form("Used to reduce gastric acid") is PhysicalForm.POWDER
    assert infer_physical_form("") is PhysicalForm.POWDER


def test_infer_solubility_bands() -> None:
    assert infer_solubility(None) == "unknown"
    assert infer_solubility(-2.0) == "highly water soluble"
    assert infer_solubility(0.5) == "water soluble"
    assert infer_solubility(1.2) == "moderately soluble"
    assert infer_solubility(4.0) == "poorly water soluble"


def test_signal_word_and_pictograms() -> None:
    statements = [ghs("H301", "Toxic if swallowed"), ghs("H225", "Highly flammable liquid and vapour")]
    assert determine_signal_word(statements) == "Danger"
    assert determine_signal_word([ghs("H315", "Causes skin irritation")]) == "Warning"
    assert map_pictograms(statements) == ("GHS02", "GHS06")


def test_sanitize_name() -> None:
    assert sanitize_name("  Aspirin; DROP TABLE ") == "Aspirin DROP TABLE"
    assert sanitize_name("5-fluorouracil (USP)") == "5-fluorouracil (USP)"
    assert len(sanitize_name("x" * 300)) == 100


def test_molecular_weight_from_smiles() -> None:
    assert molecular_weight_from_smiles("CCO") == pytest.approx(46.07, abs=0.01)
    assert molecular_weight_from_smiles("not-a-smiles") is None
    assert molecular_weight_from_smiles(None) is None


def test_http_errors_map_to_source_unavailable() -> None:
    missing = PubChemClient(Settings(), session=FakeSession(FakeResponse(404)))
    assert missing.get_synonyms(1) == []

    for session in (FakeSession(FakeResponse(500)), FakeSession(error=requests.ConnectionError("refused"))):
        client = PubChemClient(Settings(), session=session)
        with pytest.raises(SourceUnavailableError) as excinfo:
            client.get_description(1)
        assert excinfo.value.source == "pubchem"


def test_fetch_hazard_data_builds_record() -> None:
    client = _client()
    client.search_compound = lambda name: ASPIRIN
    client.get_ghs_classifications = lambda cid: [ghs("H302", "Harmful if swallowed")]
    client.get_description = lambda cid: "Aspirin appears as odorless white crystals or crystalline powder."
    client.get_synonyms = lambda cid: ["aspirin", "50-78-2", "Acetylsalicylic acid"]

    outcome = asyncio.run(client.fetch_hazard_data("Aspirin"))

    assert isinstance(outcome, Found)
    record = outcome.data
    assert record.cid == 2244
    assert record.cas_number == "50-78-2"
    assert record.properties.physical_form is PhysicalForm.POWDER
    assert record.properties.molecular_weight == pytest.approx(180.16)
    assert record.properties.solubility == "moderately soluble"
    assert record.signal_word == "Warning"
    assert record.iupac_name == "2-acetyloxybenzoic acid"
    assert record.data_quality == 1.0


def test_sub_query_failures_are_settled() -> None:
    client = _client()
    client.search_compound = lambda name: SimpleNamespace(cid=5, molecular_weight=None, xlogp=None, iupac_name=None,
                                                          isomeric_smiles="CCO")

    def broken(cid):
        raise SourceUnavailableError("pubchem", "HTTP 500")

    client.get_ghs_classifications = broken
    client.get_description = broken
    client.get_synonyms = lambda cid: []

    record = asyncio.run(client.fetch_hazard_data("ethanol")).data
    assert record.classifications == ()
    assert record.signal_word is None
    assert record.properties.physical_form is PhysicalForm.POWDER
    assert record.properties.molecular_weight == pytest.approx(46.07, abs=0.01)
    assert record.data_quality == 0.3


def test_unknown_or_empty_names_are_not_found() -> None:
    client = _client()
    client.search_compound = lambda name: None
    assert isinstance(asyncio.run(client.fetch_hazard_data("zzqx")), NotFound)
    assert isinstance(asyncio.run(client.fetch_hazard_data("!!!")), NotFound)


def test_slow_lookup_times_out() -> None:
    client = _client(remote_lookup_timeout=0.05)

    def slow_search(name):
        time.sleep(0.3)
        return ASPIRIN

    client.search_compound = slow_search
    with pytest.raises(SourceUnavailableError, match="timed out"):
        asyncio.run(client.fetch_hazard_data("aspirin"))


def test_open_circuit_skips_the_network() -> None:
    client = PubChemClient(
        Settings(),
        session=FakeSession(FakeResponse(404)),
        breaker=CircuitBreaker("pubchem", failure_threshold=1, reset_seconds=60),
    )
    calls = []

    def failing_search(name):
        calls.append(name)
        raise SourceUnavailableError("pubchem", "HTTP 503")

    client.search_compound = failing_search

    with pytest.raises(SourceUnavailableError):
        asyncio.run(client.fetch_hazard_data("aspirin"))
    with pytest.raises(CircuitOpenError):
        asyncio.run(client.fetch_hazard_data("aspirin"))
    assert calls == ["aspirin"]
