import asyncio

from hazard_models import (
    ChemicalRecord,
    DataSource,
    Found,
    HazardClassification,
    NotFound,
    PhysicalForm,
    PhysicalProperties,
)


class StubRemote:
    """In-memory stand-in for the PubChem adapter"""

    source_key = "pubchem"

    def __init__(self, records=None, error=None, delay=0.0):
        self.records = dict(records or {})
        self.error = error
        self.delay = delay
        self.calls = []

    async def fetch_hazard_data(self, name):
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        record = self.records.get(name)
        return Found(record) if record is not None else NotFound()


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_record(title, classifications=(), form=PhysicalForm.SOLID, solubility="water soluble",
                molecular_weight=171.24, data_quality=0.8, source_key="pubchem", source=None):
    return ChemicalRecord(
        title=title,
        classifications=tuple(classifications),
        properties=PhysicalProperties(physical_form=form, solubility=solubility, molecular_weight=molecular_weight),
        cid=1,
        synonyms=(title,),
        data_quality=data_quality,
        source=source or DataSource("PubChem", "https://pubchem.ncbi.nlm.nih.gov"),
        source_key=source_key,
    )


def ghs(code, description, category="Acute toxicity"):
    return HazardClassification(code=code, category=category, description=description, source="PubChem GHS")
