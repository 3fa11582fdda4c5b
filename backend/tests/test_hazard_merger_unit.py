import dataclasses

import pytest

from hazard_errors import NoHazardDataError, SourceUnavailableError
from hazard_merger import DataMerger, hazard_level_for
from hazard_models import (
    DataSource,
    Failed,
    Found,
    HazardLevel,
    NioshTable,
    NotFound,
    PhysicalForm,
    RiskTier,
)
from hazard_stubs import ghs, make_record
from niosh_table import NioshHazardTable


def test_single_remote_source_passes_through_unchanged() -> None:
    record = make_record(
        "caffeine",
        classifications=[ghs("H302", "Harmful if swallowed"), ghs("H302", "Harmful if swallowed")],
        form=PhysicalForm.POWDER,
    )
    assessment = DataMerger().merge_hazard_data("caffeine", NotFound(), Found(record))

    assert assessment.ghs == record.classifications
    assert assessment.physical_properties == record.properties
    assert assessment.niosh is None
    assert assessment.data_quality.sources == (record.source,)
    assert assessment.data_quality.confidence == pytest.approx(0.8)


def test_single_static_source_uses_conservative_properties() -> None:
    entry = NioshHazardTable().lookup("cyclophosphamide")
    assessment = DataMerger().merge_hazard_data("cyclophosphamide", Found(entry), NotFound())

    assert assessment.ghs == ()
    assert assessment.niosh == entry
    assert assessment.physical_properties.physical_form is PhysicalForm.POWDER
    assert assessment.physical_properties.solubility == "unknown"
    assert assessment.data_quality.confidence == pytest.approx(1.0)
    assert assessment.data_quality.sources == (DataSource("NIOSH 2024", "https://www.cdc.gov/niosh"),)


def test_table_one_dominates_benign_remote_data() -> None:
    entry = NioshHazardTable().lookup("cyclophosphamide")
    benign = make_record("cyclophosphamide", classifications=[], form=PhysicalForm.LIQUID)

    assessment = DataMerger().merge_hazard_data("cyclophosphamide", Found(entry), Found(benign))

    assert assessment.safety_info.tier is RiskTier.MAXIMUM
    assert hazard_level_for(assessment) is HazardLevel.HIGH
    assert assessment.physical_properties.physical_form is PhysicalForm.LIQUID
    assert assessment.data_quality.confidence == pytest.approx(0.9)


def test_failed_source_is_excluded_from_confidence() -> None:
    entry = NioshHazardTable().lookup("warfarin")
    failed = Failed(SourceUnavailableError("pubchem", "timed out"))

    assessment = DataMerger().merge_hazard_data("warfarin", Found(entry), failed)

    assert assessment.data_quality.confidence == pytest.approx(1.0)
    assert any("pubchem" in w for w in assessment.data_quality.warnings)
    assert assessment.safety_info.tier is RiskTier.ENHANCED


def test_ghs_lists_concatenate_in_source_order_without_dedup() -> None:
    statement = ghs("H315", "Causes skin irritation")
    pubchem = make_record("menthol", classifications=[statement])
    dailymed = make_record(
        "menthol",
        classifications=[statement],
        source_key="dailymed",
        source=DataSource("DailyMed", "https://dailymed.nlm.nih.gov"),
    )

    assessment = DataMerger().merge_hazard_data("menthol", NotFound(), Found(pubchem), [Found(dailymed)])

    assert assessment.ghs == (statement, statement)
    assert [s.name for s in assessment.data_quality.sources] == ["PubChem", "DailyMed"]
    assert assessment.data_quality.confidence == pytest.approx(0.75)


def test_no_present_source_raises() -> None:
    with pytest.raises(NoHazardDataError):
        DataMerger().merge_hazard_data("unknown", NotFound(), Failed(RuntimeError("down")))


def test_hazard_level_from_ghs_codes() -> None:
    merger = DataMerger()
    moderate = merger.merge_hazard_data(
        "menthol", NotFound(), Found(make_record("menthol", classifications=[ghs("H315", "Causes skin irritation")]))
    )
    high = merger.merge_hazard_data(
        "x", NotFound(), Found(make_record("x", classifications=[ghs("H300", "Fatal if swallowed")]))
    )
    clean = merger.merge_hazard_data("gabapentin", NotFound(), Found(make_record("gabapentin")))

    assert hazard_level_for(moderate) is HazardLevel.MODERATE
    assert hazard_level_for(high) is HazardLevel.HIGH
    assert hazard_level_for(clean) is HazardLevel.NON_HAZARDOUS


def test_table_two_is_moderate_even_with_clean_ghs() -> None:
    entry = NioshHazardTable().lookup("finasteride")
    assessment = DataMerger().merge_hazard_data("finasteride", Found(entry), Found(make_record("finasteride")))
    assert entry.tier is NioshTable.TABLE_2
    assert hazard_level_for(assessment) is HazardLevel.MODERATE


def test_label_elements_and_iupac_name_reach_the_assessment() -> None:
    pubchem = dataclasses.replace(
        make_record("methotrexate", classifications=[ghs("H361", "Suspected of damaging fertility")]),
        iupac_name="(2S)-2-[[4-[(2,4-diaminopteridin-6-yl)methyl-methylamino]benzoyl]amino]pentanedioic acid",
        signal_word="Warning",
        pictograms=("GHS08",),
    )
    other = dataclasses.replace(
        make_record("methotrexate", source_key="dailymed", source=DataSource("DailyMed", "https://dailymed.nlm.nih.gov")),
        signal_word="Danger",
        pictograms=("GHS06", "GHS08"),
    )

    assessment = DataMerger().merge_hazard_data("methotrexate", NotFound(), Found(pubchem), others=(Found(other),))
    rendered = assessment.to_dict()

    assert assessment.signal_word == "Danger"
    assert assessment.pictograms == ("GHS06", "GHS08")
    assert rendered["hazardClassifications"]["signalWord"] == "Danger"
    assert rendered["hazardClassifications"]["pictograms"] == ["GHS06", "GHS08"]
    assert rendered["iupacName"].startswith("(2S)-2-")


def test_static_only_assessment_has_no_signal_word() -> None:
    entry = NioshHazardTable().lookup("cyclophosphamide")
    rendered = DataMerger().merge_hazard_data("cyclophosphamide", Found(entry), NotFound()).to_dict()
    assert rendered["hazardClassifications"]["signalWord"] is None
    assert rendered["hazardClassifications"]["pictograms"] == []
    assert "iupacName" not in rendered
