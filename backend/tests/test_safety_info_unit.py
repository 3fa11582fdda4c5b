from hazard_models import NioshEntry, NioshTable, PhysicalForm, RiskTier
from hazard_stubs import ghs
from safety_info import SafetyInfoGenerator

TABLE_1 = NioshEntry(tier=NioshTable.TABLE_1, hazard_types=("Antineoplastic",), requires_special_handling=True)
TABLE_2 = NioshEntry(tier=NioshTable.TABLE_2, hazard_types=("Reproductive hazard",))


def test_powder_without_hazards_is_enhanced() -> None:
    info = SafetyInfoGenerator().generate([ghs("H315", "Causes skin irritation")], None, PhysicalForm.POWDER)
    assert info.tier is RiskTier.ENHANCED


def test_non_powder_without_hazards_is_basic() -> None:
    info = SafetyInfoGenerator().generate([], None, PhysicalForm.LIQUID)
    assert info.tier is RiskTier.BASIC


def test_static_table_sets_the_floor() -> None:
    generator = SafetyInfoGenerator()
    assert generator.generate([], TABLE_1, PhysicalForm.LIQUID).tier is RiskTier.MAXIMUM
    assert generator.generate([], TABLE_2, PhysicalForm.LIQUID).tier is RiskTier.ENHANCED


def test_high_hazard_wording_raises_to_maximum() -> None:
    generator = SafetyInfoGenerator()
    toxic = [ghs("H301", "Toxic if swallowed")]
    assert generator.generate(toxic, None, PhysicalForm.SOLID).tier is RiskTier.MAXIMUM
    assert generator.generate(toxic, TABLE_2, PhysicalForm.LIQUID).tier is RiskTier.MAXIMUM
    assert generator.generate([ghs("H360", "May damage fertility (reproductive)")], None, "liquid").tier is RiskTier.MAXIMUM


def test_powder_never_downgrades_maximum() -> None:
    info = SafetyInfoGenerator().generate([], TABLE_1, PhysicalForm.POWDER)
    assert info.tier is RiskTier.MAXIMUM


def test_higher_tiers_extend_lower_tiers() -> None:
    generator = SafetyInfoGenerator()
    ladder = [generator.for_tier(t) for t in (RiskTier.BASIC, RiskTier.ENHANCED, RiskTier.MAXIMUM)]

    for lower, higher in zip(ladder, ladder[1:]):
        assert set(lower.handling_precautions) < set(higher.handling_precautions)
        assert set(lower.engineering_controls) < set(higher.engineering_controls)
        assert set(lower.spill_response) < set(higher.spill_response)
        assert {p.type for p in lower.ppe_requirements} < {p.type for p in higher.ppe_requirements}


def test_respirator_from_enhanced_upwards() -> None:
    generator = SafetyInfoGenerator()
    assert "respirator" not in {p.type for p in generator.for_tier("basic").ppe_requirements}
    assert "respirator" in {p.type for p in generator.for_tier("enhanced").ppe_requirements}
    assert "respirator" in {p.type for p in generator.for_tier(RiskTier.MAXIMUM).ppe_requirements}
