"""
Unit tests for the warfarin multi-gene composite.
Run with: python -m pytest tests/test_warfarin.py -v
"""
import pytest
from pharmaguard.models import CompositeRisk, VariantRecord
from pharmaguard.modules.warfarin import MONITORING, call_warfarin_multi_gene


def make_variant(rsid, genotype):
    return VariantRecord(
        chromosome="1",
        position=1000,
        identifier=rsid,
        ref="C",
        alt="T",
        quality="99",
        filter="PASS",
        genotype=genotype,
        rsid=rsid,
    )


def markers(cyp2c9=(), vkorc1="0/0", cyp4f2="0/0"):
    variants = [make_variant(rsid, gt) for rsid, gt in cyp2c9]
    if vkorc1 is not None:
        variants.append(make_variant("rs9923231", vkorc1))
    if cyp4f2 is not None:
        variants.append(make_variant("rs2108622", cyp4f2))
    return variants


class TestInsufficientData:

    def test_only_star_allele_markers(self):
        result = call_warfarin_multi_gene(markers([("rs1057910", "0/1")], vkorc1=None, cyp4f2=None))
        assert result.overall_risk is CompositeRisk.INSUFFICIENT_DATA
        assert result.has_sufficient_data is False
        assert result.missing_markers == ["VKORC1 rs9923231", "CYP4F2 rs2108622"]
        assert "cannot be confirmed" in result.dose_recommendation.initial_dose_strategy

    def test_one_marker_missing(self):
        result = call_warfarin_multi_gene(markers(cyp4f2=None))
        assert result.overall_risk is CompositeRisk.INSUFFICIENT_DATA
        assert result.missing_markers == ["CYP4F2 rs2108622"]

    @pytest.mark.parametrize("gt", ["./.", None])
    def test_uncalled_markers_are_missing(self, gt):
        variants = [
            make_variant("rs1057910", "0/1"),
            make_variant("rs9923231", gt),
            make_variant("rs2108622", gt),
        ]
        result = call_warfarin_multi_gene(variants)
        assert result.overall_risk is CompositeRisk.INSUFFICIENT_DATA
        assert result.missing_markers == ["VKORC1 rs9923231", "CYP4F2 rs2108622"]

    def test_reference_genotypes_are_not_missing(self):
        result = call_warfarin_multi_gene(markers())
        assert result.missing_markers == []
        assert result.overall_risk is CompositeRisk.LOW


class TestDoseAlgorithm:

    def test_all_reference(self):
        dose = call_warfarin_multi_gene(markers()).dose_recommendation
        assert dose.dose_reduction_percent == 0
        assert dose.initial_dose_strategy == "Standard initial dosing"
        assert dose.adjustments == []
        assert dose.monitoring == MONITORING

    def test_poor_and_sensitive_clamped(self):
        """60 + 50 -> clamp to 80"""
        result = call_warfarin_multi_gene(markers([("rs1057910", "1/1")], vkorc1="1/1"))
        dose = result.dose_recommendation
        assert dose.dose_reduction_percent == 80
        assert dose.initial_dose_strategy == "Start at 50-60% below standard dose (significant reduction required)"
        assert dose.adjustments == ["High VKORC1 sensitivity (AA) - reduce dose significantly"]
        assert result.overall_risk is CompositeRisk.SEVERE

    def test_intermediate_and_sensitized(self):
        """25 + 25 = 50"""
        result = call_warfarin_multi_gene(markers([("rs1057910", "0/1")], vkorc1="0/1"))
        assert result.dose_recommendation.dose_reduction_percent == 50
        assert result.overall_risk is CompositeRisk.HIGH

    def test_vkorc1_heterozygous_only(self):
        result = call_warfarin_multi_gene(markers(vkorc1="0/1"))
        dose = result.dose_recommendation
        assert dose.dose_reduction_percent == 25
        assert dose.initial_dose_strategy == "Start at 20-30% below standard dose"
        assert dose.adjustments == ["Intermediate VKORC1 sensitivity (GA) - reduce dose moderately"]
        assert result.overall_risk is CompositeRisk.MODERATE

    def test_intermediate_with_cyp4f2(self):
        """25 - 5 = 20"""
        result = call_warfarin_multi_gene(markers([("rs1799853", "0/1")], cyp4f2="0/1"))
        dose = result.dose_recommendation
        # *1/*2 -> activity 1.5, intermediate
        assert result.cyp2c9.activity_score == 1.5
        assert dose.dose_reduction_percent == 20
        assert dose.initial_dose_strategy == "Start at 10-20% below standard dose"
        assert dose.adjustments == ["CYP4F2 *1/*3 - minor dose increase may be needed"]
        assert result.overall_risk is CompositeRisk.MODERATE

    def test_cyp4f2_cannot_go_below_zero(self):
        result = call_warfarin_multi_gene(markers(cyp4f2="1/1"))
        assert result.dose_recommendation.dose_reduction_percent == 0
        assert result.dose_recommendation.adjustments == ["CYP4F2 *3/*3 - may need slightly higher dose"]
        assert result.overall_risk is CompositeRisk.LOW

    def test_poor_alone_is_high(self):
        result = call_warfarin_multi_gene(markers([("rs1057910", "1/1")]))
        assert result.dose_recommendation.dose_reduction_percent == 60
        assert result.overall_risk is CompositeRisk.HIGH


def test_detected_variants_only_non_reference():
    result = call_warfarin_multi_gene(markers([("rs1057910", "0/1")], vkorc1="0/1", cyp4f2="0/0"))
    assert [v.rsid for v in result.all_detected_variants] == ["rs1057910", "rs9923231"]
    assert result.validation_errors == []
    assert result.cyp2c9.diplotype == "*1/*3"


def test_idempotent():
    variants = markers([("rs1057910", "0/1")], vkorc1="1/1", cyp4f2="0/1")
    first = call_warfarin_multi_gene(variants)
    second = call_warfarin_multi_gene(variants)
    assert first.model_dump_json() == second.model_dump_json()


@pytest.mark.parametrize("vk,c4", [("0/0", "0/0"), ("1/1", "1/1"), ("0/1", "1/1")])
def test_dose_within_bounds(vk, c4):
    result = call_warfarin_multi_gene(markers([("rs1057910", "1/1")], vkorc1=vk, cyp4f2=c4))
    assert 0 <= result.dose_recommendation.dose_reduction_percent <= 80
