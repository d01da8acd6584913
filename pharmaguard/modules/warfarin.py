"""
Warfarin Multi-Gene Module
Combines CYP2C9 (star alleles), VKORC1 rs9923231 and CYP4F2 rs2108622 into
one dose-reduction estimate and composite risk.
"""
from __future__ import annotations

import logging

from pharmaguard.models import (
    CompositeRisk,
    DiplotypeResult,
    Gene,
    SNPGene,
    SNPGeneResult,
    VariantRecord,
    WarfarinDoseRecommendation,
    WarfarinMultiGeneResult,
)
from pharmaguard.modules.star_allele_caller import (
    call_diplotype,
    call_snp_gene,
    validate_diplotype_consistency,
)

logger = logging.getLogger(__name__)

GUIDELINE_SOURCE = "CPIC Guideline for Pharmacogenetics-Guided Warfarin Dosing (2017 Update)"

MAX_DOSE_REDUCTION = 80

# (upper activity score bound, base reduction %)
_CYP2C9_BASE_REDUCTION = ((0.5, 60), (1.5, 25))
# by variant allele count: 0, 1, 2
_VKORC1_INCREMENT = (0, 25, 50)
_CYP4F2_DECREMENT = (0, 5, 10)

_VKORC1_ADJUSTMENTS = {
    2: "High VKORC1 sensitivity (AA) - reduce dose significantly",
    1: "Intermediate VKORC1 sensitivity (GA) - reduce dose moderately",
}
_CYP4F2_ADJUSTMENTS = {
    2: "CYP4F2 *3/*3 - may need slightly higher dose",
    1: "CYP4F2 *1/*3 - minor dose increase may be needed",
}

MONITORING = [
    "Frequent INR monitoring during initiation (every 2-3 days)",
    "Adjust dose based on INR response",
    "Consider CPIC-based dosing algorithm",
]


def _base_reduction(activity_score: float) -> int:
    for upper, reduction in _CYP2C9_BASE_REDUCTION:
        if activity_score <= upper:
            return reduction
    return 0


def _dose_strategy(percent: int) -> str:
    if percent >= 50:
        return "Start at 50-60% below standard dose (significant reduction required)"
    if percent >= 25:
        return "Start at 20-30% below standard dose"
    if percent > 0:
        return "Start at 10-20% below standard dose"
    return "Standard initial dosing"


def calculate_dose_recommendation(
    cyp2c9: DiplotypeResult,
    vkorc1: SNPGeneResult,
    cyp4f2: SNPGeneResult,
    missing_markers: list[str] | None = None,
) -> WarfarinDoseRecommendation:
    """
    Percent reduction from the standard initial dose.

    CYP2C9 sets the base, VKORC1 sensitivity adds to it and CYP4F2 efficiency
    subtracts from it; the total is clamped to [0, 80].
    """
    percent = _base_reduction(cyp2c9.activity_score)
    percent += _VKORC1_INCREMENT[vkorc1.variant_allele_count]
    percent -= _CYP4F2_DECREMENT[cyp4f2.variant_allele_count]
    percent = max(0, min(MAX_DOSE_REDUCTION, percent))

    adjustments: list[str] = []
    if vkorc1.variant_allele_count in _VKORC1_ADJUSTMENTS:
        adjustments.append(_VKORC1_ADJUSTMENTS[vkorc1.variant_allele_count])
    if cyp4f2.variant_allele_count in _CYP4F2_ADJUSTMENTS:
        adjustments.append(_CYP4F2_ADJUSTMENTS[cyp4f2.variant_allele_count])

    strategy = _dose_strategy(percent)
    if missing_markers:
        strategy = (
            f"Genotype-guided dose cannot be confirmed ({', '.join(missing_markers)} not genotyped). "
            "Use clinical dosing with close INR monitoring."
        )

    return WarfarinDoseRecommendation(
        initial_dose_strategy=strategy,
        dose_reduction_percent=percent,
        adjustments=adjustments,
        monitoring=list(MONITORING),
    )


def determine_overall_risk(cyp2c9: DiplotypeResult, vkorc1: SNPGeneResult) -> CompositeRisk:
    score = cyp2c9.activity_score
    poor = score <= 0.5
    intermediate = not poor and score <= 1.5
    sensitized = vkorc1.variant_allele_count > 0

    if poor and sensitized:
        return CompositeRisk.SEVERE
    if poor or (intermediate and sensitized):
        return CompositeRisk.HIGH
    if intermediate or sensitized:
        return CompositeRisk.MODERATE
    return CompositeRisk.LOW


def call_warfarin_multi_gene(variants: list[VariantRecord]) -> WarfarinMultiGeneResult:
    """
    Composite warfarin call.

    Both SNP markers are required: when either is absent from the input the
    overall risk is INSUFFICIENT_DATA and the marker is named in
    ``missing_markers``; it is never read as wild-type.
    """
    cyp2c9 = call_diplotype(Gene.CYP2C9, variants)
    vkorc1 = call_snp_gene(SNPGene.VKORC1, variants)
    cyp4f2 = call_snp_gene(SNPGene.CYP4F2, variants)

    missing = [f"{r.gene.value} {r.rsid}" for r in (vkorc1, cyp4f2) if not r.marker_found]
    if missing:
        logger.warning("Warfarin composite: required markers not found: %s", ", ".join(missing))
        overall = CompositeRisk.INSUFFICIENT_DATA
    else:
        overall = determine_overall_risk(cyp2c9, vkorc1)

    detected = list(cyp2c9.detected_variants)
    detected += [r.detected_variant for r in (vkorc1, cyp4f2) if r.detected_variant is not None]

    return WarfarinMultiGeneResult(
        cyp2c9=cyp2c9,
        vkorc1=vkorc1,
        cyp4f2=cyp4f2,
        dose_recommendation=calculate_dose_recommendation(cyp2c9, vkorc1, cyp4f2, missing),
        overall_risk=overall,
        missing_markers=missing,
        all_detected_variants=detected,
        validation_errors=validate_diplotype_consistency(cyp2c9),
        guideline_source=GUIDELINE_SOURCE,
    )
