"""
Analysis pipeline: parsed variants -> per-drug analysis -> multi-drug result.
"""
from __future__ import annotations

import logging

from pharmaguard.models import (
    CompositeRisk,
    Drug,
    DrugAnalysis,
    PolypharmacyResult,
    VariantRecord,
)
from pharmaguard.modules.interactions import build_polypharmacy_alert, combine_risk_assessments
from pharmaguard.modules.risk_engine import assess_risk
from pharmaguard.modules.risk_rules import DRUG_PRIMARY_GENE
from pharmaguard.modules.star_allele_caller import (
    activity_score_interpretation,
    call_diplotype,
    validate_diplotype_consistency,
)
from pharmaguard.modules.warfarin import call_warfarin_multi_gene

logger = logging.getLogger(__name__)


def analyze_drug(drug: Drug, variants: list[VariantRecord]) -> DrugAnalysis:
    """
    Run the single-drug chain: primary gene call -> (warfarin composite) ->
    risk engine. Table consistency defects are logged and attached to the result.
    """
    gene = DRUG_PRIMARY_GENE[drug]
    composite = None

    if drug is Drug.WARFARIN:
        composite = call_warfarin_multi_gene(variants)
        call = composite.cyp2c9
        phenotype = None if composite.overall_risk is CompositeRisk.INSUFFICIENT_DATA else call.to_phenotype()
        contributing = list(call.contributing_variants)
        contributing += [
            r.source_variant for r in (composite.vkorc1, composite.cyp4f2) if r.source_variant is not None
        ]
    else:
        call = call_diplotype(gene, variants)
        phenotype = call.to_phenotype()
        contributing = list(call.contributing_variants)

    engine = assess_risk(drug, phenotype, contributing, call.diplotype)

    consistency_errors = validate_diplotype_consistency(call)
    for error in consistency_errors:
        logger.error("%s/%s table defect: %s", drug.value, gene.value, error)

    logger.info(
        "%s: %s %s -> %s (confidence %.3f)",
        drug.value, gene.value, call.diplotype,
        engine.risk_assessment.risk_label.value, engine.risk_assessment.confidence_score,
    )

    return DrugAnalysis(
        drug=drug,
        primary_gene=gene,
        risk_assessment=engine.risk_assessment,
        pharmacogenomic_profile=engine.pharmacogenomic_profile,
        clinical_recommendation=engine.clinical_recommendation,
        diplotype_call=call,
        activity_score_interpretation=activity_score_interpretation(gene, call.activity_score, call.phenotype),
        warfarin_multi_gene=composite,
        consistency_errors=consistency_errors,
    )


def analyze_drugs(drugs: list[Drug], variants: list[VariantRecord]) -> PolypharmacyResult:
    """Analyze each drug in request order, then apply the interaction heuristic."""
    ordered = list(dict.fromkeys(drugs))
    results = [analyze_drug(d, variants) for d in ordered]
    return PolypharmacyResult(
        drugs=ordered,
        individual_results=results,
        risk_assessment=combine_risk_assessments(ordered, results),
        alert=build_polypharmacy_alert(ordered, results),
    )
