"""
Risk Engine Module
Deterministic lookup of (drug, phenotype class) -> risk label, severity,
confidence and clinical recommendation.
"""
from __future__ import annotations

import logging
from typing import Optional

from pharmaguard.models import (
    Drug,
    PharmacogenomicProfile,
    Phenotype,
    PhenotypeClass,
    ProfileVariant,
    RiskAssessment,
    RiskEngineResult,
    RiskLabel,
    Severity,
    VariantRecord,
)
from pharmaguard.modules.risk_rules import (
    DRUG_PRIMARY_GENE,
    DRUG_RISK_RULES,
    INSUFFICIENT_EVIDENCE_RECOMMENDATION,
)

logger = logging.getLogger(__name__)

UNKNOWN_CONFIDENCE = 0.4


def _profile_variants(variants: list[VariantRecord]) -> list[ProfileVariant]:
    # Echo only what the caller used; nothing is added here
    return [
        ProfileVariant(
            rsid=v.rsid,
            chromosome=v.chromosome,
            position=v.position,
            ref=v.ref,
            alt=v.alt,
            gene=v.gene,
            star_allele=v.star_allele,
            genotype=v.genotype,
        )
        for v in variants
    ]


def assess_risk(
    drug: Drug,
    phenotype: Optional[Phenotype],
    contributing_variants: list[VariantRecord],
    diplotype: str,
) -> RiskEngineResult:
    """
    Assess drug risk for one phenotype.

    A missing phenotype yields UNKNOWN with a generic insufficient-evidence
    recommendation. A phenotype class with no rule for the drug falls back to
    the drug's Normal rule; the result is flagged with ``fallback_rule_used``.

    Args:
        drug: Requested drug.
        phenotype: Phenotype from the caller, or None when the gene call failed.
        contributing_variants: Records that produced the call.
        diplotype: Canonical diplotype string.

    Returns:
        RiskEngineResult with assessment, profile and recommendation.
    """
    profile = PharmacogenomicProfile(
        primary_gene=DRUG_PRIMARY_GENE[drug].value,
        diplotype=diplotype,
        phenotype=phenotype.name if phenotype else PhenotypeClass.UNKNOWN.value,
        detected_variants=_profile_variants(contributing_variants),
    )

    if phenotype is None:
        logger.info("%s: no phenotype available, returning UNKNOWN.", drug.value)
        return RiskEngineResult(
            risk_assessment=RiskAssessment(
                risk_label=RiskLabel.UNKNOWN,
                confidence_score=UNKNOWN_CONFIDENCE,
                severity=Severity.NONE,
            ),
            pharmacogenomic_profile=profile,
            clinical_recommendation=INSUFFICIENT_EVIDENCE_RECOMMENDATION,
        )

    rules = DRUG_RISK_RULES[drug]
    rule = rules.get(phenotype.activity)
    fallback = rule is None
    if fallback:
        logger.warning(
            "%s: no rule for phenotype %s, falling back to Normal rule.",
            drug.value, phenotype.activity.value,
        )
        rule = rules[PhenotypeClass.NORMAL]

    confidence = round(min(rule.base_confidence * phenotype.confidence, 1.0), 3)
    return RiskEngineResult(
        risk_assessment=RiskAssessment(
            risk_label=rule.risk_label,
            confidence_score=confidence,
            severity=rule.severity,
            fallback_rule_used=fallback,
        ),
        pharmacogenomic_profile=profile,
        clinical_recommendation=rule.recommendation,
    )


def validate_assessment(drug: Optional[str], activity: Optional[str]) -> Optional[str]:
    """Check a (drug, phenotype class) pair against the rule table. Returns an error message or None."""
    if not drug:
        return "Drug is required"
    try:
        resolved = Drug(drug.upper())
    except ValueError:
        return f"Unsupported drug: {drug}"
    if not activity:
        return "Phenotype activity is required"
    try:
        phenotype = PhenotypeClass(activity)
    except ValueError:
        return f"Unsupported phenotype for {resolved.value}: {activity}"
    if phenotype not in DRUG_RISK_RULES[resolved]:
        return f"Unsupported phenotype for {resolved.value}: {activity}"
    return None
