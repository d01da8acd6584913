"""
Multi-drug interaction heuristic: pairwise interaction lookup, phenoconversion
flag and overall patient risk across the requested drugs.
"""
from __future__ import annotations

import logging
from itertools import combinations
from typing import Optional

from pharmaguard.models import (
    Drug,
    DrugAnalysis,
    InteractionPair,
    PatientRisk,
    PolypharmacyAlert,
    RiskAssessment,
    RiskLabel,
    Severity,
)
from pharmaguard.modules.risk_rules import INTERACTION_TABLE, PHENOCONVERSION_INHIBITORS

logger = logging.getLogger(__name__)

_ESCALATING_INTERACTIONS = frozenset({PatientRisk.HIGH, PatientRisk.SEVERE})


def detect_drug_interactions(drugs: list[Drug]) -> list[InteractionPair]:
    """Known interactions for every unordered pair; drug_a/drug_b keep request order."""
    pairs: list[InteractionPair] = []
    for a, b in combinations(dict.fromkeys(drugs), 2):
        entry = INTERACTION_TABLE.get(frozenset({a, b}))
        if entry is None:
            continue
        pairs.append(InteractionPair(drug_a=a, drug_b=b, severity=entry.severity, mechanism=entry.mechanism))
    return pairs


def detect_phenoconversion(drugs: list[Drug], results: list[DrugAnalysis]) -> bool:
    """An inhibitor is requested and at least one drug's phenotype is a Poor class."""
    has_inhibitor = any(d in PHENOCONVERSION_INHIBITORS for d in drugs)
    has_poor = any("Poor" in r.pharmacogenomic_profile.phenotype for r in results)
    return has_inhibitor and has_poor


def determine_overall_risk(results: list[DrugAnalysis], interactions: list[InteractionPair]) -> PatientRisk:
    max_rank = max((r.risk_assessment.severity.rank for r in results), default=0)

    if max_rank >= 3 or any(i.severity in _ESCALATING_INTERACTIONS for i in interactions):
        return PatientRisk.SEVERE
    if max_rank >= 2:
        return PatientRisk.HIGH
    if max_rank >= 1 or interactions:
        return PatientRisk.MODERATE
    return PatientRisk.LOW


def highest_risk_drug(results: list[DrugAnalysis]) -> Optional[Drug]:
    """First drug with the strictly greatest severity rank above zero."""
    best: Optional[DrugAnalysis] = None
    for r in results:
        rank = r.risk_assessment.severity.rank
        if rank > 0 and (best is None or rank > best.risk_assessment.severity.rank):
            best = r
    return best.drug if best else None


def highest_severity(severities: list[Severity]) -> Severity:
    """Highest-ranked severity; LOW when nothing ranks above zero."""
    best = Severity.LOW
    for s in severities:
        if s.rank > best.rank:
            best = s
    return best


def combine_risk_assessments(drugs: list[Drug], results: list[DrugAnalysis]) -> RiskAssessment:
    """
    One assessment for the whole drug list: label of the highest-risk drug,
    the lowest individual confidence and the highest severity.
    """
    top = highest_risk_drug(results)
    label = RiskLabel.SAFE
    if top is not None:
        label = next(r.risk_assessment.risk_label for r in results if r.drug is top)

    confidence = min((r.risk_assessment.confidence_score for r in results), default=0.0)
    return RiskAssessment(
        risk_label=label,
        confidence_score=confidence,
        severity=highest_severity([r.risk_assessment.severity for r in results]),
    )


def build_polypharmacy_alert(drugs: list[Drug], results: list[DrugAnalysis]) -> PolypharmacyAlert:
    interactions = detect_drug_interactions(drugs)
    alert = PolypharmacyAlert(
        overall_patient_risk=determine_overall_risk(results, interactions),
        highest_risk_drug=highest_risk_drug(results),
        interacting_pairs=interactions,
        phenoconversion_risk=detect_phenoconversion(drugs, results),
    )
    logger.info(
        "Polypharmacy: %d drugs, %d interactions, overall=%s, phenoconversion=%s",
        len(drugs), len(interactions), alert.overall_patient_risk.value, alert.phenoconversion_risk,
    )
    return alert
