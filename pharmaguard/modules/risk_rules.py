"""
Drug rule tables: phenotype -> risk rules per drug, the pairwise drug
interaction table, and drug display information.
Rules are modeled on the CPIC guideline for each drug-gene pair.
"""
from __future__ import annotations

from pharmaguard.models import (
    ClinicalRecommendation,
    Drug,
    EvidenceLevel,
    Gene,
    ImplementationStatus,
    InteractionEntry,
    PatientRisk,
    PhenotypeClass,
    RiskLabel,
    RiskRule,
    Severity,
)

DRUG_PRIMARY_GENE: dict[Drug, Gene] = {
    Drug.CODEINE: Gene.CYP2D6,
    Drug.WARFARIN: Gene.CYP2C9,
    Drug.CLOPIDOGREL: Gene.CYP2C19,
    Drug.SIMVASTATIN: Gene.SLCO1B1,
    Drug.AZATHIOPRINE: Gene.TPMT,
    Drug.FLUOROURACIL: Gene.DPYD,
}


def _rule(
    label: RiskLabel,
    severity: Severity,
    confidence: float,
    dosing: str,
    monitoring: list[str],
    level: EvidenceLevel,
    status: ImplementationStatus,
    alternatives: list[str] | None = None,
) -> RiskRule:
    return RiskRule(
        risk_label=label,
        severity=severity,
        base_confidence=confidence,
        recommendation=ClinicalRecommendation(
            dosing_guidance=dosing,
            monitoring_requirements=monitoring,
            alternative_drugs=alternatives or [],
            evidence_level=level,
            implementation_status=status,
        ),
    )


_P, _IM, _NM, _RM, _UM = (
    PhenotypeClass.POOR,
    PhenotypeClass.INTERMEDIATE,
    PhenotypeClass.NORMAL,
    PhenotypeClass.RAPID,
    PhenotypeClass.ULTRARAPID,
)
_REQ = ImplementationStatus.REQUIRED
_REC = ImplementationStatus.RECOMMENDED
_OPT = ImplementationStatus.OPTIONAL
_A, _B, _C = EvidenceLevel.A, EvidenceLevel.B, EvidenceLevel.C


DRUG_RISK_RULES: dict[Drug, dict[PhenotypeClass, RiskRule]] = {
    Drug.CODEINE: {
        _P: _rule(
            RiskLabel.INEFFECTIVE, Severity.HIGH, 0.95,
            "Avoid codeine. Use alternative analgesic.",
            ["Pain assessment", "Alternative pain management"], _A, _REQ,
            ["Morphine", "Oxycodone", "Hydromorphone"],
        ),
        _IM: _rule(
            RiskLabel.ADJUST_DOSAGE, Severity.MODERATE, 0.88,
            "Use reduced dose (50-75% of standard) and monitor closely.",
            ["Pain assessment", "Respiratory depression monitoring"], _B, _REC,
            ["Morphine", "Oxycodone"],
        ),
        _NM: _rule(
            RiskLabel.SAFE, Severity.LOW, 0.93,
            "Use standard dosing.",
            ["Standard pain assessment"], _B, _OPT,
        ),
        _UM: _rule(
            RiskLabel.TOXIC, Severity.CRITICAL, 0.91,
            "Avoid codeine. Risk of respiratory depression.",
            ["Respiratory monitoring", "CNS depression assessment"], _A, _REQ,
            ["Morphine", "Oxycodone", "Hydromorphone"],
        ),
    },
    Drug.CLOPIDOGREL: {
        _P: _rule(
            RiskLabel.INEFFECTIVE, Severity.HIGH, 0.94,
            "Avoid clopidogrel. Use alternative antiplatelet agent.",
            ["Platelet function testing", "Cardiovascular events monitoring"], _A, _REQ,
            ["Prasugrel", "Ticagrelor", "Aspirin"],
        ),
        _IM: _rule(
            RiskLabel.ADJUST_DOSAGE, Severity.MODERATE, 0.87,
            "Consider alternative antiplatelet or increased dose (150mg daily).",
            ["Platelet function testing", "Bleeding assessment"], _B, _REC,
            ["Prasugrel", "Ticagrelor"],
        ),
        _NM: _rule(
            RiskLabel.SAFE, Severity.LOW, 0.92,
            "Use standard dosing (75mg daily).",
            ["Standard cardiac monitoring"], _B, _OPT,
        ),
        _RM: _rule(
            RiskLabel.SAFE, Severity.LOW, 0.89,
            "Use standard dosing. Enhanced response expected.",
            ["Bleeding assessment", "Standard cardiac monitoring"], _C, _OPT,
        ),
    },
    Drug.WARFARIN: {
        _P: _rule(
            RiskLabel.ADJUST_DOSAGE, Severity.HIGH, 0.91,
            "Start with 25-50% reduced dose. Frequent INR monitoring.",
            ["Frequent INR monitoring", "Bleeding assessment", "Weekly INR initially"], _A, _REQ,
        ),
        _IM: _rule(
            RiskLabel.ADJUST_DOSAGE, Severity.MODERATE, 0.88,
            "Start with 25% reduced dose. Enhanced monitoring.",
            ["Enhanced INR monitoring", "Bleeding assessment"], _A, _REC,
        ),
        _NM: _rule(
            RiskLabel.SAFE, Severity.LOW, 0.93,
            "Use standard dosing algorithm.",
            ["Standard INR monitoring"], _A, _OPT,
        ),
    },
    Drug.SIMVASTATIN: {
        _P: _rule(
            RiskLabel.TOXIC, Severity.HIGH, 0.92,
            "Avoid high-dose simvastatin (>20mg). Consider alternative statin.",
            ["CK monitoring", "Myalgia assessment", "Liver function tests"], _A, _REQ,
            ["Pravastatin", "Rosuvastatin", "Fluvastatin"],
        ),
        _IM: _rule(
            RiskLabel.ADJUST_DOSAGE, Severity.MODERATE, 0.88,
            "Use lower dose (<=20mg) or alternative statin.",
            ["CK monitoring", "Myalgia assessment"], _B, _REC,
            ["Pravastatin", "Rosuvastatin"],
        ),
        _NM: _rule(
            RiskLabel.SAFE, Severity.LOW, 0.94,
            "Use standard dosing.",
            ["Standard lipid monitoring"], _B, _OPT,
        ),
    },
    Drug.AZATHIOPRINE: {
        _P: _rule(
            RiskLabel.TOXIC, Severity.CRITICAL, 0.96,
            "Avoid azathioprine or use extreme caution with 90% dose reduction.",
            ["Weekly CBC with differential", "Liver function tests", "Infection monitoring"], _A, _REQ,
            ["Methotrexate", "Mycophenolate", "Biologics"],
        ),
        _IM: _rule(
            RiskLabel.ADJUST_DOSAGE, Severity.HIGH, 0.91,
            "Start with 30-70% of standard dose.",
            ["Frequent CBC monitoring", "Liver function tests"], _A, _REQ,
        ),
        _NM: _rule(
            RiskLabel.SAFE, Severity.LOW, 0.95,
            "Use standard dosing (2-3mg/kg/day).",
            ["Standard CBC monitoring"], _A, _OPT,
        ),
    },
    Drug.FLUOROURACIL: {
        _P: _rule(
            RiskLabel.TOXIC, Severity.CRITICAL, 0.94,
            "Avoid fluorouracil or use extreme caution with significant dose reduction.",
            ["Severe toxicity monitoring", "CBC with differential", "Mucositis assessment"], _A, _REQ,
            ["Alternative chemotherapy regimens"],
        ),
        _IM: _rule(
            RiskLabel.ADJUST_DOSAGE, Severity.HIGH, 0.89,
            "Start with 50% dose reduction and escalate based on tolerance.",
            ["Enhanced toxicity monitoring", "Frequent CBC"], _A, _REQ,
        ),
        _NM: _rule(
            RiskLabel.SAFE, Severity.LOW, 0.93,
            "Use standard dosing protocols.",
            ["Standard oncology monitoring"], _A, _OPT,
        ),
    },
}

INSUFFICIENT_EVIDENCE_RECOMMENDATION = ClinicalRecommendation(
    dosing_guidance="Insufficient genetic evidence to provide dosing guidance. Consider confirmatory testing.",
    monitoring_requirements=["Clinical monitoring based on standard protocols"],
    evidence_level=EvidenceLevel.D,
    implementation_status=ImplementationStatus.NO_RECOMMENDATION,
)


# ── Drug-drug interactions ───────────────────────────────────────────────────

def _interaction(a: Drug, b: Drug, severity: PatientRisk, mechanism: str) -> InteractionEntry:
    return InteractionEntry(drugs=frozenset({a, b}), severity=severity, mechanism=mechanism)


INTERACTION_TABLE: dict[frozenset[Drug], InteractionEntry] = {
    e.drugs: e
    for e in (
        _interaction(Drug.WARFARIN, Drug.SIMVASTATIN, PatientRisk.HIGH, "CYP3A4 competition"),
        _interaction(Drug.WARFARIN, Drug.CLOPIDOGREL, PatientRisk.MODERATE, "Bleeding risk increase"),
        _interaction(Drug.CODEINE, Drug.FLUOROURACIL, PatientRisk.LOW, "Different pathways"),
        _interaction(Drug.AZATHIOPRINE, Drug.FLUOROURACIL, PatientRisk.MODERATE, "Immunosuppression synergy"),
    )
}

# Drugs treated as CYP inhibitors by the phenoconversion heuristic
PHENOCONVERSION_INHIBITORS: frozenset[Drug] = frozenset({Drug.CLOPIDOGREL, Drug.WARFARIN})


# ── Display information ──────────────────────────────────────────────────────

DRUG_INFO: dict[Drug, dict[str, str]] = {
    Drug.CODEINE: {
        "name": "Codeine",
        "category": "Opioid Analgesic",
        "description": "Pain medication metabolized by CYP2D6",
    },
    Drug.WARFARIN: {
        "name": "Warfarin",
        "category": "Anticoagulant",
        "description": "Blood thinner metabolized by CYP2C9",
    },
    Drug.CLOPIDOGREL: {
        "name": "Clopidogrel (Plavix)",
        "category": "Antiplatelet",
        "description": "Blood thinner activated by CYP2C19",
    },
    Drug.SIMVASTATIN: {
        "name": "Simvastatin",
        "category": "Statin",
        "description": "Cholesterol medication transported by SLCO1B1",
    },
    Drug.AZATHIOPRINE: {
        "name": "Azathioprine",
        "category": "Immunosuppressant",
        "description": "Immune system medication metabolized by TPMT",
    },
    Drug.FLUOROURACIL: {
        "name": "Fluorouracil (5-FU)",
        "category": "Chemotherapy",
        "description": "Cancer medication metabolized by DPYD",
    },
}


def _check_coverage() -> None:
    problems: list[str] = []
    for drug in Drug:
        if drug not in DRUG_PRIMARY_GENE:
            problems.append(f"{drug.value}: no primary gene")
        if PhenotypeClass.NORMAL not in DRUG_RISK_RULES.get(drug, {}):
            problems.append(f"{drug.value}: no Normal risk rule")
        if drug not in DRUG_INFO:
            problems.append(f"{drug.value}: no display info")
    if problems:
        raise RuntimeError("Drug rule tables incomplete: " + "; ".join(problems))


_check_coverage()
