"""
Unit tests for the risk engine and drug rule tables.
Run with: python -m pytest tests/test_risk_engine.py -v
"""
import pytest
from pharmaguard.models import (
    Drug,
    EvidenceLevel,
    ImplementationStatus,
    Phenotype,
    PhenotypeClass,
    RiskLabel,
    Severity,
    VariantRecord,
)
from pharmaguard.modules.risk_engine import assess_risk, validate_assessment
from pharmaguard.modules.risk_rules import DRUG_INFO, DRUG_PRIMARY_GENE, DRUG_RISK_RULES


def make_phenotype(activity, confidence=1.0):
    return Phenotype(name=activity.display_name, activity=activity, confidence=confidence)


def make_variant(rsid, genotype="0/1", gene=None):
    return VariantRecord(
        chromosome="22",
        position=42526694,
        identifier=rsid,
        ref="C",
        alt="T",
        quality="99",
        filter="PASS",
        genotype=genotype,
        gene=gene,
        rsid=rsid,
    )


class TestUnknownPhenotype:

    def test_none_phenotype(self):
        result = assess_risk(Drug.CODEINE, None, [], "Unknown")
        ra = result.risk_assessment
        assert ra.risk_label is RiskLabel.UNKNOWN
        assert ra.confidence_score == pytest.approx(0.4)
        assert ra.severity is Severity.NONE
        rec = result.clinical_recommendation
        assert rec.dosing_guidance.startswith("Insufficient genetic evidence")
        assert rec.evidence_level is EvidenceLevel.D
        assert rec.implementation_status is ImplementationStatus.NO_RECOMMENDATION
        assert result.pharmacogenomic_profile.phenotype == "Unknown"


class TestRuleLookup:

    def test_codeine_normal_safe(self):
        result = assess_risk(Drug.CODEINE, make_phenotype(PhenotypeClass.NORMAL, 0.7), [], "*1/*1")
        assert result.risk_assessment.risk_label is RiskLabel.SAFE
        assert result.risk_assessment.confidence_score == pytest.approx(0.651)
        assert result.risk_assessment.fallback_rule_used is False
        assert result.pharmacogenomic_profile.primary_gene == "CYP2D6"
        assert result.pharmacogenomic_profile.phenotype == "Normal Metabolizer"

    def test_codeine_ultrarapid_toxic(self):
        result = assess_risk(Drug.CODEINE, make_phenotype(PhenotypeClass.ULTRARAPID), [], "*1/*2")
        assert result.risk_assessment.risk_label is RiskLabel.TOXIC
        assert result.risk_assessment.severity is Severity.CRITICAL
        assert "Morphine" in result.clinical_recommendation.alternative_drugs

    def test_clopidogrel_rapid_has_own_rule(self):
        result = assess_risk(Drug.CLOPIDOGREL, make_phenotype(PhenotypeClass.RAPID), [], "*1/*17")
        assert result.risk_assessment.fallback_rule_used is False
        assert result.clinical_recommendation.evidence_level is EvidenceLevel.C

    @pytest.mark.parametrize("drug,activity", [
        (Drug.CODEINE, PhenotypeClass.RAPID),
        (Drug.WARFARIN, PhenotypeClass.ULTRARAPID),
        (Drug.SIMVASTATIN, PhenotypeClass.RAPID),
    ])
    def test_fallback_to_normal_rule(self, drug, activity):
        result = assess_risk(drug, make_phenotype(activity), [], "*1/*1")
        normal = DRUG_RISK_RULES[drug][PhenotypeClass.NORMAL]
        assert result.risk_assessment.fallback_rule_used is True
        assert result.risk_assessment.risk_label is normal.risk_label
        assert result.clinical_recommendation == normal.recommendation

    @pytest.mark.parametrize("drug,activity", [
        (drug, activity) for drug, rules in DRUG_RISK_RULES.items() for activity in rules
    ])
    def test_every_rule_reachable(self, drug, activity):
        rule = DRUG_RISK_RULES[drug][activity]
        result = assess_risk(drug, make_phenotype(activity, 0.95), [], "*1/*1")
        assert result.risk_assessment.risk_label is rule.risk_label
        assert result.risk_assessment.severity is rule.severity
        assert 0.0 <= result.risk_assessment.confidence_score <= 1.0
        assert result.risk_assessment.confidence_score == pytest.approx(rule.base_confidence * 0.95, abs=1e-3)


class TestProfile:

    def test_echoes_only_supplied_variants(self):
        variants = [make_variant("rs3892097", "0/1", gene="CYP2D6")]
        result = assess_risk(Drug.CODEINE, make_phenotype(PhenotypeClass.INTERMEDIATE), variants, "*1/*4")
        detected = result.pharmacogenomic_profile.detected_variants
        assert [v.rsid for v in detected] == ["rs3892097"]
        assert detected[0].genotype == "0/1"
        assert result.pharmacogenomic_profile.diplotype == "*1/*4"

    def test_no_variants_no_profile_entries(self):
        result = assess_risk(Drug.AZATHIOPRINE, make_phenotype(PhenotypeClass.NORMAL), [], "*1/*1")
        assert result.pharmacogenomic_profile.detected_variants == []


class TestValidateAssessment:

    def test_valid(self):
        assert validate_assessment("CODEINE", "Normal") is None
        assert validate_assessment("codeine", "Ultrarapid") is None

    def test_missing_drug(self):
        assert validate_assessment("", "Normal") == "Drug is required"

    def test_unsupported_drug(self):
        assert validate_assessment("ASPIRIN", "Normal") == "Unsupported drug: ASPIRIN"

    def test_missing_phenotype(self):
        assert validate_assessment("WARFARIN", None) == "Phenotype activity is required"

    def test_unsupported_phenotype(self):
        assert validate_assessment("WARFARIN", "Rapid") == "Unsupported phenotype for WARFARIN: Rapid"


class TestTables:

    def test_every_drug_covered(self):
        for drug in Drug:
            assert drug in DRUG_PRIMARY_GENE
            assert PhenotypeClass.NORMAL in DRUG_RISK_RULES[drug]
            assert drug in DRUG_INFO

    def test_no_unknown_rules(self):
        for rules in DRUG_RISK_RULES.values():
            assert PhenotypeClass.UNKNOWN not in rules
