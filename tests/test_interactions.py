"""
Unit tests for the multi-drug interaction heuristic.
Run with: python -m pytest tests/test_interactions.py -v
"""
import pytest
from pharmaguard.models import Drug, PatientRisk, RiskLabel, Severity, VariantRecord
from pharmaguard.modules.interactions import (
    build_polypharmacy_alert,
    combine_risk_assessments,
    detect_drug_interactions,
    detect_phenoconversion,
    determine_overall_risk,
    highest_risk_drug,
    highest_severity,
)
from pharmaguard.modules.pipeline import analyze_drug


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


CYP2D6_IM = [make_variant("rs3892097", "0/1")]
CYP2C19_PM = [make_variant("rs4244285", "1/1")]
CYP2D6_PM = [make_variant("rs3892097", "1/1")]
TPMT_PM = [make_variant("rs1142345", "1/1")]


def analyze(drugs, variants):
    return [analyze_drug(d, variants) for d in drugs]


class TestDrugInteractions:

    @pytest.mark.parametrize("drugs", [
        [Drug.WARFARIN, Drug.SIMVASTATIN],
        [Drug.SIMVASTATIN, Drug.WARFARIN],
    ])
    def test_pair_found_in_either_order(self, drugs):
        pairs = detect_drug_interactions(drugs)
        assert len(pairs) == 1
        assert pairs[0].severity is PatientRisk.HIGH
        assert pairs[0].mechanism == "CYP3A4 competition"
        assert (pairs[0].drug_a, pairs[0].drug_b) == tuple(drugs)

    def test_no_entry_is_not_an_error(self):
        assert detect_drug_interactions([Drug.CODEINE, Drug.CLOPIDOGREL]) == []

    def test_three_drugs(self):
        pairs = detect_drug_interactions([Drug.WARFARIN, Drug.CLOPIDOGREL, Drug.SIMVASTATIN])
        assert {(p.drug_a, p.drug_b) for p in pairs} == {
            (Drug.WARFARIN, Drug.CLOPIDOGREL),
            (Drug.WARFARIN, Drug.SIMVASTATIN),
        }

    def test_duplicate_drug_is_not_a_pair(self):
        assert detect_drug_interactions([Drug.WARFARIN, Drug.WARFARIN]) == []


class TestPhenoconversion:

    def test_inhibitor_with_poor_phenotype(self):
        drugs = [Drug.CLOPIDOGREL, Drug.CODEINE]
        assert detect_phenoconversion(drugs, analyze(drugs, CYP2C19_PM)) is True

    def test_poor_phenotype_without_inhibitor(self):
        drugs = [Drug.CODEINE, Drug.SIMVASTATIN]
        assert detect_phenoconversion(drugs, analyze(drugs, CYP2D6_PM)) is False

    def test_inhibitor_without_poor_phenotype(self):
        drugs = [Drug.CLOPIDOGREL, Drug.CODEINE]
        assert detect_phenoconversion(drugs, analyze(drugs, [])) is False


class TestOverallRisk:

    def test_all_normal_no_interactions(self):
        results = analyze([Drug.CODEINE, Drug.CLOPIDOGREL], [])
        assert determine_overall_risk(results, []) is PatientRisk.LOW

    def test_low_interaction_escalates_to_moderate(self):
        drugs = [Drug.CODEINE, Drug.FLUOROURACIL]
        results = analyze(drugs, [])
        assert determine_overall_risk(results, detect_drug_interactions(drugs)) is PatientRisk.MODERATE

    def test_high_interaction_is_severe(self):
        drugs = [Drug.WARFARIN, Drug.SIMVASTATIN]
        results = analyze(drugs, [])
        assert determine_overall_risk(results, detect_drug_interactions(drugs)) is PatientRisk.SEVERE

    def test_moderate_individual(self):
        results = analyze([Drug.CODEINE, Drug.CLOPIDOGREL], CYP2D6_IM)
        assert determine_overall_risk(results, []) is PatientRisk.MODERATE

    def test_high_individual(self):
        results = analyze([Drug.CODEINE, Drug.CLOPIDOGREL], CYP2C19_PM)
        assert determine_overall_risk(results, []) is PatientRisk.HIGH

    def test_critical_individual_is_severe(self):
        results = analyze([Drug.AZATHIOPRINE, Drug.CODEINE], TPMT_PM)
        assert determine_overall_risk(results, []) is PatientRisk.SEVERE


class TestCombinedAssessment:

    def test_highest_risk_drug(self):
        results = analyze([Drug.CODEINE, Drug.CLOPIDOGREL], CYP2D6_IM + CYP2C19_PM)
        assert highest_risk_drug(results) is Drug.CLOPIDOGREL

    def test_highest_risk_drug_first_wins_ties(self):
        results = analyze([Drug.CLOPIDOGREL, Drug.CODEINE], CYP2D6_PM + CYP2C19_PM)
        assert highest_risk_drug(results) is Drug.CLOPIDOGREL

    def test_no_risk_drug_when_all_low(self):
        assert highest_risk_drug(analyze([Drug.CODEINE, Drug.SIMVASTATIN], [])) is None

    def test_combine(self):
        drugs = [Drug.CODEINE, Drug.CLOPIDOGREL]
        results = analyze(drugs, CYP2D6_IM + CYP2C19_PM)
        combined = combine_risk_assessments(drugs, results)
        assert combined.risk_label is RiskLabel.INEFFECTIVE
        assert combined.severity is Severity.HIGH
        assert combined.confidence_score == min(r.risk_assessment.confidence_score for r in results)

    def test_combine_all_safe(self):
        drugs = [Drug.CODEINE, Drug.SIMVASTATIN]
        combined = combine_risk_assessments(drugs, analyze(drugs, []))
        assert combined.risk_label is RiskLabel.SAFE
        assert combined.severity is Severity.LOW

    @pytest.mark.parametrize("severities,expected", [
        ([], Severity.LOW),
        ([Severity.NONE, Severity.LOW], Severity.LOW),
        ([Severity.MODERATE, Severity.CRITICAL, Severity.HIGH], Severity.CRITICAL),
    ])
    def test_highest_severity(self, severities, expected):
        assert highest_severity(severities) is expected


def test_alert():
    drugs = [Drug.WARFARIN, Drug.CLOPIDOGREL]
    alert = build_polypharmacy_alert(drugs, analyze(drugs, CYP2C19_PM))
    assert alert.polypharmacy_flag is True
    assert alert.overall_patient_risk is PatientRisk.HIGH
    assert alert.highest_risk_drug is Drug.CLOPIDOGREL
    assert len(alert.interacting_pairs) == 1
    assert alert.phenoconversion_risk is True
