"""
Pydantic models and closed enumerations shared by the classification core
and the HTTP layer.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ── Enumerations ─────────────────────────────────────────────────────────────

class Gene(str, Enum):
    """Star-allele genes with a reference allele table."""
    CYP2D6 = "CYP2D6"
    CYP2C19 = "CYP2C19"
    CYP2C9 = "CYP2C9"
    SLCO1B1 = "SLCO1B1"
    TPMT = "TPMT"
    DPYD = "DPYD"


class SNPGene(str, Enum):
    """Genes interpreted from a single biallelic SNP."""
    VKORC1 = "VKORC1"
    CYP4F2 = "CYP4F2"


class Drug(str, Enum):
    CODEINE = "CODEINE"
    WARFARIN = "WARFARIN"
    CLOPIDOGREL = "CLOPIDOGREL"
    SIMVASTATIN = "SIMVASTATIN"
    AZATHIOPRINE = "AZATHIOPRINE"
    FLUOROURACIL = "FLUOROURACIL"


class PhenotypeClass(str, Enum):
    POOR = "Poor"
    INTERMEDIATE = "Intermediate"
    NORMAL = "Normal"
    RAPID = "Rapid"
    ULTRARAPID = "Ultrarapid"
    UNKNOWN = "Unknown"

    @property
    def code(self) -> str:
        return _PHENOTYPE_CODES[self]

    @property
    def display_name(self) -> str:
        if self is PhenotypeClass.UNKNOWN:
            return "Unknown"
        return f"{self.value} Metabolizer"


_PHENOTYPE_CODES = {
    PhenotypeClass.POOR: "PM",
    PhenotypeClass.INTERMEDIATE: "IM",
    PhenotypeClass.NORMAL: "NM",
    PhenotypeClass.RAPID: "RM",
    PhenotypeClass.ULTRARAPID: "URM",
    PhenotypeClass.UNKNOWN: "Unknown",
}


class AlleleFunction(str, Enum):
    NORMAL = "normal"
    DECREASED = "decreased"
    NO_FUNCTION = "no_function"
    INCREASED = "increased"


class Zygosity(str, Enum):
    HOMOZYGOUS = "homozygous"
    HETEROZYGOUS = "heterozygous"


class RiskLabel(str, Enum):
    SAFE = "SAFE"
    ADJUST_DOSAGE = "ADJUST_DOSAGE"
    TOXIC = "TOXIC"
    INEFFECTIVE = "INEFFECTIVE"
    UNKNOWN = "UNKNOWN"

    @property
    def display(self) -> str:
        return self.value.replace("_", " ").title()


class Severity(str, Enum):
    NONE = "NONE"
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        # NONE and LOW share the bottom rank for multi-drug escalation
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.NONE: 0,
    Severity.LOW: 0,
    Severity.MODERATE: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class PatientRisk(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    SEVERE = "SEVERE"


class CompositeRisk(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    SEVERE = "SEVERE"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class EvidenceLevel(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class ImplementationStatus(str, Enum):
    REQUIRED = "Required"
    RECOMMENDED = "Recommended"
    OPTIONAL = "Optional"
    NO_RECOMMENDATION = "No Recommendation"


# ── VCF Parsing ──────────────────────────────────────────────────────────────

class VariantRecord(BaseModel):
    """One parsed VCF data line. Never mutated after parsing."""
    model_config = ConfigDict(frozen=True)

    chromosome: str
    position: int = Field(ge=0)
    identifier: str
    ref: str
    alt: str
    quality: str
    filter: str
    info: dict[str, str] = Field(default_factory=dict)
    genotype: Optional[str] = None
    gene: Optional[str] = None
    star_allele: Optional[str] = None
    rsid: Optional[str] = None


class VCFMetadata(BaseModel):
    file_format: str = "unknown"
    reference: Optional[str] = None
    contigs: list[str] = Field(default_factory=list)


class VCFParseResult(BaseModel):
    """Partial-success parse result: callers must check ``errors`` even on success."""
    variants: list[VariantRecord] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    success: bool = False
    metadata: VCFMetadata = Field(default_factory=VCFMetadata)
    total_variants: int = 0
    pharmacogenetic_variants: int = 0


# ── Reference Tables ─────────────────────────────────────────────────────────

class AlleleDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    allele: str
    defining_rsids: tuple[str, ...] = ()
    function: AlleleFunction
    activity_score: float
    clinical_function: str


class PhenotypeBand(BaseModel):
    """Activity scores up to ``max_score`` (inclusive or not) map to ``phenotype``."""
    model_config = ConfigDict(frozen=True)

    max_score: float
    inclusive: bool = True
    phenotype: PhenotypeClass

    def contains(self, score: float) -> bool:
        return score <= self.max_score if self.inclusive else score < self.max_score


class SNPInterpretation(BaseModel):
    model_config = ConfigDict(frozen=True)

    genotype_display: str
    effect: str
    dose_modifier: str
    label: str
    variant_allele_count: int = Field(ge=0, le=2)


# ── Calling Results ──────────────────────────────────────────────────────────

class AlleleCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    allele: str
    zygosity: Zygosity
    rsid: str


class DetectedVariant(BaseModel):
    model_config = ConfigDict(frozen=True)

    rsid: str
    genotype: str
    chromosome: str
    position: int
    ref: str
    alt: str
    gene: str
    star_allele_impact: str
    function_impact: str


class Phenotype(BaseModel):
    """Phenotype handed to the risk engine."""
    model_config = ConfigDict(frozen=True)

    name: str
    activity: PhenotypeClass
    confidence: float = Field(ge=0.0, le=1.0)


class DiplotypeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    gene: str
    allele1: str
    allele2: str
    diplotype: str
    activity_score: float
    phenotype: PhenotypeClass
    confidence: float = Field(ge=0.0, le=1.0)
    contributing_variants: list[VariantRecord] = Field(default_factory=list)
    detected_variants: list[DetectedVariant] = Field(default_factory=list)
    phasing_method: str
    guideline_source: str

    @property
    def phenotype_code(self) -> str:
        return self.phenotype.code

    def to_phenotype(self) -> Optional[Phenotype]:
        """Phenotype for the risk engine, or None when the call is Unknown."""
        if self.phenotype is PhenotypeClass.UNKNOWN:
            return None
        return Phenotype(
            name=self.phenotype.display_name,
            activity=self.phenotype,
            confidence=self.confidence,
        )


class SNPGeneResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    gene: SNPGene
    rsid: str
    genotype: str
    genotype_display: str
    clinical_effect: str
    dose_modifier: str
    label: str
    variant_allele_count: int = 0
    marker_found: bool = False
    source_variant: Optional[VariantRecord] = None
    detected_variant: Optional[DetectedVariant] = None


# ── Risk Engine ──────────────────────────────────────────────────────────────

class ClinicalRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    dosing_guidance: str
    monitoring_requirements: list[str] = Field(default_factory=list)
    alternative_drugs: list[str] = Field(default_factory=list)
    evidence_level: EvidenceLevel
    implementation_status: ImplementationStatus


class RiskRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_label: RiskLabel
    severity: Severity
    base_confidence: float = Field(ge=0.0, le=1.0)
    recommendation: ClinicalRecommendation


class RiskAssessment(BaseModel):
    risk_label: RiskLabel
    confidence_score: float = Field(ge=0.0, le=1.0)
    severity: Severity
    fallback_rule_used: bool = False


class ProfileVariant(BaseModel):
    rsid: Optional[str] = None
    chromosome: str
    position: int
    ref: str
    alt: str
    gene: Optional[str] = None
    star_allele: Optional[str] = None
    genotype: Optional[str] = None


class PharmacogenomicProfile(BaseModel):
    primary_gene: str
    diplotype: str
    phenotype: str
    detected_variants: list[ProfileVariant] = Field(default_factory=list)


class RiskEngineResult(BaseModel):
    risk_assessment: RiskAssessment
    pharmacogenomic_profile: PharmacogenomicProfile
    clinical_recommendation: ClinicalRecommendation


# ── Warfarin Composite ───────────────────────────────────────────────────────

class WarfarinDoseRecommendation(BaseModel):
    initial_dose_strategy: str
    dose_reduction_percent: int = Field(ge=0, le=80)
    adjustments: list[str] = Field(default_factory=list)
    monitoring: list[str] = Field(default_factory=list)


class WarfarinMultiGeneResult(BaseModel):
    drug: Drug = Drug.WARFARIN
    cyp2c9: DiplotypeResult
    vkorc1: SNPGeneResult
    cyp4f2: SNPGeneResult
    dose_recommendation: WarfarinDoseRecommendation
    overall_risk: CompositeRisk
    missing_markers: list[str] = Field(default_factory=list)
    all_detected_variants: list[DetectedVariant] = Field(default_factory=list)
    validation_errors: list[str] = Field(default_factory=list)
    guideline_source: str
    evidence_level: EvidenceLevel = EvidenceLevel.A

    @property
    def has_sufficient_data(self) -> bool:
        return self.overall_risk is not CompositeRisk.INSUFFICIENT_DATA


# ── Interactions ─────────────────────────────────────────────────────────────

class InteractionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    drugs: frozenset[Drug]
    severity: PatientRisk
    mechanism: str


class InteractionPair(BaseModel):
    drug_a: Drug
    drug_b: Drug
    severity: PatientRisk
    mechanism: str


# ── Pipeline Output ──────────────────────────────────────────────────────────

class DrugAnalysis(BaseModel):
    drug: Drug
    primary_gene: Gene
    risk_assessment: RiskAssessment
    pharmacogenomic_profile: PharmacogenomicProfile
    clinical_recommendation: ClinicalRecommendation
    diplotype_call: DiplotypeResult
    activity_score_interpretation: str
    warfarin_multi_gene: Optional[WarfarinMultiGeneResult] = None
    consistency_errors: list[str] = Field(default_factory=list)


class PolypharmacyAlert(BaseModel):
    polypharmacy_flag: bool = True
    overall_patient_risk: PatientRisk
    highest_risk_drug: Optional[Drug] = None
    interacting_pairs: list[InteractionPair] = Field(default_factory=list)
    phenoconversion_risk: bool = False


class PolypharmacyResult(BaseModel):
    drugs: list[Drug]
    individual_results: list[DrugAnalysis]
    risk_assessment: RiskAssessment
    alert: PolypharmacyAlert


# ── API ──────────────────────────────────────────────────────────────────────

class UploadMetadata(BaseModel):
    file_name: str
    file_format: str
    reference: Optional[str] = None
    total_variants: int
    pharmacogenetic_variants: int
    parse_errors: list[str] = Field(default_factory=list)


class QualityMetrics(BaseModel):
    vcf_parsing_success: bool
    variants_detected: int


class AnalysisResponse(BaseModel):
    status: str
    patient_id: Optional[str] = None
    analysis_timestamp: str
    vcf_metadata: UploadMetadata
    drug_results: list[DrugAnalysis]
    polypharmacy: Optional[PolypharmacyResult] = None
    quality_metrics: QualityMetrics
    processing_time_ms: int


class DrugInfo(BaseModel):
    drug: Drug
    name: str
    category: str
    description: str
    primary_gene: Gene


class HealthResponse(BaseModel):
    status: str
    version: str
    genes_supported: list[str]
    drugs_supported: list[str]
