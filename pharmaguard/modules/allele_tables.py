"""
Star-allele and SNP-gene reference tables.
Allele definitions and activity values follow the CPIC guidelines for each gene.
Built once at import; never mutated.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from pharmaguard.models import (
    AlleleDefinition,
    AlleleFunction,
    Gene,
    PhenotypeBand,
    PhenotypeClass,
    SNPGene,
    SNPInterpretation,
)

RULE_BASED_PHASING = "rule_based_haplotype_inference"

_INF = float("inf")


class GeneAlleleTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    gene: Gene
    reference_allele: str = "*1"
    alleles: tuple[AlleleDefinition, ...]
    rs_to_allele: dict[str, str]
    phasing_method: str = RULE_BASED_PHASING
    phenotype_bands: Optional[tuple[PhenotypeBand, ...]] = None

    @model_validator(mode="after")
    def _check_reverse_lookup(self) -> "GeneAlleleTable":
        defined = {a.allele for a in self.alleles}
        defining = {rs for a in self.alleles for rs in a.defining_rsids}
        for rsid, allele in self.rs_to_allele.items():
            if rsid not in defining:
                raise ValueError(f"{self.gene.value}: {rsid} is not a defining variant of any allele")
            if allele not in defined:
                raise ValueError(f"{self.gene.value}: {rsid} maps to undefined allele {allele}")
        if self.reference_allele not in defined:
            raise ValueError(f"{self.gene.value}: reference allele {self.reference_allele} is not defined")
        return self

    def definition(self, allele: str) -> Optional[AlleleDefinition]:
        for a in self.alleles:
            if a.allele == allele:
                return a
        return None

    def allele_score(self, allele: str) -> float:
        """Activity value of an allele. Unlisted alleles count as normal (1.0)."""
        d = self.definition(allele)
        return d.activity_score if d else 1.0


class SNPGeneTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    gene: SNPGene
    rsid: str
    chromosome: str
    position: int
    ref: str
    alt: str
    reference_genotype: str = "0/0"
    interpretations: dict[str, SNPInterpretation]

    def interpret(self, genotype: str) -> Optional[SNPInterpretation]:
        return self.interpretations.get(normalize_snp_genotype(genotype))


def normalize_snp_genotype(genotype: str) -> str:
    """'0|1' -> '0/1', 'G|A' -> 'GA', 'G/A' -> 'GA'."""
    gt = genotype.strip().replace("|", "/")
    parts = gt.split("/")
    if len(parts) == 2 and all(p.isalpha() for p in parts):
        return "".join(parts).upper()
    return gt.upper() if gt.isalpha() else gt


def _allele(label: str, rsids: tuple[str, ...], function: AlleleFunction, score: float, desc: str) -> AlleleDefinition:
    return AlleleDefinition(
        allele=label, defining_rsids=rsids, function=function, activity_score=score, clinical_function=desc,
    )


_N, _D, _X, _I = AlleleFunction.NORMAL, AlleleFunction.DECREASED, AlleleFunction.NO_FUNCTION, AlleleFunction.INCREASED


def _band(max_score: float, phenotype: PhenotypeClass, inclusive: bool = True) -> PhenotypeBand:
    return PhenotypeBand(max_score=max_score, inclusive=inclusive, phenotype=phenotype)


_P, _IM, _NM, _RM, _UM = (
    PhenotypeClass.POOR,
    PhenotypeClass.INTERMEDIATE,
    PhenotypeClass.NORMAL,
    PhenotypeClass.RAPID,
    PhenotypeClass.ULTRARAPID,
)

# Used for genes whose table carries no bands of its own
DEFAULT_PHENOTYPE_BANDS: tuple[PhenotypeBand, ...] = (
    _band(0.0, _P),
    _band(1.0, _IM, inclusive=False),
    _band(2.0, _NM),
    _band(_INF, _UM),
)


# ── Star-allele genes ────────────────────────────────────────────────────────

CYP2D6_TABLE = GeneAlleleTable(
    gene=Gene.CYP2D6,
    alleles=(
        _allele("*1", (), _N, 1.0, "Normal function"),
        _allele("*2", ("rs16947",), _N, 1.0, "Normal function"),
        _allele("*3", ("rs35742686",), _X, 0.0, "No function"),
        _allele("*4", ("rs3892097",), _X, 0.0, "No function"),
        _allele("*5", (), _X, 0.0, "Gene deletion"),
        _allele("*6", ("rs5030655",), _X, 0.0, "No function"),
        _allele("*9", ("rs5030656",), _D, 0.5, "Decreased function"),
        _allele("*10", ("rs1065852",), _D, 0.25, "Decreased function"),
        _allele("*17", ("rs28371706",), _D, 0.5, "Decreased function"),
        _allele("*29", ("rs59421388",), _D, 0.5, "Decreased function"),
        _allele("*41", ("rs28371725",), _D, 0.5, "Decreased function"),
    ),
    rs_to_allele={
        "rs16947": "*2",
        "rs35742686": "*3",
        "rs3892097": "*4",
        "rs5030655": "*6",
        "rs5030656": "*9",
        "rs1065852": "*10",
        "rs28371706": "*17",
        "rs59421388": "*29",
        "rs28371725": "*41",
    },
    phenotype_bands=(
        _band(0.0, _P),
        _band(1.25, _IM, inclusive=False),
        _band(2.25, _NM),
        _band(_INF, _UM),
    ),
)

CYP2C19_TABLE = GeneAlleleTable(
    gene=Gene.CYP2C19,
    alleles=(
        _allele("*1", (), _N, 1.0, "Normal function"),
        _allele("*2", ("rs4244285",), _X, 0.0, "No function"),
        _allele("*3", ("rs4986893",), _X, 0.0, "No function"),
        _allele("*4", ("rs28399504",), _X, 0.0, "No function"),
        _allele("*6", ("rs56337013",), _X, 0.0, "No function"),
        _allele("*9", ("rs17884712",), _D, 0.5, "Decreased function"),
        _allele("*17", ("rs12248560", "rs12769205"), _I, 1.5, "Increased function"),
    ),
    rs_to_allele={
        "rs4244285": "*2",
        "rs4986893": "*3",
        "rs28399504": "*4",
        "rs56337013": "*6",
        "rs17884712": "*9",
        "rs12248560": "*17",
        "rs12769205": "*17",
    },
    phenotype_bands=(
        _band(0.0, _P),
        _band(1.5, _IM, inclusive=False),
        _band(2.0, _NM),
        _band(_INF, _RM),
    ),
)

# CPIC 2017 warfarin guideline: 2 = NM, 1-1.5 = IM, 0-0.5 = PM
CYP2C9_TABLE = GeneAlleleTable(
    gene=Gene.CYP2C9,
    alleles=(
        _allele("*1", (), _N, 1.0, "Normal function"),
        _allele("*2", ("rs1799853",), _D, 0.5, "Decreased function"),
        _allele("*3", ("rs1057910",), _X, 0.0, "No function"),
        _allele("*5", ("rs28371686",), _X, 0.0, "No function"),
        _allele("*6", ("rs9332131",), _X, 0.0, "No function"),
        _allele("*8", ("rs7900194",), _D, 0.5, "Decreased function"),
        _allele("*11", ("rs28371685",), _D, 0.5, "Decreased function"),
        _allele("*12", ("rs9332239",), _D, 0.5, "Decreased function"),
    ),
    rs_to_allele={
        "rs1799853": "*2",
        "rs1057910": "*3",
        "rs28371686": "*5",
        "rs9332131": "*6",
        "rs7900194": "*8",
        "rs28371685": "*11",
        "rs9332239": "*12",
    },
    phenotype_bands=(
        _band(0.5, _P),
        _band(1.5, _IM),
        _band(2.0, _IM, inclusive=False),
        _band(_INF, _NM),
    ),
)

TPMT_TABLE = GeneAlleleTable(
    gene=Gene.TPMT,
    alleles=(
        _allele("*1", (), _N, 1.0, "Normal function"),
        _allele("*2", ("rs1800462",), _X, 0.0, "No function"),
        _allele("*3A", ("rs1800460", "rs1142345"), _X, 0.0, "No function"),
        _allele("*3B", ("rs1800460",), _X, 0.0, "No function"),
        _allele("*3C", ("rs1142345",), _X, 0.0, "No function"),
    ),
    rs_to_allele={
        "rs1800462": "*2",
        "rs1800460": "*3B",
        "rs1142345": "*3C",
    },
)

DPYD_TABLE = GeneAlleleTable(
    gene=Gene.DPYD,
    alleles=(
        _allele("*1", (), _N, 1.0, "Normal function"),
        _allele("*2A", ("rs3918290",), _X, 0.0, "No function"),
        _allele("*13", ("rs55886062",), _X, 0.0, "No function"),
    ),
    rs_to_allele={
        "rs3918290": "*2A",
        "rs55886062": "*13",
    },
)

SLCO1B1_TABLE = GeneAlleleTable(
    gene=Gene.SLCO1B1,
    reference_allele="*1a",
    alleles=(
        _allele("*1a", (), _N, 1.0, "Normal function"),
        _allele("*1b", ("rs2306283",), _N, 1.0, "Normal function"),
        _allele("*5", ("rs4149056",), _D, 0.5, "Decreased function"),
        _allele("*15", ("rs2306283", "rs4149056"), _D, 0.5, "Decreased function"),
    ),
    rs_to_allele={
        "rs4149056": "*5",
        "rs2306283": "*1b",
    },
)

GENE_TABLES: dict[Gene, GeneAlleleTable] = {
    Gene.CYP2D6: CYP2D6_TABLE,
    Gene.CYP2C19: CYP2C19_TABLE,
    Gene.CYP2C9: CYP2C9_TABLE,
    Gene.TPMT: TPMT_TABLE,
    Gene.DPYD: DPYD_TABLE,
    Gene.SLCO1B1: SLCO1B1_TABLE,
}

GUIDELINE_SOURCES: dict[Gene, str] = {
    Gene.CYP2D6: "CPIC Guideline for CYP2D6 and Codeine Therapy (2023 Update)",
    Gene.CYP2C19: "CPIC Guideline for CYP2C19 and Clopidogrel Therapy (2022 Update)",
    Gene.CYP2C9: "CPIC Guideline for Pharmacogenetics-Guided Warfarin Dosing (2017 Update)",
    Gene.TPMT: "CPIC Guideline for Thiopurines and TPMT/NUDT15 (2018 Update)",
    Gene.DPYD: "CPIC Guideline for Fluoropyrimidines and DPYD (2017 Update)",
    Gene.SLCO1B1: "CPIC Guideline for SLCO1B1 and Statin-Associated Musculoskeletal Symptoms (2022 Update)",
}


# ── SNP genes ────────────────────────────────────────────────────────────────

def _snp(display: str, effect: str, modifier: str, label: str, count: int) -> SNPInterpretation:
    return SNPInterpretation(
        genotype_display=display, effect=effect, dose_modifier=modifier, label=label, variant_allele_count=count,
    )


_VK_NORMAL = ("Normal warfarin sensitivity", "Standard dose", "Normal")
_VK_HET = ("Increased warfarin sensitivity", "Reduce initial dose by ~25%", "Intermediate")
_VK_HOM = ("High warfarin sensitivity", "Reduce initial dose by ~50%", "High")

# rs9923231, VKORC1 -1639G>A
VKORC1_TABLE = SNPGeneTable(
    gene=SNPGene.VKORC1,
    rsid="rs9923231",
    chromosome="16",
    position=31096368,
    ref="G",
    alt="A",
    interpretations={
        "GG": _snp("G/G", *_VK_NORMAL, 0),
        "GA": _snp("G/A", *_VK_HET, 1),
        "AG": _snp("G/A", *_VK_HET, 1),
        "AA": _snp("A/A", *_VK_HOM, 2),
        "0/0": _snp("G/G", "Normal warfarin sensitivity (ref)", "Standard dose", "Normal", 0),
        "0/1": _snp("G/A", *_VK_HET, 1),
        "1/0": _snp("G/A", *_VK_HET, 1),
        "1/1": _snp("A/A", *_VK_HOM, 2),
    },
)

_C4_NORMAL = ("Normal vitamin K metabolism", "No adjustment", "*1/*1")
_C4_HET = ("Slightly reduced vitamin K metabolism", "May need ~5-10% higher dose", "*1/*3")
_C4_HOM = ("Reduced vitamin K metabolism", "May need ~10-15% higher dose", "*3/*3")

# rs2108622, CYP4F2*3 (V433M)
CYP4F2_TABLE = SNPGeneTable(
    gene=SNPGene.CYP4F2,
    rsid="rs2108622",
    chromosome="19",
    position=15990431,
    ref="C",
    alt="T",
    interpretations={
        "CC": _snp("C/C", *_C4_NORMAL, 0),
        "CT": _snp("C/T", *_C4_HET, 1),
        "TC": _snp("C/T", *_C4_HET, 1),
        "TT": _snp("T/T", *_C4_HOM, 2),
        "0/0": _snp("C/C", "Normal vitamin K metabolism (ref)", "No adjustment", "*1/*1", 0),
        "0/1": _snp("C/T", *_C4_HET, 1),
        "1/0": _snp("C/T", *_C4_HET, 1),
        "1/1": _snp("T/T", *_C4_HOM, 2),
    },
)

SNP_GENE_TABLES: dict[SNPGene, SNPGeneTable] = {
    SNPGene.VKORC1: VKORC1_TABLE,
    SNPGene.CYP4F2: CYP4F2_TABLE,
}


def _check_coverage() -> None:
    missing = [g.value for g in Gene if g not in GENE_TABLES or g not in GUIDELINE_SOURCES]
    missing += [g.value for g in SNPGene if g not in SNP_GENE_TABLES]
    if missing:
        raise RuntimeError(f"Reference tables missing for: {', '.join(missing)}")


_check_coverage()
