"""
Star Allele Calling Module
Maps a gene's variant records -> diplotype -> activity score -> phenotype.
Also interprets the biallelic SNP genes (VKORC1, CYP4F2).

Phasing is rule-based: when several heterozygous alleles are present, the
first two distinct alleles in input order are taken as the diplotype. This is
an approximation, not haplotype resolution.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from pharmaguard.models import (
    AlleleCandidate,
    DetectedVariant,
    DiplotypeResult,
    Gene,
    PhenotypeClass,
    SNPGene,
    SNPGeneResult,
    VariantRecord,
    Zygosity,
)
from pharmaguard.modules.allele_tables import (
    DEFAULT_PHENOTYPE_BANDS,
    GENE_TABLES,
    GUIDELINE_SOURCES,
    SNP_GENE_TABLES,
    GeneAlleleTable,
    SNPGeneTable,
    normalize_snp_genotype,
)
from pharmaguard.modules.vcf_parser import determine_zygosity, is_homozygous_reference, is_no_call

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.7
PER_VARIANT_BONUS = 0.05
MAX_VARIANT_BONUS = 0.15
ALLELE_CALL_BONUS = 0.1
MAX_CONFIDENCE = 0.95
UNKNOWN_CONFIDENCE = 0.3


def _resolve_gene(gene: Gene | str) -> Optional[Gene]:
    try:
        return Gene(gene)
    except ValueError:
        return None


# ── Phenotype from activity score ─────────────────────────────────────────────

def activity_score_to_phenotype(gene: Gene | str, score: float) -> PhenotypeClass:
    """Walk the gene's phenotype bands; genes without bands use the default ladder."""
    resolved = _resolve_gene(gene)
    table = GENE_TABLES.get(resolved) if resolved else None
    bands = (table.phenotype_bands if table else None) or DEFAULT_PHENOTYPE_BANDS
    for band in bands:
        if band.contains(score):
            return band.phenotype
    return bands[-1].phenotype


def activity_score_interpretation(gene: Gene | str, score: float, phenotype: PhenotypeClass) -> str:
    resolved = _resolve_gene(gene)
    if resolved is Gene.CYP2D6:
        if score == 0:
            return ("Activity Score 0 indicates no CYP2D6 enzyme activity. Codeine will not be "
                    "converted to morphine, resulting in no analgesic effect.")
        if score < 1.25:
            return (f"Activity Score {score:.1f} indicates reduced CYP2D6 enzyme activity. Codeine "
                    "conversion to morphine is decreased, potentially resulting in reduced analgesic effect.")
        if score <= 2.25:
            return (f"Activity Score {score:.1f} indicates normal CYP2D6 enzyme activity. "
                    "Standard codeine metabolism expected.")
        return (f"Activity Score {score:.1f} indicates increased CYP2D6 enzyme activity. Rapid conversion "
                "of codeine to morphine may increase risk of toxicity.")

    if resolved is Gene.CYP2C9:
        if score == 0:
            return ("Activity Score 0 indicates no CYP2C9 enzyme activity. "
                    "Significantly reduced warfarin metabolism expected.")
        if score <= 1:
            return (f"Activity Score {score:.1f} indicates poor CYP2C9 enzyme activity. "
                    "Substantially reduced warfarin clearance expected.")
        if score <= 1.5:
            return (f"Activity Score {score:.1f} indicates intermediate CYP2C9 enzyme activity. "
                    "Moderately reduced warfarin clearance expected.")
        return (f"Activity Score {score:.1f} indicates normal CYP2C9 enzyme activity. "
                "Standard warfarin metabolism expected.")

    return f"Activity Score {score:.1f} corresponds to {phenotype.display_name} status."


# ── Diplotype calling steps ──────────────────────────────────────────────────

def _filter_gene_variants(gene: Gene, variants: list[VariantRecord], table: GeneAlleleTable) -> list[VariantRecord]:
    """Records for this gene with a called, non-reference genotype."""
    kept: list[VariantRecord] = []
    for v in variants:
        relevant = (v.rsid is not None and v.rsid in table.rs_to_allele) or v.gene == gene.value
        if not relevant:
            continue
        if is_no_call(v.genotype) or is_homozygous_reference(v.genotype):
            continue
        kept.append(v)
    return kept


def _identify_star_alleles(variants: list[VariantRecord], table: GeneAlleleTable) -> list[AlleleCandidate]:
    candidates: list[AlleleCandidate] = []
    for v in variants:
        if not v.rsid:
            continue
        allele = table.rs_to_allele.get(v.rsid)
        if not allele:
            continue
        candidates.append(AlleleCandidate(allele=allele, zygosity=determine_zygosity(v.genotype), rsid=v.rsid))
    return candidates


def _assign_diplotype(candidates: list[AlleleCandidate], table: GeneAlleleTable) -> tuple[str, str]:
    """Priority rules, first match wins. Always returns exactly two alleles."""
    ref = table.reference_allele
    if not candidates:
        return ref, ref

    homozygous = next((c for c in candidates if c.zygosity is Zygosity.HOMOZYGOUS), None)
    if homozygous:
        return homozygous.allele, homozygous.allele

    if len(candidates) == 1:
        return ref, candidates[0].allele

    distinct = list(dict.fromkeys(c.allele for c in candidates))
    if len(distinct) == 1:
        # several markers of the same allele
        return ref, distinct[0]

    # Unphased compound heterozygote: first two distinct alleles in input order
    return distinct[0], distinct[1]


def _calculate_confidence(variants: list[VariantRecord], candidates: list[AlleleCandidate]) -> float:
    confidence = BASE_CONFIDENCE + min(len(variants) * PER_VARIANT_BONUS, MAX_VARIANT_BONUS)
    if candidates:
        confidence += ALLELE_CALL_BONUS
    return round(min(confidence, MAX_CONFIDENCE), 4)


def _allele_sort_key(allele: str) -> int:
    digits = re.sub(r"\D", "", allele)
    return int(digits) if digits else 0


def format_diplotype(allele1: str, allele2: str) -> str:
    """Join two alleles sorted by their numeric part, e.g. *4/*1 -> *1/*4."""
    a, b = sorted((allele1, allele2), key=_allele_sort_key)
    return f"{a}/{b}"


def _detected_variants(gene: Gene, variants: list[VariantRecord], table: GeneAlleleTable) -> list[DetectedVariant]:
    detected: list[DetectedVariant] = []
    for v in variants:
        allele = table.rs_to_allele.get(v.rsid) if v.rsid else None
        definition = table.definition(allele) if allele else None
        detected.append(DetectedVariant(
            rsid=v.rsid or f"{v.chromosome}:{v.position}",
            genotype=v.genotype or "",
            chromosome=v.chromosome,
            position=v.position,
            ref=v.ref,
            alt=v.alt,
            gene=gene.value,
            star_allele_impact=allele or "Unknown",
            function_impact=definition.clinical_function if definition else "Unknown",
        ))
    return detected


def _unknown_result(gene: str) -> DiplotypeResult:
    return DiplotypeResult(
        gene=gene,
        allele1="Unknown",
        allele2="Unknown",
        diplotype="Unknown",
        activity_score=-1.0,
        phenotype=PhenotypeClass.UNKNOWN,
        confidence=UNKNOWN_CONFIDENCE,
        phasing_method="none",
        guideline_source="Not available",
    )


def call_diplotype(gene: Gene | str, variants: list[VariantRecord]) -> DiplotypeResult:
    """
    Call the diplotype and phenotype of one gene from all parsed variants.

    Only records with a non-reference genotype contribute. Unsupported genes
    return an explicit Unknown result (activity score -1, confidence 0.3).

    Args:
        gene: Gene symbol.
        variants: Every parsed VariantRecord; filtering happens here.

    Returns:
        DiplotypeResult with two alleles, activity score, phenotype and the
        contributing records.
    """
    resolved = _resolve_gene(gene)
    if resolved is None:
        logger.info("Gene %s has no allele table; returning Unknown.", gene)
        return _unknown_result(str(getattr(gene, "value", gene)))

    table = GENE_TABLES[resolved]
    gene_variants = _filter_gene_variants(resolved, variants, table)
    candidates = _identify_star_alleles(gene_variants, table)
    allele1, allele2 = _assign_diplotype(candidates, table)
    activity = table.allele_score(allele1) + table.allele_score(allele2)
    phenotype = activity_score_to_phenotype(resolved, activity)

    result = DiplotypeResult(
        gene=resolved.value,
        allele1=allele1,
        allele2=allele2,
        diplotype=format_diplotype(allele1, allele2),
        activity_score=activity,
        phenotype=phenotype,
        confidence=_calculate_confidence(gene_variants, candidates),
        contributing_variants=gene_variants,
        detected_variants=_detected_variants(resolved, gene_variants, table),
        phasing_method=table.phasing_method,
        guideline_source=GUIDELINE_SOURCES[resolved],
    )
    logger.debug("Gene %s: diplotype=%s, phenotype=%s, score=%.2f",
                 resolved.value, result.diplotype, phenotype.code, activity)
    return result


# ── SNP genes ────────────────────────────────────────────────────────────────

def _reference_snp_result(table: SNPGeneTable, marker_found: bool) -> SNPGeneResult:
    ref = table.interpretations[table.reference_genotype]
    return SNPGeneResult(
        gene=table.gene,
        rsid=table.rsid,
        genotype=table.reference_genotype,
        genotype_display=ref.genotype_display,
        clinical_effect=ref.effect,
        dose_modifier=ref.dose_modifier,
        label=ref.label,
        variant_allele_count=0,
        marker_found=marker_found,
    )


def call_snp_gene(gene: SNPGene, variants: list[VariantRecord]) -> SNPGeneResult:
    """
    Interpret the single defining SNP of VKORC1 or CYP4F2.
    A missing record or an uncalled genotype reports ``marker_found=False``.
    """
    table = SNP_GENE_TABLES[gene]
    variant = next((v for v in variants if v.rsid == table.rsid), None)

    if variant is None or is_no_call(variant.genotype):
        return _reference_snp_result(table, marker_found=False)
    if is_homozygous_reference(variant.genotype):
        return _reference_snp_result(table, marker_found=True)

    genotype = normalize_snp_genotype(variant.genotype)
    interpretation = table.interpret(genotype)
    if interpretation is None:
        logger.warning("%s %s: unrecognised genotype %r, using reference interpretation.",
                       table.gene.value, table.rsid, variant.genotype)
        interpretation = table.interpretations[table.reference_genotype]
    if interpretation.variant_allele_count == 0:
        return _reference_snp_result(table, marker_found=True)

    return SNPGeneResult(
        gene=table.gene,
        rsid=table.rsid,
        genotype=genotype,
        genotype_display=interpretation.genotype_display,
        clinical_effect=interpretation.effect,
        dose_modifier=interpretation.dose_modifier,
        label=interpretation.label,
        variant_allele_count=interpretation.variant_allele_count,
        marker_found=True,
        source_variant=variant,
        detected_variant=DetectedVariant(
            rsid=table.rsid,
            genotype=genotype,
            chromosome=variant.chromosome,
            position=variant.position,
            ref=variant.ref,
            alt=variant.alt,
            gene=table.gene.value,
            star_allele_impact="N/A",
            function_impact=interpretation.effect,
        ),
    )


# ── Consistency self-check ───────────────────────────────────────────────────

def validate_diplotype_consistency(result: DiplotypeResult) -> list[str]:
    """
    Recompute activity score and phenotype from the assigned alleles.
    Any message returned points at a defect in the reference tables.
    """
    resolved = _resolve_gene(result.gene)
    if resolved is None:
        return []
    table = GENE_TABLES[resolved]
    errors: list[str] = []

    if not result.contributing_variants and table.reference_allele not in (result.allele1, result.allele2):
        errors.append(
            f"Inconsistency: No variants detected but diplotype is {result.diplotype} "
            f"(expected {table.reference_allele}/{table.reference_allele})"
        )

    expected_score = table.allele_score(result.allele1) + table.allele_score(result.allele2)
    if abs(result.activity_score - expected_score) > 0.01:
        errors.append(
            f"Inconsistency: Activity score {result.activity_score} doesn't match allele sum {expected_score}"
        )

    expected_phenotype = activity_score_to_phenotype(resolved, result.activity_score)
    if result.phenotype is not expected_phenotype:
        errors.append(
            f"Inconsistency: Phenotype {result.phenotype.value} doesn't match activity score "
            f"{result.activity_score} (expected {expected_phenotype.value})"
        )
    return errors
