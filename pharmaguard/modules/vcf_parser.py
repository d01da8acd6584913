"""
VCF v4.2 Parser Module
Parses VCF text into VariantRecords (GENE, STAR, RS INFO tags) with
partial-success diagnostics.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from pharmaguard.models import Gene, VariantRecord, VCFMetadata, VCFParseResult, Zygosity

logger = logging.getLogger(__name__)

COLUMN_HEADER = "#CHROM"
REQUIRED_COLUMNS = ("#CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO")

SUPPORTED_GENES: frozenset[str] = frozenset(g.value for g in Gene)

# Known PGx rsIDs, used only for advisory pre-filtering
PGX_RSIDS: frozenset[str] = frozenset({
    "rs3892097", "rs35742686", "rs5030655", "rs16947",   # CYP2D6
    "rs4244285", "rs4986893", "rs12248560",              # CYP2C19
    "rs1799853", "rs1057910",                            # CYP2C9
    "rs1142345", "rs1800460", "rs1800462",               # TPMT
    "rs4149056",                                         # SLCO1B1
    "rs3918290", "rs55886062",                           # DPYD
})

_CONTIG_ID = re.compile(r"ID=([^,>]+)")


# ── Genotype helpers ─────────────────────────────────────────────────────────

def genotype_alleles(genotype: str) -> list[str]:
    """Split a GT string on either phasing separator."""
    return re.split(r"[/|]", genotype.strip())


def is_no_call(genotype: Optional[str]) -> bool:
    if not genotype:
        return True
    return all(a in (".", "") for a in genotype_alleles(genotype))


def is_homozygous_reference(genotype: str) -> bool:
    """True for 0/0 or 0|0."""
    return genotype_alleles(genotype) == ["0", "0"]


def determine_zygosity(genotype: str) -> Zygosity:
    """Anything that does not split into two components counts as heterozygous."""
    alleles = genotype_alleles(genotype)
    if len(alleles) != 2:
        return Zygosity.HETEROZYGOUS
    if alleles[0] == alleles[1]:
        return Zygosity.HOMOZYGOUS
    return Zygosity.HETEROZYGOUS


# ── Line parsing ─────────────────────────────────────────────────────────────

def _parse_info(info_str: str) -> dict[str, str]:
    """Parse the VCF INFO field into a dict. Handles FLAG and KEY=VALUE entries."""
    result: dict[str, str] = {}
    if not info_str or info_str == ".":
        return result
    for token in info_str.split(";"):
        if not token:
            continue
        k, sep, v = token.partition("=")
        if k:
            result[k] = v if sep and v else "true"
    return result


def _extract_genotype(fields: list[str], columns: dict[str, int], info: dict[str, str]) -> Optional[str]:
    """GT of the first sample column when FORMAT is present, else INFO GT/GENOTYPE."""
    fmt_idx = columns.get("FORMAT")
    if fmt_idx is not None and len(fields) > fmt_idx + 1:
        keys = fields[fmt_idx].split(":")
        values = fields[fmt_idx + 1].split(":")
        if "GT" in keys:
            gt_idx = keys.index("GT")
            if gt_idx < len(values):
                return values[gt_idx].strip()
    return info.get("GT") or info.get("GENOTYPE")


def _parse_variant_line(fields: list[str], columns: dict[str, int]) -> VariantRecord:
    position = int(fields[columns["POS"]])
    if position < 0:
        raise ValueError(f"negative position {position}")

    identifier = fields[columns["ID"]]
    info = _parse_info(fields[columns["INFO"]])

    rsid = info.get("RS")
    if not rsid and identifier.startswith("rs"):
        rsid = identifier

    return VariantRecord(
        chromosome=fields[columns["#CHROM"]],
        position=position,
        identifier=identifier,
        ref=fields[columns["REF"]],
        alt=fields[columns["ALT"]],
        quality=fields[columns["QUAL"]],
        filter=fields[columns["FILTER"]],
        info=info,
        genotype=_extract_genotype(fields, columns, info),
        gene=info.get("GENE"),
        star_allele=info.get("STAR"),
        rsid=rsid,
    )


def _parse_metadata_line(line: str, metadata: VCFMetadata) -> None:
    if line.startswith("##fileformat="):
        metadata.file_format = line.split("=", 1)[1].strip()
    elif line.startswith("##reference="):
        metadata.reference = line.split("=", 1)[1].strip()
    elif line.startswith("##contig="):
        match = _CONTIG_ID.search(line)
        if match:
            metadata.contigs.append(match.group(1))


# ── Public API ───────────────────────────────────────────────────────────────

def is_pharmacogenetic_variant(variant: VariantRecord) -> bool:
    """Advisory relevance check; never use it to drop records before gene calling."""
    if variant.gene and variant.gene in SUPPORTED_GENES:
        return True
    return bool(variant.rsid and variant.rsid in PGX_RSIDS)


def filter_pharmacogenetic_variants(variants: list[VariantRecord]) -> list[VariantRecord]:
    return [v for v in variants if is_pharmacogenetic_variant(v)]


def parse_vcf(file_content: bytes | str) -> VCFParseResult:
    """
    Parse VCF text into VariantRecords.

    Missing header or required columns are fatal (no variants, success=False).
    Malformed data lines are skipped and reported in ``errors``; the result is
    still successful when at least one variant was parsed.

    Args:
        file_content: Raw bytes or string content of the VCF file.

    Returns:
        VCFParseResult with variants, errors, success flag and header metadata.
    """
    if isinstance(file_content, bytes):
        try:
            text = file_content.decode("utf-8")
        except UnicodeDecodeError:
            text = file_content.decode("latin-1")
    else:
        text = file_content

    result = VCFParseResult()
    numbered = [(n, line.rstrip("\r")) for n, line in enumerate(text.split("\n"), start=1) if line.strip()]
    if not numbered:
        result.errors.append("Empty VCF file")
        return result

    # ── Header Parsing ─────────────────────────────────────────────────────
    header_pos: Optional[int] = None
    for i, (_, line) in enumerate(numbered):
        if line.startswith(COLUMN_HEADER):
            header_pos = i
            break
        _parse_metadata_line(line, result.metadata)

    if header_pos is None:
        result.errors.append("Invalid VCF format: missing column header")
        return result

    header = numbered[header_pos][1].split("\t")
    columns = {name.strip(): idx for idx, name in enumerate(header)}
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        result.errors.append(f"Invalid VCF format: missing required columns: {', '.join(missing)}")
        return result

    # ── Variant Parsing ────────────────────────────────────────────────────
    for lineno, line in numbered[header_pos + 1:]:
        if line.startswith("#"):
            continue
        fields = line.split("\t")
        if len(fields) < 8:
            result.errors.append(f"Error parsing line {lineno}: insufficient columns ({len(fields)})")
            logger.warning("Line %d: insufficient columns (%d), skipping.", lineno, len(fields))
            continue
        try:
            variant = _parse_variant_line(fields, columns)
        except (ValueError, IndexError) as exc:
            result.errors.append(f"Error parsing line {lineno}: {exc}")
            logger.warning("Line %d: parse error: %s", lineno, exc)
            continue

        result.variants.append(variant)
        if is_pharmacogenetic_variant(variant):
            result.pharmacogenetic_variants += 1

    result.total_variants = len(result.variants)
    result.success = not result.errors or bool(result.variants)

    logger.info(
        "VCF parse complete: %d variants, %d PGx-relevant, %d line errors.",
        result.total_variants, result.pharmacogenetic_variants, len(result.errors),
    )
    return result


def validate_vcf(content: bytes | str, max_size_mb: float = 5) -> Optional[str]:
    """Request-boundary check. Returns an error message, or None when acceptable."""
    raw = content.encode("utf-8") if isinstance(content, str) else content
    if len(raw) > max_size_mb * 1024 * 1024:
        return f"File size exceeds {max_size_mb}MB limit"
    if b"##fileformat=VCF" not in raw:
        return "Invalid VCF format: missing fileformat header"
    if COLUMN_HEADER.encode() not in raw:
        return "Invalid VCF format: missing column headers"
    return None
