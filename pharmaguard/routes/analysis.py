"""
Analysis API Route: POST /api/v1/analyze
"""
from __future__ import annotations

import time
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, File, Form, UploadFile, HTTPException, Depends

from pharmaguard.config import Settings, get_settings
from pharmaguard.models import AnalysisResponse, Drug, QualityMetrics, UploadMetadata
from pharmaguard.modules.pipeline import analyze_drug, analyze_drugs
from pharmaguard.modules.vcf_parser import parse_vcf, validate_vcf

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Analysis"])


class UnsupportedDrugError(ValueError):
    """A requested drug name is not in the supported drug set."""


def parse_drug_list(drugs: str) -> list[Drug]:
    """
    Parse a comma-separated drug list into Drug members, case-insensitively,
    dropping blanks and duplicates while keeping request order.

    Raises:
        UnsupportedDrugError: on the first unknown name.
    """
    parsed: list[Drug] = []
    for name in drugs.split(","):
        name = name.strip()
        if not name:
            continue
        try:
            drug = Drug(name.upper())
        except ValueError:
            supported = ", ".join(d.value for d in Drug)
            raise UnsupportedDrugError(f"Unsupported drug: {name}. Supported drugs: {supported}") from None
        if drug not in parsed:
            parsed.append(drug)
    return parsed


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    summary="Pharmacogenomic Risk Analysis",
    description=(
        "Upload a VCF v4.2 file and a comma-separated list of drug names. "
        "Two or more drugs also return a polypharmacy assessment."
    ),
)
async def analyze(
    vcf_file: UploadFile = File(..., description="VCF v4.2 file containing patient genomic variants"),
    drugs: str = Form(..., description="Comma-separated drug names, e.g. 'codeine,warfarin'"),
    patient_id: str | None = Form(None, description="Optional patient identifier (not stored)"),
    settings: Settings = Depends(get_settings),
):
    start_time = time.monotonic()

    # ── 1. Validate upload ────────────────────────────────────────────────
    content = await vcf_file.read()
    if len(content) > settings.max_vcf_size_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"VCF file exceeds maximum size of {settings.max_vcf_size_mb} MB.",
        )
    problem = validate_vcf(content, max_size_mb=settings.max_vcf_size_mb)
    if problem:
        raise HTTPException(status_code=400, detail=problem)

    # ── 2. Parse VCF ─────────────────────────────────────────────────────
    parsed = parse_vcf(content)
    if not parsed.success and not parsed.variants:
        raise HTTPException(status_code=422, detail={"message": "VCF Parse Error", "errors": parsed.errors})

    # ── 3. Parse drug list ────────────────────────────────────────────────
    try:
        drug_list = parse_drug_list(drugs)
    except UnsupportedDrugError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not drug_list:
        raise HTTPException(status_code=400, detail="At least one drug name must be provided.")

    # ── 4. PGx Analysis ───────────────────────────────────────────────────
    polypharmacy = None
    if len(drug_list) >= settings.min_polypharmacy_drugs:
        polypharmacy = analyze_drugs(drug_list, parsed.variants)
        drug_results = polypharmacy.individual_results
    else:
        drug_results = [analyze_drug(d, parsed.variants) for d in drug_list]

    # ── 5. Assemble Response ──────────────────────────────────────────────
    elapsed_ms = int((time.monotonic() - start_time) * 1000)

    response = AnalysisResponse(
        status="success",
        patient_id=patient_id,
        analysis_timestamp=datetime.now(timezone.utc).isoformat(),
        vcf_metadata=UploadMetadata(
            file_name=vcf_file.filename or "uploaded.vcf",
            file_format=parsed.metadata.file_format,
            reference=parsed.metadata.reference,
            total_variants=parsed.total_variants,
            pharmacogenetic_variants=parsed.pharmacogenetic_variants,
            parse_errors=parsed.errors,
        ),
        drug_results=drug_results,
        polypharmacy=polypharmacy,
        quality_metrics=QualityMetrics(
            vcf_parsing_success=parsed.success,
            variants_detected=parsed.total_variants,
        ),
        processing_time_ms=elapsed_ms,
    )

    logger.info(
        "Analysis complete | patient=%s | variants=%d | drugs=%s | overall_risk=%s | time=%dms",
        patient_id or "anon",
        parsed.total_variants,
        [d.value for d in drug_list],
        polypharmacy.alert.overall_patient_risk.value if polypharmacy else drug_results[0].risk_assessment.risk_label.value,
        elapsed_ms,
    )

    return response
