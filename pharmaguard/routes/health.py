"""
Health & Info Routes
"""
from fastapi import APIRouter, Depends

from pharmaguard.config import Settings, get_settings
from pharmaguard.models import Drug, DrugInfo, Gene, HealthResponse, SNPGene
from pharmaguard.modules.risk_rules import DRUG_INFO, DRUG_PRIMARY_GENE

router = APIRouter(prefix="/api/v1", tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Returns system health status and supported genes/drugs.",
)
async def health(settings: Settings = Depends(get_settings)):
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        genes_supported=sorted([g.value for g in Gene] + [g.value for g in SNPGene]),
        drugs_supported=sorted(d.value for d in Drug),
    )


@router.get(
    "/drugs",
    response_model=list[DrugInfo],
    summary="Supported Drugs",
    description="Display information and primary gene for each supported drug.",
)
async def drugs():
    return [
        DrugInfo(drug=d, primary_gene=DRUG_PRIMARY_GENE[d], **DRUG_INFO[d])
        for d in Drug
    ]
