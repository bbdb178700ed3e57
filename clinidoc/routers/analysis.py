"""
Clinical documentation analysis router
Clinical summary and E/M code recommendation for raw encounter text
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import Dict, List
import structlog

from clinidoc.config import settings
from clinidoc.errors import ClinicalDocumentationError, internal_error, to_http_exception
from clinidoc.services.clinical_text_analyzer import analyze_clinical_text
from clinidoc.services.em_coding_engine import compute_em_coding
from clinidoc.validators import validate_transcription_text

router = APIRouter()
logger = structlog.get_logger()


class AnalysisRequest(BaseModel):
    text: str = ""


class DifferentialDiagnosisModel(BaseModel):
    condition: str
    probability: int
    reasoning: str


class ClinicalSummaryModel(BaseModel):
    keyFindings: List[str]
    diagnosis: str
    differentialDiagnosis: List[DifferentialDiagnosisModel]
    reviewOfSystems: Dict[str, List[str]]
    treatment: str


class AxisScoreModel(BaseModel):
    level: int
    description: str


class EMCodingModel(BaseModel):
    history: AxisScoreModel
    exam: AxisScoreModel
    mdm: AxisScoreModel
    recommendedCode: str
    confidence: int
    rationale: str


class EncounterAnalysisModel(BaseModel):
    summary: ClinicalSummaryModel
    emCoding: EMCodingModel


def _clean_text(text: str) -> str:
    try:
        return validate_transcription_text(text, settings.max_transcription_length)
    except ClinicalDocumentationError as e:
        raise to_http_exception(e)


@router.post("/summary", response_model=ClinicalSummaryModel)
async def summarize_text(request: AnalysisRequest):
    """Generate the structured clinical summary"""
    text = _clean_text(request.text)
    try:
        return analyze_clinical_text(text).to_dict()
    except Exception as e:
        raise internal_error(e, operation="summary")


@router.post("/em-coding", response_model=EMCodingModel)
async def recommend_em_code(request: AnalysisRequest):
    """Recommend an E/M code for the documentation"""
    text = _clean_text(request.text)
    try:
        result = compute_em_coding(text)
    except Exception as e:
        raise internal_error(e, operation="em_coding")

    logger.info("E/M code recommended",
                recommended_code=result.recommended_code,
                confidence=result.confidence)
    return result.to_dict()


@router.post("/encounter", response_model=EncounterAnalysisModel)
async def analyze_encounter_text(request: AnalysisRequest):
    """Clinical summary and E/M coding in one record"""
    text = _clean_text(request.text)
    try:
        return {
            "summary": analyze_clinical_text(text).to_dict(),
            "emCoding": compute_em_coding(text).to_dict(),
        }
    except Exception as e:
        raise internal_error(e, operation="encounter_analysis")
