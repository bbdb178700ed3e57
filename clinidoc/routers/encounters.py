"""
Encounter processing router
Create encounters, attach transcriptions or audio, and manage treatment plans
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List, Literal, Optional
import structlog

from clinidoc.config import settings
from clinidoc.errors import ClinicalDocumentationError, internal_error, to_http_exception
from clinidoc.services.encounter_service import EncounterService
from clinidoc.services.transcription_service import get_transcription_service
from clinidoc.validators import sanitize_text, validate_transcription_text

router = APIRouter()
logger = structlog.get_logger()

# Initialize the encounter service
encounter_service = EncounterService(transcription_service=get_transcription_service())


def get_encounter_service() -> EncounterService:
    return encounter_service


class EncounterCreateRequest(BaseModel):
    patientId: int
    encounterType: str
    date: str


class TranscriptionSubmitRequest(BaseModel):
    text: str
    confidence: Optional[int] = None
    duration: Optional[str] = None


class ProcessAudioRequest(BaseModel):
    audioSource: str


class TreatmentPlanRequest(BaseModel):
    action: Literal["approve", "modify", "reanalyze"]
    modifications: Optional[str] = None
    referrals: Optional[List[str]] = None


@router.post("", status_code=201)
async def create_encounter(
    request: EncounterCreateRequest,
    service: EncounterService = Depends(get_encounter_service),
):
    """Create a new encounter awaiting documentation"""
    encounter = service.create_encounter(
        patient_id=request.patientId,
        encounter_type=sanitize_text(request.encounterType),
        date=request.date,
    )
    return encounter.to_dict()


@router.get("/patient/{patient_id}")
async def list_patient_encounters(
    patient_id: int,
    service: EncounterService = Depends(get_encounter_service),
):
    """List a patient's encounters, newest first"""
    encounters = service.list_patient_encounters(patient_id)
    return {"patientId": patient_id, "encounters": [e.to_dict() for e in encounters]}


@router.get("/{encounter_id}")
async def get_encounter(
    encounter_id: int,
    service: EncounterService = Depends(get_encounter_service),
):
    try:
        return service.get_encounter(encounter_id).to_dict()
    except ClinicalDocumentationError as e:
        raise to_http_exception(e)


@router.post("/{encounter_id}/transcription")
async def submit_transcription(
    encounter_id: int,
    request: TranscriptionSubmitRequest,
    service: EncounterService = Depends(get_encounter_service),
):
    """Analyze an externally produced transcription for the encounter"""
    try:
        text = validate_transcription_text(request.text, settings.max_transcription_length)
        encounter = service.process_transcription(
            encounter_id,
            text,
            confidence=request.confidence,
            duration=request.duration,
        )
    except ClinicalDocumentationError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise internal_error(e, encounter_id=encounter_id)

    return {
        "encounter": encounter.to_dict(),
        "summary": encounter.summary,
        "emCoding": encounter.em_coding,
    }


@router.post("/{encounter_id}/process-audio")
async def process_audio(
    encounter_id: int,
    request: ProcessAudioRequest,
    service: EncounterService = Depends(get_encounter_service),
):
    """Transcribe encounter audio and analyze the transcript"""
    try:
        logger.info("Processing encounter audio", encounter_id=encounter_id)
        encounter = await service.process_audio(encounter_id, request.audioSource)
    except ClinicalDocumentationError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise internal_error(e, encounter_id=encounter_id)

    return {
        "encounter": encounter.to_dict(),
        "transcription": {
            "text": encounter.transcription_text,
            "confidence": encounter.transcription_confidence,
            "duration": encounter.transcription_duration,
        },
        "summary": encounter.summary,
        "emCoding": encounter.em_coding,
    }


@router.post("/{encounter_id}/reanalyze")
async def reanalyze_encounter(
    encounter_id: int,
    service: EncounterService = Depends(get_encounter_service),
):
    """Re-run analysis on the stored transcription"""
    try:
        encounter = service.reanalyze(encounter_id)
    except ClinicalDocumentationError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise internal_error(e, encounter_id=encounter_id)

    return {"message": "Encounter reanalyzed successfully", "encounter": encounter.to_dict()}


@router.patch("/{encounter_id}/treatment-plan")
async def update_treatment_plan(
    encounter_id: int,
    request: TreatmentPlanRequest,
    service: EncounterService = Depends(get_encounter_service),
):
    """Approve, modify or request reanalysis of the treatment plan"""
    try:
        result = service.update_treatment_plan(
            encounter_id,
            request.action,
            modifications=sanitize_text(request.modifications) if request.modifications else None,
            referrals=request.referrals,
        )
    except ClinicalDocumentationError as e:
        raise to_http_exception(e)

    return {
        "status": result["status"],
        "message": result["message"],
        "encounter": result["encounter"].to_dict(),
    }
