"""
Encounter orchestration
Runs transcription, clinical text analysis and E/M coding for an encounter
and keeps the merged results in an encounter store.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol
import itertools
import threading

import structlog

from clinidoc.errors import EncounterNotFoundError, InvalidInputError
from clinidoc.services.clinical_text_analyzer import ClinicalTextAnalyzer
from clinidoc.services.em_coding_engine import compute_em_coding
from clinidoc.services.transcription_service import TranscriptionResult
from clinidoc.validators import validate_audio_url

logger = structlog.get_logger()


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TreatmentPlanStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    MODIFIED = "modified"


# action -> (resulting status, message)
TREATMENT_PLAN_ACTIONS = {
    "approve": (TreatmentPlanStatus.APPROVED, "Treatment plan approved successfully"),
    "modify": (TreatmentPlanStatus.MODIFIED, "Treatment plan modified successfully"),
    "reanalyze": (TreatmentPlanStatus.PENDING, "Reanalysis initiated"),
}


@dataclass(frozen=True)
class Encounter:
    id: int
    patient_id: int
    encounter_type: str
    date: str
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    audio_source: Optional[str] = None
    transcription_text: Optional[str] = None
    transcription_confidence: Optional[int] = None
    transcription_duration: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None
    em_coding: Optional[Dict[str, Any]] = None
    treatment_plan_status: TreatmentPlanStatus = TreatmentPlanStatus.PENDING
    treatment_modifications: Optional[str] = None
    referrals: Optional[List[str]] = None
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "encounterType": self.encounter_type,
            "date": self.date,
            "processingStatus": self.processing_status.value,
            "audioSource": self.audio_source,
            "transcriptionText": self.transcription_text,
            "transcriptionConfidence": self.transcription_confidence,
            "transcriptionDuration": self.transcription_duration,
            "summary": self.summary,
            "emCoding": self.em_coding,
            "treatmentPlanStatus": self.treatment_plan_status.value,
            "treatmentModifications": self.treatment_modifications,
            "referrals": self.referrals,
            "createdAt": self.created_at,
        }


class EncounterStore(Protocol):
    """Key-value persistence for encounters"""

    def create(self, encounter: Encounter) -> Encounter: ...

    def get(self, encounter_id: int) -> Optional[Encounter]: ...

    def update(self, encounter_id: int, **changes: Any) -> Encounter: ...

    def list_by_patient(self, patient_id: int) -> List[Encounter]: ...

    def next_id(self) -> int: ...


class InMemoryEncounterStore:
    """Process-local encounter store"""

    def __init__(self):
        self._encounters: Dict[int, Encounter] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            return next(self._ids)

    def create(self, encounter: Encounter) -> Encounter:
        with self._lock:
            self._encounters[encounter.id] = encounter
        return encounter

    def get(self, encounter_id: int) -> Optional[Encounter]:
        with self._lock:
            return self._encounters.get(encounter_id)

    def update(self, encounter_id: int, **changes: Any) -> Encounter:
        with self._lock:
            current = self._encounters.get(encounter_id)
            if current is None:
                raise EncounterNotFoundError(encounter_id)
            updated = replace(current, **changes)
            self._encounters[encounter_id] = updated
        return updated

    def list_by_patient(self, patient_id: int) -> List[Encounter]:
        with self._lock:
            encounters = [e for e in self._encounters.values() if e.patient_id == patient_id]
        return sorted(encounters, key=lambda e: e.id, reverse=True)


class EncounterService:
    """Coordinates the documentation pipeline for encounters"""

    def __init__(
        self,
        store: Optional[EncounterStore] = None,
        transcription_service=None,
        analyzer: Optional[ClinicalTextAnalyzer] = None,
    ):
        self.store = store or InMemoryEncounterStore()
        self.transcription_service = transcription_service
        self.analyzer = analyzer or ClinicalTextAnalyzer()

    def analyze(self, text: str) -> Dict[str, Any]:
        """Run both engines on the same text and merge the results"""
        summary = self.analyzer.analyze(text)
        em_coding = compute_em_coding(text)
        return {
            "summary": summary.to_dict(),
            "emCoding": em_coding.to_dict(),
        }

    def create_encounter(self, patient_id: int, encounter_type: str, date: str) -> Encounter:
        encounter = Encounter(
            id=self.store.next_id(),
            patient_id=patient_id,
            encounter_type=encounter_type,
            date=date,
        )
        self.store.create(encounter)
        logger.info("Encounter created",
                    encounter_id=encounter.id,
                    patient_id=patient_id,
                    encounter_type=encounter_type)
        return encounter

    def get_encounter(self, encounter_id: int) -> Encounter:
        encounter = self.store.get(encounter_id)
        if encounter is None:
            raise EncounterNotFoundError(encounter_id)
        return encounter

    def list_patient_encounters(self, patient_id: int) -> List[Encounter]:
        return self.store.list_by_patient(patient_id)

    def process_transcription(
        self,
        encounter_id: int,
        text: str,
        confidence: Optional[int] = None,
        duration: Optional[str] = None,
        audio_source: Optional[str] = None,
    ) -> Encounter:
        """Analyze transcription text and attach the results to the encounter"""
        self.get_encounter(encounter_id)
        self.store.update(encounter_id, processing_status=ProcessingStatus.PROCESSING)

        try:
            results = self.analyze(text)
        except Exception as e:
            logger.error("Encounter processing failed", encounter_id=encounter_id, error=str(e))
            self.store.update(encounter_id, processing_status=ProcessingStatus.FAILED)
            raise

        changes: Dict[str, Any] = {
            "transcription_text": text,
            "transcription_confidence": confidence,
            "transcription_duration": duration,
            "summary": results["summary"],
            "em_coding": results["emCoding"],
            "processing_status": ProcessingStatus.COMPLETED,
        }
        if audio_source is not None:
            changes["audio_source"] = audio_source
        encounter = self.store.update(encounter_id, **changes)

        logger.info("Encounter processed",
                    encounter_id=encounter_id,
                    text_length=len(text),
                    recommended_code=results["emCoding"]["recommendedCode"])
        return encounter

    async def process_audio(self, encounter_id: int, audio_source: str) -> Encounter:
        """Transcribe encounter audio, then analyze the transcript"""
        audio_source = validate_audio_url(audio_source)
        if self.transcription_service is None:
            raise InvalidInputError("Transcription is not configured")

        self.get_encounter(encounter_id)
        self.store.update(encounter_id, processing_status=ProcessingStatus.PROCESSING)

        try:
            transcription: TranscriptionResult = await self.transcription_service.transcribe(audio_source)
        except Exception as e:
            logger.error("Transcription failed", encounter_id=encounter_id, error=str(e))
            self.store.update(encounter_id, processing_status=ProcessingStatus.FAILED)
            raise

        return self.process_transcription(
            encounter_id,
            transcription.text,
            confidence=transcription.confidence,
            duration=transcription.duration,
            audio_source=audio_source,
        )

    def reanalyze(self, encounter_id: int) -> Encounter:
        """Re-run analysis on the stored transcription and reset plan approval"""
        encounter = self.get_encounter(encounter_id)
        results = self.analyze(encounter.transcription_text or "")
        updated = self.store.update(
            encounter_id,
            summary=results["summary"],
            em_coding=results["emCoding"],
            processing_status=ProcessingStatus.COMPLETED,
            treatment_plan_status=TreatmentPlanStatus.PENDING,
        )
        logger.info("Encounter reanalyzed", encounter_id=encounter_id)
        return updated

    def update_treatment_plan(
        self,
        encounter_id: int,
        action: str,
        modifications: Optional[str] = None,
        referrals: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        if action not in TREATMENT_PLAN_ACTIONS:
            raise InvalidInputError(f"Unknown treatment plan action: {action}")

        self.get_encounter(encounter_id)
        status, message = TREATMENT_PLAN_ACTIONS[action]
        encounter = self.store.update(
            encounter_id,
            treatment_plan_status=status,
            treatment_modifications=modifications,
            referrals=referrals,
        )
        logger.info("Treatment plan updated", encounter_id=encounter_id, action=action)
        return {"status": status.value, "message": message, "encounter": encounter}
