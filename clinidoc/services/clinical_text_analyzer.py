"""
Clinical Text Analyzer
Extracts key findings, working diagnosis, differential diagnosis, review of
systems and treatment from raw encounter transcription text.

The analyzer is rule-based and deterministic: every field is derived from the
input text and the static tables in clinical_patterns. Missing structure in
the text falls back to a fixed placeholder; analysis never raises.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from clinidoc.services.clinical_patterns import (
    DEFAULT_DIFFERENTIAL,
    DIAGNOSIS_EXTRACTORS,
    DIAGNOSIS_PLACEHOLDER,
    KEY_FINDING_EXTRACTORS,
    MAX_DIFFERENTIALS,
    MIN_KEY_PHRASE_LENGTH,
    ROS_RULES,
    TREATMENT_EXTRACTORS,
    TREATMENT_PLACEHOLDER,
    collect_extractions,
    extract_key_phrases,
    first_extraction,
    match_differential_trigger,
    match_symptoms,
)

logger = structlog.get_logger()

MAX_KEY_FINDINGS = 5

KeyPhraseExtractor = Callable[[str], List[str]]


@dataclass(frozen=True)
class DifferentialDiagnosis:
    condition: str
    probability: int
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "condition": self.condition,
            "probability": self.probability,
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class ClinicalSummary:
    """Structured clinical summary of one encounter transcription"""
    key_findings: List[str]
    diagnosis: str
    differential_diagnosis: List[DifferentialDiagnosis]
    review_of_systems: Dict[str, List[str]] = field(default_factory=dict)
    treatment: str = TREATMENT_PLACEHOLDER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyFindings": list(self.key_findings),
            "diagnosis": self.diagnosis,
            "differentialDiagnosis": [d.to_dict() for d in self.differential_diagnosis],
            "reviewOfSystems": {k: list(v) for k, v in self.review_of_systems.items()},
            "treatment": self.treatment,
        }


def extract_key_findings(text: str, key_phrases: Sequence[str] = ()) -> List[str]:
    """Structural findings first, then bullet-prefixed key phrases, at most five"""
    findings = collect_extractions(KEY_FINDING_EXTRACTORS, text)

    for phrase in key_phrases:
        if len(phrase) < MIN_KEY_PHRASE_LENGTH:
            continue
        if any(phrase.lower() in finding.lower() for finding in findings):
            continue
        findings.append(f"• {phrase}")

    return findings[:MAX_KEY_FINDINGS]


def extract_diagnosis(text: str) -> str:
    return first_extraction(DIAGNOSIS_EXTRACTORS, text) or DIAGNOSIS_PLACEHOLDER


def generate_differential_diagnosis(text: str) -> List[DifferentialDiagnosis]:
    """
    Canned differential for the highest-priority symptom trigger in the text.

    Only the first matching trigger contributes; multiple presenting symptoms
    are not merged. Falls back to a generic list when nothing matches.
    """
    trigger = match_differential_trigger(text.lower())
    candidates = trigger.candidates if trigger else DEFAULT_DIFFERENTIAL

    differentials = [
        DifferentialDiagnosis(c.condition, c.probability, c.reasoning)
        for c in candidates
    ]
    differentials.sort(key=lambda d: d.probability, reverse=True)
    return differentials[:MAX_DIFFERENTIALS]


def extract_review_of_systems(text: str) -> Dict[str, List[str]]:
    """Symptom labels per body system; systems without a match are omitted"""
    text_lower = text.lower()
    ros: Dict[str, List[str]] = {}
    for category, rules in ROS_RULES.items():
        labels = match_symptoms(rules, text_lower)
        if labels:
            ros[category.value] = labels
    return ros


def extract_treatment(text: str) -> str:
    return first_extraction(TREATMENT_EXTRACTORS, text) or TREATMENT_PLACEHOLDER


class ClinicalTextAnalyzer:
    """Rule-based clinical summary generation"""

    def __init__(self, key_phrase_extractor: Optional[KeyPhraseExtractor] = None):
        self.key_phrase_extractor = key_phrase_extractor or extract_key_phrases

    def analyze(self, text: str, key_phrases: Optional[Sequence[str]] = None) -> ClinicalSummary:
        """
        Analyze raw transcription text.

        Args:
            text: Clinical note or transcription, may be empty
            key_phrases: Externally extracted key phrases; derived from the
                text when not supplied

        Returns:
            A fresh ClinicalSummary
        """
        text = text or ""
        if key_phrases is None:
            key_phrases = self.key_phrase_extractor(text)

        summary = ClinicalSummary(
            key_findings=extract_key_findings(text, key_phrases),
            diagnosis=extract_diagnosis(text),
            differential_diagnosis=generate_differential_diagnosis(text),
            review_of_systems=extract_review_of_systems(text),
            treatment=extract_treatment(text),
        )

        logger.debug("Clinical text analyzed",
                     text_length=len(text),
                     findings=len(summary.key_findings),
                     ros_categories=sorted(summary.review_of_systems))
        return summary


_default_analyzer = ClinicalTextAnalyzer()


def analyze_clinical_text(raw_text: str, key_phrases: Optional[Sequence[str]] = None) -> ClinicalSummary:
    """Analyze text with the default frequency-based key phrase extractor"""
    return _default_analyzer.analyze(raw_text, key_phrases)
