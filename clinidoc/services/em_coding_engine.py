"""
E/M Coding Engine
Scores documentation complexity on the History, Examination and Medical
Decision-Making axes and recommends an office-visit E/M code.

Known discrepancy: the recommended code follows the strongest axis
(max of the three levels), while outpatient E/M convention is gated by the
weaker axes. The max rule is kept until product owners decide otherwise.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Tuple

import structlog

from clinidoc.services.clinical_patterns import SYMPTOM_KEYWORDS, contains_any

logger = structlog.get_logger()


class EMCode(str, Enum):
    """Established-patient office visit codes"""
    LEVEL_1 = "99211"
    LEVEL_2 = "99212"
    LEVEL_3 = "99213"
    LEVEL_4 = "99214"
    LEVEL_5 = "99215"


# (minimum axis level, code), checked top-down
CODE_THRESHOLDS: Tuple[Tuple[int, EMCode], ...] = (
    (3, EMCode.LEVEL_3),
    (2, EMCode.LEVEL_2),
    (1, EMCode.LEVEL_1),
)

BASE_CONFIDENCE = 70
MARKER_CONFIDENCE_BONUS = 5
LENGTH_CONFIDENCE_BONUS = 10
LENGTH_THRESHOLD = 200
MAX_CONFIDENCE = 95


# Documentation markers (lowercase substring match)
CHIEF_COMPLAINT_MARKERS = ("chief complaint",)
HISTORY_MARKERS = ("history", "hpi", "presents with", "complains of", "onset") + SYMPTOM_KEYWORDS
EXTENDED_HISTORY_MARKERS = ("review of systems", "past medical history")
EXAM_MARKERS = ("physical examination", "vital signs")
ASSESSMENT_MARKERS = ("assessment",)
PLAN_MARKERS = ("plan",)
COMPLEX_MDM_MARKERS = ("differential", "follow up", "follow-up")

# Markers that raise confidence, one bonus each
CONFIDENCE_MARKERS = (
    ("chief complaint",),
    ("examination",),
    ("assessment",),
    ("plan",),
)

ORGAN_SYSTEMS = {
    "lung": "respiratory",
    "heart": "cardiovascular",
    "abdomen": "gastrointestinal",
    "skin": "integumentary",
}
_ORGAN_EXAM_PATTERN = re.compile(r"examination(.*)")
_ORGAN_PATTERN = re.compile(r"lung|heart|abdomen|skin")
MIN_DETAILED_EXAM_SYSTEMS = 2


def has_organ_system_exam(text_lower: str) -> bool:
    """
    An examination line that goes on to cover at least two distinct organ
    systems (lungs, heart, abdomen, skin).
    """
    for line_match in _ORGAN_EXAM_PATTERN.finditer(text_lower):
        systems = {ORGAN_SYSTEMS[m] for m in _ORGAN_PATTERN.findall(line_match.group(1))}
        if len(systems) >= MIN_DETAILED_EXAM_SYSTEMS:
            return True
    return False


@dataclass(frozen=True)
class AxisRung:
    """One level of an axis and the documentation that earns it"""
    level: int
    description: str
    criterion: Callable[[str], bool]


def _always(text_lower: str) -> bool:
    return True


def _expanded_history(text_lower: str) -> bool:
    return contains_any(text_lower, CHIEF_COMPLAINT_MARKERS) and contains_any(text_lower, HISTORY_MARKERS)


def _detailed_history(text_lower: str) -> bool:
    return _expanded_history(text_lower) and contains_any(text_lower, EXTENDED_HISTORY_MARKERS)


def _low_complexity_mdm(text_lower: str) -> bool:
    return contains_any(text_lower, ASSESSMENT_MARKERS) and contains_any(text_lower, PLAN_MARKERS)


def _moderate_complexity_mdm(text_lower: str) -> bool:
    return _low_complexity_mdm(text_lower) and contains_any(text_lower, COMPLEX_MDM_MARKERS)


HISTORY_LADDER: Tuple[AxisRung, ...] = (
    AxisRung(1, "Problem Focused", _always),
    AxisRung(2, "Expanded Problem Focused", _expanded_history),
    AxisRung(3, "Detailed", _detailed_history),
)

EXAM_LADDER: Tuple[AxisRung, ...] = (
    AxisRung(1, "Problem Focused", _always),
    AxisRung(2, "Expanded Problem Focused", lambda t: contains_any(t, EXAM_MARKERS)),
    AxisRung(3, "Detailed", has_organ_system_exam),
)

MDM_LADDER: Tuple[AxisRung, ...] = (
    AxisRung(1, "Straightforward", _always),
    AxisRung(2, "Low Complexity", _low_complexity_mdm),
    AxisRung(3, "Moderate Complexity", _moderate_complexity_mdm),
)


@dataclass(frozen=True)
class AxisScore:
    level: int
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "description": self.description}


@dataclass(frozen=True)
class EMCodingResult:
    """E/M code recommendation with per-axis scores"""
    history: AxisScore
    exam: AxisScore
    mdm: AxisScore
    recommended_code: str
    confidence: int
    rationale: str

    @property
    def max_level(self) -> int:
        return max(self.history.level, self.exam.level, self.mdm.level)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "history": self.history.to_dict(),
            "exam": self.exam.to_dict(),
            "mdm": self.mdm.to_dict(),
            "recommendedCode": self.recommended_code,
            "confidence": self.confidence,
            "rationale": self.rationale,
        }


def score_axis(ladder: Tuple[AxisRung, ...], text_lower: str) -> AxisScore:
    """Highest rung of the ladder whose criterion the text satisfies"""
    best = ladder[0]
    for rung in ladder[1:]:
        if rung.criterion(text_lower):
            best = rung
    return AxisScore(best.level, best.description)


def select_code(max_level: int) -> str:
    for threshold, code in CODE_THRESHOLDS:
        if max_level >= threshold:
            return code.value
    return EMCode.LEVEL_1.value


def calculate_confidence(text: str) -> int:
    """Base score plus completeness bonuses, capped"""
    text_lower = text.lower()
    confidence = BASE_CONFIDENCE
    for markers in CONFIDENCE_MARKERS:
        if contains_any(text_lower, markers):
            confidence += MARKER_CONFIDENCE_BONUS
    if len(text) > LENGTH_THRESHOLD:
        confidence += LENGTH_CONFIDENCE_BONUS
    return min(confidence, MAX_CONFIDENCE)


def build_rationale(history: AxisScore, exam: AxisScore, mdm: AxisScore, max_level: int) -> str:
    return (
        f"Based on {history.description.lower()} history, "
        f"{exam.description.lower()} examination, and "
        f"{mdm.description.lower()} medical decision making. "
        f"Encounter documentation supports level {max_level} complexity."
    )


def compute_em_coding(raw_text: str) -> EMCodingResult:
    """
    Recommend an E/M code for the encounter text.

    Pure function of the text; sparse or empty text scores every axis at
    level 1 and never raises.
    """
    text = raw_text or ""
    text_lower = text.lower()

    history = score_axis(HISTORY_LADDER, text_lower)
    exam = score_axis(EXAM_LADDER, text_lower)
    mdm = score_axis(MDM_LADDER, text_lower)

    max_level = max(history.level, exam.level, mdm.level)
    result = EMCodingResult(
        history=history,
        exam=exam,
        mdm=mdm,
        recommended_code=select_code(max_level),
        confidence=calculate_confidence(text),
        rationale=build_rationale(history, exam, mdm, max_level),
    )

    logger.debug("E/M coding computed",
                 history_level=history.level,
                 exam_level=exam.level,
                 mdm_level=mdm.level,
                 recommended_code=result.recommended_code)
    return result
