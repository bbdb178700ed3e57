"""
Clinical keyword tables and pattern-matching helpers

Static, read-only lookup data shared by the clinical text analyzer and the
E/M coding engine:
- Ordered clause extractors (regex capture formatted into a finding)
- Review-of-systems symptom rules grouped by body system
- Differential diagnosis trigger table
- Frequency-based key phrase extraction

Every table here is an immutable tuple or a read-only mapping, so the
helpers can be called from any number of request handlers without locking.
"""

import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Pattern, Sequence, Tuple


# ═══════════════════════════════════════════════════════════════════════════════
# Extractors
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ClauseExtractor:
    """Captures a labeled clause and formats it through a template"""
    name: str
    pattern: Pattern[str]
    template: str = "{}"
    group: int = 1

    def extract(self, text: str) -> Optional[str]:
        match = self.pattern.search(text)
        if not match:
            return None
        return self.template.format(match.group(self.group).strip())


@dataclass(frozen=True)
class KeywordFinding:
    """Emits a fixed finding when every keyword appears in the text"""
    name: str
    keywords: Tuple[str, ...]
    finding: str

    def extract(self, text: str) -> Optional[str]:
        text_lower = text.lower()
        if all(keyword in text_lower for keyword in self.keywords):
            return self.finding
        return None


def first_extraction(extractors: Iterable, text: str) -> Optional[str]:
    """Return the result of the first extractor that matches"""
    for extractor in extractors:
        result = extractor.extract(text)
        if result is not None:
            return result
    return None


def collect_extractions(extractors: Iterable, text: str) -> List[str]:
    """Run every extractor in order and keep the ones that matched"""
    results = []
    for extractor in extractors:
        result = extractor.extract(text)
        if result is not None:
            results.append(result)
    return results


def contains_any(text_lower: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text_lower for keyword in keywords)


# Key findings, evaluated in this order
KEY_FINDING_EXTRACTORS = (
    ClauseExtractor(
        name="chief_complaint",
        pattern=re.compile(
            r"chief complaint[:\s]*(.*?)(?:\.|patient|vital|exam|assessment)",
            re.IGNORECASE,
        ),
        template="Chief complaint: {}",
    ),
    KeywordFinding(
        name="vital_signs_stable",
        keywords=("vital", "stable"),
        finding="Vital signs stable",
    ),
    ClauseExtractor(
        name="physical_exam",
        pattern=re.compile(
            r"(?:physical examination|examination|exam)[:\s]*(.*?)(?:\.|assessment|plan|vital)",
            re.IGNORECASE,
        ),
        template="Physical exam: {}",
    ),
)

DIAGNOSIS_PLACEHOLDER = "Assessment pending — refer to full transcription"

DIAGNOSIS_EXTRACTORS = (
    ClauseExtractor(
        name="assessment",
        pattern=re.compile(
            r"(?:assessment|diagnosis)[:\s]*(.*?)(?:\.|plan|return|follow)",
            re.IGNORECASE,
        ),
    ),
    ClauseExtractor(
        name="likely",
        pattern=re.compile(r"likely[:\s]*(.*?)(?:\.|,|plan|recommend)", re.IGNORECASE),
        template="Likely {}",
    ),
)

TREATMENT_PLACEHOLDER = "Treatment plan as documented in encounter notes"

TREATMENT_EXTRACTORS = (
    ClauseExtractor(
        name="plan",
        pattern=re.compile(r"(?:plan|treatment|recommend)[:\s]*(.*?)$", re.IGNORECASE),
    ),
    ClauseExtractor(
        name="supportive_care",
        pattern=re.compile(r"supportive care[:\s,]*(.*?)(?:\.|return|follow)", re.IGNORECASE),
        template="Supportive care {}",
    ),
)


# ═══════════════════════════════════════════════════════════════════════════════
# Review of Systems
# ═══════════════════════════════════════════════════════════════════════════════

class ROSCategory(str, Enum):
    """Body-system categories reported in the review of systems"""
    CONSTITUTIONAL = "constitutional"
    CARDIOVASCULAR = "cardiovascular"
    RESPIRATORY = "respiratory"
    GASTROINTESTINAL = "gastrointestinal"
    NEUROLOGICAL = "neurological"
    MUSCULOSKELETAL = "musculoskeletal"
    PSYCHIATRIC = "psychiatric"


@dataclass(frozen=True)
class SymptomRule:
    """A symptom label matched by any keyword, optionally gated by a qualifier"""
    label: str
    keywords: Tuple[str, ...]
    qualifiers: Tuple[str, ...] = ()

    def matches(self, text_lower: str) -> bool:
        if not contains_any(text_lower, self.keywords):
            return False
        return not self.qualifiers or contains_any(text_lower, self.qualifiers)


ROS_RULES: Mapping[ROSCategory, Tuple[SymptomRule, ...]] = MappingProxyType({
    ROSCategory.CONSTITUTIONAL: (
        SymptomRule("Fever/chills", ("fever", "chills")),
        SymptomRule("Fatigue", ("fatigue", "tired")),
        SymptomRule("Weight changes", ("weight loss", "weight gain")),
        SymptomRule("Night sweats", ("night sweats",)),
    ),
    ROSCategory.CARDIOVASCULAR: (
        SymptomRule("Chest pain", ("chest pain",)),
        SymptomRule("Palpitations", ("palpitations",)),
        SymptomRule("Dyspnea", ("shortness of breath", "dyspnea")),
        SymptomRule("Edema", ("leg swelling", "edema")),
    ),
    ROSCategory.RESPIRATORY: (
        SymptomRule("Cough", ("cough",)),
        SymptomRule("Dyspnea", ("shortness of breath", "dyspnea")),
        SymptomRule("Wheezing", ("wheezing",)),
        SymptomRule("Sputum production", ("sputum",)),
    ),
    ROSCategory.GASTROINTESTINAL: (
        SymptomRule("Nausea", ("nausea",)),
        SymptomRule("Vomiting", ("vomiting",)),
        SymptomRule("Abdominal pain", ("abdominal pain", "stomach pain")),
        SymptomRule("Diarrhea", ("diarrhea",)),
        SymptomRule("Constipation", ("constipation",)),
        SymptomRule("Heartburn/reflux", ("heartburn", "reflux")),
    ),
    ROSCategory.NEUROLOGICAL: (
        SymptomRule("Headache", ("headache",)),
        SymptomRule("Dizziness", ("dizziness",)),
        SymptomRule("Numbness", ("numbness",)),
        SymptomRule("Weakness", ("weakness",)),
    ),
    ROSCategory.MUSCULOSKELETAL: (
        SymptomRule("Joint pain", ("joint pain", "arthralgia")),
        SymptomRule("Muscle pain", ("muscle pain", "myalgia")),
        SymptomRule("Back pain", ("back pain",)),
    ),
    ROSCategory.PSYCHIATRIC: (
        SymptomRule("Anxiety", ("anxiety", "anxious")),
        SymptomRule("Depression", ("depression", "depressed")),
        SymptomRule("Stress", ("stress",)),
        SymptomRule("Sleep difficulties", ("sleep",), qualifiers=("difficulty", "insomnia")),
    ),
})

# Every keyword that names a symptom somewhere in the ROS tables
SYMPTOM_KEYWORDS: Tuple[str, ...] = tuple(
    dict.fromkeys(
        keyword
        for rules in ROS_RULES.values()
        for rule in rules
        for keyword in rule.keywords
    )
)


def match_symptoms(rules: Sequence[SymptomRule], text_lower: str) -> List[str]:
    """Labels of matching rules in table order, without duplicates"""
    labels: List[str] = []
    for rule in rules:
        if rule.label not in labels and rule.matches(text_lower):
            labels.append(rule.label)
    return labels


# ═══════════════════════════════════════════════════════════════════════════════
# Differential Diagnosis
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DifferentialCandidate:
    condition: str
    probability: int  # 0-100, independent estimate
    reasoning: str


@dataclass(frozen=True)
class DifferentialTrigger:
    """Symptom keywords and the canned candidates they bring in"""
    name: str
    keywords: Tuple[str, ...]
    candidates: Tuple[DifferentialCandidate, ...]


# Priority order: the first matching trigger wins
DIFFERENTIAL_TRIGGERS: Tuple[DifferentialTrigger, ...] = (
    DifferentialTrigger(
        name="chest_pain",
        keywords=("chest pain",),
        candidates=(
            DifferentialCandidate(
                "Gastroesophageal Reflux Disease (GERD)", 75,
                "Most common cause of chest pain in outpatient setting, especially with burning quality",
            ),
            DifferentialCandidate(
                "Musculoskeletal chest pain", 60,
                "Pain reproduced with palpation or movement, common in younger patients",
            ),
            DifferentialCandidate(
                "Coronary artery disease", 25,
                "Consider in patients with cardiac risk factors, especially if exertional",
            ),
        ),
    ),
    DifferentialTrigger(
        name="headache",
        keywords=("headache",),
        candidates=(
            DifferentialCandidate(
                "Tension-type headache", 70,
                "Most common primary headache, bilateral, band-like distribution",
            ),
            DifferentialCandidate(
                "Migraine headache", 50,
                "Consider if unilateral, throbbing, with photophobia or nausea",
            ),
            DifferentialCandidate(
                "Medication overuse headache", 30,
                "In patients using analgesics frequently for headache relief",
            ),
        ),
    ),
    DifferentialTrigger(
        name="fatigue",
        keywords=("fatigue", "tired"),
        candidates=(
            DifferentialCandidate(
                "Sleep disorders", 65,
                "Poor sleep quality is most common reversible cause of fatigue",
            ),
            DifferentialCandidate(
                "Depression/Anxiety", 55,
                "Common psychological causes of persistent fatigue",
            ),
            DifferentialCandidate(
                "Hypothyroidism", 35,
                "Consider TSH testing, especially in women over 40",
            ),
        ),
    ),
    DifferentialTrigger(
        name="cough",
        keywords=("cough",),
        candidates=(
            DifferentialCandidate(
                "Upper respiratory tract infection", 80,
                "Most common cause of acute cough, especially with viral symptoms",
            ),
            DifferentialCandidate(
                "Post-infectious cough", 40,
                "Persistent cough after viral illness, can last 3-8 weeks",
            ),
            DifferentialCandidate(
                "ACE inhibitor-induced cough", 20,
                "Consider if patient taking ACE inhibitors, dry persistent cough",
            ),
        ),
    ),
)

DEFAULT_DIFFERENTIAL: Tuple[DifferentialCandidate, ...] = (
    DifferentialCandidate(
        "Viral syndrome", 60,
        "Common cause of non-specific symptoms in outpatient setting",
    ),
    DifferentialCandidate(
        "Stress-related symptoms", 45,
        "Psychosocial stressors can manifest as physical symptoms",
    ),
)

MAX_DIFFERENTIALS = 4


def match_differential_trigger(text_lower: str) -> Optional[DifferentialTrigger]:
    for trigger in DIFFERENTIAL_TRIGGERS:
        if contains_any(text_lower, trigger.keywords):
            return trigger
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# Key Phrases
# ═══════════════════════════════════════════════════════════════════════════════

MIN_KEY_PHRASE_LENGTH = 6
MIN_KEY_PHRASE_OCCURRENCES = 2

_TOKEN_PATTERN = re.compile(r"[a-z][a-z'\-]*[a-z]")

# Frequent words that carry no clinical signal
KEY_PHRASE_STOPWORDS = frozenset({
    "patient", "patients", "reports", "reported", "states", "stated", "denies",
    "presents", "presenting", "should", "would", "because", "without", "within",
    "including", "through", "before", "during", "currently", "further", "either",
    "having", "others", "another", "around", "always", "almost", "really",
    "doctor", "minutes", "normal", "little", "pretty", "things", "thanks",
    "complaint", "examination", "assessment", "treatment", "history",
})


def extract_key_phrases(text: str, limit: int = 10) -> List[str]:
    """
    Derive key phrases from frequently repeated, non-trivial tokens.

    Tokens must be at least six characters long, not a stopword, and occur
    at least twice. Ordered by frequency, ties broken by first appearance.
    """
    tokens = [
        token for token in _TOKEN_PATTERN.findall(text.lower())
        if len(token) >= MIN_KEY_PHRASE_LENGTH and token not in KEY_PHRASE_STOPWORDS
    ]
    counts = Counter(tokens)
    ranked = sorted(counts, key=lambda token: -counts[token])
    return [token for token in ranked if counts[token] >= MIN_KEY_PHRASE_OCCURRENCES][:limit]
