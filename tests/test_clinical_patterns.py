"""
Tests for the shared clinical keyword tables and extractors
"""

import re

import pytest

from clinidoc.services.clinical_patterns import (
    DIFFERENTIAL_TRIGGERS,
    KEY_FINDING_EXTRACTORS,
    ROS_RULES,
    SYMPTOM_KEYWORDS,
    ClauseExtractor,
    KeywordFinding,
    ROSCategory,
    SymptomRule,
    collect_extractions,
    extract_key_phrases,
    first_extraction,
    match_differential_trigger,
    match_symptoms,
)


class TestExtractors:
    """Tests for the matcher/extractor building blocks"""

    def test_clause_extractor_template(self):
        extractor = ClauseExtractor(
            name="allergy",
            pattern=re.compile(r"allergies[:\s]*(.*?)\.", re.IGNORECASE),
            template="Allergies: {}",
        )

        assert extractor.extract("Allergies: penicillin.") == "Allergies: penicillin"
        assert extractor.extract("No known drug reactions.") is None

    def test_keyword_finding_requires_all(self):
        finding = KeywordFinding(name="vitals", keywords=("vital", "stable"), finding="Vital signs stable")

        assert finding.extract("VITAL SIGNS STABLE") == "Vital signs stable"
        assert finding.extract("Vital signs reviewed") is None

    def test_first_extraction_order(self):
        extractors = (
            KeywordFinding(name="a", keywords=("cough",), finding="first"),
            KeywordFinding(name="b", keywords=("cough",), finding="second"),
        )

        assert first_extraction(extractors, "cough") == "first"
        assert first_extraction(extractors, "fever") is None

    def test_collect_extractions_keeps_order(self):
        text = "Physical examination: clear. Chief complaint: sore throat. Vital signs stable."

        assert collect_extractions(KEY_FINDING_EXTRACTORS, text) == [
            "Chief complaint: sore throat",
            "Vital signs stable",
            "Physical exam: clear",
        ]

    def test_exam_clause_prefers_full_word(self):
        """examination should not be captured as exam + 'ination'"""
        assert collect_extractions(KEY_FINDING_EXTRACTORS, "On examination: tender abdomen.") == [
            "Physical exam: tender abdomen"
        ]


class TestTables:
    """Tests for the static lookup tables"""

    def test_ros_rules_read_only(self):
        with pytest.raises(TypeError):
            ROS_RULES[ROSCategory.CARDIOVASCULAR] = ()

    def test_all_categories_present(self):
        assert set(ROS_RULES) == set(ROSCategory)

    def test_symptom_keywords_unique(self):
        assert len(SYMPTOM_KEYWORDS) == len(set(SYMPTOM_KEYWORDS))
        assert "chest pain" in SYMPTOM_KEYWORDS

    def test_trigger_priority(self):
        names = [trigger.name for trigger in DIFFERENTIAL_TRIGGERS]

        assert names == ["chest_pain", "headache", "fatigue", "cough"]

    def test_match_differential_trigger(self):
        assert match_differential_trigger("cough and headache").name == "headache"
        assert match_differential_trigger("ankle sprain") is None

    def test_symptom_rule_qualifier(self):
        rule = SymptomRule("Sleep difficulties", ("sleep",), qualifiers=("insomnia",))

        assert rule.matches("insomnia, poor sleep")
        assert not rule.matches("sleep is fine")

    def test_match_symptoms_suppresses_duplicates(self):
        rules = (
            SymptomRule("Dyspnea", ("dyspnea",)),
            SymptomRule("Dyspnea", ("shortness of breath",)),
        )

        assert match_symptoms(rules, "dyspnea and shortness of breath") == ["Dyspnea"]


class TestKeyPhrases:
    """Tests for frequency-based key phrase extraction"""

    def test_repeated_tokens_ranked_by_frequency(self):
        text = "Wheezing noted. Wheezing improved with inhaler. Inhaler technique reviewed, inhaler refilled."

        assert extract_key_phrases(text) == ["inhaler", "wheezing"]

    def test_single_occurrences_ignored(self):
        assert extract_key_phrases("Costochondritis suspected after palpation.") == []

    def test_stopwords_ignored(self):
        assert extract_key_phrases("Patient says patient is tired. Patient rests.") == []

    def test_limit(self):
        text = " ".join(f"{word} {word}" for word in ["alphaa", "bravoo", "charlie", "deltaa"])

        assert extract_key_phrases(text, limit=2) == ["alphaa", "bravoo"]

    def test_empty(self):
        assert extract_key_phrases("") == []
