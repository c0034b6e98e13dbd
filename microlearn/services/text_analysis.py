"""Keyword-based analysis of free-text answers.

No model call: the answer is scored against the expected answer by word
overlap, and its sophistication is estimated from topic vocabulary and a
handful of basic/advanced language markers.
"""

import re

TECHNICAL_TERMS = {
    "JavaScript": ["closure", "prototype", "async", "await", "promise", "callback", "hoisting"],
    "Cooking": ["sous vide", "brunoise", "julienne", "mirepoix", "roux", "emulsification"],
    "History": ["chronology", "historiography", "primary source", "secondary source", "bias"],
}

BASIC_PATTERNS = ("basic", "simple", "easy", "just", "only")
ADVANCED_PATTERNS = ("complex", "sophisticated", "intricate", "nuanced", "advanced")

# Fraction of expected words that must appear in the answer
CORRECTNESS_THRESHOLD = 0.3


def _words(text: str) -> list[str]:
    return [w for w in re.split(r"\s+", (text or "").lower()) if w]


def _mentions(terms, words: list[str], text: str) -> bool:
    for term in terms:
        # Multi-word terms can never be a substring of a single word
        if " " in term:
            if term in text:
                return True
        elif any(term in word for word in words):
            return True
    return False


def analyze_text_input(user_input: str, expected_answer: str, topic: str, concept: str) -> dict:
    input_text = (user_input or "").lower()
    input_words = _words(user_input)
    expected_words = _words(expected_answer)

    analysis = {
        "isCorrect": False,
        "confidence": 0.0,
        "difficultyLevel": "unknown",
        "suggestions": [],
    }

    has_advanced_terms = _mentions(TECHNICAL_TERMS.get(topic, []), input_words, input_text)
    has_basic_language = _mentions(BASIC_PATTERNS, input_words, input_text)
    has_advanced_language = _mentions(ADVANCED_PATTERNS, input_words, input_text)

    if has_advanced_terms or has_advanced_language:
        analysis["difficultyLevel"] = "advanced"
        analysis["confidence"] = 0.8
    elif has_basic_language:
        analysis["difficultyLevel"] = "beginner"
        analysis["confidence"] = 0.6
    else:
        analysis["difficultyLevel"] = "intermediate"
        analysis["confidence"] = 0.7

    if expected_words:
        matched = sum(1 for word in expected_words if any(word in w for w in input_words))
        analysis["isCorrect"] = matched / len(expected_words) > CORRECTNESS_THRESHOLD

    if not analysis["isCorrect"]:
        analysis["suggestions"].append(f"Review the basics of {concept} in {topic}")
    elif analysis["difficultyLevel"] == "advanced":
        analysis["suggestions"].append(f"Try a harder {topic} challenge beyond {concept}")

    return analysis
