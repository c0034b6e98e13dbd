"""Adaptive difficulty engine driven by the per-concept knowledge profile.

Maps difficulty percentages to labels, proficiency levels to hierarchy
levels, decides between syntactic and conceptual framing, and computes the
next knowledge state after an assessment, "too easy" feedback or a free-text
answer.

A knowledge profile is the nested dict produced by
``microlearn.db.knowledge.get_knowledge_profile``::

    {"JavaScript": {"Variables": {"proficiency": 2, "confidence": 0.8}}}
"""

from dataclasses import dataclass

DEFAULT_DIFFICULTY = 50
ESCALATION_STEP = 25

# (upper bound inclusive, label)
DIFFICULTY_THRESHOLDS = (
    (25, "beginner"),
    (50, "intermediate"),
    (75, "advanced"),
)

PROFICIENCY_UNKNOWN = 0
PROFICIENCY_LEARNING = 1
PROFICIENCY_MASTERED = 2

CORRECT_CONFIDENCE = 0.8
INCORRECT_CONFIDENCE = 0.2
INCORRECT_PENALTY = 0.2
TOO_EASY_CONFIDENCE = 0.9


@dataclass
class KnowledgeState:
    proficiency: int = PROFICIENCY_UNKNOWN
    confidence: float = 0.0
    is_new: bool = True

    @classmethod
    def from_entry(cls, entry: dict | None) -> "KnowledgeState":
        if not entry:
            return cls()
        return cls(
            proficiency=int(entry.get("proficiency") or 0),
            confidence=float(entry.get("confidence") or 0.0),
            is_new=False,
        )


def clamp_difficulty(percentage) -> int:
    """Clamp to 0..100; anything non-numeric becomes the default."""
    try:
        value = int(round(float(percentage)))
    except (TypeError, ValueError):
        return DEFAULT_DIFFICULTY
    return max(0, min(100, value))


def difficulty_label(percentage) -> str:
    pct = clamp_difficulty(percentage)
    for upper, label in DIFFICULTY_THRESHOLDS:
        if pct <= upper:
            return label
    return "expert"


def difficulty_description(percentage) -> str:
    return f"{difficulty_label(percentage)} level"


def escalate_difficulty(percentage, step: int = ESCALATION_STEP) -> int:
    return min(clamp_difficulty(percentage) + step, 100)


def proficiency_to_level(proficiency) -> str:
    """Hierarchy level for a proficiency integer (Basic / Intermediate / Advanced)."""
    proficiency = int(proficiency or 0)
    if proficiency >= PROFICIENCY_MASTERED:
        return "Advanced"
    if proficiency >= PROFICIENCY_LEARNING:
        return "Intermediate"
    return "Basic"


def determine_learning_approach(knowledge_profile: dict, topic: str, concept: str) -> dict:
    """Syntactic framing if the concept is already known in another topic."""
    for known_topic, concepts in (knowledge_profile or {}).items():
        if known_topic == topic:
            continue
        entry = concepts.get(concept)
        if entry and (entry.get("proficiency") or 0) >= PROFICIENCY_LEARNING:
            return {
                "approach": "syntactic",
                "reasoning": f"You know {concept} in {known_topic}, so we'll focus on {topic} syntax differences",
                "focus": "syntax differences, language-specific features",
            }

    return {
        "approach": "conceptual",
        "reasoning": f"Learning {concept} for the first time",
        "focus": "understanding the concept, how it works, why it is useful",
    }


def recommend_difficulty(knowledge_profile: dict, topic: str | None, preferred=DEFAULT_DIFFICULTY) -> int:
    """Lesson difficulty for ``topic``: the user's preference, raised by mastery.

    Only ever raises the preference; a learner who struggles keeps their
    chosen level rather than being pushed below it.
    """
    base = clamp_difficulty(preferred)
    concepts = (knowledge_profile or {}).get(topic) if topic else None
    if not concepts:
        return base

    levels = [int(c.get("proficiency") or 0) for c in concepts.values()]
    mean = sum(levels) / len(levels)
    if mean >= PROFICIENCY_MASTERED:
        return max(base, 75)
    if mean >= PROFICIENCY_LEARNING:
        return max(base, 50)
    return base


# ── Knowledge-state transitions ────────────────────────────────────────

def after_assessment(previous: KnowledgeState, is_correct: bool) -> KnowledgeState:
    if is_correct:
        return KnowledgeState(
            proficiency=max(previous.proficiency, PROFICIENCY_LEARNING),
            confidence=max(previous.confidence, CORRECT_CONFIDENCE),
            is_new=False,
        )
    if previous.is_new:
        return KnowledgeState(PROFICIENCY_UNKNOWN, INCORRECT_CONFIDENCE, is_new=False)
    return KnowledgeState(
        proficiency=previous.proficiency,
        confidence=round(max(0.0, previous.confidence - INCORRECT_PENALTY), 4),
        is_new=False,
    )


def after_too_easy(previous: KnowledgeState) -> KnowledgeState:
    return KnowledgeState(
        proficiency=max(previous.proficiency, PROFICIENCY_MASTERED),
        confidence=max(previous.confidence, TOO_EASY_CONFIDENCE),
        is_new=False,
    )


def after_text_analysis(previous: KnowledgeState, analysis: dict) -> KnowledgeState:
    """Correct answers raise confidence to the analyzer's estimate, never lower."""
    if not analysis.get("isCorrect"):
        return after_assessment(previous, False)
    return KnowledgeState(
        proficiency=max(previous.proficiency, PROFICIENCY_LEARNING),
        confidence=max(previous.confidence, float(analysis.get("confidence") or 0.0)),
        is_new=False,
    )
