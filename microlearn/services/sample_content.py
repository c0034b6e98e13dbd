"""Hand-written starter lessons served alongside stored content.

Used by the content endpoint so a fresh install has something to show for
the common interests before the model has generated anything.
"""

from microlearn.models.user import MATCH_ALL_GRANULARITIES

SAMPLE_CONTENT = [
    {
        "topic": "JavaScript",
        "content": "In JavaScript, `let` and `const` are block-scoped, while `var` is function-scoped. "
                   "This means `let` and `const` are only accessible within the block they are declared.",
        "type": "info",
        "granularity": "high",
    },
    {
        "topic": "JavaScript",
        "content": "What is the difference between `==` and `===` in JavaScript?",
        "type": "quiz",
        "granularity": "high",
        "options": ["== (loose equality)", "=== (strict equality)", "No difference"],
        "correctAnswer": 1,
    },
    {
        "topic": "JavaScript",
        "content": "The `===` operator checks both value and type, while `==` only checks value after type coercion.",
        "type": "explanation",
        "granularity": "high",
    },
    {
        "topic": "Cooking",
        "content": "Preheating your pan with a thin layer of oil prevents ingredients from sticking "
                   "better than adding food to a cold pan.",
        "type": "tip",
        "granularity": "high",
    },
    {
        "topic": "Cooking",
        "content": "Salt enhances the natural flavors of ingredients.",
        "type": "tip",
        "granularity": "low",
    },
    {
        "topic": "History",
        "content": "World War II lasted from 1939 to 1945.",
        "type": "info",
        "granularity": "low",
    },
    {
        "topic": "History",
        "content": "The Battle of Stalingrad (1942-1943) was a turning point in WWII, where Soviet forces "
                   "encircled and defeated the German 6th Army.",
        "type": "info",
        "granularity": "high",
    },
    {
        "topic": "Philosophy",
        "content": "Socrates taught by asking questions rather than giving answers.",
        "type": "info",
        "granularity": "low",
    },
    {
        "topic": "Philosophy",
        "content": "Kant's categorical imperative: act only according to that maxim by which you can "
                   "at the same time will that it should become a universal law.",
        "type": "info",
        "granularity": "high",
    },
]


def get_personalized_content(interests, granularity: str = "auto") -> list[dict]:
    """Sample lessons matching any interest (case-insensitive substring) and granularity.

    ``auto`` accepts every granularity; ``flexible`` accepts both levels too.
    """
    wanted = [i.lower() for i in interests or [] if i]
    result = []
    for item in SAMPLE_CONTENT:
        topic = item["topic"].lower()
        if not any(w in topic or topic in w for w in wanted):
            continue
        if granularity not in MATCH_ALL_GRANULARITIES and item["granularity"] != granularity:
            continue
        result.append(dict(item))
    return result
