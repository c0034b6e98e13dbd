"""Built-in concept catalog: what concepts exist per topic and how they relate.

The catalog is seeded into the knowledge_concepts table by migration; the
helpers below answer prerequisite questions without touching the database.
"""


def _concept(name, description, difficulty, prerequisites, granularity):
    return {
        "name": name,
        "description": description,
        "difficulty": difficulty,
        "prerequisites": list(prerequisites),
        "granularity": granularity,
    }


KNOWLEDGE_CONCEPTS = {
    "JavaScript": [
        _concept("Variables", "Understanding variable declaration and assignment", 1, [], "high"),
        _concept("Functions", "Creating and calling functions", 2, ["Variables"], "high"),
        _concept("Loops", "for loops, while loops, and iteration", 2, ["Variables"], "high"),
        _concept("Arrays", "Working with arrays and array methods", 2, ["Variables"], "high"),
        _concept("Objects", "Creating and manipulating objects", 3, ["Variables", "Functions"], "high"),
        _concept("Async/Await", "Asynchronous programming with async/await", 4, ["Functions", "Objects"], "high"),
        _concept("Closures", "Understanding closure scope and behavior", 4, ["Functions", "Objects"], "high"),
    ],
    "Python": [
        _concept("Variables", "Variable assignment and data types", 1, [], "high"),
        _concept("Functions", "Defining and calling functions", 2, ["Variables"], "high"),
        _concept("Lists", "Working with Python lists", 2, ["Variables"], "high"),
        _concept("Dictionaries", "Key-value pairs and dictionary operations", 3, ["Variables", "Functions"], "high"),
        _concept("List Comprehensions", "Efficient list creation and manipulation", 3, ["Lists", "Functions"], "high"),
        _concept("Generators", "Creating and using generators", 4, ["Functions", "List Comprehensions"], "high"),
    ],
    "Cooking": [
        _concept("Knife Skills", "Basic knife techniques and safety", 1, [], "flexible"),
        _concept("Heat Control", "Understanding different heat levels and cooking methods", 2, [], "flexible"),
        _concept("Seasoning", "Salt, pepper, and basic seasoning techniques", 1, [], "flexible"),
        _concept("Sauce Making", "Creating basic sauces and gravies", 3, ["Heat Control", "Seasoning"], "flexible"),
        _concept("Baking Techniques", "Understanding baking science and techniques", 4, ["Heat Control", "Seasoning"], "flexible"),
    ],
    "History": [
        _concept("Ancient Civilizations", "Early human civilizations and their contributions", 1, [], "flexible"),
        _concept("World Wars", "Major events and impacts of World Wars I and II", 2, [], "flexible"),
        _concept("Renaissance", "Cultural and intellectual rebirth in Europe", 3, ["Ancient Civilizations"], "flexible"),
        _concept("Industrial Revolution", "Technological and social changes in the 18th-19th centuries", 3, ["Renaissance"], "flexible"),
    ],
    "Philosophy": [
        _concept("Ethics", "Moral philosophy and ethical theories", 2, [], "flexible"),
        _concept("Logic", "Logical reasoning and argumentation", 3, [], "flexible"),
        _concept("Metaphysics", "Nature of reality and existence", 4, ["Logic"], "flexible"),
        _concept("Epistemology", "Theory of knowledge and how we know things", 4, ["Logic", "Metaphysics"], "flexible"),
    ],
}


def get_concepts_for_topic(topic: str) -> list[dict]:
    return KNOWLEDGE_CONCEPTS.get(topic, [])


def get_all_topics() -> list[str]:
    return list(KNOWLEDGE_CONCEPTS)


def get_concepts_by_difficulty(topic: str, max_difficulty: int = 3) -> list[dict]:
    return [c for c in get_concepts_for_topic(topic) if c["difficulty"] <= max_difficulty]


def get_unknown_concepts(topic: str, known_concepts=()) -> list[dict]:
    known = set(known_concepts)
    return [c for c in get_concepts_for_topic(topic) if c["name"] not in known]


def get_prerequisites(topic: str, concept_name: str) -> list[str]:
    for c in get_concepts_for_topic(topic):
        if c["name"] == concept_name:
            return list(c["prerequisites"])
    return []


def is_ready_for_concept(topic: str, concept_name: str, user_knowledge=()) -> bool:
    known = set(user_knowledge)
    return all(p in known for p in get_prerequisites(topic, concept_name))


def get_next_concepts(topic: str, user_knowledge=()) -> list[dict]:
    """Concepts whose prerequisites are all known and that are not known yet."""
    known = set(user_knowledge)
    return [
        c for c in get_concepts_for_topic(topic)
        if c["name"] not in known and is_ready_for_concept(topic, c["name"], known)
    ]
