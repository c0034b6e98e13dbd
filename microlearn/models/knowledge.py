from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class UserScopedRequest(BaseModel):
    """Body that may name the learner it applies to; defaults to the caller."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(None, alias="userId")


class KnowledgeUpdate(UserScopedRequest):
    topic: str
    concept: str
    proficiency_level: int = Field(alias="proficiencyLevel", ge=0)
    confidence_score: float = Field(alias="confidenceScore", ge=0.0, le=1.0)


class AssessmentRequest(UserScopedRequest):
    topic: str
    concept: str
    user_answer: str | int = Field(alias="userAnswer")
    correct_answer: str | int = Field(alias="correctAnswer")

    def is_correct(self) -> bool:
        return str(self.user_answer).strip().lower() == str(self.correct_answer).strip().lower()


class TooEasyRequest(UserScopedRequest):
    topic: str
    concept: str
    current_difficulty: int = Field(50, alias="currentDifficulty")


class TextAnalysisRequest(UserScopedRequest):
    topic: str
    concept: str
    user_input: str = Field(alias="userInput")
    expected_answer: str = Field("", alias="expectedAnswer")


class ConceptDefinition(BaseModel):
    name: str
    description: str = ""
    difficulty: int = Field(1, ge=1, le=5)
    prerequisites: list[str] = []
    granularity: str = "high"


class ConceptInitRequest(BaseModel):
    topic: str
    concepts: list[ConceptDefinition]
