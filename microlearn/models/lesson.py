from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

from microlearn.services.difficulty_engine import clamp_difficulty

CONTENT_TYPES = ("info", "quiz", "tip", "explanation")


class Lesson(BaseModel):
    """A bite-sized lesson as produced by the model (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content: str
    type: str = "info"
    topic: str = "General"
    concept: str = "Learning"
    difficulty: int = 50
    options: Optional[list[str]] = None
    correct_answer: Optional[int] = Field(None, alias="correctAnswer")
    correct_answer_text: Optional[str] = Field(None, alias="correctAnswerText")
    reasoning: Optional[str] = None
    content_id: Optional[int] = Field(None, alias="contentId")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v) -> str:
        v = str(v or "info").strip().lower()
        return v if v in CONTENT_TYPES else "info"

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, v) -> int:
        return clamp_difficulty(v)

    @field_validator("correct_answer", mode="before")
    @classmethod
    def coerce_answer_index(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            return int(v)
        except (TypeError, ValueError):
            # Some models put the answer text here instead of the index
            return None

    def finalize_quiz(self) -> "Lesson":
        """Fill in the answer text, or demote a quiz that has no usable options."""
        if self.type != "quiz":
            return self
        if not self.options:
            self.type = "info"
            return self
        if self.correct_answer is None or not 0 <= self.correct_answer < len(self.options):
            if self.correct_answer_text in self.options:
                self.correct_answer = self.options.index(self.correct_answer_text)
            else:
                self.type = "info"
                return self
        if not self.correct_answer_text:
            self.correct_answer_text = self.options[self.correct_answer]
        return self

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProgressEntry(BaseModel):
    user_id: Optional[int] = Field(None, alias="userId")
    content_id: int = Field(alias="contentId")
    completed: bool = False
    score: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)
