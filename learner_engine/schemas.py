"""
JSON boundary records.

Question banks and response histories arrive as JSON. These pydantic
models validate that input and convert it to the engine's frozen
dataclasses; nothing inside the engine depends on pydantic models.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from learner_engine.core.models import (
    ItemParameters,
    ItemResponse,
    Question,
    QuestionType,
)


class ItemRecord(BaseModel):
    """IRT parameters as authored (b/a/c)."""

    difficulty: float = 0.0
    discrimination: float = 1.0
    guessing: float = 0.0

    def to_item(self) -> ItemParameters:
        return ItemParameters(
            difficulty=self.difficulty,
            discrimination=self.discrimination,
            guessing=self.guessing,
        )


class QuestionRecord(BaseModel):
    """One question bank entry."""

    id: str
    topic_id: str
    item: ItemRecord = Field(default_factory=ItemRecord)
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    prerequisites: list[str] = Field(default_factory=list)
    author_difficulty: float | None = Field(default=None, ge=1, le=10)
    expected_time_ms: float = Field(default=30000.0, gt=0)
    scaffold_question_ids: list[str] = Field(default_factory=list)

    def to_question(self) -> Question:
        return Question(
            id=self.id,
            topic_id=self.topic_id,
            item=self.item.to_item(),
            question_type=self.question_type,
            prerequisites=tuple(self.prerequisites),
            author_difficulty=self.author_difficulty,
            expected_time_ms=self.expected_time_ms,
            scaffold_question_ids=tuple(self.scaffold_question_ids),
        )


class QuestionBank(BaseModel):
    questions: list[QuestionRecord]

    def to_questions(self) -> list[Question]:
        return [record.to_question() for record in self.questions]


class ResponseRecord(BaseModel):
    """A scored response to an item."""

    item: ItemRecord = Field(default_factory=ItemRecord)
    is_correct: bool

    def to_response(self) -> ItemResponse:
        return ItemResponse(item=self.item.to_item(), is_correct=self.is_correct)


class ResponseHistory(BaseModel):
    responses: list[ResponseRecord]
    theta0: float = 0.0

    def to_responses(self) -> list[ItemResponse]:
        return [record.to_response() for record in self.responses]
