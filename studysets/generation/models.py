from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

OPTION_COUNT = 4


class Difficulty(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'


class QuestionRecord(BaseModel):
    question: str = Field(..., min_length=1)
    options: List[str]
    answer: str
    category: str
    explanation: str = ''

    @field_validator('options')
    @classmethod
    def exactly_four_distinct(cls, v):
        if len(v) != OPTION_COUNT:
            raise ValueError(f'expected {OPTION_COUNT} options, got {len(v)}')
        if len(set(v)) != len(v):
            raise ValueError('options must be distinct')
        return v

    @model_validator(mode='after')
    def answer_is_an_option(self):
        if self.answer not in self.options:
            raise ValueError('answer must match one of the options exactly')
        return self


class QuestionSet(BaseModel):
    name: str
    questions: List[QuestionRecord]
