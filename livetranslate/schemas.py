"""Pydantic schemas for events emitted to the pipeline consumer."""

from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field


class BackendReady(BaseModel):
    kind: Literal["backend-ready"] = "backend-ready"
    label: str


class Progress(BaseModel):
    kind: Literal["progress"] = "progress"
    resource: str
    fraction: float = Field(ge=0.0, le=1.0)


class FinalText(BaseModel):
    kind: Literal["final-text"] = "final-text"
    text: str


class TranscriptState(BaseModel):
    kind: Literal["transcript-state"] = "transcript-state"
    completed: List[str] = Field(default_factory=list)
    pending: str = ""


class Translation(BaseModel):
    kind: Literal["translation"] = "translation"
    text: str


class Failure(BaseModel):
    kind: Literal["failure"] = "failure"
    message: str
    stage: Optional[str] = None
    fatal: bool = False


PipelineEvent = Union[BackendReady, Progress, FinalText, TranscriptState, Translation, Failure]
