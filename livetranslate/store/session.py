"""Per-session state owned by the pipeline controller."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .history import ContextWindow, RecentOutputs
from .sentence_buffer import SentenceBuffer


@dataclass(slots=True)
class SessionState:
    buffer: SentenceBuffer
    context: ContextWindow
    recent: RecentOutputs
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, *, context_size: int = 20, recent_size: int = 10) -> "SessionState":
        return cls(
            buffer=SentenceBuffer(),
            context=ContextWindow(context_size),
            recent=RecentOutputs(recent_size),
        )
