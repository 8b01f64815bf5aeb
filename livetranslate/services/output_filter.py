"""Suppression of hallucinated, filler and looping model output."""

from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

from ..metrics import FILTER_DECISIONS
from ..store.history import RecentOutputs

LOGGER = logging.getLogger("livetranslate.filter")

# Phrases Whisper-style models emit on silence or noise.
HALLUCINATIONS = frozenset(
    {
        "thank you", "thank you for watching", "thanks", "thanks for watching",
        "please subscribe", "subscribe", "like and subscribe",
        "i'm sorry", "sorry", "bye", "goodbye", "good bye", "bye bye", "bye-bye",
        "hello", "hey", "hi", "okay", "ok", "yes", "no", "yeah", "yep", "nope",
        "hmm", "uh", "ah", "oh", "um", "er", "mhm",
        "music", "applause", "laughter", "silence",
        "cheering", "laughing", "clapping", "sighing", "coughing",
        "see you", "see you next time", "have a good night", "have a good day",
        "good night", "good morning", "good evening", "good afternoon",
        "have a nice day", "take care", "you", "the", "i", "it", "a",
    }
)

EDGE_PUNCTUATION = ".,!?…-:;'\""
_ANNOTATION = re.compile(r"^(\(.*\)|\[.*\])$", re.DOTALL)


def normalize(text: str) -> str:
    return text.strip().strip(EDGE_PUNCTUATION).strip().lower()


class OutputFilter:
    """Accept or suppress candidate output text for one session."""

    def __init__(self, recent: RecentOutputs, *, duplicate_limit: int = 2) -> None:
        self.recent = recent
        self.duplicate_limit = duplicate_limit

    def evaluate(self, candidate: str | None) -> Tuple[Optional[str], str]:
        """Return ``(text, reason)``; ``text`` is None when the candidate is suppressed."""
        trimmed = (candidate or "").strip()
        if not trimmed:
            return None, "empty"
        if _ANNOTATION.match(trimmed):
            return None, "annotation"
        cleaned = normalize(trimmed)
        if len(cleaned) < 2:
            return None, "too-short"
        if cleaned in HALLUCINATIONS:
            return None, "hallucination"
        if self.recent.count(cleaned) >= self.duplicate_limit:
            return None, "repetition"
        self.recent.push(cleaned)
        return trimmed, "accepted"

    def apply(self, candidate: str | None) -> Optional[str]:
        text, reason = self.evaluate(candidate)
        FILTER_DECISIONS.labels(reason=reason).inc()
        if text is None:
            LOGGER.debug("Suppressed output (%s): %r", reason, candidate)
        return text


__all__ = ["HALLUCINATIONS", "OutputFilter", "normalize"]
