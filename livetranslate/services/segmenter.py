"""Sentence boundary detection backed by a chat model."""

from __future__ import annotations

import json
import logging
from typing import Optional

from ..store.sentence_buffer import SegmentSplit
from .network import CloudClient

LOGGER = logging.getLogger("livetranslate.segmenter")

_PROMPT = """You are a {language} sentence boundary detector. Given {language} text from a live speech transcription, split it into complete sentences and any remaining incomplete fragment.

Rules:
- A complete sentence ends with a natural {language} sentence-ending pattern
- Maintain the EXACT original text; do not modify, correct, or rephrase anything
- The "pending" field should contain text that is not yet a complete sentence
- If the entire text is incomplete, return it all as "pending"
- Preserve chronological order

Respond with ONLY valid JSON: {{"sentences": ["sentence 1", "sentence 2"], "pending": "incomplete part"}}"""


def _decode(content: str) -> Optional[SegmentSplit]:
    try:
        data = json.loads(content)
    except (TypeError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict) or "pending" not in data:
        return None
    sentences = data.get("sentences", [])
    pending = data["pending"]
    if not isinstance(sentences, list) or not all(isinstance(item, str) for item in sentences):
        return None
    if not isinstance(pending, str):
        return None
    cleaned = [item.strip() for item in sentences if item.strip()]
    return SegmentSplit(sentences=cleaned, pending=pending.strip())


def parse_split(content: str, text: str) -> SegmentSplit:
    """Parse a detector response; anything malformed keeps ``text`` pending."""
    split = _decode(content)
    if split is None:
        LOGGER.warning("Unparseable segmenter response; keeping %d chars pending", len(text))
        return SegmentSplit(sentences=[], pending=text)
    return split


class SentenceSegmenter:
    def __init__(self, client: CloudClient, *, model: str, language: str = "Korean") -> None:
        self.client = client
        self.model = model
        self.system_prompt = _PROMPT.format(language=language)

    async def split(self, text: str) -> SegmentSplit:
        content = await self.client.complete(
            model=self.model,
            system=self.system_prompt,
            user=text,
            temperature=0.0,
            max_tokens=1000,
            json_mode=True,
        )
        return parse_split(content, text)


__all__ = ["SentenceSegmenter", "parse_split"]
