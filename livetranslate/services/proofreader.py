"""Context-aware correction of newly completed sentences."""

from __future__ import annotations

import json
import logging
from typing import List, Optional, Sequence

from .network import CloudClient

LOGGER = logging.getLogger("livetranslate.proofreader")

_PROMPT = """You proofread live {language} speech transcriptions. The user message is JSON with "context" (earlier corrected sentences, oldest first) and "sentences" (new sentences to check).

Rules:
- Fix words that were likely misheard, using the context to resolve names, terms and topics
- Do not merge, split, reorder, translate or summarize sentences
- If a sentence is already correct, return it unchanged
- Return exactly one corrected sentence per input sentence, in the same order

Respond with ONLY valid JSON: {{"corrected": ["sentence 1", "sentence 2"]}}"""


def parse_corrections(content: str, expected: int) -> Optional[List[str]]:
    """Return the corrected sentences, or None when the response is unusable."""
    try:
        data = json.loads(content)
    except (TypeError, json.JSONDecodeError):
        return None
    if isinstance(data, dict):
        data = data.get("corrected")
    if not isinstance(data, list) or len(data) != expected:
        return None
    if not all(isinstance(item, str) and item.strip() for item in data):
        return None
    return [item.strip() for item in data]


class Proofreader:
    def __init__(self, client: CloudClient, *, model: str, language: str = "Korean") -> None:
        self.client = client
        self.model = model
        self.system_prompt = _PROMPT.format(language=language)

    async def correct(self, sentences: Sequence[str], context: Sequence[str]) -> List[str]:
        """Correct ``sentences`` using ``context``; falls back to the input on a bad response.

        Transport failures raise :class:`~livetranslate.services.network.ApiError`.
        """
        originals = list(sentences)
        if not originals:
            return []
        payload = json.dumps({"context": list(context), "sentences": originals}, ensure_ascii=False)
        content = await self.client.complete(
            model=self.model,
            system=self.system_prompt,
            user=payload,
            temperature=0.0,
            max_tokens=2000,
            json_mode=True,
        )
        corrected = parse_corrections(content, len(originals))
        if corrected is None:
            LOGGER.warning("Proofreading response unusable for %d sentence(s); keeping originals", len(originals))
            return originals
        return corrected


__all__ = ["Proofreader", "parse_corrections"]
