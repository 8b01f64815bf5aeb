"""Running source-language transcript split into completed sentences and a pending tail."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence


@dataclass(slots=True)
class SegmentSplit:
    """Boundary detector verdict for the running pending text."""

    sentences: List[str] = field(default_factory=list)
    pending: str = ""


class SentenceBuffer:
    """Append-only list of completed sentences followed by one pending fragment.

    Completed entries keep their index for the whole session. Their text can be
    replaced in place (proofreading) but entries are never removed or reordered.
    """

    def __init__(self) -> None:
        self._completed: list[str] = []
        self._pending = ""

    @property
    def completed(self) -> list[str]:
        return list(self._completed)

    @property
    def pending(self) -> str:
        return self._pending

    def append_fragment(self, fragment: str) -> str:
        """Join ``fragment`` onto the pending text and return the new pending text."""
        text = fragment.strip()
        if text:
            self._pending = f"{self._pending} {text}" if self._pending else text
        return self._pending

    def commit(self, split: SegmentSplit) -> range:
        """Append the detected sentences and replace the pending remainder.

        Returns the indices the new sentences occupy in ``completed``.
        """
        start = len(self._completed)
        self._completed.extend(split.sentences)
        self._pending = split.pending
        return range(start, len(self._completed))

    def sentences_at(self, indices: range) -> list[str]:
        return [self._completed[idx] for idx in indices]

    def replace(self, indices: range, corrected: Sequence[str]) -> None:
        if len(indices) != len(corrected):
            raise ValueError(
                f"expected {len(indices)} corrected sentence(s), got {len(corrected)}"
            )
        for idx, text in zip(indices, corrected):
            self._completed[idx] = text

    def snapshot(self) -> tuple[list[str], str]:
        return list(self._completed), self._pending

    def text(self) -> str:
        parts = self._completed + ([self._pending] if self._pending else [])
        return " ".join(parts)

    def reset(self) -> None:
        self._completed = []
        self._pending = ""

    def __len__(self) -> int:
        return len(self._completed)


__all__ = ["SegmentSplit", "SentenceBuffer"]
