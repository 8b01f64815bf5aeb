"""Per-session pipeline controller: gate, recognize, buffer, proofread, translate, filter, emit."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Type, TypeVar, Union

from .audio.gate import ChunkGate
from .audio.types import AudioChunk, ChunkMessage, ControllerMessage, StartSession, StopSession
from .metrics import BACKLOG_DEPTH, BACKLOG_DROPPED, CHUNK_OUTCOMES, observe_stage
from .schemas import BackendReady, Failure, FinalText, PipelineEvent, Progress, TranscriptState, Translation
from .services.backends import InferenceBackend, Task, create_backend
from .services.network import ApiError
from .services.output_filter import OutputFilter
from .services.proofreader import Proofreader
from .services.segmenter import SentenceSegmenter
from .services.whisper_engine import EngineError
from .settings import PipelineSettings
from .store.session import SessionState

LOGGER = logging.getLogger("livetranslate.pipeline")

EventCallback = Callable[[PipelineEvent], None]
T = TypeVar("T")


class ChunkState(str, Enum):
    GATED_OUT = "gated-out"
    RECOGNIZING = "recognizing"
    BUFFERING = "buffering"
    PROOFREADING = "proofreading"
    TRANSLATING = "translating"
    FILTERING = "filtering"
    EMITTED = "emitted"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


class StageFailure(Exception):
    """A collaborator call failed while a chunk was in ``stage``."""

    def __init__(self, stage: str, error: BaseException) -> None:
        super().__init__(f"{stage}: {error}")
        self.stage = stage
        self.error = error


_STOP = object()

Handler = Callable[[AudioChunk, SessionState, OutputFilter], Awaitable[ChunkState]]


class PipelineController:
    """Owns one session's state and drains accepted chunks one at a time.

    The gate runs eagerly in :meth:`submit`. Accepted chunks wait in a bounded
    queue that a single worker task drains in arrival order, so buffer, context
    and dedup state are never touched by two chunks at once. When the backlog is
    full the oldest waiting chunk is dropped and reported; the chunk currently in
    flight is never interrupted.
    """

    def __init__(
        self,
        backend: InferenceBackend,
        on_event: EventCallback,
        *,
        gate: ChunkGate,
        task: Union[Task, str] = Task.TRANSLATE,
        segmenter: Optional[SentenceSegmenter] = None,
        proofreader: Optional[Proofreader] = None,
        context_size: int = 20,
        recent_size: int = 10,
        duplicate_limit: int = 2,
        queue_max: int = 8,
    ) -> None:
        self.backend = backend
        self.on_event = on_event
        self.gate = gate
        self.task = Task(task)
        self.segmenter = segmenter
        self.proofreader = proofreader
        self.context_size = context_size
        self.recent_size = recent_size
        self.duplicate_limit = duplicate_limit
        self.queue_max = max(0, int(queue_max))
        self._session: Optional[SessionState] = None
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._accepting = False

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        on_event: EventCallback,
        *,
        backend: Optional[InferenceBackend] = None,
    ) -> "PipelineController":
        backend = backend or create_backend(settings)
        segmenter = proofreader = None
        client = getattr(backend, "client", None)
        if not backend.direct and client is not None and settings.sentence_buffered:
            segmenter = SentenceSegmenter(
                client, model=settings.sentence_model, language=settings.source_language_name
            )
            if settings.proofreading:
                proofreader = Proofreader(
                    client, model=settings.proofread_model, language=settings.source_language_name
                )
        return cls(
            backend,
            on_event,
            gate=ChunkGate.from_settings(settings),
            task=settings.task,
            segmenter=segmenter,
            proofreader=proofreader,
            context_size=settings.proofread_context_size,
            recent_size=settings.recent_outputs_size,
            duplicate_limit=settings.duplicate_limit,
            queue_max=settings.queue_max,
        )

    @property
    def session(self) -> Optional[SessionState]:
        return self._session

    @property
    def active(self) -> bool:
        return self._accepting

    @property
    def backlog(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def handle(self, message: ControllerMessage) -> None:
        if isinstance(message, StartSession):
            await self.start_session()
        elif isinstance(message, StopSession):
            await self.stop_session()
        elif isinstance(message, ChunkMessage):
            self.submit(message.audio)
        else:
            raise TypeError(f"Unsupported controller message: {message!r}")

    async def start_session(self) -> bool:
        """Initialize the backend and fresh session state.

        Returns False after emitting a fatal ``failure`` event when the backend
        cannot be initialized; no session is active in that case.
        """
        if self._session is not None:
            await self.stop_session()
        try:
            label = await self.backend.load(self._report_progress)
        except Exception as exc:
            LOGGER.error("Backend %s failed to initialize: %s", self.backend.name, exc)
            self._emit(Failure(message=str(exc), stage="initializing", fatal=True))
            return False

        session = SessionState.create(context_size=self.context_size, recent_size=self.recent_size)
        output_filter = OutputFilter(session.recent, duplicate_limit=self.duplicate_limit)
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_max)
        self._session = session
        self._queue = queue
        self._worker = asyncio.create_task(self._drain(queue, session, output_filter, self._select_handler()))
        self._accepting = True
        LOGGER.info("Session %s started on %s", session.session_id, label)
        self._emit(BackendReady(label=label))
        return True

    def submit(self, chunk: AudioChunk) -> bool:
        """Gate ``chunk`` and queue it for processing; returns True when queued."""
        queue = self._queue
        if not self._accepting or queue is None:
            LOGGER.debug("Chunk %d ignored; no active session", chunk.sequence)
            return False
        if not self.gate.accepts(chunk.samples):
            LOGGER.debug("Chunk %d gated out", chunk.sequence)
            CHUNK_OUTCOMES.labels(outcome=ChunkState.GATED_OUT.value).inc()
            return False
        if queue.full():
            dropped = queue.get_nowait()
            queue.task_done()
            BACKLOG_DROPPED.inc()
            LOGGER.warning("Backlog full (%d); dropped chunk %d", queue.maxsize, dropped.sequence)
            self._emit(Failure(message=f"Dropped chunk {dropped.sequence}: backlog full", stage="queued"))
        queue.put_nowait(chunk)
        BACKLOG_DEPTH.set(queue.qsize())
        return True

    async def wait_idle(self) -> None:
        """Wait until every queued chunk has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def stop_session(self) -> None:
        """Stop accepting chunks, let queued work finish, then discard session state."""
        session = self._session
        if session is None:
            return
        self._accepting = False
        if self._queue is not None and self._worker is not None:
            await self._queue.put(_STOP)
            await self._worker
        session.buffer.reset()
        session.context.clear()
        session.recent.clear()
        self._session = None
        self._queue = None
        self._worker = None
        BACKLOG_DEPTH.set(0)
        LOGGER.info("Session %s stopped", session.session_id)

    async def close(self) -> None:
        await self.stop_session()
        await self.backend.close()

    def _select_handler(self) -> Handler:
        if self.backend.direct:
            return self._process_direct
        if self.segmenter is not None:
            return self._process_two_stage
        return self._process_per_chunk

    async def _drain(
        self,
        queue: asyncio.Queue,
        session: SessionState,
        output_filter: OutputFilter,
        handler: Handler,
    ) -> None:
        while True:
            item = await queue.get()
            try:
                if item is _STOP:
                    return
                BACKLOG_DEPTH.set(queue.qsize())
                state = await self._process(item, session, output_filter, handler)
                CHUNK_OUTCOMES.labels(outcome=state.value).inc()
                LOGGER.debug("Chunk %d finished as %s", item.sequence, state.value)
            finally:
                queue.task_done()

    async def _process(
        self,
        chunk: AudioChunk,
        session: SessionState,
        output_filter: OutputFilter,
        handler: Handler,
    ) -> ChunkState:
        try:
            return await handler(chunk, session, output_filter)
        except StageFailure as exc:
            LOGGER.warning("Chunk %d failed while %s: %s", chunk.sequence, exc.stage, exc.error)
            self._emit(Failure(message=str(exc.error), stage=exc.stage))
        except Exception as exc:
            LOGGER.exception("Unexpected error processing chunk %d", chunk.sequence)
            self._emit(Failure(message=str(exc) or exc.__class__.__name__))
        return ChunkState.FAILED

    async def _process_direct(
        self, chunk: AudioChunk, session: SessionState, output_filter: OutputFilter
    ) -> ChunkState:
        result = await self._call(ChunkState.RECOGNIZING, self.backend.infer(chunk, self.task))
        text = result.translated_text if result.translated_text is not None else result.source_text
        return self._deliver(text, output_filter, FinalText)

    async def _process_per_chunk(
        self, chunk: AudioChunk, session: SessionState, output_filter: OutputFilter
    ) -> ChunkState:
        result = await self._call(ChunkState.RECOGNIZING, self.backend.infer(chunk, self.task))
        source = (result.source_text or "").strip()
        if not source or self.task is Task.RECOGNIZE:
            return self._deliver(source, output_filter, FinalText)
        translated = await self._call(ChunkState.TRANSLATING, self.backend.translate(source))
        return self._deliver(translated, output_filter, FinalText)

    async def _process_two_stage(
        self, chunk: AudioChunk, session: SessionState, output_filter: OutputFilter
    ) -> ChunkState:
        result = await self._call(ChunkState.RECOGNIZING, self.backend.infer(chunk, self.task))
        fragment = (result.source_text or "").strip()
        if not fragment:
            LOGGER.debug("Chunk %d recognized no text", chunk.sequence)
            return ChunkState.SUPPRESSED

        buffer = session.buffer
        pending = buffer.append_fragment(fragment)
        try:
            split = await self._call(ChunkState.BUFFERING, self.segmenter.split(pending))
        except StageFailure:
            # the fragment stays pending and is retried with the next chunk
            self._emit_transcript(session)
            raise
        added = buffer.commit(split)
        self._emit_transcript(session)
        if not added:
            return ChunkState.BUFFERING

        sentences = buffer.sentences_at(added)
        if self.proofreader is not None:
            sentences = await self._proofread(session, added, sentences)
            self._emit_transcript(session)
        if self.task is Task.RECOGNIZE:
            return ChunkState.EMITTED
        return await self._translate_all(sentences, output_filter)

    async def _proofread(self, session: SessionState, indices: range, sentences: List[str]) -> List[str]:
        context = session.context.sentences()
        try:
            corrected = await self._call(ChunkState.PROOFREADING, self.proofreader.correct(sentences, context))
        except StageFailure as exc:
            LOGGER.warning("Proofreading failed; forwarding %d raw sentence(s): %s", len(sentences), exc.error)
            self._emit(Failure(message=str(exc.error), stage=exc.stage))
            corrected = sentences
        if len(corrected) != len(sentences):
            LOGGER.warning(
                "Proofreader returned %d sentence(s) for %d; keeping originals", len(corrected), len(sentences)
            )
            corrected = sentences
        session.buffer.replace(indices, corrected)
        session.context.extend(corrected)
        return list(corrected)

    async def _translate_all(self, sentences: Sequence[str], output_filter: OutputFilter) -> ChunkState:
        outcome = ChunkState.SUPPRESSED
        failed = False
        for sentence in sentences:
            try:
                translated = await self._call(ChunkState.TRANSLATING, self.backend.translate(sentence))
            except StageFailure as exc:
                LOGGER.warning("Translation failed for %r: %s", sentence, exc.error)
                self._emit(Failure(message=str(exc.error), stage=exc.stage))
                failed = True
                continue
            if self._deliver(translated, output_filter, Translation) is ChunkState.EMITTED:
                outcome = ChunkState.EMITTED
        return ChunkState.FAILED if failed else outcome

    async def _call(self, stage: ChunkState, awaitable: Awaitable[T]) -> T:
        with observe_stage(stage.value):
            try:
                return await awaitable
            except (ApiError, EngineError) as exc:
                raise StageFailure(stage.value, exc) from exc
            except Exception as exc:
                LOGGER.exception("Unexpected error while %s", stage.value)
                raise StageFailure(stage.value, exc) from exc

    def _deliver(
        self,
        candidate: Optional[str],
        output_filter: OutputFilter,
        event_type: Type[Union[FinalText, Translation]],
    ) -> ChunkState:
        text = output_filter.apply(candidate)
        if text is None:
            return ChunkState.SUPPRESSED
        self._emit(event_type(text=text))
        return ChunkState.EMITTED

    def _emit_transcript(self, session: SessionState) -> None:
        completed, pending = session.buffer.snapshot()
        self._emit(TranscriptState(completed=completed, pending=pending))

    def _report_progress(self, resource: str, fraction: float) -> None:
        self._emit(Progress(resource=resource, fraction=min(1.0, max(0.0, float(fraction)))))

    def _emit(self, event: PipelineEvent) -> None:
        try:
            self.on_event(event)
        except Exception:
            LOGGER.exception("Event consumer failed on %s", event.kind)


__all__ = ["ChunkState", "PipelineController", "StageFailure"]
