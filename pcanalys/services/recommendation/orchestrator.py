"""
Recommendation Stream Orchestrator.

Runs one recommendation cycle per request:
1. Validate the analysis id and usage label, fetch the record, score it.
2. Start generation and wait for the first chunk. Anything that goes wrong
   up to here is raised to the caller, before any response is committed.
3. Hand back a RecommendationStream. A detached producer task forwards
   chunks through a bounded ChunkChannel while accumulating them.
4. When generation ends (finished, failed mid-stream, or the caller left),
   persist the accumulated text, then signal end of stream.
"""

import asyncio
from enum import Enum
from typing import AsyncIterator, List, Optional, Set

from fastapi.concurrency import run_in_threadpool

from pcanalys.config.constants import (
    CHANNEL_CAPACITY,
    GENERATION_FAILURE_NOTICE,
    PERSISTENCE_FAILURE_NOTICE,
)
from pcanalys.schemas.analysis import (
    Recommendations,
    UsageProfile,
    is_valid_analysis_id,
    resolve_usage_profile,
    utcnow,
)
from pcanalys.services.analysis_store import AnalysisStore
from pcanalys.services.errors import (
    InternalFault,
    InvalidRequest,
    NotFound,
    PcAnalysError,
    PersistenceFailure,
    UpstreamGenerationFailure,
)
from pcanalys.services.generation.client import GenerationClient
from pcanalys.services.recommendation.channel import ChunkChannel
from pcanalys.services.scoring_service import score
from pcanalys.utils.logger import get_logger

log = get_logger(__name__)


class StreamState(Enum):
    VALIDATING = "validating"
    FETCHING = "fetching"
    SCORING = "scoring"
    GENERATING = "generating"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = (StreamState.DONE, StreamState.FAILED)


class RecommendationStream:
    """
    Caller-side handle on one recommendation cycle.

    Iterate it to receive chunks. Leaving the iteration early (or calling
    close()) tells the producer the caller is gone; generation stops and the
    partial text is still persisted.
    """

    def __init__(self, analysis_id: str, channel: ChunkChannel):
        self.analysis_id = analysis_id
        self.channel = channel
        self.state = StreamState.VALIDATING
        self.failure: Optional[str] = None
        self.usage_profile: Optional[UsageProfile] = None
        self.performance_score: Optional[int] = None
        self.chunks: List[str] = []
        self.cancelled = False
        self._task: Optional[asyncio.Task] = None

    @property
    def content(self) -> str:
        """Generated text so far, without any in-band notices."""
        return "".join(self.chunks)

    def transition(self, state: StreamState, reason: Optional[str] = None):
        if self.state in TERMINAL_STATES:
            return
        log.debug(f"Stream {self.analysis_id}: {self.state.value} -> {state.value}")
        self.state = state
        if reason:
            self.failure = reason

    def fail(self, reason: str):
        self.transition(StreamState.FAILED, reason)

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        try:
            while True:
                chunk = await self.channel.receive()
                if chunk is None:
                    break
                yield chunk
        finally:
            self.channel.close()

    def close(self):
        self.channel.close()

    async def wait_closed(self):
        """Wait until the cycle reached a terminal state (persistence included)."""
        if self._task is not None:
            await asyncio.shield(self._task)


class RecommendationStreamOrchestrator:
    """
    Coordinates store, scorer and generator for streaming recommendations.
    """

    def __init__(
        self,
        store: AnalysisStore,
        generator: GenerationClient,
        channel_capacity: int = CHANNEL_CAPACITY
    ):
        self.store = store
        self.generator = generator
        self.channel_capacity = channel_capacity
        self._producers: Set[asyncio.Task] = set()

    @property
    def active_streams(self) -> int:
        return len(self._producers)

    async def open_stream(self, analysis_id: str, usage_label: str) -> RecommendationStream:
        """
        Prepare a recommendation cycle and return its stream.

        Raises InvalidRequest, NotFound, PersistenceFailure or
        UpstreamGenerationFailure before the stream is returned; after that,
        failures only show up inside the stream.
        """
        stream = RecommendationStream(analysis_id, ChunkChannel(self.channel_capacity))
        try:
            usage = self._validate(analysis_id, usage_label)

            stream.transition(StreamState.FETCHING)
            record = await run_in_threadpool(self.store.get_by_id, analysis_id)
            if record is None:
                raise NotFound("Analysis not found")

            stream.transition(StreamState.SCORING)
            performance_score = score(record.hardware_profile, usage)

            stream.transition(StreamState.GENERATING)
            upstream = self.generator.stream(record.hardware_profile, usage)
            first_chunk = await self._first_chunk(upstream)
        except PcAnalysError as e:
            stream.fail(e.message)
            log.warning(f"Recommendation request for {analysis_id!r} rejected: {e.message}")
            raise
        except Exception as e:
            stream.fail(str(e))
            log.exception(f"Unexpected error preparing recommendations for {analysis_id!r}")
            raise InternalFault("Unexpected error while preparing recommendations") from e

        stream.usage_profile = usage
        stream.performance_score = performance_score
        log.info(f"Streaming {usage.value} recommendations for {analysis_id} (score {performance_score})")

        task = asyncio.create_task(self._produce(stream, upstream, first_chunk))
        self._producers.add(task)
        task.add_done_callback(self._producers.discard)
        stream._task = task
        return stream

    async def wait_idle(self):
        """Wait for every in-flight producer to persist and finish."""
        if self._producers:
            await asyncio.gather(*list(self._producers), return_exceptions=True)

    @staticmethod
    def _validate(analysis_id: str, usage_label: str) -> UsageProfile:
        errors = []
        if not is_valid_analysis_id(analysis_id):
            errors.append({"path": "analysisId", "message": "Invalid analysis ID format"})
        try:
            usage = resolve_usage_profile(usage_label)
        except InvalidRequest as e:
            errors.extend(e.details)
            usage = None
        if errors:
            raise InvalidRequest("Invalid recommendation request", details=errors)
        return usage

    @staticmethod
    async def _first_chunk(upstream: AsyncIterator[str]) -> str:
        try:
            return await upstream.__anext__()
        except StopAsyncIteration:
            raise UpstreamGenerationFailure("Generation produced no output")
        except UpstreamGenerationFailure:
            raise
        except Exception as e:
            raise UpstreamGenerationFailure(f"Generation failed: {e}") from e

    async def _produce(self, stream: RecommendationStream, upstream, first_chunk: str):
        channel = stream.channel
        try:
            try:
                if await self._forward(stream, first_chunk):
                    async for chunk in upstream:
                        if not await self._forward(stream, chunk):
                            break
            except Exception as e:
                stream.failure = str(e)
                log.error(f"Generation failed mid-stream for {stream.analysis_id}: {e}")
                await channel.send(GENERATION_FAILURE_NOTICE)
            finally:
                await self._release(stream, upstream)

            if stream.cancelled:
                log.info(f"Caller left stream {stream.analysis_id}; keeping {len(stream.content)} chars")

            await self._persist(stream)
        finally:
            channel.finish()

    @staticmethod
    async def _forward(stream: RecommendationStream, chunk: str) -> bool:
        stream.chunks.append(chunk)
        if await stream.channel.send(chunk):
            return True
        stream.cancelled = True
        return False

    @staticmethod
    async def _release(stream: RecommendationStream, upstream):
        try:
            await upstream.aclose()
        except Exception as e:
            log.warning(f"Failed to close generation stream for {stream.analysis_id}: {e}")

    async def _persist(self, stream: RecommendationStream):
        stream.transition(StreamState.PERSISTING)
        recommendations = Recommendations(
            content=stream.content.strip(),
            usage_profile=stream.usage_profile,
            performance_score=stream.performance_score,
            generated_at=utcnow(),
        )
        try:
            saved = await run_in_threadpool(
                self.store.attach_recommendations,
                stream.analysis_id,
                recommendations,
                stream.performance_score,
                stream.usage_profile,
            )
            if saved is None:
                raise PersistenceFailure("Analysis disappeared before recommendations were saved")
        except Exception as e:
            stream.fail(f"Persistence failed: {e}")
            log.error(f"Failed to save recommendations for {stream.analysis_id}: {e}")
            await stream.channel.send(PERSISTENCE_FAILURE_NOTICE)
            return

        stream.transition(StreamState.DONE)
