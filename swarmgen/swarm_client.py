"""
SwarmClient - Streams generation results from the backend.

Each call acquires its own session, opens its own websocket and owns its
own slot sets, preview counter and ETA state. Results are produced lazily
as an async generator: nothing is read from the network until the
consumer asks for the next element. Abandoning the generator closes the
connection.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Mapping, Optional

import aiohttp

from .batch_assembler import BatchAssembler, BatchResult, ComposeGrid
from .connection import ConnectionManager
from .errors import SwarmError, TranscodeError
from .frame_parser import FrameParser
from .frame_transcoder import AnimationFrame, FrameTranscoder
from .grid_compositor import compose_grid
from .progress_estimator import ProgressEstimator
from .protocol_events import (
    ErrorEvent,
    FinalFrame,
    PreviewFrame,
    ProgressUpdate,
    ProtocolEvent,
    StatusUpdate,
)
from .request_builder import OptionValue, RequestBuilder
from .session_provider import SessionProvider
from .stream_progress import StreamProgress
from .swarm_config import SwarmConfig


FINAL_ANIMATION_MIME = 'image/gif'


class SwarmClient:
    """
    Client for the backend's streaming generation endpoint.
    """
    
    def __init__(
        self,
        config: SwarmConfig,
        compose: ComposeGrid = compose_grid,
        transcoder: Optional[FrameTranscoder] = None,
        http: Optional[aiohttp.ClientSession] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize client.
        
        Args:
            config: Backend settings
            compose: Callable turning {index: bytes} into one composite image
            transcoder: Frame transcoder for the animation variant
            http: Shared HTTP session; a private one is opened per call if omitted
            logger: Optional logger instance
        """
        self.config = config
        self.compose = compose
        self.logger = logger or logging.getLogger(__name__)
        self.transcoder = transcoder or FrameTranscoder(logger=self.logger)
        self.http = http
        self.parser = FrameParser(self.logger)
        self.request_builder = RequestBuilder(self.logger)
    
    async def acquire_session(self) -> str:
        """Acquire a session token on its own (diagnostics)."""
        async with self._http_session() as http:
            return await self._session_provider(http).acquire()
    
    async def generate_images(
        self,
        options: Mapping[str, OptionValue],
        progress: Optional[StreamProgress] = None
    ) -> AsyncIterator[BatchResult]:
        """
        Run a standard generation.
        
        Args:
            options: Generation options (prompt, images, model, ...)
            progress: Optional progress tracker
            
        Yields:
            BatchResult per preview frame (composite or empty tick), then
            exactly one final result, or one result carrying `error`
        """
        async with self._http_session() as http:
            connection = self._connection(http)
            try:
                await self._start(http, connection, options)
                assembler = BatchAssembler(
                    self.compose,
                    preview_frequency=self.config.preview_frequency,
                    strict=self.config.strict_batches,
                    logger=self.logger,
                )
                estimator = ProgressEstimator(logger=self.logger)
                
                while connection.is_open:
                    events = await self._read_events(connection, progress)
                    if events is None:
                        break
                    
                    error = self._first_error(events)
                    if error is not None:
                        await connection.close("Error occurred during generation")
                        result = BatchResult(image=None, is_final=False, eta=estimator.eta_text,
                                             error=error.message)
                        self._report(progress, result)
                        yield result
                        return
                    
                    for event in events:
                        if isinstance(event, PreviewFrame):
                            self._track(estimator, event.current_percent, event.overall_percent)
                            result = assembler.add_preview(event)
                            result.eta = estimator.eta_text
                            self._report(progress, result)
                            yield result
                        elif isinstance(event, FinalFrame):
                            result = assembler.add_final(event)
                            if result is None:
                                continue
                            await connection.close("All final images received")
                            result.eta = estimator.eta_text
                            self.logger.info("Final composite assembled")
                            self._report(progress, result)
                            yield result
                            return
                        elif isinstance(event, ProgressUpdate):
                            self._track(estimator, event.current_percent, event.overall_percent)
                        elif isinstance(event, StatusUpdate):
                            self._on_status(event, progress)
            except SwarmError as e:
                self.logger.error(f"Generation failed: {e}")
                raise
            finally:
                await connection.close("Generation ended")
    
    async def generate_animation(
        self,
        options: Mapping[str, OptionValue],
        progress: Optional[StreamProgress] = None
    ) -> AsyncIterator[AnimationFrame]:
        """
        Run an animation generation.
        
        Every decoded frame is sniffed and transcoded before delivery;
        frames that fail to transcode are dropped and the stream goes on.
        The top-level image tagged image/gif is the final frame; if it
        cannot be transcoded the stream ends with an error frame instead.
        
        Args:
            options: Generation options, including the video settings
            progress: Optional progress tracker
            
        Yields:
            AnimationFrame per delivered frame, or one frame carrying `error`
        """
        async with self._http_session() as http:
            connection = self._connection(http)
            try:
                await self._start(http, connection, options)
                estimator = ProgressEstimator(logger=self.logger)
                
                while connection.is_open:
                    events = await self._read_events(connection, progress)
                    if events is None:
                        break
                    
                    error = self._first_error(events)
                    if error is not None:
                        await connection.close("Error occurred during animation generation")
                        frame = AnimationFrame(data=b'', is_final=False, eta='', error=error.message)
                        self._report_frame(progress, frame)
                        yield frame
                        return
                    
                    for event in events:
                        if isinstance(event, PreviewFrame):
                            self._track(estimator, event.current_percent, event.overall_percent)
                            frame = self._transcode(event.payload, False, estimator, progress)
                            if frame is not None:
                                yield frame
                        elif isinstance(event, FinalFrame):
                            is_final = event.mime_type == FINAL_ANIMATION_MIME
                            frame = self._transcode(event.payload, is_final, estimator, progress)
                            if not is_final:
                                if frame is not None:
                                    yield frame
                                continue
                            
                            await connection.close("All final images received")
                            if frame is None:
                                self.logger.warning("Final animation frame was dropped")
                                frame = AnimationFrame(data=b'', is_final=False, eta=estimator.eta_text,
                                                       error="Final animation could not be transcoded")
                                self._report_frame(progress, frame)
                            else:
                                self.logger.info("Final animation received")
                            yield frame
                            return
                        elif isinstance(event, ProgressUpdate):
                            self._track(estimator, event.current_percent, event.overall_percent)
                        elif isinstance(event, StatusUpdate):
                            self._on_status(event, progress)
            except SwarmError as e:
                self.logger.error(f"Animation generation failed: {e}")
                raise
            finally:
                await connection.close("Generation ended")
    
    @asynccontextmanager
    async def _http_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self.http is not None:
            yield self.http
            return
        async with aiohttp.ClientSession() as http:
            yield http
    
    def _session_provider(self, http: aiohttp.ClientSession) -> SessionProvider:
        return SessionProvider(http, self.config.session_url, timeout=self.config.timeout,
                               logger=self.logger)
    
    def _connection(self, http: aiohttp.ClientSession) -> ConnectionManager:
        return ConnectionManager(
            http,
            self.config.generation_url,
            timeout=self.config.timeout,
            max_message_size=self.config.max_message_size,
            logger=self.logger,
        )
    
    async def _start(
        self,
        http: aiohttp.ClientSession,
        connection: ConnectionManager,
        options: Mapping[str, OptionValue]
    ) -> None:
        """Connect, acquire a fresh session and send the request."""
        await connection.ensure_connected()
        token = await self._session_provider(http).acquire()
        await connection.send(self.request_builder.build(options, token))
    
    async def _read_events(
        self,
        connection: ConnectionManager,
        progress: Optional[StreamProgress]
    ) -> Optional[List[ProtocolEvent]]:
        raw = await connection.receive()
        if raw is None:
            return None
        if progress:
            progress.on_message()
        return self.parser.parse(raw)
    
    @staticmethod
    def _first_error(events: List[ProtocolEvent]) -> Optional[ErrorEvent]:
        # An error anywhere in a message pre-empts everything else in it
        for event in events:
            if isinstance(event, ErrorEvent):
                return event
        return None
    
    @staticmethod
    def _track(
        estimator: ProgressEstimator,
        current_percent: Optional[float],
        overall_percent: Optional[float]
    ) -> None:
        if current_percent is not None:
            estimator.update(current_percent, overall_percent)
    
    def _transcode(
        self,
        payload: bytes,
        is_final: bool,
        estimator: ProgressEstimator,
        progress: Optional[StreamProgress]
    ) -> Optional[AnimationFrame]:
        try:
            transcoded = self.transcoder.transcode(payload)
        except TranscodeError as e:
            self.logger.warning(f"Dropping frame: {e}")
            if progress:
                progress.on_frame_dropped(e)
            return None
        
        frame = AnimationFrame(
            data=transcoded.data,
            is_final=is_final,
            eta=estimator.eta_text,
            format=transcoded.format,
        )
        self._report_frame(progress, frame)
        return frame
    
    def _on_status(self, status: StatusUpdate, progress: Optional[StreamProgress]) -> None:
        if progress:
            progress.on_status(status)
        else:
            self.logger.debug(f"Status: {status.live_gens} live, {status.waiting_gens} waiting")
    
    def _report(self, progress: Optional[StreamProgress], result: BatchResult) -> None:
        if result.error is not None:
            self.logger.error(f"Backend error: {result.error}")
        if progress:
            progress.on_result(result)
    
    def _report_frame(self, progress: Optional[StreamProgress], frame: AnimationFrame) -> None:
        if frame.error is not None:
            self.logger.error(f"Backend error: {frame.error}")
        if progress:
            progress.on_frame(frame)
