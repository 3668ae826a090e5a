"""Session runner.

One session = one project's stream, from the first fragment to exhaustion
(or failure). Two layers:

- StreamInterpreter: synchronous splitter + classifier pair. Turns each
  fragment into at most one immutable UpdateBatch. No I/O, no store.
- run_session(): awaits fragments from a FragmentSource, hands every batch
  to the ProjectStore, and finalizes the status.

Rounds are strictly sequential: one fragment is split, classified and
applied before the next one is requested.

Termination:
- source exhausted -> flush the tail, classify it, status Active
  (or Failed when a success marker is required and never appeared)
- source raised    -> status Failed, partial tail discarded, no more fragments
- task cancelled   -> tail discarded, status left as is, CancelledError propagates
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
import logging
import time

from .classifier import DEFAULT_METRIC_TEMPLATE, DEFAULT_STATUS_RULES, LineClassifier
from .context import JobStatus, StatusRule, UpdateBatch
from .splitter import LineSplitter
from ..sources.base import FragmentSource
from ..store.projects import ProjectStore

log = logging.getLogger("deploy_stream.session")

DEFAULT_SUCCESS_MARKER = "[SUCCESS]"


@dataclass
class SessionConfig:
    status_rules: Sequence[StatusRule] = DEFAULT_STATUS_RULES
    metric_template: str = DEFAULT_METRIC_TEMPLATE
    allow_regression: bool = True
    require_success_marker: bool = False
    success_marker: str = DEFAULT_SUCCESS_MARKER

    def make_classifier(self) -> LineClassifier:
        return LineClassifier(
            status_rules=self.status_rules,
            metric_template=self.metric_template,
            allow_regression=self.allow_regression,
        )


@dataclass
class SessionResult:
    project_id: str
    status: JobStatus
    fragments: int = 0
    lines: int = 0
    metrics: int = 0
    error: Optional[str] = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == JobStatus.ACTIVE


class StreamInterpreter:
    """Splitter and classifier for one stream. Owns the buffer and running status."""

    def __init__(self, config: Optional[SessionConfig] = None, status: JobStatus = JobStatus.PROVISIONING):
        self.config = config or SessionConfig()
        self.classifier = self.config.make_classifier()
        self.splitter = LineSplitter()
        self.status = status
        self.success_seen = False
        self.fragments = 0
        self.lines = 0
        self.metrics = 0
        self.closed = False

    def _round(self, lines: Iterable[str]) -> UpdateBatch:
        lines = list(lines)
        marker = self.config.success_marker
        if marker and any(marker in line for line in lines):
            self.success_seen = True
        batch = self.classifier.classify_lines(lines, self.status)
        self.status = batch.status
        self.lines += len(batch.display_lines)
        self.metrics += len(batch.metrics)
        return batch

    def process(self, fragment: str) -> Optional[UpdateBatch]:
        """Feed one fragment. Returns None when the round produced nothing to apply."""
        if self.closed:
            raise RuntimeError("Interpreter already finished.")
        self.fragments += 1
        batch = self._round(self.splitter.feed(fragment))
        return None if batch.empty else batch

    def finish(self) -> UpdateBatch:
        """Flush the tail and force the terminal status."""
        tail = self.splitter.flush()
        batch = self._round([tail] if tail is not None else [])
        self.closed = True

        if self.config.require_success_marker and not self.success_seen:
            error = f"stream ended without success marker {self.config.success_marker!r}"
            self.status = JobStatus.FAILED
            return UpdateBatch(
                display_lines=batch.display_lines + (f"[ERROR] {error}",),
                metrics=batch.metrics,
                status=JobStatus.FAILED,
                final=True,
                error=error,
            )

        self.status = JobStatus.ACTIVE
        return UpdateBatch(
            display_lines=batch.display_lines,
            metrics=batch.metrics,
            status=JobStatus.ACTIVE,
            final=True,
        )

    def fail(self, error: BaseException) -> UpdateBatch:
        """Abandon the stream after an error; the buffered tail is discarded."""
        dropped = len(self.splitter.buffer)
        self.splitter.buffer = ""
        self.closed = True
        self.status = JobStatus.FAILED
        message = f"{type(error).__name__}: {error}"
        if dropped:
            log.debug(f"Discarding {dropped} buffered chars after failure")
        return UpdateBatch(
            display_lines=(f"[ERROR] {message}",),
            status=JobStatus.FAILED,
            final=True,
            error=message,
        )


def interpret(fragments: Iterable[str], config: Optional[SessionConfig] = None) -> List[UpdateBatch]:
    """Run a finite fragment sequence through a fresh interpreter (final batch included)."""
    interp = StreamInterpreter(config)
    batches = [b for b in (interp.process(f) for f in fragments) if b is not None]
    batches.append(interp.finish())
    return batches


async def _close(stream) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


async def run_session(
    store: ProjectStore,
    project_id: str,
    source: FragmentSource,
    config: Optional[SessionConfig] = None,
) -> SessionResult:
    """Consume `source` for `project_id` until exhaustion, failure or cancellation."""
    started = time.monotonic()
    project = store.begin_session(project_id)
    interp = StreamInterpreter(config, status=project.status)
    result = SessionResult(project_id=project_id, status=project.status)

    stream = None
    try:
        try:
            log.info(f"Starting session project={project_id} source={source.name} meta={source.metadata()}")
            stream = source.stream()
            async for fragment in stream:
                batch = interp.process(fragment)
                if batch is not None:
                    log.debug(
                        f"project={project_id} round={interp.fragments} "
                        f"lines={len(batch.display_lines)} metrics={len(batch.metrics)}"
                    )
                    store.apply(project_id, batch)
            final = interp.finish()
        except Exception as e:
            log.exception(f"Session failed project={project_id} after {interp.fragments} fragments: {e}")
            final = interp.fail(e)

        store.apply(project_id, final)
        result.error = final.error
    finally:
        try:
            if stream is not None:
                await _close(stream)
        finally:
            store.end_session(project_id)

    result.status = interp.status
    result.fragments = interp.fragments
    result.lines = interp.lines
    result.metrics = interp.metrics
    result.elapsed_s = time.monotonic() - started
    log.info(
        f"Session complete project={project_id} status={result.status.value} "
        f"fragments={result.fragments} lines={result.lines} metrics={result.metrics} "
        f"elapsed={result.elapsed_s:.2f}s"
    )
    return result
