"""Line classifier.

Each complete line is either:
- a metric record: `{"type": "metric", "epoch": <int>, "loss": <number>}`
  -> one MetricEvent plus a synthesized display line, status untouched
- narration: anything else (malformed JSON, other JSON, plain text)
  -> the raw line verbatim, then scanned for status tags

Status tags are an ordered tuple of StatusRule; the first rule whose tag is a
substring of the line wins. Matching is case-sensitive.

Malformed content never raises here.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import json
import math
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .context import JobStatus, MetricEvent, StatusRule, UpdateBatch

METRIC_TYPE = "metric"
DEFAULT_METRIC_TEMPLATE = "Epoch {epoch}: Training Loss = {loss:.4f}"
DEFAULT_STATUS_RULES: Tuple[StatusRule, ...] = (
    StatusRule("[DEPLOY]", JobStatus.DEPLOYING),
    StatusRule("[TRAIN]", JobStatus.TRAINING),
)


@dataclass
class Classification:
    display_lines: List[str] = field(default_factory=list)
    metrics: List[MetricEvent] = field(default_factory=list)
    status: JobStatus = JobStatus.PROVISIONING


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def decode_metric(line: str) -> Optional[MetricEvent]:
    """Decode a metric record, or return None for anything that is not one."""
    text = line.strip()
    if not text.startswith("{"):
        return None
    try:
        obj = json.loads(text)
    except (ValueError, RecursionError):
        return None
    if not isinstance(obj, dict) or obj.get("type") != METRIC_TYPE:
        return None

    epoch = obj.get("epoch")
    loss = obj.get("loss")
    if not isinstance(epoch, int) or isinstance(epoch, bool) or epoch < 0:
        return None
    if not _is_number(loss):
        return None
    try:
        loss = float(loss)
    except OverflowError:
        return None
    if not math.isfinite(loss) or loss < 0:
        return None
    return MetricEvent(epoch=epoch, loss=loss)


class LineClassifier:
    """
    Classifies logical lines and derives the job status.

    Args:
        status_rules: ordered (tag, status) pairs, first match wins
        metric_template: format string for metric display lines,
            receives `epoch` and `loss`
        allow_regression: when False, a tag whose status ranks below the
            current status is ignored
    """

    def __init__(
        self,
        status_rules: Sequence[StatusRule] = DEFAULT_STATUS_RULES,
        metric_template: str = DEFAULT_METRIC_TEMPLATE,
        allow_regression: bool = True,
    ):
        self.status_rules = tuple(status_rules)
        self.metric_template = metric_template
        self.allow_regression = allow_regression

    def match_status(self, line: str) -> Optional[JobStatus]:
        for rule in self.status_rules:
            if rule.tag in line:
                return rule.status
        return None

    def render_metric(self, metric: MetricEvent) -> str:
        return self.metric_template.format(epoch=metric.epoch, loss=metric.loss)

    def classify(self, line: str, current_status: JobStatus) -> Classification:
        out = Classification(status=current_status)
        if not line:
            return out

        metric = decode_metric(line)
        if metric is not None:
            out.metrics.append(metric)
            out.display_lines.append(self.render_metric(metric))
            return out

        out.display_lines.append(line)
        matched = self.match_status(line)
        if matched is not None:
            if self.allow_regression or matched.rank >= current_status.rank:
                out.status = matched
        return out

    def classify_lines(self, lines: Iterable[str], current_status: JobStatus) -> UpdateBatch:
        """Fold one round of lines into a single batch; status is the last one produced."""
        display: List[str] = []
        metrics: List[MetricEvent] = []
        status = current_status
        for line in lines:
            c = self.classify(line, status)
            display.extend(c.display_lines)
            metrics.extend(c.metrics)
            status = c.status
        return UpdateBatch(display_lines=tuple(display), metrics=tuple(metrics), status=status)
