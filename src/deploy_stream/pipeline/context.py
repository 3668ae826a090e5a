"""Core data model.

Fragments are plain `str` chunks; logical lines are plain `str` without a
newline. Everything the interpreter produces for a round is packed into an
immutable UpdateBatch so the project store is the only place state changes.

Design goal:
- Keep UpdateBatch stable so listeners (dashboard, analytics) can build on it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import time


class JobStatus(str, Enum):
    CONFIGURING = "Configuring"
    PROVISIONING = "Provisioning"
    TRAINING = "Training"
    DEPLOYING = "Deploying"
    ACTIVE = "Active"
    FAILED = "Failed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.ACTIVE, JobStatus.FAILED)

    @classmethod
    def parse(cls, value: str) -> "JobStatus":
        """Accept either the display value ("Training") or the member name ("TRAINING")."""
        for status in cls:
            if value == status.value or value.upper() == status.name:
                return status
        raise ValueError(f"Unknown job status: {value!r}. Available: {[s.value for s in cls]}")


_STATUS_ORDER = list(JobStatus)


@dataclass(frozen=True)
class MetricEvent:
    epoch: int
    loss: float


@dataclass(frozen=True)
class StatusRule:
    """A status tag: any narration line containing `tag` moves the job to `status`."""
    tag: str
    status: JobStatus


@dataclass(frozen=True)
class UpdateBatch:
    display_lines: Tuple[str, ...] = ()
    metrics: Tuple[MetricEvent, ...] = ()
    status: JobStatus = JobStatus.PROVISIONING
    final: bool = False
    error: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not self.display_lines and not self.metrics


@dataclass
class ProjectConfig:
    """Wizard values that parameterize the generated log."""
    name: str
    model: str = "LLaMA 3 70B"
    parameters_b: float = 70.0
    compute_tier: str = "Standard GPU Cluster"
    data_method: str = "pretraining"
    data_source: str = "Upload Dataset"
    data_source_id: str = "upload"
    dataset_topic: Optional[str] = None
    fine_tuning_method: str = "PEFT (LoRA/QLoRA)"
    persona: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def peft(self) -> bool:
        return "PEFT" in self.fine_tuning_method or "LoRA" in self.fine_tuning_method


@dataclass
class Project:
    project_id: str
    config: ProjectConfig
    status: JobStatus = JobStatus.PROVISIONING
    log_lines: List[str] = field(default_factory=list)
    metrics: List[MetricEvent] = field(default_factory=list)
    error: Optional[str] = None
    created_at_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    finished_at_ms: Optional[int] = None
