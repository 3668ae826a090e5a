"""Analytics sink.

Subscribes to a ProjectStore and records every applied batch of one
project. Nothing is written until close(), which exports:

- `<out_dir>/metrics.parquet`   one row per MetricEvent, in arrival order
- `<out_dir>/events.parquet`    one row per applied batch
- `<out_dir>/log.jsonl`         the project's display lines
- `<out_dir>/manifest.json`     final status, counts and a loss summary

The loss summary includes percentile summaries (p50/p90) over the run.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging
import os
import numpy as np

from .schemas import make_event
from ..pipeline.context import MetricEvent, Project, UpdateBatch
from ..storage.writer import append_jsonl, write_events, write_manifest, write_metrics

log = logging.getLogger("deploy_stream.analytics")


def loss_summary(metrics: List[MetricEvent], ps=(50, 90)) -> Dict[str, Optional[float]]:
    if not metrics:
        return {"first_loss": None, "last_loss": None, "min_loss": None}
    arr = np.array([m.loss for m in metrics], dtype=np.float64)
    out: Dict[str, Optional[float]] = {
        "first_loss": float(arr[0]),
        "last_loss": float(arr[-1]),
        "min_loss": float(arr.min()),
    }
    for p in ps:
        out[f"loss_p{p}"] = float(np.percentile(arr, p))
    return out


class MetricSink:
    def __init__(self, out_dir: str, project_id: str):
        self.out_dir = out_dir
        self.project_id = project_id
        self.events: List[Dict[str, Any]] = []
        os.makedirs(out_dir, exist_ok=True)

    def __call__(self, project_id: str, batch: UpdateBatch) -> None:
        if project_id != self.project_id:
            return
        self.events.append(make_event(project_id=project_id, seq=len(self.events), batch=batch))

    def close(self, project: Project) -> Dict[str, Any]:
        """Write all exports for `project` and return the manifest."""
        metrics_path = os.path.join(self.out_dir, "metrics.parquet")
        write_metrics(metrics_path, project.project_id, project.metrics)
        if self.events:
            write_events(os.path.join(self.out_dir, "events.parquet"), self.events)

        log_path = os.path.join(self.out_dir, "log.jsonl")
        if os.path.exists(log_path):
            os.remove(log_path)
        append_jsonl(log_path, [{"i": i, "line": line} for i, line in enumerate(project.log_lines)])

        manifest = {
            "project_id": project.project_id,
            "name": project.config.name,
            "model": project.config.model,
            "compute_tier": project.config.compute_tier,
            "fine_tuning_method": project.config.fine_tuning_method,
            "status": project.status.value,
            "error": project.error,
            "created_at_ms": project.created_at_ms,
            "finished_at_ms": project.finished_at_ms,
            "log_lines": len(project.log_lines),
            "metric_count": len(project.metrics),
            "batches": len(self.events),
            **loss_summary(project.metrics),
        }
        write_manifest(os.path.join(self.out_dir, "manifest.json"), manifest)
        log.info(f"Exported project={project.project_id} to {self.out_dir}")
        return manifest
