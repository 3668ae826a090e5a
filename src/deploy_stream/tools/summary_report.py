"""Generate a summary report for an exported project.

Reads the manifest and metrics written by MetricSink.close() and renders a
plain-text report next to them.
"""

from __future__ import annotations
import os
from datetime import datetime
from typing import Optional

from ..storage.writer import load_manifest, read_metrics


def _fmt_ms(ms: Optional[int]) -> str:
    if not ms:
        return "N/A"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _fmt_loss(v: Optional[float]) -> str:
    return "N/A" if v is None else f"{v:.4f}"


def generate_summary_report(out_dir: str) -> str:
    """Generate the summary report file and return its text."""
    manifest = load_manifest(os.path.join(out_dir, "manifest.json"))
    project_id = manifest.get("project_id", "project")
    metrics_path = os.path.join(out_dir, "metrics.parquet")
    metrics = read_metrics(metrics_path) if os.path.exists(metrics_path) else []

    lines = []
    lines.append("=" * 70)
    lines.append("DEPLOYMENT RUN - SUMMARY REPORT")
    lines.append("=" * 70)
    lines.append("")
    lines.append(f"Project ID: {project_id}")
    lines.append(f"Name: {manifest.get('name', 'N/A')}")
    lines.append(f"Base Model: {manifest.get('model', 'N/A')}")
    lines.append(f"Compute Tier: {manifest.get('compute_tier', 'N/A')}")
    lines.append(f"Fine-Tuning Method: {manifest.get('fine_tuning_method', 'N/A')}")
    lines.append(f"Status: {manifest.get('status', 'N/A')}")
    if manifest.get("error"):
        lines.append(f"Error: {manifest['error']}")
    lines.append(f"Started: {_fmt_ms(manifest.get('created_at_ms'))}")
    lines.append(f"Finished: {_fmt_ms(manifest.get('finished_at_ms'))}")
    lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("")

    lines.append("=" * 70)
    lines.append("STATISTICS")
    lines.append("=" * 70)
    lines.append("")
    lines.append(f"Log lines: {manifest.get('log_lines', 0):,}")
    lines.append(f"Metric events: {manifest.get('metric_count', 0):,}")
    lines.append(f"Update batches: {manifest.get('batches', 0):,}")
    lines.append(f"First loss: {_fmt_loss(manifest.get('first_loss'))}")
    lines.append(f"Last loss: {_fmt_loss(manifest.get('last_loss'))}")
    lines.append(f"Min loss: {_fmt_loss(manifest.get('min_loss'))}")
    if "loss_p50" in manifest:
        lines.append(f"Loss p50/p90: {_fmt_loss(manifest['loss_p50'])} / {_fmt_loss(manifest.get('loss_p90'))}")
    lines.append("")

    if metrics:
        lines.append("=" * 70)
        lines.append("TRAINING METRICS")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"{'#':>4}  {'Epoch':>5}  {'Loss':>8}")
        for i, m in enumerate(metrics):
            lines.append(f"{i:>4}  {m.epoch:>5}  {m.loss:>8.4f}")
        lines.append("")

    text = "\n".join(lines)
    report_path = os.path.join(out_dir, "reports", f"{project_id}_summary.txt")
    os.makedirs(os.path.dirname(report_path), exist_ok=True)
    with open(report_path, "w", encoding="utf-8") as f:
        f.write(text + "\n")
    return text
