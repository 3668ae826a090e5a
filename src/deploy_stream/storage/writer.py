"""Export writers.

We keep writers simple and robust:
- write `metrics.parquet` / `events.parquet` for analysis
- write `log.jsonl` with the display lines (append-only)
- write a project manifest at the end
"""

from __future__ import annotations
from typing import Any, Dict, List
import json
import os
import pyarrow as pa
import pyarrow.parquet as pq

from ..pipeline.context import MetricEvent


def metrics_schema() -> pa.Schema:
    return pa.schema([
        ("project_id", pa.string()),
        ("seq", pa.int64()),
        ("epoch", pa.int64()),
        ("loss", pa.float64()),
    ], metadata={"schema_version": "v1"})


def write_metrics(path: str, project_id: str, metrics: List[MetricEvent]) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    rows = [
        {"project_id": project_id, "seq": i, "epoch": m.epoch, "loss": m.loss}
        for i, m in enumerate(metrics)
    ]
    table = pa.Table.from_pylist(rows, schema=metrics_schema())
    pq.write_table(table, path, compression="zstd")


def write_events(path: str, events: List[Dict[str, Any]]) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    table = pa.Table.from_pylist(events)
    pq.write_table(table, path, compression="zstd")


def read_metrics(path: str) -> List[MetricEvent]:
    table = pq.read_table(path, columns=["epoch", "loss"])
    return [MetricEvent(epoch=int(r["epoch"]), loss=float(r["loss"])) for r in table.to_pylist()]


def append_jsonl(path: str, rows: List[Dict[str, Any]]) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        for r in rows:
            f.write(json.dumps(r, ensure_ascii=False) + "\n")


def write_manifest(path: str, manifest: Dict[str, Any]) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)


def load_manifest(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
