"""Analytics event schemas.

One event per applied UpdateBatch. Events are kept small and flat so they
append cleanly to Parquet.

This module defines helper constructors and recommended keys, but does not
force strict validation.
"""

from __future__ import annotations
from typing import Any, Dict, Optional
import time

from ..pipeline.context import UpdateBatch


def make_event(
    *,
    project_id: str,
    seq: int,
    batch: UpdateBatch,
    timestamp_ms: Optional[int] = None,
) -> Dict[str, Any]:
    losses = [m.loss for m in batch.metrics]
    return {
        "project_id": project_id,
        "seq": seq,
        "timestamp_ms": timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
        "status": batch.status.value,
        "final": batch.final,
        "error": batch.error,
        "display_lines": len(batch.display_lines),
        "metric_count": len(batch.metrics),
        "min_loss": min(losses) if losses else None,
    }
