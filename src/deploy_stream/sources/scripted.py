"""Scripted (offline) source.

Renders a plausible run log for a ProjectConfig without calling any API and
streams it in small fragments, so the interpreter sees the same kind of
ragged chunking a generative API produces.

- chunk_size == 0: word-by-word, whitespace kept as separate fragments
- chunk_size > 0: fixed-size character chunks
- fail_after: raise SourceError after N fragments (failure drills)
"""

from __future__ import annotations
import asyncio
import json
import random
import re
from typing import AsyncIterator, List, Optional

from .base import FragmentSource, SourceError, SourceSpec, SourceType, chunk_text
from ..pipeline.context import ProjectConfig


def _metric_line(epoch: int, loss: float) -> str:
    return json.dumps({"type": "metric", "epoch": epoch, "loss": round(loss, 4)})


def _losses(rng: random.Random, n: int, start: float, end: float) -> List[float]:
    """Monotonically decreasing loss curve with a little noise."""
    out = []
    for i in range(n):
        frac = i / max(n - 1, 1)
        base = start * (end / start) ** frac
        out.append(max(base * (1.0 + rng.uniform(-0.03, 0.03)), 0.0))
    out.sort(reverse=True)
    return out


def _trainable_params(config: ProjectConfig) -> str:
    total = config.parameters_b * 1e9
    if config.peft:
        return f"{total * 0.0012 / 1e6:,.1f}M trainable parameters (LoRA adapters, r=16)"
    return f"{total / 1e9:,.1f}B trainable parameters (all layers)"


def render_fine_tuning_phase(config: ProjectConfig, rng: random.Random, start_loss: float) -> List[str]:
    lines: List[str] = []
    if config.peft:
        lines.append(f"[TRAIN] Loading {config.model} in 4-bit NF4 quantized format")
        lines.append("[TRAIN] Attaching LoRA adapters to q_proj, v_proj")
    else:
        lines.append(f"[TRAIN] Loading full {config.model} weights in bf16")
        lines.append("[TRAIN] Preparing all parameters for gradient updates")
    lines.append(f"[TRAIN] {_trainable_params(config)}")
    n = rng.randint(5, 7)
    for epoch, loss in enumerate(_losses(rng, n, start_loss, start_loss * 0.35), start=1):
        lines.append(f"[TRAIN] step {epoch * 250}/{n * 250} lr={2e-4 * (1 - epoch / (n + 1)):.2e}")
        lines.append(_metric_line(epoch, loss))
    return lines


def render_deployment_log(config: ProjectConfig, seed: Optional[int] = None) -> str:
    rng = random.Random(seed)
    lines = [
        f"[PROVISION] Requesting compute tier '{config.compute_tier}' for project {config.name}",
        "[PROVISION] Nodes healthy, NCCL ring initialized",
        f"[DATA] Preparing pre-training data: {config.data_source}"
        + (f" ({config.dataset_topic})" if config.dataset_topic else ""),
        f"[DATA] Tokenized {rng.randint(120, 900)}M tokens into {rng.randint(64, 512)} shards",
        f"[TRAIN] Pre-training {config.model} ({config.parameters_b:g}B parameters)",
    ]
    n = rng.randint(5, 7)
    pre = _losses(rng, n, rng.uniform(4.6, 5.4), rng.uniform(1.6, 2.2))
    for epoch, loss in enumerate(pre, start=1):
        lines.append(f"[TRAIN] epoch {epoch}/{n} tokens/s={rng.randint(38000, 52000)}")
        lines.append(_metric_line(epoch, loss))
    lines.append("[TRAIN] Pre-training complete")
    lines.append(f"[TRAIN] Fine-tuning with {config.fine_tuning_method}")
    lines.extend(render_fine_tuning_phase(config, rng, pre[-1] * 0.8))
    lines.append("[SAVE] Writing " + ("adapter weights (safetensors)" if config.peft else "full model checkpoint"))
    lines.append("[DEPLOY] Packaging model into serving container")
    lines.append(f"[DEPLOY] Pushing image registry/{config.name.lower().replace(' ', '-')}:latest")
    lines.append("[DEPLOY] Creating serverless endpoint with /healthz health check")
    lines.append("[SUCCESS] Deployment successful. Endpoint is now active.")
    return "\n".join(lines) + "\n"


def render_fine_tuning_log(config: ProjectConfig, seed: Optional[int] = None) -> str:
    rng = random.Random(seed)
    lines = [
        f"[SETUP] Loading pre-trained weights for {config.model}",
        "[SETUP] Tokenizing and preparing the fine-tuning dataset",
    ]
    lines.extend(render_fine_tuning_phase(config, rng, rng.uniform(2.0, 3.0)))
    lines.append("[SAVE] Writing " + ("adapter weights (safetensors)" if config.peft else "full model checkpoint"))
    lines.append("[SUCCESS] Fine-tuning complete. Model checkpoint saved successfully.")
    return "\n".join(lines) + "\n"


class ScriptedSource(FragmentSource):
    source_type = SourceType.SCRIPTED

    def __init__(self, spec: SourceSpec, config: Optional[ProjectConfig] = None):
        super().__init__(spec, config)
        if config is None:
            raise ValueError("Scripted source needs a project config to render a log.")

    def metadata(self):
        return {
            "kind": "scripted",
            "log_kind": self.spec.log_kind,
            "chunk_size": self.spec.chunk_size,
            "seed": self.spec.seed,
        }

    def render(self) -> str:
        if self.spec.log_kind == "fine_tuning":
            return render_fine_tuning_log(self.config, self.spec.seed)
        return render_deployment_log(self.config, self.spec.seed)

    def fragments(self) -> List[str]:
        text = self.render()
        if self.spec.chunk_size > 0:
            return list(chunk_text(text, self.spec.chunk_size))
        return [w for w in re.split(r"(\s+)", text) if w]

    async def stream(self) -> AsyncIterator[str]:
        for i, fragment in enumerate(self.fragments()):
            if self.spec.fail_after is not None and i >= self.spec.fail_after:
                raise SourceError(self.name, f"stream aborted after {i} fragments")
            yield fragment
            if self.spec.delay_s:
                await asyncio.sleep(self.spec.delay_s)
