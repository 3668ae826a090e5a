"""Fragment source plugin interface.

Goal: allow new log producers without changing the session code.

A source can be:
- generative (a text generation API prompted to narrate a run)
- scripted (offline simulation, deterministic with a seed)
- replay (an existing log file re-chunked)

All sources expose a unified async `stream()` yielding text fragments.
Fragment boundaries carry no meaning; they need not align with lines.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional

from ..pipeline.context import ProjectConfig


class SourceType(str, Enum):
    GENERATIVE = "generative"
    SCRIPTED = "scripted"
    REPLAY = "replay"


class SourceError(RuntimeError):
    """The fragment stream terminated abnormally."""

    def __init__(self, source: str, message: str):
        super().__init__(f"source={source}: {message}")
        self.source = source


@dataclass
class SourceSpec:
    kind: str               # implementation key, e.g. scripted, local_text, gemini
    name: str = ""
    log_kind: str = "deployment"  # deployment | fine_tuning
    # chunking (scripted / local_text)
    chunk_size: int = 0     # 0 = word-by-word for scripted, whole file for local_text
    delay_s: float = 0.0    # pause between fragments
    seed: Optional[int] = None
    # local_text
    path: Optional[str] = None
    encoding: str = "utf-8"
    # gemini
    model: str = "gemini-2.5-flash"
    api_key_env: str = "GEMINI_API_KEY"
    # scripted failure injection: raise after this many fragments
    fail_after: Optional[int] = None
    options: Dict[str, Any] = field(default_factory=dict)


class FragmentSource:
    """Base interface for all sources."""
    name: str
    source_type: SourceType

    def __init__(self, spec: SourceSpec, config: Optional[ProjectConfig] = None):
        self.spec = spec
        self.config = config
        self.name = spec.name or spec.kind

    def metadata(self) -> Dict[str, Any]:
        return {"kind": self.spec.kind}

    def stream(self) -> AsyncIterator[str]:
        raise NotImplementedError


def chunk_text(text: str, chunk_size: int):
    """Yield `text` in pieces of `chunk_size` characters (the whole text when <= 0)."""
    if chunk_size <= 0:
        if text:
            yield text
        return
    for i in range(0, len(text), chunk_size):
        yield text[i:i + chunk_size]
