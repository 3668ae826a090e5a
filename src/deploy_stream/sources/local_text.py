"""Local log replay source.

Reads a previously captured log file and replays it as fragments of
`chunk_size` characters (the whole file at once when chunk_size is 0).
Useful for reproducing a run or testing the interpreter against real output.
"""

from __future__ import annotations
import asyncio
import logging
import os
from typing import AsyncIterator, Any, Dict, Optional

from .base import FragmentSource, SourceError, SourceSpec, SourceType, chunk_text
from ..pipeline.context import ProjectConfig

log = logging.getLogger("deploy_stream.sources.local_text")


class LocalTextSource(FragmentSource):
    source_type = SourceType.REPLAY

    def __init__(self, spec: SourceSpec, config: Optional[ProjectConfig] = None):
        super().__init__(spec, config)
        if not spec.path:
            raise ValueError("local_text source requires `path`.")
        self.path = spec.path

    def metadata(self) -> Dict[str, Any]:
        return {
            "kind": "local_text",
            "path": self.path,
            "size_bytes": os.path.getsize(self.path) if os.path.exists(self.path) else None,
            "chunk_size": self.spec.chunk_size,
        }

    async def stream(self) -> AsyncIterator[str]:
        try:
            # newline="" keeps "\r\n" intact; the splitter only cuts on "\n"
            with open(self.path, "r", encoding=self.spec.encoding, newline="") as f:
                text = f.read()
        except OSError as e:
            raise SourceError(self.name, f"cannot read {self.path}: {e}") from e

        log.info(f"Replaying {self.path} ({len(text):,} chars, chunk_size={self.spec.chunk_size})")
        for fragment in chunk_text(text, self.spec.chunk_size):
            yield fragment
            if self.spec.delay_s:
                await asyncio.sleep(self.spec.delay_s)
