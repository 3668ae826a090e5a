"""Example: Adding a new fragment source dynamically without modifying registry.py.

The source below replays an in-memory transcript at a steady pace, cutting
it into random-sized fragments the way a streaming API would.
"""

import asyncio
import random
from typing import AsyncIterator, Optional

from deploy_stream.pipeline.context import ProjectConfig
from deploy_stream.pipeline.session import run_session
from deploy_stream.sources.base import FragmentSource, SourceSpec
from deploy_stream.sources.registry import list_sources, make_source, register_source
from deploy_stream.store.projects import ProjectStore

TRANSCRIPT = """[PROVISION] Reserving 8x H100
[TRAIN] warmup done
{"type": "metric", "epoch": 1, "loss": 1.9021}
{"type": "metric", "epoch": 2, "loss": 1.4410}
[DEPLOY] Endpoint rollout 100%
[SUCCESS] Deployment successful. Endpoint is now active.
"""


class TranscriptSource(FragmentSource):
    """Example custom source."""

    def __init__(self, spec: SourceSpec, config: Optional[ProjectConfig] = None):
        super().__init__(spec, config)
        self.rng = random.Random(spec.seed)

    async def stream(self) -> AsyncIterator[str]:
        text = self.spec.options.get("text", TRANSCRIPT)
        i = 0
        while i < len(text):
            n = self.rng.randint(1, 12)
            yield text[i:i + n]
            i += n
            await asyncio.sleep(self.spec.delay_s)


# Register it
register_source("transcript", lambda spec, config: TranscriptSource(spec, config))

# Verify registration
print("Registered sources:")
for kind, source_type in list_sources().items():
    print(f"  {kind}: {source_type}")

store = ProjectStore()
store.create("demo", ProjectConfig(name="Demo"))
source = make_source(SourceSpec(kind="transcript", seed=3, delay_s=0.01))
result = asyncio.run(run_session(store, "demo", source))
print(f"status={result.status.value} metrics={result.metrics}")
for line in store.get("demo").log_lines:
    print(f"  {line}")

# Now you can use it in a deploy config:
# projects:
#   - name: Demo
#     source:
#       kind: transcript
#       seed: 3
