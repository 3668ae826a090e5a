import asyncio

import pytest

from deploy_stream.pipeline.context import ProjectConfig
from deploy_stream.sources.base import FragmentSource, SourceSpec
from deploy_stream.store.projects import ProjectStore


class ListSource(FragmentSource):
    """Yields a fixed list of fragments, then optionally raises."""

    def __init__(self, fragments, error=None, delay_s=0.0):
        super().__init__(SourceSpec(kind="list", name="list"))
        self.fragments = list(fragments)
        self.error = error
        self.delay_s = delay_s
        self.requested = 0

    async def stream(self):
        for fragment in self.fragments:
            self.requested += 1
            yield fragment
            if self.delay_s:
                await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error


@pytest.fixture
def project_config():
    return ProjectConfig(
        name="Support Bot",
        model="LLaMA 3 70B",
        parameters_b=70,
        compute_tier="Performance TPU Pod",
        dataset_topic="customer support transcripts",
        fine_tuning_method="PEFT (LoRA/QLoRA)",
    )


@pytest.fixture
def store(project_config):
    s = ProjectStore()
    s.create("proj_1", project_config)
    return s


@pytest.fixture
def sample_log():
    """A short log with narration, metrics, a malformed record and blank lines."""
    return (
        "[PROVISION] allocating 4x A10G\n"
        "\n"
        "[TRAIN] starting pre-training\n"
        '{"type": "metric", "epoch": 1, "loss": 4.8123}\n'
        '{"type": "metric", "epoch": 2, "loss": 3.1}\n'
        '{"type":"metric","epoch":3,\n'
        "[DEPLOY] pushing image\n"
        "[SUCCESS] Deployment successful. Endpoint is now active."
    )


@pytest.fixture
def list_source():
    """Factory for in-memory fragment sources."""
    return ListSource
