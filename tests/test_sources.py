import asyncio
import json

import pytest

from deploy_stream.pipeline.context import JobStatus, ProjectConfig
from deploy_stream.pipeline.session import SessionConfig, interpret, run_session
from deploy_stream.prompts import build_prompt, data_source_description
from deploy_stream.sources.base import SourceError, SourceSpec, chunk_text
from deploy_stream.sources.local_text import LocalTextSource
from deploy_stream.sources.registry import (
    is_registered,
    list_sources,
    make_source,
    register_source,
    unregister_source,
)
from deploy_stream.sources.scripted import ScriptedSource


def collect(source):
    async def gather():
        return [f async for f in source.stream()]
    return asyncio.run(gather())


def metric_lines(text):
    return [line for line in text.splitlines() if line.startswith('{"type": "metric"')]


class TestChunkText:
    def test_fixed_size(self):
        assert list(chunk_text("abcdefg", 3)) == ["abc", "def", "g"]

    def test_whole_text(self):
        assert list(chunk_text("abc", 0)) == ["abc"]
        assert list(chunk_text("", 0)) == []


class TestScriptedSource:
    def test_seed_is_deterministic(self, project_config):
        a = ScriptedSource(SourceSpec(kind="scripted", seed=7), project_config).render()
        b = ScriptedSource(SourceSpec(kind="scripted", seed=7), project_config).render()
        assert a == b

    def test_fragments_rebuild_the_log(self, project_config):
        for chunk_size in (0, 9):
            src = ScriptedSource(SourceSpec(kind="scripted", seed=3, chunk_size=chunk_size), project_config)
            assert "".join(src.fragments()) == src.render()

    def test_deployment_log_shape(self, project_config):
        text = ScriptedSource(SourceSpec(kind="scripted", seed=1), project_config).render()
        assert 10 <= len(metric_lines(text)) <= 14
        assert text.rstrip("\n").splitlines()[-1].startswith("[SUCCESS]")
        assert "LoRA" in text

    def test_fine_tuning_log_shape(self, project_config):
        project_config.fine_tuning_method = "Full Fine-tuning"
        text = ScriptedSource(SourceSpec(kind="scripted", seed=1, log_kind="fine_tuning"), project_config).render()
        metrics = metric_lines(text)
        assert 5 <= len(metrics) <= 7
        assert [json.loads(m)["epoch"] for m in metrics] == list(range(1, len(metrics) + 1))
        assert "full model checkpoint" in text

    def test_needs_config(self):
        with pytest.raises(ValueError):
            ScriptedSource(SourceSpec(kind="scripted"))

    def test_interpreted_run(self, project_config):
        src = ScriptedSource(SourceSpec(kind="scripted", seed=5), project_config)
        cfg = SessionConfig(require_success_marker=True)
        batches = interpret(src.fragments(), cfg)
        assert batches[-1].status == JobStatus.ACTIVE
        assert batches[-2].status == JobStatus.DEPLOYING
        metrics = [m for b in batches for m in b.metrics]
        assert len(metrics) == len(metric_lines(src.render()))

    def test_session_ends_active(self, store, project_config):
        src = ScriptedSource(SourceSpec(kind="scripted", seed=11, chunk_size=7), project_config)
        result = asyncio.run(run_session(store, "proj_1", src))
        assert result.ok
        assert store.get("proj_1").log_lines[-1].startswith("[SUCCESS]")

    def test_fail_after(self, store, project_config):
        src = ScriptedSource(SourceSpec(kind="scripted", seed=11, fail_after=20), project_config)
        result = asyncio.run(run_session(store, "proj_1", src))
        assert result.status == JobStatus.FAILED
        assert "stream aborted after 20 fragments" in result.error
        assert result.fragments == 20


class TestLocalTextSource:
    def test_replay_chunks(self, tmp_path, sample_log):
        path = tmp_path / "run.log"
        path.write_text(sample_log, encoding="utf-8")
        src = LocalTextSource(SourceSpec(kind="local_text", path=str(path), chunk_size=4))
        fragments = collect(src)
        assert all(len(f) <= 4 for f in fragments)
        assert "".join(fragments) == sample_log

    def test_replay_session(self, tmp_path, store, sample_log):
        path = tmp_path / "run.log"
        path.write_text(sample_log, encoding="utf-8")
        src = LocalTextSource(SourceSpec(kind="local_text", path=str(path), chunk_size=5))
        result = asyncio.run(run_session(store, "proj_1", src))
        assert result.ok
        assert result.metrics == 2
        assert store.get("proj_1").log_lines[-1] == "[SUCCESS] Deployment successful. Endpoint is now active."

    def test_missing_file_fails_session(self, tmp_path, store):
        src = LocalTextSource(SourceSpec(kind="local_text", name="gone", path=str(tmp_path / "missing.log")))
        result = asyncio.run(run_session(store, "proj_1", src))
        assert result.status == JobStatus.FAILED
        assert "cannot read" in result.error
        assert store.get("proj_1").log_lines[-1].startswith("[ERROR] SourceError:")

    def test_path_required(self):
        with pytest.raises(ValueError):
            LocalTextSource(SourceSpec(kind="local_text"))


class TestRegistry:
    def test_builtin_kinds(self):
        kinds = list_sources()
        assert kinds["scripted"] == "static"
        assert kinds["local_text"] == "static"
        assert kinds["gemini"] == "static"

    def test_make_builtin(self, project_config):
        src = make_source(SourceSpec(kind="scripted", name="s"), project_config)
        assert isinstance(src, ScriptedSource)
        assert src.name == "s"

    def test_dynamic_registration(self, list_source):
        register_source("fixed", lambda spec, config: list_source(["a\n"]))
        try:
            assert is_registered("fixed")
            assert list_sources()["fixed"] == "dynamic"
            src = make_source(SourceSpec(kind="fixed"))
            assert collect(src) == ["a\n"]
        finally:
            unregister_source("fixed")
        assert not is_registered("fixed")

    def test_static_name_conflict(self, list_source):
        with pytest.raises(ValueError):
            register_source("scripted", lambda spec, config: list_source([]))

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown source kind"):
            make_source(SourceSpec(kind="carrier-pigeon"))

    def test_gemini_requires_key(self, monkeypatch, project_config):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            make_source(SourceSpec(kind="gemini"), project_config)


class TestSourceError:
    def test_message(self):
        err = SourceError("gemini:Bot", "quota exceeded")
        assert str(err) == "source=gemini:Bot: quota exceeded"
        assert err.source == "gemini:Bot"


class TestPrompts:
    def test_deployment_prompt(self, project_config):
        system, user = build_prompt(project_config, "deployment")
        assert '"type": "metric"' in system
        assert "[SUCCESS] Deployment successful" in system
        assert '- Project Name: "Support Bot"' in user
        assert 'deep research report on "customer support transcripts"' in user

    def test_fine_tuning_prompt(self, project_config):
        system, user = build_prompt(project_config, "fine_tuning")
        assert '{"type": "metric", "epoch": 1, "loss": 2.1534}' in system
        assert "LLaMA 3 70B" in user

    def test_unknown_log_kind(self, project_config):
        with pytest.raises(ValueError):
            build_prompt(project_config, "inference")

    @pytest.mark.parametrize("kwargs,expected", [
        ({"data_method": "existing", "data_source": "The Pile"}, '"The Pile"'),
        ({"data_source_id": "upload-report", "dataset_topic": "notes.pdf"}, 'Uploaded file: "notes.pdf"'),
        ({"dataset_topic": None, "data_source": "Common Crawl"}, '"Common Crawl"'),
    ])
    def test_data_source_description(self, kwargs, expected):
        assert data_source_description(ProjectConfig(name="x", **kwargs)) == expected
