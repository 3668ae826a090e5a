from datetime import datetime, timezone

import pytest
import yaml

from deploy_stream.config.loader import (
    ConfigError,
    load_projects,
    load_session_config,
    load_yaml,
    parse_status_rules,
)
from deploy_stream.pipeline.classifier import DEFAULT_STATUS_RULES
from deploy_stream.pipeline.context import JobStatus, StatusRule
from deploy_stream.project_id import generate_project_id, resolve_out_dir, resolve_project_id, slugify


class TestStatusRules:
    def test_defaults_when_missing(self):
        assert parse_status_rules(None) == DEFAULT_STATUS_RULES

    def test_order_preserved(self):
        rules = parse_status_rules([
            {"tag": "[PROVISION]", "status": "Provisioning"},
            {"tag": "[TRAIN]", "status": "TRAINING"},
        ])
        assert rules == (
            StatusRule("[PROVISION]", JobStatus.PROVISIONING),
            StatusRule("[TRAIN]", JobStatus.TRAINING),
        )

    @pytest.mark.parametrize("raw", [
        [{"tag": "[X]"}],
        [{"tag": "", "status": "Training"}],
        [{"tag": "[X]", "status": "Sleeping"}],
        [{"tag": "[SUCCESS]", "status": "Active"}],
        [{"tag": "[ERROR]", "status": "Failed"}],
        ["[TRAIN]"],
    ])
    def test_invalid(self, raw):
        with pytest.raises(ConfigError):
            parse_status_rules(raw)


class TestSessionConfig:
    def test_defaults(self):
        cfg = load_session_config({})
        assert cfg.allow_regression is True
        assert cfg.require_success_marker is False
        assert cfg.success_marker == "[SUCCESS]"

    def test_values(self):
        cfg = load_session_config({"session": {
            "allow_regression": False,
            "require_success_marker": True,
            "success_marker": "[DONE]",
            "metric_template": "E{epoch} L{loss:.2f}",
        }})
        assert not cfg.allow_regression
        assert cfg.require_success_marker
        assert cfg.make_classifier().metric_template == "E{epoch} L{loss:.2f}"

    def test_bad_template(self):
        with pytest.raises(ConfigError):
            load_session_config({"session": {"metric_template": "Epoch {step}"}})


class TestProjects:
    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "deploy.yaml"
        path.write_text(yaml.safe_dump({
            "projects": [
                {"name": "Bot", "model": "Phi-3 Mini", "parameters_b": 3.8, "team": "support",
                 "source": {"kind": "scripted", "seed": 3, "chunk_size": 5, "temperature": 0.2}},
                {"name": "Other", "id": "proj_fixed"},
            ]
        }))
        entries = load_projects(load_yaml(str(path)))
        assert len(entries) == 2
        bot, other = entries
        assert bot.config.model == "Phi-3 Mini"
        assert bot.config.extra == {"team": "support"}
        assert bot.source.seed == 3 and bot.source.chunk_size == 5
        assert bot.source.options == {"temperature": 0.2}
        assert bot.source.name == "scripted:Bot"
        assert other.project_id == "proj_fixed"
        assert other.source.kind == "scripted"

    def test_unknown_source_kind(self):
        with pytest.raises(ConfigError):
            load_projects({"projects": [{"name": "x", "source": {"kind": "carrier-pigeon"}}]})

    def test_name_required(self):
        with pytest.raises(ConfigError):
            load_projects({"projects": [{"model": "x"}]})

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_projects(load_yaml(str(path))) == []


class TestProjectId:
    NOW = datetime(2026, 10, 19, 12, 34, 56, tzinfo=timezone.utc)

    def test_generate(self):
        assert generate_project_id("Support Bot", now=self.NOW) == "proj_support-bot_1019123456"

    def test_generate_without_name(self):
        pid = generate_project_id("x", {"include_name": False, "prefix_digits": 8, "suffix_digits": 0}, now=self.NOW)
        assert pid == "proj_20261019"

    def test_slugify(self):
        assert slugify("  Code LLaMA 34B!! ") == "code-llama-34b"
        assert slugify("!!!") == "project"

    def test_explicit_id_wins(self):
        assert resolve_project_id({}, "Bot", explicit=" proj_x ") == "proj_x"

    def test_unique_among_taken(self):
        cfg = {"run": {"project_id_auto": {"suffix_digits": 0}}}
        assert resolve_project_id(cfg, "Bot") == "proj_bot"
        assert resolve_project_id(cfg, "Bot", taken=["proj_bot"]) == "proj_bot-2"
        assert resolve_project_id(cfg, "Bot", taken=["proj_bot", "proj_bot-2"]) == "proj_bot-3"

    def test_out_dir(self):
        assert resolve_out_dir({}, "p1") == "storage/p1"
        assert resolve_out_dir({"run": {"out_dir": "out/{project_id}/x"}}, "p1") == "out/p1/x"
        assert resolve_out_dir({"run": {"out_dir": "flat"}}, "p1") == "flat"
