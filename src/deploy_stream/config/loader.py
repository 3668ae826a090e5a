"""Config loader.

Deploy configs are YAML files with three sections:
- run:      output/log directories and project id generation
- session:  interpreter policy (status tags, regression, success marker)
- projects: one entry per project to deploy, each with a `source` block

Keeping the status vocabulary in YAML lets the tag set change without
touching the interpreter.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Tuple
import yaml

from ..pipeline.classifier import DEFAULT_METRIC_TEMPLATE, DEFAULT_STATUS_RULES
from ..pipeline.context import JobStatus, ProjectConfig, StatusRule
from ..pipeline.session import DEFAULT_SUCCESS_MARKER, SessionConfig
from ..sources.base import SourceSpec
from ..sources.registry import is_registered


class ConfigError(ValueError):
    """Invalid deploy configuration."""


@dataclass
class ProjectEntry:
    config: ProjectConfig
    source: SourceSpec
    project_id: Optional[str] = None


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_status_rules(raw: Optional[List[Dict[str, Any]]]) -> Tuple[StatusRule, ...]:
    """Build the ordered rule tuple; the list order is the match priority."""
    if raw is None:
        return DEFAULT_STATUS_RULES
    rules = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or "tag" not in item or "status" not in item:
            raise ConfigError(f"session.status_rules[{i}] needs `tag` and `status`, got {item!r}")
        tag = str(item["tag"])
        if not tag:
            raise ConfigError(f"session.status_rules[{i}]: empty tag")
        try:
            status = JobStatus.parse(str(item["status"]))
        except ValueError as e:
            raise ConfigError(f"session.status_rules[{i}]: {e}") from e
        if status.terminal:
            raise ConfigError(
                f"session.status_rules[{i}]: tag {tag!r} cannot target terminal status {status.value}; "
                f"Active/Failed are only set when the stream ends"
            )
        rules.append(StatusRule(tag=tag, status=status))
    return tuple(rules)


def load_session_config(cfg: Dict[str, Any]) -> SessionConfig:
    s = cfg.get("session") or {}
    template = s.get("metric_template", DEFAULT_METRIC_TEMPLATE)
    try:
        template.format(epoch=1, loss=1.0)
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        raise ConfigError(f"session.metric_template is invalid: {e}") from e
    return SessionConfig(
        status_rules=parse_status_rules(s.get("status_rules")),
        metric_template=template,
        allow_regression=bool(s.get("allow_regression", True)),
        require_success_marker=bool(s.get("require_success_marker", False)),
        success_marker=str(s.get("success_marker", DEFAULT_SUCCESS_MARKER)),
    )


def _pick(cls, data: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split `data` into (known dataclass fields, leftovers)."""
    names = {f.name for f in fields(cls)}
    known = {k: v for k, v in data.items() if k in names}
    rest = {k: v for k, v in data.items() if k not in names}
    return known, rest


def load_projects(cfg: Dict[str, Any]) -> List[ProjectEntry]:
    entries = []
    for i, p in enumerate(cfg.get("projects") or []):
        p = dict(p)
        if not p.get("name"):
            raise ConfigError(f"projects[{i}] needs a `name`")
        project_id = p.pop("id", None)
        src = dict(p.pop("source", None) or {})
        src.setdefault("kind", "scripted")

        known, rest = _pick(ProjectConfig, p)
        known.setdefault("extra", {}).update(rest)
        config = ProjectConfig(**known)

        src_known, src_rest = _pick(SourceSpec, src)
        src_known.setdefault("options", {}).update(src_rest)
        src_known.setdefault("name", f"{src_known.get('kind', 'scripted')}:{config.name}")
        spec = SourceSpec(**src_known)
        if not is_registered(spec.kind):
            raise ConfigError(f"projects[{i}].source.kind: unknown source kind {spec.kind!r}")

        entries.append(ProjectEntry(config=config, source=spec, project_id=project_id))
    return entries
