"""Project ID resolution: explicit or auto-generated from config.

Auto-generation uses:
- prefix: fixed leading part (default "proj")
- include_name: slug of the project name
- prefix_digits / suffix_digits: first/last N digits of a compact timestamp
"""

from __future__ import annotations
import re
from datetime import datetime, timezone
from typing import Any, Container, Dict, Optional


def _timestamp_digits(prefix: int = 0, suffix: int = 10, now: Optional[datetime] = None) -> tuple[str, str]:
    """Compact timestamp YYYYMMDDHHMMSS; return (first prefix_digits, last suffix_digits)."""
    ts = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")  # 14 digits
    a = ts[: min(prefix, len(ts))]
    b = ts[-min(suffix, len(ts)) :] if suffix else ""
    return (a, b)


def slugify(name: str) -> str:
    """Safe for project ids: lowercase alphanumeric, dash and underscore."""
    slug = re.sub(r"[^\w\-]+", "-", name.strip().lower()).strip("-")
    return slug or "project"


def generate_project_id(name: str, auto_cfg: Optional[Dict[str, Any]] = None, now: Optional[datetime] = None) -> str:
    """Build a project id from run.project_id_auto config.

    auto_cfg may contain:
    - prefix: leading string (default "proj")
    - include_name: bool, include a slug of the project name (default True)
    - prefix_digits: first N digits of timestamp (default 0)
    - suffix_digits: last N digits of timestamp (default 10)
    - separator: string between parts (default "_")
    """
    auto_cfg = auto_cfg or {}
    prefix = str(auto_cfg.get("prefix", "proj"))
    include_name = auto_cfg.get("include_name", True)
    prefix_digits = int(auto_cfg.get("prefix_digits", 0))
    suffix_digits = int(auto_cfg.get("suffix_digits", 10))
    separator = str(auto_cfg.get("separator", "_"))

    parts: list[str] = []
    if prefix:
        parts.append(prefix)
    if include_name:
        parts.append(slugify(name))
    pre, suf = _timestamp_digits(prefix_digits, suffix_digits, now)
    if pre:
        parts.append(pre)
    if suf:
        parts.append(suf)
    return separator.join(parts) if parts else "proj"


def resolve_project_id(
    cfg: Dict[str, Any],
    name: str,
    explicit: Optional[str] = None,
    taken: Container[str] = (),
) -> str:
    """Return the explicit id, or an auto-generated one unique among `taken`."""
    if explicit is not None and str(explicit).strip():
        return str(explicit).strip()
    run = cfg.get("run") or {}
    base = generate_project_id(name, run.get("project_id_auto"))
    project_id, n = base, 1
    while project_id in taken:
        n += 1
        project_id = f"{base}-{n}"
    return project_id


def resolve_out_dir(cfg: Dict[str, Any], project_id: str) -> str:
    """Return out_dir with {project_id} placeholder replaced."""
    run = cfg.get("run") or {}
    out_dir = run.get("out_dir") or "storage/{project_id}"
    if "{project_id}" in out_dir:
        return out_dir.replace("{project_id}", project_id)
    return out_dir
