"""CLI entrypoint.

Commands:
- `deploy-stream deploy --config configs/deploy.yaml [--no-dashboard] [--export]`
- `deploy-stream replay <log file> [--chunk-size N] [--delay S] [--config FILE]`
- `deploy-stream report <out_dir>`

`deploy` runs every configured project concurrently, one session each.
"""

from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .analytics.sink import MetricSink
from .config.loader import ConfigError, load_projects, load_session_config, load_yaml
from .logging_ import setup_logging
from .pipeline.context import ProjectConfig
from .pipeline.session import SessionConfig, SessionResult, run_session
from .project_id import generate_project_id, resolve_out_dir, resolve_project_id
from .sources.base import FragmentSource, SourceSpec
from .sources.registry import make_source
from .store.projects import ProjectStore

log = logging.getLogger("deploy_stream.cli")


async def _run_all(store: ProjectStore, jobs: List[tuple], session_cfg: SessionConfig) -> List[SessionResult]:
    return await asyncio.gather(*(run_session(store, pid, src, session_cfg) for pid, src in jobs))


def _deploy(args: argparse.Namespace) -> int:
    from .monitor.dashboard import LiveDashboard, PlainPrinter

    try:
        cfg = load_yaml(args.config)
        session_cfg = load_session_config(cfg)
        entries = load_projects(cfg)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    if not entries:
        print(f"No projects configured in {args.config}", file=sys.stderr)
        return 2

    run = cfg.get("run") or {}
    run_id = generate_project_id("deploy", {"prefix": ""})
    log_path = setup_logging(out_dir=".", run_id=run_id, log_dir=run.get("log_dir", "logs"), console=args.no_dashboard)

    store = ProjectStore()
    jobs: List[tuple] = []
    sinks = {}
    for entry in entries:
        pid = resolve_project_id(cfg, entry.config.name, entry.project_id, taken=[j[0] for j in jobs])
        try:
            source = make_source(entry.source, entry.config)
        except (ValueError, ImportError) as e:
            print(f"Cannot create source for {entry.config.name}: {e}", file=sys.stderr)
            return 2
        store.create(pid, entry.config)
        jobs.append((pid, source))
        if args.export:
            sinks[pid] = MetricSink(resolve_out_dir(cfg, pid), pid)
            store.subscribe(sinks[pid])

    log.info(f"Deploying {len(jobs)} project(s), log file {log_path}")
    if args.no_dashboard:
        store.subscribe(PlainPrinter(prefix_project=len(jobs) > 1))
        results = asyncio.run(_run_all(store, jobs, session_cfg))
    else:
        with LiveDashboard(store):
            results = asyncio.run(_run_all(store, jobs, session_cfg))

    for pid, sink in sinks.items():
        sink.close(store.get(pid))

    for r in results:
        print(f"{r.project_id}: {r.status.value} lines={r.lines} metrics={r.metrics}"
              + (f" error={r.error}" if r.error else ""))
    return 0 if all(r.ok for r in results) else 1


def _replay(args: argparse.Namespace) -> int:
    from .monitor.dashboard import PlainPrinter

    session_cfg = SessionConfig()
    if args.config:
        try:
            session_cfg = load_session_config(load_yaml(args.config))
        except ConfigError as e:
            print(f"Config error: {e}", file=sys.stderr)
            return 2
    if args.require_success_marker:
        session_cfg.require_success_marker = True

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    spec = SourceSpec(kind="local_text", name=args.file, path=args.file, chunk_size=args.chunk_size, delay_s=args.delay)
    source: FragmentSource = make_source(spec)

    store = ProjectStore()
    store.create("replay", ProjectConfig(name=args.file))
    store.subscribe(PlainPrinter(prefix_project=False))
    result = asyncio.run(run_session(store, "replay", source, session_cfg))

    project = store.get("replay")
    if project.metrics:
        print("")
        print("epoch  loss")
        for m in project.metrics:
            print(f"{m.epoch:>5}  {m.loss:.4f}")
    return 0 if result.ok else 1


def _report(args: argparse.Namespace) -> int:
    from .tools.summary_report import generate_summary_report
    print(generate_summary_report(args.out_dir))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="deploy-stream")
    sub = p.add_subparsers(dest="cmd", required=True)

    pd = sub.add_parser("deploy", help="Run all configured projects")
    pd.add_argument("--config", required=True)
    pd.add_argument("--no-dashboard", action="store_true", help="Print log lines instead of the live dashboard")
    pd.add_argument("--export", action="store_true", help="Write metrics/events/manifest per project")

    pr = sub.add_parser("replay", help="Replay a captured log file through the interpreter")
    pr.add_argument("file")
    pr.add_argument("--chunk-size", type=int, default=16, help="Characters per fragment (0 = whole file)")
    pr.add_argument("--delay", type=float, default=0.0, metavar="SECONDS", help="Pause between fragments")
    pr.add_argument("--config", default=None, help="Take the session section from this deploy config")
    pr.add_argument("--require-success-marker", action="store_true")
    pr.add_argument("--verbose", "-v", action="store_true")

    pp = sub.add_parser("report", help="Print the summary report of an exported project")
    pp.add_argument("out_dir")

    args = p.parse_args(argv)

    if args.cmd == "deploy":
        return _deploy(args)
    if args.cmd == "replay":
        return _replay(args)
    return _report(args)
