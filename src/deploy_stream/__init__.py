"""deploy_stream

Incremental log-stream interpreter for simulated LLM train-and-deploy runs.

Public API surface:
- deploy_stream.cli.main : CLI entrypoint
- deploy_stream.pipeline.session.run_session : consume one fragment stream
- deploy_stream.pipeline.splitter / classifier : the line interpreter
- deploy_stream.store.projects.ProjectStore : the state owner for projects
- deploy_stream.sources : add/extend fragment sources

Sessions never share mutable state, so several projects can deploy at once.
"""
__all__ = ["__version__"]
__version__ = "0.3.0"
