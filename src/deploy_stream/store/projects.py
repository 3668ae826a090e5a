"""Project store.

The single owner of project state. Sessions never touch a Project directly;
they hand UpdateBatch objects to apply(), which appends lines and metrics
and sets the status in one step (no await inside, so it is atomic on the
event loop).

Listeners are called after every applied batch with (project_id, batch).
They are how the dashboard and the analytics sink follow a run.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Set
import copy
import logging
import time

from ..pipeline.context import JobStatus, Project, ProjectConfig, UpdateBatch

log = logging.getLogger("deploy_stream.store")

Listener = Callable[[str, UpdateBatch], None]

INITIAL_LOG_LINE = "[INFO] Initiating deployment process..."


class SessionConflict(RuntimeError):
    """Raised when a second session is started for a project that is still streaming."""


class ProjectStore:
    def __init__(self) -> None:
        self._projects: Dict[str, Project] = {}
        self._active: Set[str] = set()
        self._listeners: List[Listener] = []

    # --- projects -------------------------------------------------------

    def create(self, project_id: str, config: ProjectConfig) -> Project:
        if project_id in self._projects:
            raise ValueError(f"Project '{project_id}' already exists.")
        project = Project(project_id=project_id, config=config)
        self._projects[project_id] = project
        log.info(f"Created project {project_id} ({config.name})")
        return project

    def get(self, project_id: str) -> Project:
        try:
            return self._projects[project_id]
        except KeyError:
            raise KeyError(f"Unknown project: {project_id}") from None

    def projects(self) -> List[Project]:
        return list(self._projects.values())

    def snapshot(self, project_id: str) -> Project:
        """Detached copy, safe to hand to renderers."""
        p = self.get(project_id)
        return replace(p, log_lines=list(p.log_lines), metrics=list(p.metrics), config=copy.copy(p.config))

    # --- sessions -------------------------------------------------------

    def begin_session(self, project_id: str) -> Project:
        """Claim the project's session slot and reset it for a fresh run."""
        project = self.get(project_id)
        if project_id in self._active:
            raise SessionConflict(f"Project '{project_id}' already has a running session.")
        self._active.add(project_id)
        project.status = JobStatus.PROVISIONING
        project.error = None
        project.finished_at_ms = None
        project.log_lines.append(INITIAL_LOG_LINE)
        return project

    def end_session(self, project_id: str) -> None:
        self._active.discard(project_id)

    def is_active(self, project_id: str) -> bool:
        return project_id in self._active

    # --- updates --------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def apply(self, project_id: str, batch: UpdateBatch) -> Project:
        project = self.get(project_id)
        project.log_lines.extend(batch.display_lines)
        project.metrics.extend(batch.metrics)
        if project.status != batch.status:
            log.info(f"project={project_id} status {project.status.value} -> {batch.status.value}")
        project.status = batch.status
        if batch.error:
            project.error = batch.error
        if batch.final:
            project.finished_at_ms = int(time.time() * 1000)

        for listener in list(self._listeners):
            listener(project_id, batch)
        return project

    def status(self, project_id: str) -> JobStatus:
        return self.get(project_id).status

    def find(self, name: str) -> Optional[Project]:
        for p in self._projects.values():
            if p.config.name == name:
                return p
        return None
