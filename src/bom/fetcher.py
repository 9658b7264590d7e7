"""Artifact fetcher: single-attempt fetch of one artifact by coordinate."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer

from .coordinates import Artifact, Coordinate
from .errors import ArtifactResolutionFailure, TransportError
from .repositories import RemoteRepository
from .session import RepositorySession
from .transport import Transport

logger = logging.getLogger(__name__)


class ArtifactFetcher:
    """Resolve artifacts to local files through a Transport."""

    def __init__(
        self,
        transport: Transport,
        session: RepositorySession,
        repositories: Optional[Iterable[RemoteRepository]] = None,
    ):
        self._transport = transport
        self._session = session
        self._repositories = repositories

    @property
    def session(self) -> RepositorySession:
        return self._session

    def fetch(
        self,
        coordinate: Coordinate,
        extension: str = Constants.POM_EXTENSION,
        repositories: Optional[Iterable[RemoteRepository]] = None,
    ) -> Path:
        """Return the local file for ``coordinate`` with ``extension``.

        Args:
            coordinate: What to fetch.
            extension: File type, "pom" for descriptors.
            repositories: Repositories to search, in order; defaults to the
                fetcher's own list.

        Raises:
            ArtifactResolutionFailure: carrying the coordinate and the
                transport error when no repository yields the artifact.
        """
        repos = tuple(repositories if repositories is not None else (self._repositories or ()))
        artifact = Artifact(coordinate, extension)
        if is_debug_enabled(logger):
            logger.debug("Fetching artifact", extra=extra_context(
                event="function_entry", component="fetcher", action="fetch",
                target=str(artifact), repositories=[r.id for r in repos],
            ))
        with Timer() as timer:
            try:
                path = self._transport.get(artifact, repos, self._session)
            except TransportError as exc:
                logger.debug(
                    "Artifact resolution failed: %s", exc,
                    extra=extra_context(
                        event="function_exit", component="fetcher", action="fetch",
                        outcome="failed", target=str(artifact),
                    ),
                )
                raise ArtifactResolutionFailure(coordinate, exc, extension=extension) from exc
        if not Path(path).is_file():
            raise ArtifactResolutionFailure(
                coordinate, extension=extension,
                message=f"transport returned missing file {path}",
            )
        if is_debug_enabled(logger):
            logger.debug("Artifact resolved", extra=extra_context(
                event="function_exit", component="fetcher", action="fetch",
                outcome="success", target=str(artifact), duration_ms=timer.duration_ms(),
            ))
        return Path(path)
