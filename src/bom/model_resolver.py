"""Model source resolver used by the merge engine for parents and imports."""
from __future__ import annotations

import logging

from .coordinates import Coordinate
from .errors import ArtifactResolutionFailure, UnresolvableModel, UnsupportedOperation
from .fetcher import ArtifactFetcher
from .model import ModelSource, Parent
from .repositories import RemoteRepository, RepositorySet

logger = logging.getLogger(__name__)


class ModelResolver:
    """Resolve POM files by coordinate against its own repository set.

    Build one per extraction call: repositories added while walking a BOM's
    parent chain must not leak into other calls.
    """

    # Parent lookup by relative path is not implemented; callers can check
    # this instead of catching UnsupportedOperation.
    supports_parent_resolution = False

    def __init__(self, fetcher: ArtifactFetcher, repositories: RepositorySet):
        self._fetcher = fetcher
        self._repositories = repositories

    @property
    def repositories(self) -> RepositorySet:
        return self._repositories

    def add_repository(self, repository: RemoteRepository) -> None:
        self._repositories.add_repository(repository)

    def new_copy(self) -> "ModelResolver":
        """Resolver over a fork of this resolver's repositories."""
        return ModelResolver(self._fetcher, self._repositories.fork())

    def resolve_model(self, group_id: str, artifact_id: str, version: str) -> ModelSource:
        """Fetch the POM for a coordinate.

        Raises:
            UnresolvableModel: when no repository provides the POM.
        """
        coordinate = Coordinate(group_id, artifact_id, version)
        try:
            path = self._fetcher.fetch(coordinate, repositories=self._repositories.repositories)
        except ArtifactResolutionFailure as exc:
            raise UnresolvableModel(coordinate, exc.cause or exc) from exc
        return ModelSource(path=path, coordinate=coordinate)

    def resolve_parent(self, parent: Parent) -> ModelSource:
        raise UnsupportedOperation(
            f"Resolving parent {parent.id} by relative path is not supported"
        )
