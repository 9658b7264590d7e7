"""Effective model builder: resolve a BOM and extract override mappings.

Each extraction call runs ``parse -> fetch -> merge -> validate -> extract``.
Failures are never swallowed: any ``BomResolutionError`` leaving this module
has its ``stage`` set to where the pipeline stopped.
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled, Timer

from .coordinates import Coordinate
from .errors import BomResolutionError, MissingDependencyManagement, Stage
from .fetcher import ArtifactFetcher
from .model import Model
from .model_builder import DefaultModelBuilder, ModelBuilder, ModelBuildingRequest, ValidationLevel
from .model_resolver import ModelResolver
from .repositories import RemoteRepository, RepositorySet, default_repositories
from .session import RepositorySession, bind_repository_session
from .transport import HttpTransport, Transport

logger = logging.getLogger(__name__)

OverrideMapping = Dict[str, Optional[str]]


def dependency_version_overrides(model: Model) -> OverrideMapping:
    """``groupId:artifactId -> version`` from dependencyManagement.

    Raises:
        MissingDependencyManagement: when the section is absent, meaning the
            artifact is not a BOM. A present but empty section yields {}.
    """
    if model.dependency_management is None:
        raise MissingDependencyManagement(model)
    overrides: OverrideMapping = {}
    for dep in model.dependency_management:
        overrides[dep.management_key] = dep.version
        logger.debug("Added version override for: %s:%s", dep.management_key, dep.version)
    return overrides


def plugin_version_overrides(model: Model) -> OverrideMapping:
    """``groupId:artifactId -> version`` from build/pluginManagement; {} if absent."""
    overrides: OverrideMapping = {}
    for plugin in model.plugin_management or []:
        overrides[plugin.management_key] = plugin.version
    return overrides


def property_overrides(model: Model) -> Dict[str, str]:
    return dict(model.properties or {})


@contextmanager
def _stage(stage: Stage) -> Iterator[None]:
    """Attribute resolution errors raised inside the block to ``stage``."""
    try:
        yield
    except BomResolutionError as exc:
        if exc.stage is None:
            exc.stage = stage
        raise


class EffectiveModelBuilder:
    """Resolve remote BOMs into dependency, plugin and property overrides.

    Build one instance at host startup and pass it to callers. The
    repository set is shared across calls; every extraction works on its
    own resolver over a fork of it, so calls may run concurrently.
    """

    def __init__(
        self,
        session: Any,
        model_builder: Optional[ModelBuilder] = None,
        transport: Optional[Transport] = None,
        repositories: Optional[Iterable[RemoteRepository]] = None,
        validation_level: ValidationLevel = ValidationLevel.MAVEN_3_0,
    ):
        """Bind the host session and seed the repository set.

        Args:
            session: A RepositorySession, or a host session exposing one.
            model_builder: Merge engine; DefaultModelBuilder when omitted.
            transport: Artifact transport; HttpTransport when omitted.
            repositories: Initial remote repositories. Falls back to the
                host session's ``remote_repositories``, then to central.

        Raises:
            IncompatibleHost: when ``session`` exposes no repository session.
        """
        self._session: RepositorySession = bind_repository_session(session)
        if repositories is None:
            repositories = getattr(session, "remote_repositories", None)
        initial = list(repositories or [])
        if not initial:
            logger.debug("No remote repositories configured, defaulting to central")
            initial = default_repositories()
        self._repositories = RepositorySet(initial)
        self._fetcher = ArtifactFetcher(transport or HttpTransport(), self._session)
        self._model_builder: ModelBuilder = model_builder or DefaultModelBuilder()
        self._validation_level = validation_level

    @property
    def session(self) -> RepositorySession:
        return self._session

    @property
    def repositories(self) -> Tuple[RemoteRepository, ...]:
        return self._repositories.repositories

    def add_repository(self, repository: RemoteRepository) -> None:
        """Aggregate a host-declared repository into the shared set."""
        self._repositories.add_repository(repository)

    def get_remote_dependency_version_overrides(self, gav: str) -> OverrideMapping:
        """Managed dependency versions of the BOM ``gav``.

        Raises:
            MissingDependencyManagement: the merged model declares no
                dependencyManagement section.
        """
        logger.debug("Resolving dependency management GAV: %s", gav)
        model, coordinate = self._resolve(gav)
        with _stage(Stage.VALIDATE):
            if model.dependency_management is None:
                raise MissingDependencyManagement(model, coordinate)
        with _stage(Stage.EXTRACT):
            return dependency_version_overrides(model)

    def get_remote_plugin_version_overrides(self, gav: str) -> OverrideMapping:
        """Managed plugin versions of ``gav``; {} when it manages none."""
        logger.debug("Resolving remote plugin management POM: %s", gav)
        model, _ = self._resolve(gav)
        with _stage(Stage.EXTRACT):
            return plugin_version_overrides(model)

    def get_remote_property_mapping_overrides(self, gav: str) -> Dict[str, str]:
        logger.debug("Resolving remote property mapping POM: %s", gav)
        model, _ = self._resolve(gav)
        with _stage(Stage.EXTRACT):
            overrides = property_overrides(model)
        logger.debug("Returning override of %s", overrides)
        return overrides

    def build_effective_model(self, gav: str) -> Model:
        """Fetch and merge the POM for ``gav`` without extracting anything."""
        model, _ = self._resolve(gav)
        return model

    def new_model_resolver(self) -> ModelResolver:
        """A fresh resolver over a fork of the current repository set."""
        return ModelResolver(self._fetcher, self._repositories.fork())

    def _resolve(self, gav: str) -> Tuple[Model, Coordinate]:
        with Timer() as timer:
            with _stage(Stage.PARSE):
                coordinate = Coordinate.parse(gav)
            with _stage(Stage.FETCH):
                pom_file = self._fetcher.fetch(coordinate, repositories=self.repositories)
            with _stage(Stage.MERGE):
                request = ModelBuildingRequest(
                    pom_file=pom_file,
                    model_resolver=self.new_model_resolver(),
                    validation_level=self._validation_level,
                    two_phase_building=False,
                    system_properties=self._system_properties(),
                )
                model = self._model_builder.build(request).effective_model
        logger.debug("Built model for project: %s", model.name)
        if is_debug_enabled(logger):
            logger.debug("Effective model resolved", extra=extra_context(
                event="function_exit", component="effective_model_builder", action="resolve",
                outcome="success", target=str(coordinate), duration_ms=timer.duration_ms(),
            ))
        return model, coordinate

    def _system_properties(self) -> Dict[str, str]:
        """Session system properties plus the process environment as ``env.*``."""
        props = {f"env.{key}": value for key, value in os.environ.items()}
        props.update(self._session.system_properties)
        return props
