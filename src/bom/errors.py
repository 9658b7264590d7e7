"""Error taxonomy for BOM resolution.

Every error raised out of the orchestrator derives from
``BomResolutionError`` and carries the pipeline ``stage`` it failed in.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .coordinates import Coordinate
    from .model import Model, ModelProblem


class Stage(Enum):
    """Pipeline stage an extraction call failed in."""
    PARSE = "parse"
    FETCH = "fetch"
    MERGE = "merge"
    VALIDATE = "validate"
    EXTRACT = "extract"


class BomResolutionError(Exception):
    """Base class for all resolution failures."""

    def __init__(self, message: str, *, stage: Optional[Stage] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage is None:
            return self.message
        return f"[{self.stage.value}] {self.message}"


class InvalidCoordinate(BomResolutionError, ValueError):
    """A GAV string is not exactly ``groupId:artifactId:version``."""

    def __init__(self, value: Any):
        super().__init__(
            f"Invalid coordinate {value!r}: expected 'groupId:artifactId:version'"
        )
        self.value = value


class TransportError(BomResolutionError):
    """Lower-layer failure while downloading an artifact."""

    def __init__(self, message: str, *, reasons: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.reasons: List[str] = list(reasons or [])


class ArtifactNotFound(TransportError):
    """No configured repository holds the artifact."""


class ArtifactResolutionFailure(BomResolutionError):
    """An artifact could not be fetched from any configured repository."""

    def __init__(
        self,
        coordinate: "Coordinate",
        cause: Optional[BaseException] = None,
        *,
        extension: str = "pom",
        message: Optional[str] = None,
    ):
        detail = message or (str(cause) if cause is not None else "not found")
        super().__init__(f"Failed to resolve {coordinate}:{extension}: {detail}")
        self.coordinate = coordinate
        self.extension = extension
        self.cause = cause


class UnresolvableModel(ArtifactResolutionFailure):
    """A parent or imported POM could not be resolved during merging."""


class ModelBuildingFailure(BomResolutionError):
    """The merge engine reported errors; all problems are kept."""

    def __init__(
        self,
        model: Optional["Model"],
        problems: Sequence["ModelProblem"],
        model_id: Optional[str] = None,
    ):
        self.model = model
        self.problems = list(problems)
        self.model_id = model_id or (model.id if model is not None else None)
        lines = [f"  - {p}" for p in self.problems]
        header = f"{len(self.problems)} problem(s) building model {self.model_id or '<unknown>'}"
        super().__init__("\n".join([header] + lines))


class MissingDependencyManagement(BomResolutionError):
    """The merged model has no dependencyManagement section: not a BOM."""

    def __init__(self, model: "Model", coordinate: Optional["Coordinate"] = None):
        super().__init__(
            "Attempting to align to a BOM that does not have a "
            f"dependencyManagement section: {coordinate or model.id}"
        )
        self.model = model
        self.coordinate = coordinate


class UnsupportedOperation(BomResolutionError, NotImplementedError):
    """A resolution path that is deliberately not implemented."""


class IncompatibleHost(BomResolutionError):
    """The host session exposes no supported repository-session accessor."""
