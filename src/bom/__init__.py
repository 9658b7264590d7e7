"""Remote BOM resolution and override extraction.

This package fetches a Bill-of-Materials POM by ``groupId:artifactId:version``,
merges it with its parents and imports, and extracts dependency, plugin and
property overrides from the effective model.
"""

from .coordinates import Artifact, Coordinate
from .effective_model_builder import (
    EffectiveModelBuilder,
    dependency_version_overrides,
    plugin_version_overrides,
    property_overrides,
)
from .errors import (
    ArtifactNotFound,
    ArtifactResolutionFailure,
    BomResolutionError,
    IncompatibleHost,
    InvalidCoordinate,
    MissingDependencyManagement,
    ModelBuildingFailure,
    Stage,
    TransportError,
    UnresolvableModel,
    UnsupportedOperation,
)
from .fetcher import ArtifactFetcher
from .model import ManagedArtifact, Model, ModelProblem, ModelSource, Severity
from .model_builder import (
    DefaultModelBuilder,
    ModelBuilder,
    ModelBuildingRequest,
    ModelBuildingResult,
    ValidationLevel,
)
from .model_resolver import ModelResolver
from .repositories import RemoteRepository, RepositoryPolicy, RepositorySet, default_repositories
from .session import RepositorySession, bind_repository_session
from .transport import HttpTransport, Transport

__all__ = [
    "Artifact",
    "ArtifactFetcher",
    "ArtifactNotFound",
    "ArtifactResolutionFailure",
    "BomResolutionError",
    "Coordinate",
    "DefaultModelBuilder",
    "EffectiveModelBuilder",
    "HttpTransport",
    "IncompatibleHost",
    "InvalidCoordinate",
    "ManagedArtifact",
    "MissingDependencyManagement",
    "Model",
    "ModelBuilder",
    "ModelBuildingFailure",
    "ModelBuildingRequest",
    "ModelBuildingResult",
    "ModelProblem",
    "ModelResolver",
    "ModelSource",
    "RemoteRepository",
    "RepositoryPolicy",
    "RepositorySession",
    "RepositorySet",
    "Severity",
    "Stage",
    "Transport",
    "TransportError",
    "UnresolvableModel",
    "UnsupportedOperation",
    "ValidationLevel",
    "bind_repository_session",
    "default_repositories",
    "dependency_version_overrides",
    "plugin_version_overrides",
    "property_overrides",
]
