"""Data models for raw and effective POM descriptors."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from constants import Constants

from .coordinates import Coordinate
from .repositories import RemoteRepository


@dataclass
class ManagedArtifact:
    """A managed dependency or plugin declaration."""
    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str] = None
    type: str = "jar"
    classifier: str = ""
    scope: Optional[str] = None

    @property
    def management_key(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def merge_key(self) -> str:
        """Identity used when merging dependencyManagement across models."""
        return f"{self.group_id}:{self.artifact_id}:{self.type}:{self.classifier}"

    @property
    def is_import(self) -> bool:
        return self.scope == "import" and self.type == Constants.POM_EXTENSION


@dataclass
class Parent:
    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str]
    relative_path: str = "../pom.xml"

    @property
    def id(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


@dataclass
class Activation:
    """Supported subset of profile activation: default and property triggers."""
    active_by_default: bool = False
    property_name: Optional[str] = None
    property_value: Optional[str] = None
    # Activators present in the POM that this builder does not evaluate
    unsupported: List[str] = field(default_factory=list)


@dataclass
class Profile:
    id: str
    activation: Optional[Activation] = None
    properties: Dict[str, str] = field(default_factory=dict)
    dependency_management: Optional[List[ManagedArtifact]] = None
    plugin_management: Optional[List[ManagedArtifact]] = None
    repositories: List[RemoteRepository] = field(default_factory=list)


@dataclass
class Model:
    """A POM model; ``None`` sections are absent, ``[]`` sections are empty."""
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    packaging: str = "jar"
    name: Optional[str] = None
    model_version: Optional[str] = None
    parent: Optional[Parent] = None
    properties: Dict[str, str] = field(default_factory=dict)
    dependency_management: Optional[List[ManagedArtifact]] = None
    plugin_management: Optional[List[ManagedArtifact]] = None
    repositories: List[RemoteRepository] = field(default_factory=list)
    profiles: List[Profile] = field(default_factory=list)

    @property
    def id(self) -> str:
        group_id = self.group_id or (self.parent.group_id if self.parent else None)
        version = self.version or (self.parent.version if self.parent else None)
        return f"{group_id or '[unknown-group-id]'}:{self.artifact_id or '[unknown-artifact-id]'}:{version or '[unknown-version]'}"


class Severity(Enum):
    FATAL = "FATAL"
    ERROR = "ERROR"
    WARNING = "WARNING"


@dataclass
class ModelProblem:
    """A problem reported while reading or merging a model."""
    message: str
    severity: Severity = Severity.ERROR
    source: Optional[str] = None
    line: int = -1
    column: int = -1
    exception: Optional[BaseException] = None

    def __str__(self) -> str:
        where = ""
        if self.source:
            where = f" @ {self.source}"
            if self.line >= 0:
                where += f", line {self.line}"
                if self.column >= 0:
                    where += f", column {self.column}"
        return f"[{self.severity.value}] {self.message}{where}"


@dataclass(frozen=True)
class ModelSource:
    """A fetched POM file and the coordinate it was resolved from."""
    path: Path
    coordinate: Optional[Coordinate] = None

    @property
    def location(self) -> str:
        return str(self.path)

