"""Maven coordinates and artifact layout."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from constants import Constants

from .errors import InvalidCoordinate


@dataclass(frozen=True)
class Coordinate:
    """A ``groupId:artifactId:version`` triple."""
    group_id: str
    artifact_id: str
    version: str

    @classmethod
    def parse(cls, gav: Any) -> "Coordinate":
        """Parse a GAV string.

        Exactly three colon-separated, non-empty segments are accepted;
        anything else raises InvalidCoordinate rather than parsing partially.
        """
        if not isinstance(gav, str):
            raise InvalidCoordinate(gav)
        parts = gav.split(":")
        if len(parts) != 3 or not all(parts):
            raise InvalidCoordinate(gav)
        return cls(*parts)

    @property
    def management_key(self) -> str:
        """``groupId:artifactId``, the key used by override mappings."""
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def is_snapshot(self) -> bool:
        return self.version.endswith(Constants.SNAPSHOT_SUFFIX)

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


@dataclass(frozen=True)
class Artifact:
    """A coordinate plus the file type to fetch for it."""
    coordinate: Coordinate
    extension: str = Constants.POM_EXTENSION
    classifier: str = ""

    @property
    def file_name(self) -> str:
        c = self.coordinate
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{c.artifact_id}-{c.version}{suffix}.{self.extension}"

    @property
    def path(self) -> str:
        """Relative path of the artifact in a Maven2 ``default`` layout."""
        c = self.coordinate
        group_path = c.group_id.replace(".", "/")
        return f"{group_path}/{c.artifact_id}/{c.version}/{self.file_name}"

    @property
    def is_snapshot(self) -> bool:
        return self.coordinate.is_snapshot

    def __str__(self) -> str:
        if self.classifier:
            return f"{self.coordinate}:{self.extension}:{self.classifier}"
        return f"{self.coordinate}:{self.extension}"
