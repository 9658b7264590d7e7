"""POM text builders and an in-memory transport for tests."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from bom.coordinates import Artifact
from bom.errors import ArtifactNotFound
from bom.session import RepositorySession

POM_NS = "http://maven.apache.org/POM/4.0.0"


def make_pom(gav: str, body: str = "", parent: Optional[str] = None, name: Optional[str] = None) -> str:
    """Build a minimal POM for ``gav`` with extra XML ``body``."""
    group_id, artifact_id, version = gav.split(":")
    parent_xml = ""
    if parent:
        pg, pa, pv = parent.split(":")
        parent_xml = (
            f"<parent><groupId>{pg}</groupId><artifactId>{pa}</artifactId>"
            f"<version>{pv}</version></parent>"
        )
    name_xml = f"<name>{name}</name>" if name else ""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="{POM_NS}">
  <modelVersion>4.0.0</modelVersion>
  {parent_xml}
  <groupId>{group_id}</groupId>
  <artifactId>{artifact_id}</artifactId>
  <version>{version}</version>
  <packaging>pom</packaging>
  {name_xml}
  {body}
</project>
"""


def managed_deps(*entries: Tuple[str, ...]) -> str:
    """dependencyManagement XML from (g, a, v[, scope, type]) tuples."""
    items = []
    for entry in entries:
        g, a, v = entry[0], entry[1], entry[2]
        extra = ""
        if len(entry) > 3:
            extra += f"<scope>{entry[3]}</scope>"
        if len(entry) > 4:
            extra += f"<type>{entry[4]}</type>"
        version = f"<version>{v}</version>" if v is not None else ""
        items.append(
            f"<dependency><groupId>{g}</groupId><artifactId>{a}</artifactId>{version}{extra}</dependency>"
        )
    return f"<dependencyManagement><dependencies>{''.join(items)}</dependencies></dependencyManagement>"


class FakeTransport:
    """Serve POM text keyed by GAV, optionally only from one repository id."""

    def __init__(self, root: Path):
        self.root = root
        self.poms: Dict[str, Tuple[str, Optional[str]]] = {}
        self.calls: List[Tuple[str, Tuple[str, ...]]] = []

    def add(self, gav: str, content: str, repository: Optional[str] = None) -> None:
        self.poms[gav] = (content, repository)

    def get(self, artifact: Artifact, repositories, session: RepositorySession) -> Path:
        repo_ids = tuple(r.id for r in repositories)
        self.calls.append((str(artifact.coordinate), repo_ids))
        entry = self.poms.get(str(artifact.coordinate))
        if entry is None or (entry[1] is not None and entry[1] not in repo_ids):
            raise ArtifactNotFound(f"Could not find {artifact} in {list(repo_ids)}")
        path = self.root / artifact.path
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent))
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(entry[0])
        os.replace(tmp_name, path)
        return path
