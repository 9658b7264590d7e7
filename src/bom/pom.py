"""POM reader turning a descriptor file into a raw ``Model``.

Only the sections the override extraction needs are read: coordinates,
parent, properties, dependencyManagement, build/pluginManagement,
repositories and profiles. Namespaced and namespace-less POMs are both
accepted.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from constants import Constants

from .model import Activation, ManagedArtifact, Model, ModelSource, Parent, Profile
from .repositories import RemoteRepository

logger = logging.getLogger(__name__)


class PomReadError(ValueError):
    """The file is not a well-formed POM."""

    def __init__(self, message: str, line: int = -1, column: int = -1):
        super().__init__(message)
        self.line = line
        self.column = column


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _children(elem: Optional[ET.Element], name: str) -> Iterator[ET.Element]:
    if elem is None:
        return
    for child in elem:
        if _local(child.tag) == name:
            yield child


def _child(elem: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    return next(_children(elem, name), None)


def _text(elem: Optional[ET.Element], name: str) -> Optional[str]:
    node = _child(elem, name)
    if node is None or node.text is None:
        return None
    value = node.text.strip()
    return value or None


def _read_properties(elem: Optional[ET.Element]) -> Dict[str, str]:
    props: Dict[str, str] = {}
    for node in (elem if elem is not None else []):
        name = _local(node.tag)
        if name:
            props[name] = (node.text or "").strip()
    return props


def _read_managed(container: Optional[ET.Element], wrapper_name: str, item: str) -> Optional[List[ManagedArtifact]]:
    """Read ``<container><items><item/>...`` style lists; None if container absent."""
    if container is None:
        return None
    wrapper = _child(container, wrapper_name)
    entries: List[ManagedArtifact] = []
    for node in _children(wrapper, item):
        group_id = _text(node, "groupId")
        if item == "plugin" and group_id is None:
            group_id = Constants.DEFAULT_PLUGIN_GROUP_ID
        entries.append(
            ManagedArtifact(
                group_id=group_id,
                artifact_id=_text(node, "artifactId"),
                version=_text(node, "version"),
                type=_text(node, "type") or "jar",
                classifier=_text(node, "classifier") or "",
                scope=_text(node, "scope"),
            )
        )
    return entries


def _read_plugin_management(parent: Optional[ET.Element]) -> Optional[List[ManagedArtifact]]:
    build = _child(parent, "build")
    return _read_managed(_child(build, "pluginManagement"), "plugins", "plugin")


def _read_repositories(elem: Optional[ET.Element]) -> List[RemoteRepository]:
    repos: List[RemoteRepository] = []
    for node in _children(_child(elem, "repositories"), "repository"):
        data = {
            "id": _text(node, "id"),
            "url": _text(node, "url"),
            "layout": _text(node, "layout"),
        }
        for policy_name in ("releases", "snapshots"):
            policy_node = _child(node, policy_name)
            if policy_node is not None:
                data[policy_name] = {
                    "enabled": _text(policy_node, "enabled"),
                    "updatePolicy": _text(policy_node, "updatePolicy"),
                    "checksumPolicy": _text(policy_node, "checksumPolicy"),
                }
        repo = RemoteRepository.from_mapping(data)
        if repo is not None:
            repos.append(repo)
    return repos


def _read_activation(elem: Optional[ET.Element]) -> Optional[Activation]:
    if elem is None:
        return None
    activation = Activation(
        active_by_default=(_text(elem, "activeByDefault") or "").lower() == "true"
    )
    prop = _child(elem, "property")
    if prop is not None:
        activation.property_name = _text(prop, "name")
        activation.property_value = _text(prop, "value")
    for node in elem:
        name = _local(node.tag)
        if name not in ("activeByDefault", "property"):
            activation.unsupported.append(name)
    return activation


def _read_profiles(elem: ET.Element) -> List[Profile]:
    profiles: List[Profile] = []
    for node in _children(_child(elem, "profiles"), "profile"):
        profiles.append(
            Profile(
                id=_text(node, "id") or "default",
                activation=_read_activation(_child(node, "activation")),
                properties=_read_properties(_child(node, "properties")),
                dependency_management=_read_managed(
                    _child(node, "dependencyManagement"), "dependencies", "dependency"
                ),
                plugin_management=_read_plugin_management(node),
                repositories=_read_repositories(node),
            )
        )
    return profiles


def parse_pom(content: Union[str, bytes], location: str = "<memory>") -> Model:
    """Parse POM content into a raw model.

    Raises:
        PomReadError: for malformed XML or a root element other than project.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        line, column = getattr(exc, "position", (-1, -1))
        raise PomReadError(f"Non-parseable POM {location}: {exc}", line, column) from exc
    if _local(root.tag) != "project":
        raise PomReadError(
            f"Non-parseable POM {location}: unexpected root element <{_local(root.tag)}>"
        )

    parent = None
    parent_node = _child(root, "parent")
    if parent_node is not None:
        parent = Parent(
            group_id=_text(parent_node, "groupId"),
            artifact_id=_text(parent_node, "artifactId"),
            version=_text(parent_node, "version"),
            relative_path=_text(parent_node, "relativePath") or "../pom.xml",
        )

    return Model(
        group_id=_text(root, "groupId"),
        artifact_id=_text(root, "artifactId"),
        version=_text(root, "version"),
        packaging=_text(root, "packaging") or "jar",
        name=_text(root, "name"),
        model_version=_text(root, "modelVersion"),
        parent=parent,
        properties=_read_properties(_child(root, "properties")),
        dependency_management=_read_managed(
            _child(root, "dependencyManagement"), "dependencies", "dependency"
        ),
        plugin_management=_read_plugin_management(root),
        repositories=_read_repositories(root),
        profiles=_read_profiles(root),
    )


def read_pom(source: Union[ModelSource, Path, str]) -> Model:
    """Read a POM file from disk.

    Raises:
        PomReadError: when the file cannot be read or parsed.
    """
    path = source.path if isinstance(source, ModelSource) else Path(source)
    try:
        content = Path(path).read_bytes()
    except OSError as exc:
        raise PomReadError(f"Unable to read POM {path}: {exc}") from exc
    return parse_pom(content, str(path))
