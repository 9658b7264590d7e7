"""Merge engine: turns a POM file into an effective model.

``ModelBuilder`` is the contract the orchestrator depends on. The default
implementation covers what BOM extraction needs:

* parent inheritance, each parent fetched by coordinate through the
  ``ModelResolver`` (repositories declared along the way are added to it);
* profile activation by property or ``activeByDefault``;
* ``${...}`` interpolation from project values, user properties, model
  properties and system properties;
* ``import``-scoped BOMs inside dependencyManagement;
* validation whose strictness follows the requested ``ValidationLevel``.

It is not a complete Maven model builder: plugin configuration, reporting,
jdk/os/file profile activators and relative-path parents are not handled.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from enum import IntEnum
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from common.logging_utils import extra_context, is_debug_enabled, Timer

from .errors import ModelBuildingFailure, UnresolvableModel, UnsupportedOperation
from .model import ManagedArtifact, Model, ModelProblem, ModelSource, Profile, Severity
from .model_resolver import ModelResolver
from .pom import PomReadError, read_pom
from .repositories import aggregate_repositories

logger = logging.getLogger(__name__)

_EXPRESSION = re.compile(r"\$\{([^}]+)\}")


class ValidationLevel(IntEnum):
    """How strictly models are validated; lower levels downgrade some errors."""
    MINIMAL = 0
    MAVEN_2_0 = 20
    MAVEN_3_0 = 30
    MAVEN_3_1 = 31


@dataclass
class ModelBuildingRequest:
    pom_file: Path
    model_resolver: ModelResolver
    validation_level: ValidationLevel = ValidationLevel.MAVEN_3_0
    two_phase_building: bool = False
    system_properties: Mapping[str, str] = field(default_factory=dict)
    user_properties: Mapping[str, str] = field(default_factory=dict)


@dataclass
class ModelBuildingResult:
    effective_model: Model
    problems: List[ModelProblem] = field(default_factory=list)
    # Model ids from the requested POM up to its eldest ancestor
    lineage: List[str] = field(default_factory=list)


class ModelBuilder(Protocol):
    """Build an effective model or raise ModelBuildingFailure."""

    def build(self, request: ModelBuildingRequest) -> ModelBuildingResult:
        ...


class _FatalProblem(Exception):
    """Internal signal: a FATAL problem was recorded, stop building."""

    def __init__(self, model: Optional[Model], cause: Optional[BaseException] = None):
        super().__init__("fatal model problem")
        self.model = model
        self.cause = cause


class _Problems:
    """Problem collector applying the validation level."""

    def __init__(self, level: ValidationLevel):
        self.level = level
        self.items: List[ModelProblem] = []
        self._seen = set()

    def add(self, message: str, severity: Severity, source: Optional[str] = None, *,
            line: int = -1, column: int = -1, exception: Optional[BaseException] = None) -> None:
        key = (message, severity, source)
        if key in self._seen:
            return
        self._seen.add(key)
        self.items.append(ModelProblem(message, severity, source, line, column, exception))

    def add_by_level(self, message: str, strict_from: ValidationLevel, source: Optional[str]) -> None:
        severity = Severity.ERROR if self.level >= strict_from else Severity.WARNING
        self.add(message, severity, source)

    def fatal(self, message: str, source: Optional[str], model: Optional[Model], *,
              line: int = -1, column: int = -1, exception: Optional[BaseException] = None) -> _FatalProblem:
        """Record a FATAL problem and return the signal for the caller to raise."""
        self.add(message, Severity.FATAL, source, line=line, column=column, exception=exception)
        return _FatalProblem(model, exception)

    @property
    def has_errors(self) -> bool:
        return any(p.severity in (Severity.ERROR, Severity.FATAL) for p in self.items)


def _merge_managed(
    dominant: Optional[List[ManagedArtifact]],
    recessive: Optional[List[ManagedArtifact]],
    key: Callable[[ManagedArtifact], str],
) -> Optional[List[ManagedArtifact]]:
    """Dominant entries first, then recessive entries with unseen keys."""
    if dominant is None and recessive is None:
        return None
    result = list(dominant or [])
    keys = {key(entry) for entry in result}
    for entry in recessive or []:
        if key(entry) not in keys:
            keys.add(key(entry))
            result.append(entry)
    return result


def _dependency_key(entry: ManagedArtifact) -> str:
    return entry.merge_key


def _plugin_key(entry: ManagedArtifact) -> str:
    return entry.management_key


class _Interpolator:
    """Resolve ``${name}`` expressions against ordered value sources."""

    def __init__(self, model: Model, request: ModelBuildingRequest, problems: _Problems):
        self._model_id = model.id
        self._problems = problems
        project: Dict[str, Optional[str]] = {}
        values = {
            "groupId": model.group_id,
            "artifactId": model.artifact_id,
            "version": model.version,
            "name": model.name,
            "packaging": model.packaging,
        }
        if model.parent is not None:
            values.update({
                "parent.groupId": model.parent.group_id,
                "parent.artifactId": model.parent.artifact_id,
                "parent.version": model.parent.version,
            })
        for key, value in values.items():
            project["project." + key] = value
            project["pom." + key] = value
        self._sources: Sequence[Mapping[str, Optional[str]]] = (
            project,
            request.user_properties,
            model.properties,
            request.system_properties,
        )

    def __call__(self, value: Optional[str]) -> Optional[str]:
        return self._interpolate(value, ())

    def _interpolate(self, value: Optional[str], stack: Tuple[str, ...]) -> Optional[str]:
        if value is None or "${" not in value:
            return value

        def substitute(match: "re.Match[str]") -> str:
            name = match.group(1)
            if name in stack:
                cycle = " -> ".join(stack + (name,))
                self._problems.add(
                    f"Detected recursive expression cycle in '{name}': {cycle}",
                    Severity.ERROR, self._model_id,
                )
                return match.group(0)
            for source in self._sources:
                raw = source.get(name)
                if raw is not None:
                    resolved = self._interpolate(raw, stack + (name,))
                    return resolved if resolved is not None else match.group(0)
            return match.group(0)

        return _EXPRESSION.sub(substitute, value)


class DefaultModelBuilder:
    """Basic single-phase merge engine for BOM descriptors."""

    def build(self, request: ModelBuildingRequest) -> ModelBuildingResult:
        """Build the effective model for ``request.pom_file``.

        Raises:
            UnsupportedOperation: when two-phase building is requested.
            ModelBuildingFailure: when any ERROR or FATAL problem is found;
                the failure carries the partial model and every problem.
        """
        if request.two_phase_building:
            raise UnsupportedOperation("Two-phase model building is not supported")

        problems = _Problems(request.validation_level)
        source = ModelSource(Path(request.pom_file))
        with Timer() as timer:
            try:
                model, lineage = self._build(source, request.model_resolver, request, problems, ())
            except _FatalProblem as fatal:
                raise ModelBuildingFailure(fatal.model, problems.items) from fatal.cause

        if problems.has_errors:
            raise ModelBuildingFailure(model, problems.items)
        for problem in problems.items:
            logger.warning("%s", problem)
        if is_debug_enabled(logger):
            logger.debug("Effective model built", extra=extra_context(
                event="function_exit", component="model_builder", action="build",
                outcome="success", target=model.id, duration_ms=timer.duration_ms(),
                lineage=lineage,
            ))
        return ModelBuildingResult(model, problems.items, lineage)

    def _build(
        self,
        source: ModelSource,
        resolver: ModelResolver,
        request: ModelBuildingRequest,
        problems: _Problems,
        import_chain: Tuple[str, ...],
    ) -> Tuple[Model, List[str]]:
        raw = self._read(source, problems)
        lineage = self._read_lineage(raw, resolver, request, problems)
        model = lineage[-1]
        for child in reversed(lineage[:-1]):
            model = self._inherit(child, model)
        self._interpolate(model, request, problems)
        self._import_management(model, resolver, request, problems, import_chain + (model.id,))
        self._validate(model, problems)
        return model, [m.id for m in lineage]

    @staticmethod
    def _read(source: ModelSource, problems: _Problems) -> Model:
        try:
            return read_pom(source)
        except PomReadError as exc:
            origin = str(source.coordinate) if source.coordinate else source.location
            raise problems.fatal(
                str(exc), origin, None, line=exc.line, column=exc.column, exception=exc
            ) from exc

    def _read_lineage(
        self,
        raw: Model,
        resolver: ModelResolver,
        request: ModelBuildingRequest,
        problems: _Problems,
    ) -> List[Model]:
        """Return [raw, parent, grandparent, ...] with profiles applied."""
        lineage: List[Model] = []
        current = raw
        while True:
            self._apply_profiles(current, request)
            for repo in current.repositories:
                resolver.add_repository(repo)
            lineage.append(current)
            parent = current.parent
            if parent is None:
                return lineage
            if not (parent.group_id and parent.artifact_id and parent.version):
                raise problems.fatal(
                    "'parent.groupId', 'parent.artifactId' and 'parent.version' must be present",
                    current.id, current,
                )
            if parent.id in {m.id for m in lineage}:
                cycle = " -> ".join([m.id for m in lineage] + [parent.id])
                raise problems.fatal(f"The parents form a cycle: {cycle}", current.id, current)
            try:
                parent_source = resolver.resolve_model(parent.group_id, parent.artifact_id, parent.version)
            except UnresolvableModel as exc:
                raise problems.fatal(
                    f"Non-resolvable parent POM {parent.id}: {exc.cause or exc}",
                    current.id, current, exception=exc,
                ) from exc
            current = self._read(parent_source, problems)
            if is_debug_enabled(logger):
                logger.debug("Resolved parent POM", extra=extra_context(
                    event="parent", component="model_builder", action="read_lineage",
                    target=parent.id,
                ))

    @staticmethod
    def _is_active(profile: Profile, request: ModelBuildingRequest) -> bool:
        activation = profile.activation
        if activation is None or activation.property_name is None:
            return False
        if activation.unsupported:
            logger.debug("Profile %s uses unsupported activators %s", profile.id, activation.unsupported)
            return False
        name = activation.property_name
        negated = name.startswith("!")
        if negated:
            name = name[1:]
        value = request.user_properties.get(name)
        if value is None:
            value = request.system_properties.get(name)
        if negated:
            return value is None
        expected = activation.property_value
        if expected is None:
            return value is not None
        if expected.startswith("!"):
            return value != expected[1:]
        return value == expected

    def _apply_profiles(self, model: Model, request: ModelBuildingRequest) -> None:
        active = [p for p in model.profiles if self._is_active(p, request)]
        if not active:
            active = [
                p for p in model.profiles
                if p.activation is not None and p.activation.active_by_default
            ]
        for profile in active:
            model.properties = {**model.properties, **profile.properties}
            model.dependency_management = _merge_managed(
                profile.dependency_management, model.dependency_management, _dependency_key
            )
            model.plugin_management = _merge_managed(
                profile.plugin_management, model.plugin_management, _plugin_key
            )
            model.repositories = list(aggregate_repositories(model.repositories, profile.repositories))
            logger.debug("Activated profile %s in %s", profile.id, model.id)

    @staticmethod
    def _inherit(child: Model, parent: Model) -> Model:
        """Merge an effective parent into a raw child; the child wins."""
        return Model(
            group_id=child.group_id or parent.group_id,
            artifact_id=child.artifact_id,
            version=child.version or parent.version,
            packaging=child.packaging,
            name=child.name,
            model_version=child.model_version or parent.model_version,
            parent=child.parent,
            properties={**parent.properties, **child.properties},
            dependency_management=_merge_managed(
                child.dependency_management, parent.dependency_management, _dependency_key
            ),
            plugin_management=_merge_managed(
                child.plugin_management, parent.plugin_management, _plugin_key
            ),
            repositories=list(aggregate_repositories(child.repositories, parent.repositories)),
            profiles=child.profiles,
        )

    @staticmethod
    def _interpolate(model: Model, request: ModelBuildingRequest, problems: _Problems) -> None:
        interpolate = _Interpolator(model, request, problems)

        def managed(entries: Optional[List[ManagedArtifact]]) -> Optional[List[ManagedArtifact]]:
            if entries is None:
                return None
            return [
                replace(
                    entry,
                    group_id=interpolate(entry.group_id),
                    artifact_id=interpolate(entry.artifact_id),
                    version=interpolate(entry.version),
                    type=interpolate(entry.type) or "jar",
                    classifier=interpolate(entry.classifier) or "",
                    scope=interpolate(entry.scope),
                )
                for entry in entries
            ]

        # Resolve everything against the uninterpolated model, then assign.
        properties = {key: interpolate(value) or "" for key, value in model.properties.items()}
        group_id = interpolate(model.group_id)
        version = interpolate(model.version)
        name = interpolate(model.name)
        dependency_management = managed(model.dependency_management)
        plugin_management = managed(model.plugin_management)
        repositories = [replace(r, url=interpolate(r.url) or r.url) for r in model.repositories]

        model.properties = properties
        model.group_id = group_id
        model.version = version
        model.name = name
        model.dependency_management = dependency_management
        model.plugin_management = plugin_management
        model.repositories = repositories

    def _import_management(
        self,
        model: Model,
        resolver: ModelResolver,
        request: ModelBuildingRequest,
        problems: _Problems,
        import_chain: Tuple[str, ...],
    ) -> None:
        """Replace import-scoped pom entries by the imported BOM's entries."""
        entries = model.dependency_management
        if not entries or not any(entry.is_import for entry in entries):
            return
        result = [entry for entry in entries if not entry.is_import]
        keys = {entry.merge_key for entry in result}
        for entry in (e for e in entries if e.is_import):
            if not (entry.group_id and entry.artifact_id and entry.version):
                problems.add(
                    f"'dependencyManagement.dependencies.dependency.version' for "
                    f"{entry.management_key}:pom is missing",
                    Severity.ERROR, model.id,
                )
                continue
            coordinate = f"{entry.group_id}:{entry.artifact_id}:{entry.version}"
            if coordinate in import_chain:
                cycle = " -> ".join(import_chain + (coordinate,))
                problems.add(
                    f"The dependencies of type=pom and with scope=import form a cycle: {cycle}",
                    Severity.ERROR, model.id,
                )
                continue
            try:
                source = resolver.resolve_model(entry.group_id, entry.artifact_id, entry.version)
            except UnresolvableModel as exc:
                problems.add(
                    f"Non-resolvable import POM {coordinate}: {exc.cause or exc}",
                    Severity.ERROR, model.id, exception=exc,
                )
                continue
            try:
                imported, _ = self._build(source, resolver.new_copy(), request, problems, import_chain)
            except _FatalProblem:
                continue
            for dep in imported.dependency_management or []:
                if dep.merge_key not in keys:
                    keys.add(dep.merge_key)
                    result.append(dep)
            logger.debug("Imported dependency management from %s into %s", coordinate, model.id)
        model.dependency_management = result

    @staticmethod
    def _validate(model: Model, problems: _Problems) -> None:
        source = model.id
        if not model.artifact_id:
            problems.add("'artifactId' is missing.", Severity.ERROR, source)
        if not model.group_id:
            problems.add("'groupId' is missing.", Severity.ERROR, source)
        if not model.version:
            problems.add("'version' is missing.", Severity.ERROR, source)
        if not model.model_version:
            problems.add_by_level("'modelVersion' is missing.", ValidationLevel.MAVEN_3_1, source)

        for section, entries in (
            ("dependencyManagement.dependencies.dependency", model.dependency_management),
            ("build.pluginManagement.plugins.plugin", model.plugin_management),
        ):
            seen = set()
            for entry in entries or []:
                if not entry.group_id or not entry.artifact_id:
                    problems.add(
                        f"'{section}.groupId' and '{section}.artifactId' must be present "
                        f"(found {entry.management_key})",
                        Severity.ERROR, source,
                    )
                    continue
                key = entry.management_key if "plugin" in section else entry.merge_key
                if key in seen:
                    problems.add_by_level(
                        f"'{section}.(groupId:artifactId)' must be unique but found duplicate "
                        f"declaration of {entry.management_key}",
                        ValidationLevel.MAVEN_3_1, source,
                    )
                seen.add(key)
                if not entry.version:
                    problems.add_by_level(
                        f"'{section}.version' for {entry.management_key} is missing.",
                        ValidationLevel.MAVEN_3_1, source,
                    )
                elif _EXPRESSION.search(entry.version):
                    problems.add(
                        f"'{section}.version' for {entry.management_key} has an "
                        f"unresolved expression: {entry.version}",
                        Severity.WARNING, source,
                    )
