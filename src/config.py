"""Typed resolver configuration built from the YAML config file.

Follows the same precedence as ``constants._load_yaml_config``: an explicit
path, then BOMRESOLVE_CONFIG, then the working directory, then the user
config directory. Malformed values are logged and replaced by defaults so a
bad config never prevents resolution.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from constants import Constants, _load_yaml_config
from bom.effective_model_builder import EffectiveModelBuilder
from bom.repositories import RemoteRepository, default_repositories
from bom.session import RepositorySession
from bom.transport import HttpTransport

logger = logging.getLogger(__name__)


@dataclass
class ResolverConfig:
    repositories: List[RemoteRepository] = field(default_factory=default_repositories)
    local_repository: Path = field(
        default_factory=lambda: Path(os.path.expanduser(Constants.LOCAL_REPOSITORY))
    )
    offline: bool = False
    request_timeout: float = Constants.REQUEST_TIMEOUT
    system_properties: Dict[str, str] = field(default_factory=dict)

    def session(self) -> RepositorySession:
        return RepositorySession(
            local_repository=self.local_repository,
            offline=self.offline,
            system_properties=dict(self.system_properties),
        )

    def transport(self) -> HttpTransport:
        return HttpTransport(timeout=self.request_timeout)

    def effective_model_builder(self) -> EffectiveModelBuilder:
        """Orchestrator wired with this configuration's session and transport."""
        return EffectiveModelBuilder(
            self.session(),
            transport=self.transport(),
            repositories=self.repositories,
        )


def _as_bool(value: Any, default: bool, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    if value is not None:
        logger.warning("Config %s=%r is not a boolean, using %s", key, value, default)
    return default


def _as_timeout(value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        if value is not None:
            logger.warning("Config request_timeout=%r is not a number, using default", value)
        return Constants.REQUEST_TIMEOUT
    if timeout <= 0:
        logger.warning("Config request_timeout=%r must be positive, using default", value)
        return Constants.REQUEST_TIMEOUT
    return timeout


def config_from_mapping(data: Optional[Mapping[str, Any]]) -> ResolverConfig:
    """Build a ResolverConfig from a parsed YAML mapping."""
    data = data if isinstance(data, Mapping) else {}
    repositories: List[RemoteRepository] = []
    raw_repos = data.get("repositories")
    if isinstance(raw_repos, list):
        for entry in raw_repos:
            repo = RemoteRepository.from_mapping(entry)
            if repo is not None:
                repositories.append(repo)
    elif raw_repos is not None:
        logger.warning("Config repositories must be a list, ignoring %r", raw_repos)

    raw_props = data.get("system_properties")
    system_properties: Dict[str, str] = {}
    if isinstance(raw_props, Mapping):
        system_properties = {str(k): str(v) for k, v in raw_props.items() if v is not None}
    elif raw_props is not None:
        logger.warning("Config system_properties must be a mapping, ignoring %r", raw_props)

    local = data.get("local_repository")
    return ResolverConfig(
        repositories=repositories or default_repositories(),
        local_repository=Path(os.path.expanduser(str(local or Constants.LOCAL_REPOSITORY))),
        offline=_as_bool(data.get("offline"), False, "offline"),
        request_timeout=_as_timeout(data.get("request_timeout")),
        system_properties=system_properties,
    )


def load_config(path: Optional[str] = None) -> ResolverConfig:
    """Load configuration from YAML; defaults when no file is found."""
    return config_from_mapping(_load_yaml_config(path))
