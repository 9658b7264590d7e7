"""Repository session context and host capability probe.

Hosts hand the resolver some session object. Newer hosts expose the
repository session as a ``repository_session`` attribute (or zero-argument
callable); older ones only offer ``get_repository_session()``. The probe runs
once, when the orchestrator is built.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from constants import Constants

from .errors import IncompatibleHost

logger = logging.getLogger(__name__)


@dataclass
class RepositorySession:
    """Local state shared by fetches within one host session."""
    local_repository: Path = field(
        default_factory=lambda: Path(os.path.expanduser(Constants.LOCAL_REPOSITORY))
    )
    offline: bool = False
    system_properties: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.local_repository = Path(self.local_repository).expanduser()


def bind_repository_session(host: Any) -> RepositorySession:
    """Return the RepositorySession exposed by ``host``.

    Raises:
        IncompatibleHost: when no known accessor is present or it yields
            something other than a RepositorySession.
    """
    if isinstance(host, RepositorySession):
        return host

    accessor = getattr(host, "repository_session", None)
    if accessor is not None:
        flavor = "repository_session"
        session = accessor() if callable(accessor) else accessor
    elif callable(getattr(host, "get_repository_session", None)):
        flavor = "get_repository_session"
        session = host.get_repository_session()
    else:
        raise IncompatibleHost(
            f"Incompatible host version: {type(host).__name__} exposes no repository session"
        )

    if not isinstance(session, RepositorySession):
        raise IncompatibleHost(
            f"Incompatible host version: {flavor} returned {type(session).__name__}"
        )
    logger.debug("Bound repository session via %s", flavor)
    return session
