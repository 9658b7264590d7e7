"""Remote repository descriptors and the repository set manager.

A ``RepositorySet`` owns an ordered, id-unique list of remote repositories.
The list is stored as a tuple and replaced wholesale on aggregation, which
lets ``fork()`` share it with the original until either side adds a
repository.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from constants import ChecksumPolicy, Constants, UpdatePolicy
from common.logging_utils import extra_context, is_debug_enabled, safe_url

logger = logging.getLogger(__name__)

_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0"}


def _coerce_enabled(value: Any) -> bool:
    """Best-effort bool; anything unrecognised means enabled."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _FALSE_WORDS:
            return False
        if lowered in _TRUE_WORDS:
            return True
    return True


def _coerce_update_policy(value: Any) -> str:
    if not isinstance(value, str):
        return UpdatePolicy.DAILY.value
    lowered = value.strip().lower()
    if lowered in (UpdatePolicy.ALWAYS.value, UpdatePolicy.DAILY.value, UpdatePolicy.NEVER.value):
        return lowered
    prefix = UpdatePolicy.INTERVAL.value + ":"
    if lowered.startswith(prefix) and lowered[len(prefix):].isdigit():
        return lowered
    return UpdatePolicy.DAILY.value


def _coerce_checksum_policy(value: Any) -> str:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {p.value for p in ChecksumPolicy}:
            return lowered
    return ChecksumPolicy.WARN.value


def _lookup(data: Mapping[str, Any], *names: str) -> Any:
    """Return the first present key among snake_case / camelCase spellings."""
    for name in names:
        if name in data:
            return data[name]
    return None


@dataclass(frozen=True)
class RepositoryPolicy:
    """Release or snapshot policy of a repository."""
    enabled: bool = True
    update_policy: str = UpdatePolicy.DAILY.value
    checksum_policy: str = ChecksumPolicy.WARN.value

    @classmethod
    def from_mapping(cls, data: Any) -> "RepositoryPolicy":
        """Build a policy from loose data, defaulting anything malformed."""
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            enabled=_coerce_enabled(data.get("enabled")),
            update_policy=_coerce_update_policy(
                _lookup(data, "update_policy", "updatePolicy")
            ),
            checksum_policy=_coerce_checksum_policy(
                _lookup(data, "checksum_policy", "checksumPolicy")
            ),
        )


@dataclass(frozen=True)
class RemoteRepository:
    """A remote repository endpoint, identified by ``id``."""
    id: str
    url: str
    layout: str = Constants.DEFAULT_LAYOUT
    release_policy: RepositoryPolicy = field(default_factory=RepositoryPolicy)
    snapshot_policy: RepositoryPolicy = field(default_factory=RepositoryPolicy)

    def policy_for(self, version: str) -> RepositoryPolicy:
        if version.endswith(Constants.SNAPSHOT_SUFFIX):
            return self.snapshot_policy
        return self.release_policy

    def merged_with(self, other: "RemoteRepository") -> "RemoteRepository":
        """Keep this entry, filling only attributes it leaves empty from ``other``."""
        return replace(
            self,
            url=self.url or other.url,
            layout=self.layout or other.layout,
        )

    @classmethod
    def from_mapping(cls, data: Any) -> Optional["RemoteRepository"]:
        """Build a repository from config or POM data.

        Returns None (after logging a warning) when ``id`` or ``url`` is
        missing; policies are never a reason to fail.
        """
        if not isinstance(data, Mapping):
            logger.warning("Ignoring repository entry that is not a mapping: %r", data)
            return None
        repo_id = str(data.get("id") or "").strip()
        url = str(data.get("url") or "").strip()
        if not repo_id or not url:
            logger.warning(
                "Ignoring repository entry without id or url",
                extra=extra_context(
                    event="anomaly", component="repositories", action="from_mapping",
                    target=safe_url(url) or repo_id or None,
                ),
            )
            return None
        layout = str(data.get("layout") or Constants.DEFAULT_LAYOUT).strip()
        return cls(
            id=repo_id,
            url=url,
            layout=layout,
            release_policy=RepositoryPolicy.from_mapping(
                _lookup(data, "releases", "release_policy")
            ),
            snapshot_policy=RepositoryPolicy.from_mapping(
                _lookup(data, "snapshots", "snapshot_policy")
            ),
        )


def central_repository() -> RemoteRepository:
    """The well-known public repository used when nothing is configured."""
    return RemoteRepository(
        id=Constants.CENTRAL_REPOSITORY_ID,
        url=Constants.CENTRAL_REPOSITORY_URL,
        snapshot_policy=RepositoryPolicy(enabled=False),
    )


def default_repositories() -> List[RemoteRepository]:
    return [central_repository()]


def aggregate_repositories(
    dominant: Sequence[RemoteRepository],
    recessive: Iterable[RemoteRepository],
) -> Tuple[RemoteRepository, ...]:
    """Merge ``recessive`` into ``dominant`` without mutating either.

    Existing entries keep their position and policies; a recessive entry
    with a known id only fills attributes the existing entry lacks, and an
    unknown id is appended.
    """
    result = list(dominant)
    positions = {repo.id: idx for idx, repo in enumerate(result)}
    for repo in recessive:
        idx = positions.get(repo.id)
        if idx is None:
            positions[repo.id] = len(result)
            result.append(repo)
        else:
            result[idx] = result[idx].merged_with(repo)
    return tuple(result)


class RepositorySet:
    """Ordered, id-unique set of remote repositories.

    Aggregation is serialized by an instance lock because it reads the
    current tuple and replaces it.
    """

    def __init__(self, repositories: Optional[Iterable[RemoteRepository]] = None):
        self._repositories: Tuple[RemoteRepository, ...] = aggregate_repositories(
            (), repositories or ()
        )
        self._ids: Set[str] = {repo.id for repo in self._repositories}
        self._lock = threading.Lock()

    @property
    def repositories(self) -> Tuple[RemoteRepository, ...]:
        return self._repositories

    @property
    def ids(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._ids)

    def add_repository(self, repository: RemoteRepository) -> None:
        """Aggregate ``repository`` unless its id is already tracked."""
        with self._lock:
            if repository.id in self._ids:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Repository already tracked",
                        extra=extra_context(
                            event="repository_skip", component="repositories",
                            action="add_repository", target=repository.id,
                        ),
                    )
                return
            self._ids.add(repository.id)
            self._repositories = aggregate_repositories(self._repositories, [repository])
        logger.debug(
            "Added repository %s (%s)", repository.id, safe_url(repository.url),
            extra=extra_context(
                event="repository_add", component="repositories",
                action="add_repository", target=repository.id,
            ),
        )

    def fork(self) -> "RepositorySet":
        """Independent copy: own id set, repository tuple shared until an add."""
        clone = RepositorySet.__new__(RepositorySet)
        with self._lock:
            clone._repositories = self._repositories
            clone._ids = set(self._ids)
        clone._lock = threading.Lock()
        return clone

    def __iter__(self) -> Iterator[RemoteRepository]:
        return iter(self._repositories)

    def __len__(self) -> int:
        return len(self._repositories)

    def __contains__(self, repo_id: object) -> bool:
        return repo_id in self._ids

    def __repr__(self) -> str:
        return f"RepositorySet({[r.id for r in self._repositories]!r})"
