"""Artifact transport: the outbound download collaborator.

``Transport`` is the interface the fetcher depends on. ``HttpTransport`` is
the default implementation: one GET per repository against the Maven2
``default`` layout, cached under the session's local repository. Retries and
backoff are intentionally absent; each call is a single attempt per
repository.
"""
from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

import requests

from constants import ChecksumPolicy, Constants
from common import http_client
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

from .coordinates import Artifact
from .errors import ArtifactNotFound, TransportError
from .repositories import RemoteRepository
from .session import RepositorySession

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Download an artifact from the first repository that has it."""

    def get(
        self,
        artifact: Artifact,
        repositories: Sequence[RemoteRepository],
        session: RepositorySession,
    ) -> Path:
        ...


class ChecksumMismatch(TransportError):
    """Downloaded content does not match the repository's published checksum."""


def _parse_checksum(text: str) -> Optional[str]:
    """First token of a .sha1 file; some repositories append the file name."""
    token = text.strip().split()[0] if text.strip() else ""
    return token.lower() or None


class HttpTransport:
    """Maven2-layout HTTP transport backed by ``requests``."""

    def __init__(
        self,
        timeout: float = Constants.REQUEST_TIMEOUT,
        http_session: Optional[requests.Session] = None,
    ):
        self._timeout = timeout
        self._http = http_session

    def get(
        self,
        artifact: Artifact,
        repositories: Sequence[RemoteRepository],
        session: RepositorySession,
    ) -> Path:
        """Return a local path for ``artifact``, downloading it if needed.

        Raises:
            ArtifactNotFound: every usable repository answered 404 (or none
                was usable, or the session is offline and nothing is cached).
            TransportError: at least one repository failed for another reason.
        """
        local_path = Path(session.local_repository) / artifact.path
        if local_path.is_file() and not artifact.is_snapshot:
            if is_debug_enabled(logger):
                logger.debug("Local cache hit", extra=extra_context(
                    event="cache_hit", component="transport", action="get",
                    target=str(artifact),
                ))
            return local_path

        if session.offline:
            if local_path.is_file():
                return local_path
            raise ArtifactNotFound(
                f"{artifact} is not cached locally and the session is offline"
            )

        reasons: List[str] = []
        failed = False
        for repo in repositories:
            policy = repo.policy_for(artifact.coordinate.version)
            if not policy.enabled:
                reasons.append(f"{repo.id}: disabled for this version type")
                continue
            if repo.layout != Constants.DEFAULT_LAYOUT:
                logger.warning("Skipping repository %s with unsupported layout %s", repo.id, repo.layout)
                reasons.append(f"{repo.id}: unsupported layout {repo.layout}")
                continue
            try:
                content = self._download(repo, artifact)
            except requests.RequestException as exc:
                failed = True
                reasons.append(f"{repo.id}: {exc}")
                continue
            except ChecksumMismatch as exc:
                failed = True
                reasons.append(f"{repo.id}: {exc.message}")
                continue
            if content is None:
                reasons.append(f"{repo.id}: not found")
                continue
            try:
                self._store(local_path, content)
            except OSError as exc:
                logger.error(
                    "Failed to write %s to local repository: %s", artifact, exc,
                    extra=extra_context(
                        event="cache_write", component="transport", action="store",
                        outcome="exception", target=str(local_path),
                    ),
                )
                raise TransportError(
                    f"Could not store {artifact} in local repository at {local_path}: {exc}",
                    reasons=[f"{repo.id}: downloaded but not cached ({exc})"],
                ) from exc
            return local_path

        summary = f"Could not find {artifact} in {[r.id for r in repositories]}"
        if failed:
            raise TransportError(summary, reasons=reasons)
        raise ArtifactNotFound(summary, reasons=reasons)

    def _download(self, repo: RemoteRepository, artifact: Artifact) -> Optional[bytes]:
        """GET the artifact from one repository; None on a non-200 answer."""
        url = f"{repo.url.rstrip('/')}/{artifact.path}"
        with Timer() as timer:
            res = http_client.safe_get(url, context=repo.id, session=self._http, timeout=self._timeout)
        if res.status_code != 200:
            if res.status_code != 404:
                logger.warning(
                    "HTTP non-2xx handled",
                    extra=extra_context(
                        event="http_response", outcome="handled_non_2xx",
                        status_code=res.status_code, duration_ms=timer.duration_ms(),
                        target=safe_url(url),
                    ),
                )
            return None
        content = res.content
        self._verify(repo, artifact, url, content)
        return content

    def _verify(self, repo: RemoteRepository, artifact: Artifact, url: str, content: bytes) -> None:
        checksum_policy = repo.policy_for(artifact.coordinate.version).checksum_policy
        if checksum_policy == ChecksumPolicy.IGNORE.value:
            return
        expected: Optional[str] = None
        try:
            res = http_client.safe_get(
                url + Constants.CHECKSUM_EXTENSION, context=repo.id,
                session=self._http, timeout=self._timeout,
            )
            if res.status_code == 200:
                expected = _parse_checksum(res.text)
        except requests.RequestException:
            if checksum_policy == ChecksumPolicy.FAIL.value:
                raise
        actual = hashlib.sha1(content).hexdigest()
        if expected == actual:
            return
        problem = (
            f"checksum missing for {artifact}" if expected is None
            else f"checksum mismatch for {artifact}: expected {expected}, got {actual}"
        )
        if checksum_policy == ChecksumPolicy.FAIL.value:
            raise ChecksumMismatch(problem)
        logger.warning(
            "%s (repository %s)", problem, repo.id,
            extra=extra_context(
                event="checksum", component="transport", action="verify",
                outcome="warn", target=safe_url(url),
            ),
        )

    @staticmethod
    def _store(local_path: Path, content: bytes) -> None:
        """Write atomically so concurrent readers never see a partial file."""
        local_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(local_path.parent), prefix=".part-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(content)
            os.replace(tmp_name, local_path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
