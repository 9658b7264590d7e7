"""Tests for the HTTP artifact transport."""

import hashlib
from unittest.mock import MagicMock, patch

import pytest
import requests

from bom.coordinates import Artifact, Coordinate
from bom.errors import ArtifactNotFound, TransportError
from bom.repositories import RemoteRepository, RepositoryPolicy
from bom.session import RepositorySession
from bom.transport import HttpTransport

POM_BYTES = b"<project/>"
POM_SHA1 = hashlib.sha1(POM_BYTES).hexdigest()


def _response(status_code=200, content=b"", text=None):
    res = MagicMock()
    res.status_code = status_code
    res.content = content
    res.text = text if text is not None else content.decode("utf-8", "replace")
    return res


def _router(routes):
    """side_effect returning responses by URL, 404 for anything unknown."""
    def get(url, **_kwargs):
        value = routes.get(url)
        if isinstance(value, Exception):
            raise value
        return value or _response(404)
    return get


def _repo(repo_id, checksum="warn", **kwargs):
    return RemoteRepository(
        id=repo_id,
        url=f"https://{repo_id}.example.com/maven2/",
        release_policy=RepositoryPolicy(checksum_policy=checksum),
        **kwargs,
    )


ARTIFACT = Artifact(Coordinate.parse("org.example:bom:1.0"))
PATH = "org/example/bom/1.0/bom-1.0.pom"


@pytest.fixture
def local_session(tmp_path):
    return RepositorySession(local_repository=tmp_path / "m2")


class TestHttpTransport:

    @patch("bom.transport.http_client.safe_get")
    def test_downloads_verifies_and_caches(self, mock_get, local_session):
        url = f"https://central.example.com/maven2/{PATH}"
        mock_get.side_effect = _router({
            url: _response(content=POM_BYTES),
            url + ".sha1": _response(text=f"{POM_SHA1}  bom-1.0.pom\n"),
        })

        path = HttpTransport().get(ARTIFACT, [_repo("central", checksum="fail")], local_session)

        assert path == local_session.local_repository / PATH
        assert path.read_bytes() == POM_BYTES
        requested = [call.args[0] for call in mock_get.call_args_list]
        assert requested == [url, url + ".sha1"]

    @patch("bom.transport.http_client.safe_get")
    def test_cached_release_skips_network(self, mock_get, local_session):
        cached = local_session.local_repository / PATH
        cached.parent.mkdir(parents=True)
        cached.write_bytes(POM_BYTES)

        path = HttpTransport().get(ARTIFACT, [_repo("central")], local_session)

        assert path == cached
        mock_get.assert_not_called()

    @patch("bom.transport.http_client.safe_get")
    def test_falls_through_to_next_repository(self, mock_get, local_session):
        second = f"https://second.example.com/maven2/{PATH}"
        mock_get.side_effect = _router({second: _response(content=POM_BYTES)})

        path = HttpTransport().get(
            ARTIFACT, [_repo("first", checksum="ignore"), _repo("second", checksum="ignore")], local_session
        )

        assert path.read_bytes() == POM_BYTES

    @patch("bom.transport.http_client.safe_get")
    def test_all_missing_raises_not_found(self, mock_get, local_session):
        mock_get.side_effect = _router({})

        with pytest.raises(ArtifactNotFound) as exc_info:
            HttpTransport().get(ARTIFACT, [_repo("a"), _repo("b")], local_session)

        assert exc_info.value.reasons == ["a: not found", "b: not found"]

    @patch("bom.transport.http_client.safe_get")
    def test_connection_error_raises_transport_error(self, mock_get, local_session):
        url = f"https://a.example.com/maven2/{PATH}"
        mock_get.side_effect = _router({url: requests.ConnectionError("dns failure")})

        with pytest.raises(TransportError) as exc_info:
            HttpTransport().get(ARTIFACT, [_repo("a")], local_session)

        assert not isinstance(exc_info.value, ArtifactNotFound)
        assert "dns failure" in exc_info.value.reasons[0]

    @patch("bom.transport.http_client.safe_get")
    def test_checksum_mismatch_with_fail_policy(self, mock_get, local_session):
        url = f"https://a.example.com/maven2/{PATH}"
        mock_get.side_effect = _router({
            url: _response(content=POM_BYTES),
            url + ".sha1": _response(text="0" * 40),
        })

        with pytest.raises(TransportError) as exc_info:
            HttpTransport().get(ARTIFACT, [_repo("a", checksum="fail")], local_session)

        assert "checksum mismatch" in exc_info.value.reasons[0]
        assert not (local_session.local_repository / PATH).exists()

    @patch("bom.transport.http_client.safe_get")
    def test_checksum_mismatch_with_warn_policy(self, mock_get, local_session, caplog):
        url = f"https://a.example.com/maven2/{PATH}"
        mock_get.side_effect = _router({
            url: _response(content=POM_BYTES),
            url + ".sha1": _response(text="0" * 40),
        })

        path = HttpTransport().get(ARTIFACT, [_repo("a", checksum="warn")], local_session)

        assert path.read_bytes() == POM_BYTES
        assert "checksum mismatch" in caplog.text

    @patch("bom.transport.http_client.safe_get")
    def test_ignore_policy_does_not_fetch_checksum(self, mock_get, local_session):
        url = f"https://a.example.com/maven2/{PATH}"
        mock_get.side_effect = _router({url: _response(content=POM_BYTES)})

        HttpTransport().get(ARTIFACT, [_repo("a", checksum="ignore")], local_session)

        assert mock_get.call_count == 1

    @patch("bom.transport.http_client.safe_get")
    def test_disabled_policy_and_foreign_layout_are_skipped(self, mock_get, local_session):
        repos = [
            RemoteRepository(
                id="off", url="https://off/", release_policy=RepositoryPolicy(enabled=False)
            ),
            RemoteRepository(id="legacy", url="https://legacy/", layout="legacy"),
        ]

        with pytest.raises(ArtifactNotFound):
            HttpTransport().get(ARTIFACT, repos, local_session)

        mock_get.assert_not_called()

    @patch("bom.transport.http_client.safe_get")
    def test_offline_session_never_downloads(self, mock_get, tmp_path):
        offline = RepositorySession(local_repository=tmp_path, offline=True)

        with pytest.raises(ArtifactNotFound, match="offline"):
            HttpTransport().get(ARTIFACT, [_repo("a")], offline)

        mock_get.assert_not_called()

    @patch("bom.transport.http_client.safe_get")
    def test_unwritable_local_repository_raises_transport_error(self, mock_get, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        session = RepositorySession(local_repository=blocker)
        url = f"https://a.example.com/maven2/{PATH}"
        mock_get.side_effect = _router({url: _response(content=POM_BYTES)})

        with pytest.raises(TransportError, match="Could not store") as exc_info:
            HttpTransport().get(ARTIFACT, [_repo("a", checksum="ignore")], session)

        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.reasons[0].startswith("a: downloaded but not cached")
