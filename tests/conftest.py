"""Shared fixtures."""
from __future__ import annotations

import pytest

from bom.session import RepositorySession

from helpers import FakeTransport


@pytest.fixture
def session(tmp_path) -> RepositorySession:
    return RepositorySession(local_repository=tmp_path / "local")


@pytest.fixture
def transport(tmp_path) -> FakeTransport:
    return FakeTransport(tmp_path / "served")
