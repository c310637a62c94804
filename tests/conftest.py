"""Pytest configuration and fixtures for histgen tests."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List
import pytest
import logging

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from histgen.config.global_config_loader import GitConfig
from histgen.core.models import ReleaseInfo, SyncChanges
from histgen.vcs.repository import GitRepository

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BASE_TIME = datetime(2020, 1, 1, tzinfo=timezone.utc)


def make_release(release_id: str, days: int = 0, release_type: str = "release") -> ReleaseInfo:
    """Build a manifest entry released ``days`` after the base time"""
    return ReleaseInfo(
        id=release_id,
        type=release_type,
        release_time=BASE_TIME + timedelta(days=days),
        url=f"https://example.invalid/{release_id}.json",
    )


def make_releases(ids: List[str]) -> List[ReleaseInfo]:
    """Releases in the given (oldest first) order, one day apart"""
    return [make_release(release_id, days=i) for i, release_id in enumerate(ids)]


def write_file(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def release_changes(repo: GitRepository, release_id: str) -> SyncChanges:
    """Write one source file for a release and describe it as added"""
    relative = f"src/main/java/Release{release_id.replace('.', '_')}.java"
    write_file(repo.root, relative, f"class Release {{ String id = \"{release_id}\"; }}\n")
    return SyncChanges(added=[relative])


@pytest.fixture
def git_config():
    """Default commit identity with a small push batch"""
    return GitConfig(push_batch_size=10, push_every=10)


@pytest.fixture
def git_repo(tmp_path):
    """Fresh repository in a temporary output directory"""
    return GitRepository.open_or_init(tmp_path / "output")


@pytest.fixture(autouse=True)
def isolated_git_environment(monkeypatch, tmp_path):
    """Keep user and system git configuration out of the tests"""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GIT_DIR", raising=False)
    monkeypatch.delenv("GIT_WORK_TREE", raising=False)
    monkeypatch.delenv("HISTGEN_GIT_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_APP_KEY", raising=False)
