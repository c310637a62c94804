"""
Core data models for histgen.
"""
import platform
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .enums import BranchType, CommitKind, StageOutcome


def parse_timestamp(value: str) -> datetime:
    """Parse a manifest ISO-8601 timestamp into an aware datetime"""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class ReleaseInfo:
    """One entry of the version manifest (a ReleaseDescriptor)"""
    id: str
    type: str
    release_time: datetime
    url: str
    sha1: Optional[str] = None
    time: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReleaseInfo':
        return cls(
            id=data['id'],
            type=data['type'],
            release_time=parse_timestamp(data['releaseTime']),
            url=data['url'],
            sha1=data.get('sha1'),
            time=parse_timestamp(data['time']) if data.get('time') else None,
        )


@dataclass
class LatestVersions:
    release: Optional[str] = None
    snapshot: Optional[str] = None


@dataclass
class VersionManifest:
    """Version manifest, newest entry first"""
    versions: List[ReleaseInfo]
    latest: Optional[LatestVersions] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VersionManifest':
        latest = data.get('latest')
        return cls(
            versions=[ReleaseInfo.from_dict(v) for v in data.get('versions') or []],
            latest=LatestVersions(**latest) if latest else None,
        )

    def find(self, version_id: str) -> Optional[ReleaseInfo]:
        for info in self.versions:
            if info.id == version_id:
                return info
        return None


@dataclass
class Download:
    """A downloadable artifact with its expected content hash"""
    url: str
    sha1: Optional[str] = None
    size: Optional[int] = None
    path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Download':
        return cls(
            url=data['url'],
            sha1=data.get('sha1'),
            size=data.get('size'),
            path=data.get('path'),
        )


def _os_name() -> str:
    name = platform.system().lower()
    if 'darwin' in name or 'mac' in name or 'osx' in name:
        return 'osx'
    if 'windows' in name or 'win' in name:
        return 'windows'
    if 'linux' in name or 'unix' in name:
        return 'linux'
    return 'unknown'


@dataclass
class Library:
    """A library referenced by a release"""
    name: str
    artifact: Optional[Download] = None
    rules: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Library':
        downloads = data.get('downloads') or {}
        artifact = downloads.get('artifact')
        return cls(
            name=data['name'],
            artifact=Download.from_dict(artifact) if artifact else None,
            rules=data.get('rules') or [],
        )

    def is_allowed(self) -> bool:
        """Evaluate OS rules against the current platform.

        No rules means allowed. Otherwise the first matching ``allow`` rule
        allows the library; anything else disallows it.
        """
        if not self.rules:
            return True

        for rule in self.rules:
            action = rule.get('action')
            if not isinstance(action, str):
                return False

            matched = True
            os_rule = rule.get('os')
            if isinstance(os_rule, dict):
                if matched and isinstance(os_rule.get('name'), str):
                    matched = _os_name() == os_rule['name']
                if matched and isinstance(os_rule.get('version'), str):
                    matched = re.search(os_rule['version'], platform.release()) is not None
                if matched and isinstance(os_rule.get('arch'), str):
                    matched = re.search(os_rule['arch'], platform.machine()) is not None

            if matched and action == 'allow':
                return True

        return False


@dataclass
class ReleaseDetails:
    """Per-release document describing downloads and libraries"""
    id: str
    type: str
    release_time: datetime
    downloads: Dict[str, Download] = field(default_factory=dict)
    libraries: List[Library] = field(default_factory=list)
    java_major_version: int = 8

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReleaseDetails':
        java = data.get('javaVersion') or {}
        return cls(
            id=data['id'],
            type=data['type'],
            release_time=parse_timestamp(data['releaseTime']),
            downloads={k: Download.from_dict(v) for k, v in (data.get('downloads') or {}).items()},
            libraries=[Library.from_dict(lib) for lib in data.get('libraries') or []],
            java_major_version=java.get('majorVersion', 8),
        )


@dataclass
class BranchSpec:
    """Which releases a branch covers"""
    type: BranchType = BranchType.ALL
    start: Optional[str] = None
    end: Optional[str] = None
    versions: Optional[List[str]] = None
    include_versions: List[str] = field(default_factory=list)
    exclude_versions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BranchSpec':
        return cls(
            type=BranchType(data.get('type', BranchType.ALL.value)),
            start=data.get('start'),
            end=data.get('end'),
            versions=data.get('versions'),
            include_versions=list(data.get('include_versions') or []),
            exclude_versions=list(data.get('exclude_versions') or []),
        )

    @property
    def releases_only(self) -> bool:
        return self.type == BranchType.RELEASE


@dataclass(frozen=True)
class CommitIdentity:
    """Name and email used for automated commits"""
    name: str
    email: str


@dataclass(frozen=True)
class BranchCheckpoint:
    """Starting configuration recorded when a branch was initialized"""
    branch: str
    start: str
    engine: str


@dataclass
class SyncChanges:
    """Paths touched by one tree synchronization, relative to the repository root"""
    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.removed)

    def staged_paths(self) -> List[str]:
        """Paths that still exist on disk and must be added to the index"""
        return sorted(set(self.added) | set(self.updated))

    def extend(self, other: 'SyncChanges') -> None:
        self.added.extend(other.added)
        self.updated.extend(other.updated)
        self.removed.extend(other.removed)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StageResult:
    """Tagged result of generating one release: ok, skip or fatal"""
    outcome: StageOutcome
    artifact: Optional[Path] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, artifact: Path) -> 'StageResult':
        return cls(StageOutcome.OK, artifact=artifact)

    @classmethod
    def skip(cls, reason: str) -> 'StageResult':
        return cls(StageOutcome.SKIP, reason=reason)

    @classmethod
    def fatal(cls, reason: str, error: Optional[BaseException] = None) -> 'StageResult':
        return cls(StageOutcome.FATAL, reason=reason, error=error)

    @property
    def is_ok(self) -> bool:
        return self.outcome == StageOutcome.OK

    @property
    def is_skip(self) -> bool:
        return self.outcome == StageOutcome.SKIP

    @property
    def is_fatal(self) -> bool:
        return self.outcome == StageOutcome.FATAL


@dataclass(frozen=True)
class ClassifiedCommit:
    sha: str
    kind: CommitKind
    release_id: Optional[str] = None
