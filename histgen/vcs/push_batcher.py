"""
Per-release commits and batched reconciliation with a remote branch.
"""
import logging
from typing import List, Optional

from ..config.global_config_loader import GitConfig
from ..core.enums import PushStatus
from ..core.models import ReleaseInfo, SyncChanges
from .repository import GitRepository


class CommitBatcher:
    """
    Commits releases on the local branch and pushes them in bounded batches.

    The remote never receives more than ``push_batch_size`` new commits in
    a single push unless the histories share nothing and a force push is
    the only option.
    """

    def __init__(self, repo: GitRepository, config: GitConfig, branch: str, remote: Optional[str] = None):
        self.repo = repo
        self.config = config
        self.branch = branch
        self.remote = remote
        self.logger = logging.getLogger(__name__)

    def commit_release(self, release: ReleaseInfo, changes: SyncChanges) -> Optional[str]:
        """
        Commit exactly the paths in ``changes``.

        Args:
            release: Release being committed; its id is the message and its
                release time the commit date
            changes: Paths touched on disk for this release

        Returns:
            Sha of the new commit, or None when nothing changed
        """
        if changes.is_empty():
            self.logger.info(f"  No changes for {release.id}, nothing to commit")
            return None

        staged = changes.staged_paths()
        staged_set = set(staged)
        removed = [path for path in changes.removed if path not in staged_set]

        self.repo.unstage(removed)
        self.repo.stage(staged)
        sha = self.repo.commit(release.id, self.config.identity, release.release_time)
        self.logger.info(f"  Committed {release.id} as {sha[:10]}")
        return sha

    @staticmethod
    def plan_batches(local: List[str], remote: List[str], batch_size: int) -> Optional[List[str]]:
        """
        Choose the commits to push, given both histories newest first.

        Returns:
            Shas to push in order, oldest batch first; an empty list when
            the remote is up to date; None when no common commit exists
        """
        remote_set = set(remote)
        common = next((i for i, sha in enumerate(local) if sha in remote_set), None)
        if common is None:
            return None

        newer = list(reversed(local[:common]))
        return [
            newer[min(start + batch_size, len(newer)) - 1]
            for start in range(0, len(newer), batch_size)
        ]

    def push(self) -> PushStatus:
        """
        Bring the remote branch up to date with the local one.

        Raises:
            PushError: If a push is rejected
        """
        if self.remote is None:
            return PushStatus.SKIPPED

        local = self.repo.local_shas(self.branch)
        if not local:
            return PushStatus.SKIPPED

        remote = self.repo.remote_shas(self.remote, self.branch)
        plan = self.plan_batches(local, remote, self.config.push_batch_size)

        if plan is None:
            self.logger.info(f"No common commit with {self.remote}/{self.branch}, force pushing")
            return self.repo.push(self.remote, local[0], self.branch, force=True)

        if not plan:
            self.logger.info(f"{self.remote}/{self.branch} is up to date")
            return PushStatus.UP_TO_DATE

        for i, sha in enumerate(plan):
            self.logger.info(f"Pushing batch {i + 1}/{len(plan)} up to {sha[:10]}")
            self.repo.push(self.remote, sha, self.branch)
        return PushStatus.PUSHED
