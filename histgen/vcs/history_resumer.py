"""
Branch preparation and resume-point detection.
"""
import logging
from typing import List, Optional

from ..core.enums import BranchState, CommitKind
from ..core.exceptions import ConsistencyError
from ..core.models import ReleaseInfo
from .checkpoint import CheckpointManager
from .classifier import CommitClassifier
from .repository import GitRepository


TEMP_BRANCH = "histgen_orphan_temp"


class HistoryResumer:
    """
    Decides where a run continues, using nothing but the branch history.

    Manual commits on the branch are tolerated: only commits classified as
    releases are considered when looking for the resume point.
    """

    def __init__(self, repo: GitRepository, checkpoint: CheckpointManager, classifier: CommitClassifier):
        self.repo = repo
        self.checkpoint = checkpoint
        self.classifier = classifier
        self.logger = logging.getLogger(__name__)

    def _recreate(self, branch: str) -> None:
        """Replace ``branch`` with an empty orphan branch of the same name"""
        if self.repo.branch_exists(branch):
            self.logger.info(f"Deleting branch {branch} to start over")
            self.repo.checkout_orphan(TEMP_BRANCH)
            self.repo.delete_branch(branch)
        self.repo.checkout_orphan(branch)
        self.repo.clear_index()
        self.checkpoint.cleanup()

    def prepare_branch(
        self,
        branch: Optional[str],
        start_id: str,
        start_over: bool = False,
        start_over_if_required: bool = False
    ) -> BranchState:
        """
        Check out ``branch`` and make sure it carries a matching checkpoint.

        Args:
            branch: Branch to generate on; the current branch when None
            start_id: Starting release the branch must record
            start_over: Recreate the branch unconditionally
            start_over_if_required: Recreate the branch only if its checkpoint mismatches

        Returns:
            INITIALIZED when a checkpoint commit was made, VALID when the
            existing one matches, MISMATCH when the caller must stop

        Raises:
            ConsistencyError: If no branch is given and HEAD is detached
        """
        current = self.repo.current_branch()
        if branch is None:
            if current is None:
                raise ConsistencyError("Git repository has no HEAD reference; pass a branch name")
            branch = current

        fresh = start_over
        if branch != current:
            if self.repo.branch_exists(branch):
                self.logger.info(f"Switching to branch {branch}")
                self.repo.checkout(branch)
            else:
                self.logger.info(f"Creating orphan branch {branch}")
                fresh = True
        elif not self.repo.head_exists():
            fresh = True

        if fresh:
            self._recreate(branch)
            self.checkpoint.initialize(start_id)
            return BranchState.INITIALIZED

        if not self.checkpoint.is_present():
            self.logger.info(f"Branch {branch} has no checkpoint, adding one")
            self.checkpoint.initialize(start_id)
            return BranchState.INITIALIZED

        if self.checkpoint.is_valid(start_id):
            return BranchState.VALID

        if start_over_if_required:
            self.logger.info(f"Checkpoint on {branch} does not match, starting over")
            self._recreate(branch)
            self.checkpoint.initialize(start_id)
            return BranchState.INITIALIZED

        recorded = self.checkpoint.read()
        self.logger.debug(
            f"Recorded start {recorded.start} by {recorded.engine}, "
            f"requested start {start_id} by {self.checkpoint.engine}"
        )
        self.logger.error("The starting commit on this branch does not have matching metadata.")
        self.logger.error("This could be due to a different engine version or a different starting release.")
        self.logger.error("Please choose a different branch with --branch or add the --start-over flag and try again.")
        return BranchState.MISMATCH

    def last_release(self) -> Optional[str]:
        """Id of the newest release commit reachable from HEAD"""
        for commit in self.repo.iter_commits():
            classified = self.classifier.classify(commit)
            if classified.kind == CommitKind.RELEASE:
                return classified.release_id
        return None

    def pending(self, releases: List[ReleaseInfo]) -> List[ReleaseInfo]:
        """
        Trim ``releases`` (oldest first) to those not yet committed.

        Raises:
            ConsistencyError: If the last committed release is not in ``releases``
        """
        last = self.last_release()
        if last is None:
            return list(releases)

        for i, release in enumerate(releases):
            if release.id == last:
                return list(releases[i + 1:])

        raise ConsistencyError(
            f"Git is in invalid state, latest commit is {last} but it is not in the selected version list"
        )
