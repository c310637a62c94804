"""
Thin GitPython wrapper exposing only the operations the generator needs.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import git
from git import Actor, PushInfo

from ..core.enums import PushStatus
from ..core.exceptions import PushError
from ..core.models import CommitIdentity
from .credentials import RemoteCredentials


PUSH_FAILURE_FLAGS = PushInfo.ERROR | PushInfo.REJECTED | PushInfo.REMOTE_REJECTED | PushInfo.REMOTE_FAILURE


class GitRepository:
    """
    Working tree and branch of the generated history.

    Branches are created as orphans by pointing HEAD at an unborn ref, so a
    new history never shares commits with another branch.
    """

    def __init__(self, repo: git.Repo):
        self.repo = repo
        self.root = Path(repo.working_tree_dir)
        self.logger = logging.getLogger(__name__)

    @classmethod
    def open_or_init(cls, path: Path) -> 'GitRepository':
        """Open the repository at ``path``, initializing it if needed"""
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        if (path / ".git").exists():
            return cls(git.Repo(path))
        return cls(git.Repo.init(path))

    def current_branch(self) -> Optional[str]:
        """Name of the branch HEAD points at, even if it has no commits yet"""
        if self.repo.head.is_detached:
            return None
        return self.repo.head.reference.name

    def branch_exists(self, name: str) -> bool:
        return name in [head.name for head in self.repo.heads]

    def head_exists(self) -> bool:
        return self.repo.head.is_valid()

    def checkout(self, name: str) -> None:
        self.repo.git.checkout(name)

    def checkout_orphan(self, name: str) -> None:
        """Point HEAD at an unborn branch without touching the working tree"""
        self.repo.git.symbolic_ref("HEAD", f"refs/heads/{name}")

    def delete_branch(self, name: str) -> None:
        self.repo.git.branch("-D", name)

    def clear_index(self) -> None:
        self.repo.git.read_tree("--empty")

    def stage(self, paths: Sequence[str]) -> None:
        if paths:
            self.repo.index.add(list(paths))

    def unstage(self, paths: Sequence[str]) -> None:
        """Remove paths from the index only; missing entries are ignored"""
        if paths:
            self.repo.index.remove(list(paths), working_tree=False, ignore_unmatch=True)

    def commit(self, message: str, identity: CommitIdentity, when: datetime) -> str:
        """
        Commit the current index on HEAD.

        Args:
            message: Commit message
            identity: Author and committer
            when: Author and commit date

        Returns:
            Hex sha of the new commit
        """
        actor = Actor(identity.name, identity.email)
        commit = self.repo.index.commit(
            message,
            author=actor,
            committer=actor,
            author_date=when,
            commit_date=when,
        )
        return commit.hexsha

    def iter_commits(self, rev: Optional[str] = None) -> Iterator[git.Commit]:
        """Commits reachable from ``rev`` (HEAD by default), newest first"""
        if rev is None and not self.head_exists():
            return iter(())
        return self.repo.iter_commits(rev or "HEAD")

    def local_shas(self, branch: str) -> List[str]:
        if not self.branch_exists(branch):
            return []
        return [c.hexsha for c in self.repo.iter_commits(branch)]

    def ensure_remote(self, name: str, url: str) -> git.Remote:
        for remote in self.repo.remotes:
            if remote.name == name:
                if url not in list(remote.urls):
                    remote.set_url(url)
                return remote
        return self.repo.create_remote(name, url)

    def authenticate(self, credentials: RemoteCredentials) -> None:
        """Send ``credentials`` with every later fetch, ls-remote and push"""
        self.repo.git.update_environment(
            GIT_TERMINAL_PROMPT="0",
            GIT_CONFIG_COUNT="1",
            GIT_CONFIG_KEY_0="http.extraHeader",
            GIT_CONFIG_VALUE_0=credentials.auth_header(),
        )

    def remote_branch_exists(self, remote: str, branch: str) -> bool:
        return bool(self.repo.git.ls_remote("--heads", remote, branch).strip())

    def fetch_branch(self, remote: str, branch: str) -> bool:
        """
        Fetch one remote branch into its tracking ref.

        Returns:
            False when the remote has no such branch
        """
        if not self.remote_branch_exists(remote, branch):
            return False
        self.repo.remote(remote).fetch(f"+refs/heads/{branch}:refs/remotes/{remote}/{branch}")
        return True

    def remote_shas(self, remote: str, branch: str) -> List[str]:
        """Commits of the remote branch, newest first; empty if it does not exist"""
        if not self.fetch_branch(remote, branch):
            return []
        return [c.hexsha for c in self.repo.iter_commits(f"{remote}/{branch}")]

    def checkout_remote_branch(self, remote: str, branch: str) -> bool:
        """Reset the local branch to the remote one and check it out"""
        if not self.fetch_branch(remote, branch):
            self.logger.info(f"Remote {remote} has no branch {branch}, nothing to check out")
            return False
        self.repo.git.checkout("-B", branch, f"{remote}/{branch}")
        return True

    def push(self, remote: str, sha: str, branch: str, force: bool = False) -> PushStatus:
        """
        Move the remote branch to ``sha``.

        Raises:
            PushError: If the remote reports anything but success or up to date
        """
        refspec = f"{sha}:refs/heads/{branch}"
        try:
            results = self.repo.remote(remote).push(refspec=refspec, force=force)
        except git.GitCommandError as e:
            raise PushError(f"Failed to push {sha} to {remote}/{branch}: {e}") from e

        for info in results:
            if info.flags & PUSH_FAILURE_FLAGS:
                raise PushError(f"Failed to push {sha} to {remote}/{branch}: {info.summary.strip()}")
            if info.flags & PushInfo.UP_TO_DATE:
                return PushStatus.UP_TO_DATE
        return PushStatus.FORCED if force else PushStatus.PUSHED
