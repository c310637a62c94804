"""
Test cases for branch preparation and resume detection against real git repositories.
"""

import os

import pytest
from git import Actor

from histgen.config.resources import RESOURCE_LAYOUT
from histgen.core.enums import BranchState, CommitKind
from histgen.core.exceptions import ConsistencyError
from histgen.core.models import SyncChanges
from histgen.vcs.checkpoint import CHECKPOINT_FILE, CheckpointManager
from histgen.vcs.classifier import CommitClassifier
from histgen.vcs.history_resumer import HistoryResumer
from histgen.vcs.push_batcher import CommitBatcher
from conftest import make_releases, release_changes, write_file


BRANCH = "release"


@pytest.fixture
def checkpoint(git_repo, git_config):
    return CheckpointManager(git_repo, RESOURCE_LAYOUT, git_config, engine="histgen test")


@pytest.fixture
def classifier(git_config):
    return CommitClassifier(git_config.identity, git_config.checkpoint_message)


@pytest.fixture
def resumer(git_repo, checkpoint, classifier):
    return HistoryResumer(git_repo, checkpoint, classifier)


@pytest.fixture
def batcher(git_repo, git_config):
    return CommitBatcher(git_repo, git_config, BRANCH)


def commit_releases(repo, batcher, ids):
    for release in make_releases(ids):
        batcher.commit_release(release, release_changes(repo, release.id))


def manual_commit(repo, message="Fix readme"):
    write_file(repo.root, "README.md", "hand written\n")
    repo.repo.index.add(["README.md"])
    person = Actor("Some Maintainer", "maintainer@example.invalid")
    repo.repo.index.commit(message, author=person, committer=person)


class TestBranchInitialization:

    def test_new_branch_gets_checkpoint(self, git_repo, resumer, classifier):
        state = resumer.prepare_branch(BRANCH, "1.0")

        assert state == BranchState.INITIALIZED
        assert git_repo.current_branch() == BRANCH
        commits = list(git_repo.iter_commits())
        assert len(commits) == 1
        assert classifier.classify(commits[0]).kind == CommitKind.CHECKPOINT
        assert commits[0].committed_date == 1
        for name in (CHECKPOINT_FILE, ".gitattributes", ".gitignore", "settings.gradle"):
            assert (git_repo.root / name).exists()

    def test_checkpoint_ships_gradle_wrapper(self, git_repo, resumer):
        resumer.prepare_branch(BRANCH, "1.0")

        tree = git_repo.repo.head.commit.tree
        assert (tree / "gradlew").mode == 0o100755
        assert (tree / "gradlew.bat").mode == 0o100644
        assert (tree / "gradle" / "wrapper" / "gradle-wrapper.properties").mode == 0o100644
        assert os.access(git_repo.root / "gradlew", os.X_OK)

    def test_checkpoint_file_records_start_and_engine(self, git_repo, resumer, checkpoint):
        resumer.prepare_branch(BRANCH, "1.0")

        recorded = checkpoint.read()
        assert recorded.start == "1.0"
        assert recorded.engine == "histgen test"
        assert recorded.branch == BRANCH

    def test_matching_checkpoint_is_valid(self, git_repo, resumer):
        resumer.prepare_branch(BRANCH, "1.0")

        assert resumer.prepare_branch(BRANCH, "1.0") == BranchState.VALID
        assert len(list(git_repo.iter_commits())) == 1

    def test_current_branch_used_when_none_given(self, git_repo, resumer):
        resumer.prepare_branch(BRANCH, "1.0")

        assert resumer.prepare_branch(None, "1.0") == BranchState.VALID

    def test_branch_without_checkpoint_gets_one_on_top(self, git_repo, resumer, classifier):
        git_repo.checkout_orphan(BRANCH)
        manual_commit(git_repo)

        state = resumer.prepare_branch(BRANCH, "1.0")

        commits = list(git_repo.iter_commits())
        assert state == BranchState.INITIALIZED
        assert [classifier.classify(c).kind for c in commits] == [CommitKind.CHECKPOINT, CommitKind.FOREIGN]


class TestCheckpointMismatch:

    def test_mismatch_changes_nothing(self, git_repo, resumer, batcher):
        resumer.prepare_branch(BRANCH, "1.0")
        commit_releases(git_repo, batcher, ["1.0"])
        head = git_repo.repo.head.commit.hexsha

        state = resumer.prepare_branch(BRANCH, "0.9")

        assert state == BranchState.MISMATCH
        assert git_repo.repo.head.commit.hexsha == head

    def test_engine_change_is_a_mismatch(self, git_repo, resumer, classifier, git_config):
        resumer.prepare_branch(BRANCH, "1.0")
        upgraded = CheckpointManager(git_repo, RESOURCE_LAYOUT, git_config, engine="histgen next")

        assert HistoryResumer(git_repo, upgraded, classifier).prepare_branch(BRANCH, "1.0") == BranchState.MISMATCH

    def test_start_over_if_required_recreates(self, git_repo, resumer, batcher):
        resumer.prepare_branch(BRANCH, "1.0")
        commit_releases(git_repo, batcher, ["1.0", "1.1"])

        state = resumer.prepare_branch(BRANCH, "0.9", start_over_if_required=True)

        assert state == BranchState.INITIALIZED
        assert len(list(git_repo.iter_commits())) == 1
        assert resumer.last_release() is None
        assert not (git_repo.root / "src").exists()

    def test_start_over_recreates_valid_branch(self, git_repo, resumer, batcher):
        resumer.prepare_branch(BRANCH, "1.0")
        commit_releases(git_repo, batcher, ["1.0"])

        state = resumer.prepare_branch(BRANCH, "1.0", start_over=True)

        assert state == BranchState.INITIALIZED
        assert len(list(git_repo.iter_commits())) == 1
        assert git_repo.branch_exists(BRANCH)

    def test_new_branch_does_not_inherit_files(self, git_repo, resumer, batcher):
        resumer.prepare_branch("other", "1.0")
        commit_releases(git_repo, batcher, ["1.0"])

        resumer.prepare_branch(BRANCH, "1.0")

        assert not (git_repo.root / "src").exists()
        assert len(list(git_repo.iter_commits())) == 1
        assert git_repo.branch_exists("other")


class TestResumePoint:

    def test_pending_after_last_release(self, git_repo, resumer, batcher):
        resumer.prepare_branch(BRANCH, "1.0")
        commit_releases(git_repo, batcher, ["1.0", "1.1", "1.2"])

        pending = resumer.pending(make_releases(["1.0", "1.1", "1.2", "1.3"]))

        assert [r.id for r in pending] == ["1.3"]

    def test_last_release_not_selected_is_fatal(self, git_repo, resumer, batcher):
        resumer.prepare_branch(BRANCH, "1.0")
        commit_releases(git_repo, batcher, ["1.0", "1.1", "1.2"])

        with pytest.raises(ConsistencyError):
            resumer.pending(make_releases(["2.0"]))

    def test_everything_pending_without_releases(self, resumer):
        resumer.prepare_branch(BRANCH, "1.0")
        releases = make_releases(["1.0", "1.1"])

        assert resumer.pending(releases) == releases

    def test_manual_commits_are_ignored(self, git_repo, resumer, batcher):
        resumer.prepare_branch(BRANCH, "1.0")
        commit_releases(git_repo, batcher, ["1.0", "1.1"])
        manual_commit(git_repo)

        assert resumer.last_release() == "1.1"

    def test_release_commit_dates_follow_release_time(self, git_repo, resumer, batcher):
        resumer.prepare_branch(BRANCH, "1.0")
        release = make_releases(["1.0"])[0]

        batcher.commit_release(release, release_changes(git_repo, "1.0"))

        commit = git_repo.repo.head.commit
        assert commit.committed_datetime == release.release_time
        assert commit.authored_datetime == release.release_time
        assert commit.message == "1.0"


class TestNoOpCommits:

    def test_empty_changes_make_no_commit(self, git_repo, resumer, batcher):
        resumer.prepare_branch(BRANCH, "1.0")
        commit_releases(git_repo, batcher, ["1.0"])
        head = git_repo.repo.head.commit.hexsha

        sha = batcher.commit_release(make_releases(["1.1"])[0], SyncChanges())

        assert sha is None
        assert git_repo.repo.head.commit.hexsha == head
        assert resumer.last_release() == "1.0"

    def test_removed_paths_leave_the_index(self, git_repo, resumer, batcher):
        resumer.prepare_branch(BRANCH, "1.0")
        releases = make_releases(["1.0", "1.1"])
        changes = release_changes(git_repo, "1.0")
        batcher.commit_release(releases[0], changes)

        (git_repo.root / changes.added[0]).unlink()
        batcher.commit_release(releases[1], SyncChanges(removed=changes.added))

        tree_paths = [item.path for item in git_repo.repo.head.commit.tree.traverse()]
        assert changes.added[0] not in tree_paths
