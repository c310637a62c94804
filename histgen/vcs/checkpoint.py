"""
Branch checkpoint: the first commit of every generated branch.
"""
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ..cache.record import CacheRecord
from ..config.global_config_loader import GitConfig
from ..config.resources import ENGINE_IDENTITY, ResourceLayout
from ..core.models import BranchCheckpoint
from ..pipeline.build_descriptor import BUILD_FILE_NAME
from .repository import GitRepository


CHECKPOINT_FILE = "HISTGEN.txt"
ENGINE_KEY = "Engine"
START_KEY = "Start"

# Scaffold files committed with the executable bit
EXECUTABLE_FILES = {"gradlew"}

# Sorts before every real release
CHECKPOINT_TIME = datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)


class CheckpointManager:
    """Writes, validates and removes the foundational files of a branch"""

    def __init__(
        self,
        repo: GitRepository,
        layout: ResourceLayout,
        git_config: GitConfig,
        engine: str = ENGINE_IDENTITY
    ):
        self.repo = repo
        self.layout = layout
        self.git_config = git_config
        self.engine = engine
        self.logger = logging.getLogger(__name__)

    @property
    def path(self) -> Path:
        return self.repo.root / CHECKPOINT_FILE

    def build_record(self, start_id: str) -> CacheRecord:
        return (CacheRecord()
                .comment("Source files generated by histgen",
                         "Every commit after this one regenerates a single upstream release")
                .put(ENGINE_KEY, self.engine)
                .put(START_KEY, start_id))

    def is_present(self) -> bool:
        return self.path.exists()

    def is_valid(self, start_id: str) -> bool:
        return self.build_record(start_id).is_valid(self.path)

    def read(self) -> Optional[BranchCheckpoint]:
        """The checkpoint recorded in the working tree, if any"""
        if not self.is_present():
            return None
        record = CacheRecord.read(self.path)
        return BranchCheckpoint(
            branch=self.repo.current_branch() or "",
            start=record.get(START_KEY) or "",
            engine=record.get(ENGINE_KEY) or "",
        )

    def foundational_paths(self) -> List[str]:
        """Top-level paths owned by the checkpoint commit"""
        paths = [CHECKPOINT_FILE, ".gitattributes", ".gitignore"]
        for relative in self.layout.scaffold_files():
            top = relative.parts[0]
            if top not in paths:
                paths.append(top)
        return paths

    def cleanup(self) -> None:
        """Delete foundational and generated files from the working tree"""
        for name in self.foundational_paths() + [BUILD_FILE_NAME, "src"]:
            target = self.repo.root / name
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()

    def initialize(self, start_id: str) -> str:
        """
        Write the foundational files and make the checkpoint commit.

        Args:
            start_id: Starting release of the branch

        Returns:
            Sha of the checkpoint commit
        """
        root = self.repo.root
        staged = [CHECKPOINT_FILE, ".gitattributes", ".gitignore"]

        self.build_record(start_id).write(self.path)
        shutil.copyfile(self.layout.gitattributes, root / ".gitattributes")
        shutil.copyfile(self.layout.gitignore, root / ".gitignore")

        for relative in self.layout.scaffold_files():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.layout.scaffold_dir / relative, target)
            if relative.as_posix() in EXECUTABLE_FILES:
                target.chmod(0o755)
            staged.append(relative.as_posix())

        self.repo.stage(staged)
        sha = self.repo.commit(self.git_config.checkpoint_message, self.git_config.identity, CHECKPOINT_TIME)
        self.logger.info(f"Created checkpoint commit {sha[:10]} starting at {start_id}")
        return sha
