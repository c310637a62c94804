"""
Orchestration of a whole generation run.

Selects releases, resumes from the branch history, regenerates each pending
release and commits it, pushing periodically when a remote is configured.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .cache.dependency_hashes import DependencyHashTable
from .cache.runner import StageRunner
from .config.branch_config import BranchConfig
from .config.global_config_loader import GlobalConfig
from .config.resources import RESOURCE_LAYOUT, ResourceLayout
from .core.enums import BranchState
from .core.exceptions import ConsistencyError, PipelineError
from .core.models import BranchSpec, ReleaseInfo
from .core.run_lock import RunLock
from .manifest.manifest_client import ManifestClient
from .manifest.version_selector import VersionSelector
from .net.http_client import HttpClient
from .pipeline.build_descriptor import write_build_descriptor
from .pipeline.context import RunContext
from .pipeline.release_pipeline import ReleasePipeline
from .sync.tree_sync import TreeSynchronizer
from .vcs.checkpoint import CheckpointManager
from .vcs.classifier import CommitClassifier
from .vcs.credentials import resolve_credentials
from .vcs.history_resumer import HistoryResumer
from .vcs.push_batcher import CommitBatcher
from .vcs.repository import GitRepository


@dataclass
class GenerateOptions:
    """Per-run options, usually taken from the command line"""
    output: Path
    cache_dir: Path = Path("cache")
    extra_mappings: Optional[Path] = None
    branch: Optional[str] = None
    spec: Optional[BranchSpec] = None
    start_over: bool = False
    start_over_if_required: bool = False
    remote: Optional[str] = None
    checkout: bool = False
    push: bool = False
    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)


@dataclass
class GenerateSummary:
    state: BranchState
    branch: str
    committed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cache_hits: int = 0
    cache_misses: int = 0


class Generator:
    """Drives one run against an output repository and a cache directory"""

    def __init__(
        self,
        config: GlobalConfig,
        options: GenerateOptions,
        branch_config: Optional[BranchConfig] = None,
        layout: ResourceLayout = RESOURCE_LAYOUT
    ):
        self.config = config
        self.options = options
        self.branch_config = branch_config or BranchConfig.default()
        self.layout = layout
        self.logger = logging.getLogger(__name__)

    async def run(self) -> GenerateSummary:
        """
        Generate every pending release.

        Returns:
            Summary of the run; its state is MISMATCH when the branch
            checkpoint did not match and nothing was changed

        Raises:
            HistgenError: On any fatal condition
        """
        cache_dir = Path(self.options.cache_dir)
        async with RunLock(cache_dir, timeout=self.config.cache.lock_timeout):
            async with HttpClient(self.config.http) as http:
                return await self._run(http, cache_dir)

    async def _open_repository(self, credentials) -> GitRepository:
        repo = GitRepository.open_or_init(self.options.output)
        if self.options.remote:
            repo.ensure_remote(self.config.git.remote_name, self.options.remote)
            if self.options.checkout:
                branch = self.options.branch or repo.current_branch()
                if branch is not None:
                    await self._authenticate(repo, credentials)
                    repo.checkout_remote_branch(self.config.git.remote_name, branch)
        return repo

    async def _authenticate(self, repo: GitRepository, credentials) -> None:
        if credentials is not None:
            repo.authenticate(await credentials.get())

    async def _push(self, batcher: CommitBatcher, credentials) -> None:
        if batcher.remote is None:
            return
        await self._authenticate(batcher.repo, credentials)
        batcher.push()

    async def _select(self, manifest_client: ManifestClient, spec: BranchSpec) -> List[ReleaseInfo]:
        manifest = await manifest_client.fetch_manifest()
        selected = VersionSelector(manifest).select(spec)
        if not selected:
            raise ConsistencyError("No versions selected for generation")
        self.logger.info(f"Selected {len(selected)} versions: {selected[0].id} to {selected[-1].id}")
        return selected

    async def _run(self, http: HttpClient, cache_dir: Path) -> GenerateSummary:
        output = Path(self.options.output)
        credentials = resolve_credentials(self.config.git.credentials, http) if self.options.remote else None
        repo = await self._open_repository(credentials)

        branch = self.options.branch or repo.current_branch()
        if branch is None:
            raise ConsistencyError("Git repository has no HEAD reference; pass a branch name")
        spec = self.branch_config.resolve(branch, self.options.spec)

        manifest_client = ManifestClient(http, self.config.http.manifest_url, cache_dir)
        selected = await self._select(manifest_client, spec)
        start_id = spec.start or selected[0].id

        checkpoint = CheckpointManager(repo, self.layout, self.config.git)
        classifier = CommitClassifier(self.config.git.identity, self.config.git.checkpoint_message)
        resumer = HistoryResumer(repo, checkpoint, classifier)

        state = resumer.prepare_branch(
            branch,
            start_id,
            start_over=self.options.start_over,
            start_over_if_required=self.options.start_over_if_required,
        )
        summary = GenerateSummary(state=state, branch=branch)
        if state == BranchState.MISMATCH:
            return summary

        pending = resumer.pending(selected)
        if not pending:
            self.logger.info(f"Branch {branch} is up to date")

        runner = StageRunner()
        context = RunContext(
            config=self.config,
            cache_dir=cache_dir,
            dependency_hashes=DependencyHashTable.load(self.layout.dependency_hashes),
            runner=runner,
            http=http,
            extra_mappings=self.options.extra_mappings,
        )
        pipeline = ReleasePipeline(context, manifest_client)
        pending = await pipeline.filter_with_mappings(pending)

        synchronizer = TreeSynchronizer(output, self.options.includes, self.options.excludes)
        remote = self.config.git.remote_name if self.options.remote and self.options.push else None
        batcher = CommitBatcher(repo, self.config.git, branch, remote)
        push_every = self.config.git.push_every

        for x, release in enumerate(pending):
            self.logger.info(f"[{x + 1}/{len(pending)}] Generating {release.id}")
            result = await pipeline.generate(release)

            if result.is_skip:
                self.logger.info(f"  Skipped: {result.reason}")
                summary.skipped.append(release.id)
                continue
            if result.is_fatal:
                raise PipelineError(f"Failed to generate {release.id}: {result.reason}") from result.error

            changes = synchronizer.sync(result.artifact)
            details = await manifest_client.fetch_details(release)
            changes.extend(write_build_descriptor(output, details))

            if batcher.commit_release(release, changes) is None:
                continue
            summary.committed.append(release.id)
            if push_every and len(summary.committed) % push_every == 0:
                await self._push(batcher, credentials)

        await self._push(batcher, credentials)

        summary.cache_hits = runner.stats.hits
        summary.cache_misses = runner.stats.misses
        self.logger.info(
            f"Generated {len(summary.committed)} releases on {branch} "
            f"({len(summary.skipped)} skipped, {summary.cache_hits} cache hits, "
            f"{summary.cache_misses} stage runs)"
        )
        return summary
