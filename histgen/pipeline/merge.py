"""
Merge stage: joins client and server jars into one artifact.
"""
import logging
from pathlib import Path

from ..cache.runner import StageInputs
from ..core.models import ReleaseDetails
from .bundler import get_extracted_server_jar
from .context import RunContext
from .jars import expected_sha1, get_jar
from .tools import MERGETOOL, command_identity, render_command, run_tool


class MergeTask:
    """
    Produces ``joined.jar`` for a release.

    With a partial cache the client and server jars are deleted after
    merging; the joined jar is then trusted as long as the manifest hashes,
    mappings and tool identity still match.
    """

    OUTPUT_NAME = "joined.jar"

    def __init__(self, context: RunContext):
        self.context = context
        self.logger = logging.getLogger(__name__)

    def _partial_inputs(self, details: ReleaseDetails, mappings: Path) -> StageInputs:
        return (StageInputs()
                .dependency(MERGETOOL, self.context.dependency_hashes)
                .string("command", command_identity(self.context.config.tools.merge))
                .string("client", expected_sha1("client", details))
                .string("server-full", expected_sha1("server", details))
                .file("map", mappings))

    async def get_joined_jar(self, details: ReleaseDetails, mappings: Path) -> Path:
        cache = self.context.release_dir(details.id)
        joined = cache / self.OUTPUT_NAME
        partial = self.context.config.cache.partial

        if partial and self.context.runner.is_current(
            joined,
            self._partial_inputs(details, mappings),
            should_consider=lambda key: key != "server"
        ):
            self.logger.debug("  Hitting cache for joined jar")
            return joined

        client_jar = await get_jar(self.context, "client", details)
        server_full_jar = await get_jar(self.context, "server", details)
        server_jar = await get_extracted_server_jar(self.context, cache, server_full_jar)

        inputs = (StageInputs()
                  .dependency(MERGETOOL, self.context.dependency_hashes)
                  .string("command", command_identity(self.context.config.tools.merge))
                  .file("client", client_jar)
                  .file("server", server_jar)
                  .file("server-full", server_full_jar)
                  .file("map", mappings))

        async def merge():
            argv = render_command(self.context.config.tools.merge, {
                "client": client_jar,
                "server": server_jar,
                "output": joined,
                "mappings": mappings,
            })
            await run_tool("merge", argv)

        result = await self.context.runner.run("merge", joined, inputs, merge)

        if partial:
            for jar in {client_jar, server_full_jar, server_jar}:
                if jar.exists():
                    jar.unlink()

        return result
