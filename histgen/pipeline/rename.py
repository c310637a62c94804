"""
Rename stage: applies the joined mappings to the merged jar.
"""
from pathlib import Path
from typing import List

from ..cache.runner import StageInputs
from .context import RunContext
from .libraries import library_keys, write_libraries_cfg
from .tools import RENAMER, command_identity, render_command, run_tool


OUTPUT_NAME = "joined-renamed.jar"


async def get_renamed_jar(context: RunContext, cache: Path, joined: Path, mappings: Path, libraries: List[Path]) -> Path:
    inputs = (StageInputs()
              .dependency(RENAMER, context.dependency_hashes)
              .string("command", command_identity(context.config.tools.rename))
              .file("joined", joined)
              .file("map", mappings)
              .files(library_keys(context.libraries_dir, libraries)))
    output = cache / OUTPUT_NAME

    async def rename():
        cfg = write_libraries_cfg(cache / "renamer-libraries.cfg", libraries)
        argv = render_command(context.config.tools.rename, {
            "input": joined,
            "output": output,
            "mappings": mappings,
            "libraries_cfg": cfg,
        })
        await run_tool("rename", argv)

    return await context.runner.run("rename", output, inputs, rename)
