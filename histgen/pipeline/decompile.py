"""
Decompile stage: turns the renamed jar into a source archive.
"""
from pathlib import Path
from typing import List

from ..cache.runner import StageInputs
from .context import RunContext
from .libraries import library_keys, write_libraries_cfg
from .tools import DECOMPILER, command_identity, render_command, run_tool


OUTPUT_NAME = "joined-decompiled.jar"


async def get_decompiled_jar(context: RunContext, cache: Path, renamed: Path, libraries: List[Path]) -> Path:
    tools = context.config.tools
    inputs = (StageInputs()
              .dependency(DECOMPILER, context.dependency_hashes)
              .string("command", command_identity(tools.decompile))
              .file("renamed", renamed)
              .string("decompileArgs", " ".join(tools.decompile_args))
              .files(library_keys(context.libraries_dir, libraries)))
    output = cache / OUTPUT_NAME

    async def decompile():
        cfg = write_libraries_cfg(cache / "joined-libraries.cfg", libraries)
        argv = render_command(
            tools.decompile,
            {"input": renamed, "output": output, "libraries_cfg": cfg},
            expansions={"decompile_args": tools.decompile_args},
        )
        await run_tool("decompile", argv)

    return await context.runner.run("decompile", output, inputs, decompile)
