"""
Invocation of the external transformation tools.
"""
import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Union

from ..core.exceptions import StageError


logger = logging.getLogger(__name__)

# Keys into the dependency hash table
MERGETOOL = "mergetool"
RENAMER = "renamer"
DECOMPILER = "decompiler"
BUNDLER = "bundler"

_STDERR_TAIL = 20


def render_command(
    template: Sequence[str],
    values: Mapping[str, Union[str, Path]],
    expansions: Mapping[str, Sequence[str]] = None
) -> List[str]:
    """
    Substitute ``{name}`` placeholders in a command template.

    An argument that is exactly ``{name}`` for a key of ``expansions`` is
    replaced by that whole list of arguments.
    """
    expansions = expansions or {}
    str_values: Dict[str, str] = {k: str(v) for k, v in values.items()}
    argv = []
    for arg in template:
        if arg.startswith("{") and arg.endswith("}") and arg[1:-1] in expansions:
            argv.extend(expansions[arg[1:-1]])
            continue
        try:
            argv.append(arg.format(**str_values))
        except KeyError as e:
            raise StageError("command", f"unknown placeholder {e} in '{arg}'") from e
    return argv


def command_identity(template: Sequence[str]) -> str:
    """Stable string describing a configured command line"""
    return " ".join(template)


async def run_tool(name: str, argv: Sequence[str], cwd: Path = None) -> None:
    """
    Run an external tool and wait for it.

    Raises:
        StageError: If the tool cannot be started or exits non-zero
    """
    logger.debug(f"  Executing {name}: {' '.join(argv)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise StageError(name, f"could not start {argv[0]}: {e}") from e

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        tail = "\n".join(stderr.decode('utf-8', errors='replace').splitlines()[-_STDERR_TAIL:])
        raise StageError(name, f"exited with status {process.returncode}\n{tail}")

    if stdout:
        logger.debug(stdout.decode('utf-8', errors='replace'))
