"""
Per-release build descriptor written at the working-tree root.
"""
from pathlib import Path

from ..core.models import ReleaseDetails, SyncChanges


BUILD_FILE_NAME = "build.gradle"

TEMPLATE = """plugins {{
    id 'java'
}}

java {{
    toolchain {{
        languageVersion = JavaLanguageVersion.of({java_version})
    }}
}}

repositories {{
    mavenCentral()
    maven {{
        name = 'Upstream'
        url = 'https://libraries.minecraft.net/'
    }}
}}

dependencies {{
{dependencies}
}}
"""


def render_build_descriptor(details: ReleaseDetails) -> str:
    names = sorted(lib.name for lib in details.libraries if lib.is_allowed())
    return TEMPLATE.format(
        java_version=details.java_major_version,
        dependencies="\n".join(f"    implementation '{name}'" for name in names),
    )


def write_build_descriptor(output_root: Path, details: ReleaseDetails) -> SyncChanges:
    """Write the descriptor, reporting it as added or updated only when its content changes"""
    target = Path(output_root) / BUILD_FILE_NAME
    content = render_build_descriptor(details)
    changes = SyncChanges()

    if target.is_file() and not target.is_symlink():
        if target.read_text(encoding='utf-8') == content:
            return changes
        changes.updated.append(BUILD_FILE_NAME)
    else:
        if target.is_symlink():
            target.unlink()
        changes.added.append(BUILD_FILE_NAME)

    target.write_text(content, encoding='utf-8')
    return changes
