"""
Test cases for the individual pipeline stages and their helpers.
"""

import io
import sys
import zipfile
import pytest
from unittest.mock import AsyncMock, Mock, patch

from histgen.cache.dependency_hashes import DependencyHashTable
from histgen.cache.hash_function import HashFunction
from histgen.cache.runner import StageRunner
from histgen.config.global_config_loader import CacheConfig, GlobalConfig
from histgen.core.exceptions import ConsistencyError, IntegrityError, StageError
from histgen.core.models import Download, Library, ReleaseDetails
from histgen.net.http_client import HttpClient
from histgen.pipeline.build_descriptor import BUILD_FILE_NAME, render_build_descriptor, write_build_descriptor
from histgen.pipeline.bundler import bundler_format, extract_bundled_jar, get_extracted_server_jar
from histgen.pipeline.context import RunContext
from histgen.pipeline.jars import expected_sha1, get_jar
from histgen.pipeline.libraries import get_libraries, library_keys, write_libraries_cfg
from histgen.pipeline.merge import MergeTask
from histgen.pipeline.tools import render_command, run_tool
from conftest import BASE_TIME


SERVER_BYTES = b"plain server jar"


def plain_jar(entry: str) -> bytes:
    """Deterministic single-entry jar"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr(zipfile.ZipInfo(entry, date_time=(2020, 1, 1, 0, 0, 0)), b"\xca\xfe")
    return buffer.getvalue()


JARS = {
    "client": plain_jar("net/Client.class"),
    "server": plain_jar("net/Server.class"),
}


@pytest.fixture
def http():
    client = Mock(spec=HttpClient)

    async def download(target, url, sha1=None):
        target.parent.mkdir(parents=True, exist_ok=True)
        kind = url.rsplit("/", 1)[-1][:-len(".jar")]
        target.write_bytes(JARS.get(kind, url.encode('utf-8')))
        return target
    client.download_file = AsyncMock(side_effect=download)
    return client


@pytest.fixture
def context(tmp_path, http):
    return RunContext(
        config=GlobalConfig(),
        cache_dir=tmp_path / "cache",
        dependency_hashes=DependencyHashTable({"mergetool": "m1", "bundler": "b1"}),
        runner=StageRunner(),
        http=http,
    )


def make_details(release_id="1.0", libraries=None, java=17):
    return ReleaseDetails(
        id=release_id,
        type="release",
        release_time=BASE_TIME,
        downloads={
            "client": Download(url="https://example.invalid/client.jar",
                               sha1=HashFunction.SHA1.hash_bytes(JARS["client"])),
            "server": Download(url="https://example.invalid/server.jar",
                               sha1=HashFunction.SHA1.hash_bytes(JARS["server"])),
        },
        libraries=libraries or [],
        java_major_version=java,
    )


def make_bundle(path, payload=SERVER_BYTES, sha256=None):
    sha256 = sha256 or HashFunction.SHA256.hash_bytes(payload)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\nBundler-Format: 1.0\n")
        zf.writestr("META-INF/versions.list", f"{sha256}\tserver-1.0\tserver-1.0.jar\n")
        zf.writestr("META-INF/versions/server-1.0.jar", payload)
    return path


class TestRenderCommand:

    def test_placeholders_and_expansion(self):
        argv = render_command(
            ["java", "-jar", "tool.jar", "{args}", "{input}", "{output}"],
            {"input": "in.jar", "output": "out.jar"},
            {"args": ["-a=1", "-b=2"]},
        )

        assert argv == ["java", "-jar", "tool.jar", "-a=1", "-b=2", "in.jar", "out.jar"]

    def test_unknown_placeholder(self):
        with pytest.raises(StageError):
            render_command(["{missing}"], {})


class TestRunTool:

    @pytest.mark.asyncio
    async def test_success(self, tmp_path):
        target = tmp_path / "touched"

        await run_tool("touch", [sys.executable, "-c", f"open({str(target)!r}, 'w').close()"])

        assert target.exists()

    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        with pytest.raises(StageError) as exc_info:
            await run_tool("fail", [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"])

        assert "status 3" in str(exc_info.value)
        assert "boom" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        with pytest.raises(StageError):
            await run_tool("missing", [str(tmp_path / "no-such-tool")])


class TestJars:

    def test_expected_sha1_requires_download(self):
        details = make_details()
        del details.downloads["server"]

        with pytest.raises(ConsistencyError):
            expected_sha1("server", details)

    @pytest.mark.asyncio
    async def test_jar_fetched_once(self, context, http):
        details = make_details()

        first = await get_jar(context, "client", details)
        second = await get_jar(context, "client", details)

        assert first == second == context.release_dir("1.0") / "client.jar"
        assert http.download_file.await_count == 1


class TestBundler:

    def test_plain_jar_has_no_format(self, tmp_path):
        jar = tmp_path / "plain.jar"
        with zipfile.ZipFile(jar, "w") as zf:
            zf.writestr("net/Main.class", b"\xca\xfe")

        assert bundler_format(jar) is None

    def test_extracts_embedded_jar(self, tmp_path):
        bundle = make_bundle(tmp_path / "server.jar")
        output = tmp_path / "extracted.jar"

        assert bundler_format(bundle) == "1.0"
        extract_bundled_jar(bundle, output)

        assert output.read_bytes() == SERVER_BYTES

    def test_embedded_hash_mismatch(self, tmp_path):
        bundle = make_bundle(tmp_path / "server.jar", sha256="0" * 64)

        with pytest.raises(IntegrityError):
            extract_bundled_jar(bundle, tmp_path / "extracted.jar")

    @pytest.mark.asyncio
    async def test_plain_server_is_used_directly(self, context, tmp_path):
        jar = tmp_path / "server.jar"
        with zipfile.ZipFile(jar, "w") as zf:
            zf.writestr("net/Main.class", b"\xca\xfe")

        assert await get_extracted_server_jar(context, tmp_path, jar) == jar

    @pytest.mark.asyncio
    async def test_bundle_extraction_is_cached(self, context, tmp_path):
        bundle = make_bundle(tmp_path / "server.jar")

        extracted = await get_extracted_server_jar(context, tmp_path, bundle)
        await get_extracted_server_jar(context, tmp_path, bundle)

        assert extracted.name == "server-extracted.jar"
        assert context.runner.stats.hits == 1


class TestLibraries:

    @pytest.mark.asyncio
    async def test_downloads_into_shared_cache(self, context, http):
        libraries = [
            Library(name="org.example:core:1.0",
                    artifact=Download(url="https://example.invalid/core.jar", path="org/example/core-1.0.jar")),
            Library(name="org.example:natives:1.0"),
        ]

        paths = await get_libraries(context, make_details(libraries=libraries))
        await get_libraries(context, make_details(libraries=libraries))

        assert paths == [context.libraries_dir / "org/example/core-1.0.jar"]
        assert http.download_file.await_count == 1
        assert library_keys(context.libraries_dir, paths) == [("org/example/core-1.0.jar", paths[0])]

    @pytest.mark.asyncio
    async def test_corrupt_cached_library_is_downloaded_again(self, context, http):
        url = "https://example.invalid/core.jar"
        library = Library(name="org.example:core:1.0", artifact=Download(
            url=url, path="org/example/core-1.0.jar", sha1=HashFunction.SHA1.hash_bytes(url.encode('utf-8'))))
        cached = context.libraries_dir / "org/example/core-1.0.jar"
        cached.parent.mkdir(parents=True)
        cached.write_bytes(url.encode('utf-8')[:5])

        await get_libraries(context, make_details(libraries=[library]))
        await get_libraries(context, make_details(libraries=[library]))

        assert cached.read_bytes() == url.encode('utf-8')
        assert http.download_file.await_count == 1

    def test_libraries_cfg(self, tmp_path):
        cfg = write_libraries_cfg(tmp_path / "libraries.cfg", [tmp_path / "a.jar", tmp_path / "b.jar"])

        assert cfg.read_text().splitlines() == [f"-e={tmp_path / 'a.jar'}", f"-e={tmp_path / 'b.jar'}"]


class TestMergeTask:

    @pytest.fixture
    def mappings(self, tmp_path):
        path = tmp_path / "joined_mappings.txt"
        path.write_text("net.example.Named -> a:\n")
        return path

    @staticmethod
    async def fake_merge(name, argv, cwd=None):
        output = argv[argv.index("--output") + 1]
        with open(output, "wb") as f:
            f.write(b"joined")

    @pytest.mark.asyncio
    async def test_merge_runs_tool_once(self, context, mappings):
        details = make_details()

        with patch("histgen.pipeline.merge.run_tool", new=AsyncMock(side_effect=self.fake_merge)) as tool:
            joined = await MergeTask(context).get_joined_jar(details, mappings)
            await MergeTask(context).get_joined_jar(details, mappings)

        assert joined.read_bytes() == b"joined"
        assert tool.await_count == 1

    @pytest.mark.asyncio
    async def test_partial_cache_drops_jars(self, context, mappings):
        context.config = GlobalConfig(cache=CacheConfig(partial=True))
        details = make_details()

        with patch("histgen.pipeline.merge.run_tool", new=AsyncMock(side_effect=self.fake_merge)) as tool:
            joined = await MergeTask(context).get_joined_jar(details, mappings)
            await MergeTask(context).get_joined_jar(details, mappings)

        cache = context.release_dir("1.0")
        assert joined.exists()
        assert not (cache / "client.jar").exists()
        assert not (cache / "server.jar").exists()
        assert tool.await_count == 1


class TestBuildDescriptor:

    def test_lists_allowed_libraries_sorted(self):
        libraries = [
            Library(name="org.example:zeta:1.0"),
            Library(name="org.example:alpha:1.0"),
            Library(name="org.example:never:1.0", rules=[{"action": "disallow"}]),
        ]

        rendered = render_build_descriptor(make_details(libraries=libraries, java=21))

        assert "JavaLanguageVersion.of(21)" in rendered
        assert rendered.index("alpha") < rendered.index("zeta")
        assert "never" not in rendered

    def test_unchanged_descriptor_is_not_reported(self, tmp_path):
        details = make_details()

        assert write_build_descriptor(tmp_path, details).added == [BUILD_FILE_NAME]
        assert write_build_descriptor(tmp_path, details).is_empty()

        changed = write_build_descriptor(tmp_path, make_details(java=21))
        assert changed.updated == [BUILD_FILE_NAME]
