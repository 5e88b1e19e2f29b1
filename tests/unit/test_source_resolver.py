"""Tests for file source resolution."""
import shutil

import aiohttp
import pytest

from mediarelay.core.api.config import SourceConfig
from mediarelay.core.exceptions import FileAccessError
from mediarelay.core.source import (
    ContainerCopyExtractor,
    FileSource,
    FileSourceResolver,
    Provenance,
)

MISSING_ROOT = "/nonexistent/telegram-bot-api/"


class TestFileSource:
    """Test suite for FileSource."""

    def test_temporary_provenance(self, tmp_path):
        path = tmp_path / "x"
        assert FileSource("r", path, 1, Provenance.EXTRACTED).is_temporary
        assert FileSource("r", path, 1, Provenance.DOWNLOADED).is_temporary
        assert not FileSource("r", path, 1, Provenance.DIRECT).is_temporary
        assert not FileSource("r", path, 1, Provenance.MOUNTED).is_temporary

    def test_cleanup_at_most_once(self, tmp_path):
        path = tmp_path / "x"
        path.write_bytes(b"data")
        source = FileSource("r", path, 4, Provenance.DOWNLOADED)

        assert source.cleanup() is True
        assert not path.exists()
        assert source.removed
        assert source.cleanup() is False

    def test_cleanup_missing_file(self, tmp_path):
        source = FileSource("r", tmp_path / "gone", 4, Provenance.EXTRACTED)
        assert source.cleanup() is False


class TestFileSourceResolver:
    """Test suite for FileSourceResolver."""

    @pytest.fixture
    def temp_dir(self, tmp_path):
        path = tmp_path / "tmp"
        path.mkdir()
        return path

    @pytest.mark.asyncio
    async def test_direct_access(self, relay_root, make_file):
        path = make_file(321)
        resolver = FileSourceResolver(SourceConfig(storage_root=str(relay_root), container=None))

        source = await resolver.resolve(str(path))

        assert source.provenance is Provenance.DIRECT
        assert source.path == path
        assert source.size == 321
        assert not source.is_temporary

    @pytest.mark.asyncio
    async def test_mounted_volume(self, tmp_path, payload):
        mount = tmp_path / "mnt"
        (mount / "123" / "videos").mkdir(parents=True)
        (mount / "123" / "videos" / "file_1.mp4").write_bytes(payload(99))
        resolver = FileSourceResolver(SourceConfig(
            storage_root=MISSING_ROOT, mounted_root=str(mount), container=None
        ))

        source = await resolver.resolve(MISSING_ROOT + "123/videos/file_1.mp4")

        assert source.provenance is Provenance.MOUNTED
        assert source.path == mount / "123" / "videos" / "file_1.mp4"
        assert source.size == 99

    @pytest.mark.asyncio
    async def test_extraction(self, temp_dir, payload, fake_extractor):
        reference = MISSING_ROOT + "123/videos/file_2.mp4"
        extractor = fake_extractor({reference: payload(2000)})
        resolver = FileSourceResolver(
            SourceConfig(storage_root=MISSING_ROOT), extractor=extractor, temp_dir=temp_dir
        )

        source = await resolver.resolve(reference)

        assert source.provenance is Provenance.EXTRACTED
        assert source.is_temporary
        assert source.path.parent == temp_dir
        assert source.path.read_bytes() == payload(2000)
        source.cleanup()
        assert list(temp_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_extraction_failure_removes_temp(self, temp_dir, fake_extractor):
        resolver = FileSourceResolver(
            SourceConfig(storage_root=MISSING_ROOT), extractor=fake_extractor(), temp_dir=temp_dir
        )

        with pytest.raises(FileAccessError):
            await resolver.resolve(MISSING_ROOT + "missing.mp4")
        assert list(temp_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_all_methods_fail(self):
        resolver = FileSourceResolver(SourceConfig(storage_root=MISSING_ROOT, container=None))

        with pytest.raises(FileAccessError) as exc_info:
            await resolver.resolve(MISSING_ROOT + "a.mp4")
        assert exc_info.value.reference == MISSING_ROOT + "a.mp4"

    @pytest.mark.asyncio
    async def test_directory_is_not_a_file(self, relay_root):
        (relay_root / "dir").mkdir()
        resolver = FileSourceResolver(SourceConfig(storage_root=str(relay_root), container=None))

        with pytest.raises(FileAccessError):
            await resolver.resolve(str(relay_root / "dir"))

    @pytest.mark.asyncio
    async def test_download_relative_reference(self, config, backend, http_session, temp_dir, payload):
        backend.files['photos/file_0.jpg'] = payload(5000)
        resolver = FileSourceResolver(config.source, session=http_session, temp_dir=temp_dir)

        source = await resolver.resolve("photos/file_0.jpg")

        assert source.provenance is Provenance.DOWNLOADED
        assert source.size == 5000
        assert source.path.read_bytes() == payload(5000)
        assert not http_session.closed

    @pytest.mark.asyncio
    async def test_download_owns_session(self, config, backend, temp_dir, payload):
        backend.files['clip.mp4'] = payload(10)
        resolver = FileSourceResolver(config.source, temp_dir=temp_dir)

        source = await resolver.resolve(f"{backend.url}/media/clip.mp4")

        assert source.size == 10
        assert backend.file_requests == ['/media/clip.mp4']

    @pytest.mark.asyncio
    async def test_download_not_found(self, config, backend, temp_dir):
        resolver = FileSourceResolver(config.source, temp_dir=temp_dir)

        with pytest.raises(FileAccessError, match="HTTP 404"):
            await resolver.resolve("photos/missing.jpg")
        assert list(temp_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_mounted_reference_with_leading_slash(self, tmp_path, payload):
        mount = tmp_path / "mnt"
        (mount / "123").mkdir(parents=True)
        (mount / "123" / "x.mp4").write_bytes(payload(7))
        resolver = FileSourceResolver(SourceConfig(
            storage_root=MISSING_ROOT.rstrip('/'), mounted_root=str(mount), container=None
        ))

        source = await resolver.resolve(MISSING_ROOT + "/123/x.mp4")

        assert source.provenance is Provenance.MOUNTED
        assert source.path == mount / "123" / "x.mp4"

    @pytest.mark.asyncio
    async def test_absolute_suffix_stays_in_mount(self, tmp_path, payload):
        outside = tmp_path / "outside.bin"
        outside.write_bytes(payload(10))
        mount = tmp_path / "mnt"
        mount.mkdir()
        resolver = FileSourceResolver(SourceConfig(
            storage_root=MISSING_ROOT, mounted_root=str(mount), container=None
        ))

        with pytest.raises(FileAccessError):
            await resolver.resolve(MISSING_ROOT + str(outside))
        assert outside.exists()

    @pytest.mark.asyncio
    async def test_dotdot_cannot_leave_mount(self, tmp_path, payload):
        outside = tmp_path / "outside.bin"
        outside.write_bytes(payload(10))
        mount = tmp_path / "mnt"
        mount.mkdir()
        resolver = FileSourceResolver(SourceConfig(
            storage_root=MISSING_ROOT, mounted_root=str(mount), container=None
        ))

        with pytest.raises(FileAccessError):
            await resolver.resolve(MISSING_ROOT + "../outside.bin")
        assert outside.exists()

    @pytest.mark.asyncio
    async def test_dotdot_cannot_leave_storage_root(self, relay_root, tmp_path, payload):
        (tmp_path / "outside.bin").write_bytes(payload(10))
        resolver = FileSourceResolver(SourceConfig(storage_root=str(relay_root), container=None))

        with pytest.raises(FileAccessError):
            await resolver.resolve(str(relay_root) + "/../outside.bin")

    @pytest.mark.asyncio
    async def test_extraction_after_mount_miss(self, tmp_path, temp_dir, payload, fake_extractor):
        mount = tmp_path / "mnt"
        mount.mkdir()
        reference = MISSING_ROOT + "123/videos/file_3.mp4"
        extractor = fake_extractor({reference: payload(300)})
        resolver = FileSourceResolver(
            SourceConfig(storage_root=MISSING_ROOT, mounted_root=str(mount)),
            extractor=extractor,
            temp_dir=temp_dir
        )

        source = await resolver.resolve(reference)

        assert source.provenance is Provenance.EXTRACTED
        assert source.size == 300
        assert extractor.extracted == [reference]
        source.cleanup()

    @pytest.mark.asyncio
    async def test_download_outlives_session_timeout(self, backend, temp_dir, payload):
        """A slow transfer is bounded by read stalls, not the session's total timeout."""
        backend.files['slow.mp4'] = payload(1024)
        resolver_config = SourceConfig(
            relay_url=backend.url, bot_token='TEST:TOKEN', container=None,
            download_read_timeout=5.0
        )
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=0.3)) as session:
            resolver = FileSourceResolver(resolver_config, session=session, temp_dir=temp_dir)

            source = await resolver.resolve(f"{backend.url}/slow/slow.mp4")

        assert source.size == 1024
        assert source.path.read_bytes() == payload(1024)
        source.cleanup()

    def test_download_url(self):
        resolver = FileSourceResolver(SourceConfig(relay_url="http://relay:8081/", bot_token="1:x"))

        assert resolver._download_url("videos/a.mp4") == "http://relay:8081/file/bot1:x/videos/a.mp4"
        assert resolver._download_url("https://cdn/a.mp4") == "https://cdn/a.mp4"

    def test_default_extractor(self):
        resolver = FileSourceResolver(SourceConfig(container="relay"))
        assert isinstance(resolver.extractor, ContainerCopyExtractor)
        assert resolver.extractor.container == "relay"

        assert FileSourceResolver(SourceConfig(container=None)).extractor is None

    def test_storage_root_normalized(self):
        resolver = FileSourceResolver(SourceConfig(storage_root="/data/relay"))

        assert resolver.is_relay_reference("/data/relay/x.mp4")
        assert not resolver.is_relay_reference("/data/relay2/x.mp4")


@pytest.mark.skipif(shutil.which("true") is None, reason="needs coreutils")
class TestContainerCopyExtractor:
    """Test suite for ContainerCopyExtractor using stand-in executables."""

    @pytest.mark.asyncio
    async def test_success(self, tmp_path):
        extractor = ContainerCopyExtractor("relay", executable="true")
        await extractor.extract("/var/lib/x.mp4", tmp_path / "x")
        await extractor.remove("/var/lib/x.mp4")

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, tmp_path):
        extractor = ContainerCopyExtractor("relay", executable="false")

        with pytest.raises(FileAccessError, match="exited with 1"):
            await extractor.extract("/var/lib/x.mp4", tmp_path / "x")

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        extractor = ContainerCopyExtractor("relay", executable="mediarelay-no-such-binary")

        with pytest.raises(FileAccessError, match="Cannot run"):
            await extractor.remove("/var/lib/x.mp4")
