"""Pytest fixtures for mediarelay tests."""
import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from mediarelay.core.api.config import RetryConfig, SourceConfig, UploaderConfig


CHUNK_SIZE = 1024
SIMPLE_THRESHOLD = 4 * 1024


def make_payload(size: int) -> bytes:
    """Deterministic, non-repeating-per-chunk test content."""
    return (bytes(range(251)) * (size // 251 + 1))[:size]


@dataclass
class FakeUpload:
    length: int
    metadata: str = ''
    data: bytearray = field(default_factory=bytearray)

    @property
    def offset(self) -> int:
        return len(self.data)


@dataclass
class PatchFault:
    """
    Canned answer for one PATCH request.

    Attributes:
        status: Status to answer with
        body: Response text
        apply: Store the chunk before answering (lost acknowledgement)
        expire: Forget the upload before answering
        send_offset: Include the server's current Upload-Offset
        drop: Close the connection instead of answering
    """
    status: int
    body: str = ''
    apply: bool = False
    expire: bool = False
    send_offset: bool = False
    drop: bool = False


@dataclass
class PatchRecord:
    upload_id: str
    offset: int
    size: int


class FakeBackend:
    """
    In-process lecture backend speaking the resumable upload protocol.

    Faults are keyed by the 1-based index of the PATCH request across
    the whole test, so a test can say "the 3rd chunk request fails".
    """

    def __init__(self):
        self.app = web.Application(client_max_size=64 * 1024 * 1024)
        self.app.router.add_post('/api/v1/uploads', self.handle_create)
        self.app.router.add_route('PATCH', '/api/v1/uploads/{upload_id}', self.handle_patch)
        self.app.router.add_route('HEAD', '/api/v1/uploads/{upload_id}', self.handle_head)
        self.app.router.add_post('/api/v1/lectures/upload', self.handle_form)
        self.app.router.add_get('/file/bot{token}/{path:.*}', self.handle_file)
        self.app.router.add_get('/media/{path:.*}', self.handle_media)
        self.app.router.add_get('/slow/{path:.*}', self.handle_slow)

        self.server: Optional[TestServer] = None
        self.uploads: Dict[str, FakeUpload] = {}
        self.created = 0
        self.create_headers: List[Dict[str, str]] = []
        self.create_status: Optional[int] = None
        self.create_body = ''
        self.patches: List[PatchRecord] = []
        self.patch_faults: Dict[int, PatchFault] = {}
        self.heads = 0
        self.head_faults: Dict[int, int] = {}
        self.form_requests: List[dict] = []
        self.form_status = 200
        self.form_payload = {'success': True, 'data': {'lecture': {'id': 'lec_1'}}}
        self.files: Dict[str, bytes] = {}
        self.file_requests: List[str] = []
        self.artifact_id = 'lec_42'

    @property
    def url(self) -> str:
        return str(self.server.make_url('/')).rstrip('/')

    def fail_patch(self, index: int, status: int = 500, body: str = '', **kwargs) -> None:
        self.patch_faults[index] = PatchFault(status=status, body=body, **kwargs)

    def fail_head(self, index: int, status: int) -> None:
        self.head_faults[index] = status

    def received(self, upload_id: str) -> bytes:
        return bytes(self.uploads[upload_id].data)

    async def handle_create(self, request: web.Request) -> web.Response:
        self.create_headers.append(dict(request.headers))
        if self.create_status is not None:
            return web.Response(status=self.create_status, text=self.create_body)
        self.created += 1
        upload_id = f"up{self.created}"
        self.uploads[upload_id] = FakeUpload(
            length=int(request.headers['Upload-Length']),
            metadata=request.headers.get('Upload-Metadata', '')
        )
        return web.Response(
            status=201,
            headers={'Location': f"/api/v1/uploads/{upload_id}", 'Tus-Resumable': '1.0.0'}
        )

    async def handle_patch(self, request: web.Request) -> web.Response:
        upload_id = request.match_info['upload_id']
        offset = int(request.headers['Upload-Offset'])
        body = await request.read()
        self.patches.append(PatchRecord(upload_id, offset, len(body)))
        upload = self.uploads.get(upload_id)

        fault = self.patch_faults.pop(len(self.patches), None)
        if fault is not None:
            if fault.drop:
                request.transport.close()
                return web.Response(status=500)
            if fault.apply and upload is not None and offset == upload.offset:
                upload.data.extend(body)
            if fault.expire:
                self.uploads.pop(upload_id, None)
            headers = {}
            if fault.send_offset and upload is not None:
                headers['Upload-Offset'] = str(upload.offset)
            return web.Response(status=fault.status, text=fault.body, headers=headers)

        if upload is None:
            return web.Response(status=404, text='Upload not found')
        if offset != upload.offset:
            return web.Response(
                status=409,
                text='Upload-Offset mismatch',
                headers={'Upload-Offset': str(upload.offset)}
            )

        upload.data.extend(body)
        headers = {'Upload-Offset': str(upload.offset), 'Tus-Resumable': '1.0.0'}
        if upload.offset == upload.length:
            headers['X-Lecture-Id'] = self.artifact_id
        return web.Response(status=204, headers=headers)

    async def handle_head(self, request: web.Request) -> web.Response:
        self.heads += 1
        fault_status = self.head_faults.pop(self.heads, None)
        if fault_status is not None:
            return web.Response(status=fault_status)
        upload = self.uploads.get(request.match_info['upload_id'])
        if upload is None:
            return web.Response(status=404)
        return web.Response(
            status=200,
            headers={
                'Upload-Offset': str(upload.offset),
                'Upload-Length': str(upload.length),
                'Cache-Control': 'no-store',
            }
        )

    async def handle_form(self, request: web.Request) -> web.Response:
        form = await request.post()
        upload = form['file']
        content = upload.file.read()
        self.form_requests.append({
            'authorization': request.headers.get('Authorization'),
            'filename': upload.filename,
            'content_type': upload.content_type,
            'content': content,
            'fields': {k: v for k, v in form.items() if k != 'file'},
        })
        if isinstance(self.form_payload, str):
            return web.Response(status=self.form_status, text=self.form_payload)
        return web.json_response(self.form_payload, status=self.form_status)

    async def handle_file(self, request: web.Request) -> web.Response:
        self.file_requests.append(request.path)
        return self._serve(request.match_info['path'])

    async def handle_media(self, request: web.Request) -> web.Response:
        self.file_requests.append(request.path)
        return self._serve(request.match_info['path'])

    async def handle_slow(self, request: web.Request) -> web.StreamResponse:
        """Serve a file in small pieces with a pause before each."""
        self.file_requests.append(request.path)
        data = self.files[request.match_info['path']]
        response = web.StreamResponse()
        response.content_length = len(data)
        await response.prepare(request)
        for start in range(0, len(data), 256):
            await asyncio.sleep(0.15)
            await response.write(data[start:start + 256])
        await response.write_eof()
        return response

    def _serve(self, path: str) -> web.Response:
        if path not in self.files:
            return web.Response(status=404, text='Not Found')
        return web.Response(body=self.files[path], content_type='application/octet-stream')


class FakeExtractor:
    """Extractor double that copies from an in-memory store."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None):
        self.files = files or {}
        self.extracted: List[str] = []
        self.removed: List[str] = []

    async def extract(self, reference: str, destination: Path) -> None:
        from mediarelay.core.exceptions import FileAccessError

        self.extracted.append(reference)
        if reference not in self.files:
            raise FileAccessError(reference, "No such file in container")
        destination.write_bytes(self.files[reference])

    async def remove(self, reference: str) -> None:
        self.removed.append(reference)
        self.files.pop(reference, None)


@pytest_asyncio.fixture
async def backend():
    """Running fake backend."""
    fake = FakeBackend()
    server = TestServer(fake.app)
    await server.start_server()
    fake.server = server
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def http_session():
    async with aiohttp.ClientSession() as session:
        yield session


@pytest.fixture
def relay_root(tmp_path):
    """Directory playing the relay's storage root."""
    root = tmp_path / "relay"
    root.mkdir()
    return root


@pytest.fixture
def config(backend, relay_root):
    """Small-size configuration pointed at the fake backend."""
    return UploaderConfig(
        base_url=backend.url,
        chunk_size=CHUNK_SIZE,
        simple_threshold=SIMPLE_THRESHOLD,
        retry=RetryConfig(base_delay=0, cap_delay=0),
        source=SourceConfig(
            storage_root=str(relay_root),
            relay_url=backend.url,
            bot_token='TEST:TOKEN',
            container=None,
        ),
    )


@pytest.fixture
def make_file(relay_root):
    """Factory writing a file of the given size under the relay root."""
    def _make(size: int, name: str = "file_0.mp4") -> Path:
        path = relay_root / "videos" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(make_payload(size))
        return path
    return _make


@pytest.fixture
def payload():
    """Factory for deterministic file content of a given size."""
    return make_payload


@pytest.fixture
def fake_extractor():
    """Factory for extractor doubles."""
    return FakeExtractor
