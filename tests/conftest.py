from __future__ import annotations

import json
import os
import sys
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import httpx  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.config import get_settings  # noqa: E402

BOT_TOKEN = "123456:test-bot-token"
UPLOAD_SESSION_URL = "https://www.googleapis.com/upload/drive/v3/files?uploadType=resumable&upload_id=session-1"

os.environ["TELEGRAM_BOT_TOKEN"] = BOT_TOKEN
os.environ["GCP_PROJECT_ID"] = "test-project"
os.environ["GOOGLE_CLIENT_ID"] = "client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "client-secret"
os.environ["GOOGLE_REDIRECT_URL"] = "http://localhost/oauth/callback"
get_settings.cache_clear()


class DownloadStream(httpx.AsyncByteStream):
    """Download body that records whether it was closed and can drop mid-transfer."""

    def __init__(self, content: bytes, *, interrupt: bool = False) -> None:
        self._content = content
        self._interrupt = interrupt
        self.closed = False

    async def __aiter__(self):
        half = len(self._content) // 2
        yield self._content[:half]
        if self._interrupt:
            raise httpx.ReadError("connection reset by peer")
        yield self._content[half:]

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class FakeUpstream:
    """In-process stand-in for Telegram, Google OAuth and Google Drive."""

    files: dict[str, tuple[str, bytes]] = field(default_factory=dict)
    download_status: int = 200
    download_interrupted: bool = False
    token_status: int = 200
    token_response: dict[str, Any] = field(
        default_factory=lambda: {
            "access_token": "access-token",
            "refresh_token": "refresh-token",
            "token_type": "Bearer",
            "expires_in": 3600,
        }
    )
    drive_error: tuple[int, dict[str, Any]] | None = None
    requests: list[httpx.Request] = field(default_factory=list)
    sent_messages: list[dict[str, Any]] = field(default_factory=list)
    get_file_calls: list[str] = field(default_factory=list)
    downloads: list[str] = field(default_factory=list)
    download_streams: list["DownloadStream"] = field(default_factory=list)
    token_requests: list[dict[str, str]] = field(default_factory=list)
    drive_sessions: list[dict[str, Any]] = field(default_factory=list)
    drive_uploads: list[dict[str, Any]] = field(default_factory=list)

    def add_file(self, file_id: str, content: bytes, file_path: str | None = None) -> None:
        self.files[file_id] = (file_path or f"documents/{file_id}", content)

    @property
    def replies(self) -> list[str]:
        return [message["text"] for message in self.sent_messages]

    @property
    def google_requests(self) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.host == "www.googleapis.com"]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        host = request.url.host
        path = request.url.path

        if host == "api.telegram.org":
            if path.startswith(f"/file/bot{BOT_TOKEN}/"):
                return self._download(path.removeprefix(f"/file/bot{BOT_TOKEN}/"))
            method = path.rsplit("/", 1)[-1]
            payload = json.loads(request.content)
            if method == "getFile":
                return self._get_file(payload["file_id"])
            if method == "sendMessage":
                self.sent_messages.append(payload)
                return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})
        if host == "oauth2.googleapis.com":
            form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
            self.token_requests.append(form)
            if self.token_status >= 400:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json=self.token_response)
        if host == "www.googleapis.com":
            return self._drive(request)
        return httpx.Response(404)

    def _get_file(self, file_id: str) -> httpx.Response:
        self.get_file_calls.append(file_id)
        if file_id not in self.files:
            return httpx.Response(
                400, json={"ok": False, "error_code": 400, "description": "Bad Request: invalid file_id"}
            )
        file_path, content = self.files[file_id]
        return httpx.Response(
            200,
            json={
                "ok": True,
                "result": {"file_id": file_id, "file_path": file_path, "file_size": len(content)},
            },
        )

    def _download(self, file_path: str) -> httpx.Response:
        self.downloads.append(file_path)
        if self.download_status >= 400:
            return httpx.Response(self.download_status)
        for stored_path, content in self.files.values():
            if stored_path == file_path:
                stream = DownloadStream(content, interrupt=self.download_interrupted)
                self.download_streams.append(stream)
                return httpx.Response(
                    200, headers={"Content-Length": str(len(content))}, stream=stream
                )
        return httpx.Response(404)

    def _drive(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.drive_sessions.append(
                {
                    "metadata": json.loads(request.content),
                    "params": dict(request.url.params),
                    "authorization": request.headers.get("Authorization"),
                }
            )
            if self.drive_error is not None:
                status_code, body = self.drive_error
                return httpx.Response(status_code, json=body)
            return httpx.Response(200, headers={"Location": UPLOAD_SESSION_URL})
        if request.method == "PUT":
            name = self.drive_sessions[-1]["metadata"]["name"]
            self.drive_uploads.append(
                {
                    "name": name,
                    "content": request.content,
                    "authorization": request.headers.get("Authorization"),
                }
            )
            return httpx.Response(200, json={"id": "drive-file-1", "name": name})
        return httpx.Response(405)


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
def settings(tmp_path):
    return get_settings().model_copy(
        update={"database_url": f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"}
    )


@pytest.fixture()
async def app(settings, upstream):
    from app.main import create_app
    from app.models import Base

    application = create_app(settings, transport=httpx.MockTransport(upstream.handler))
    engine = application.state.context.engine
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    yield application
    await engine.dispose()


@pytest.fixture()
async def client(app) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def make_update() -> Callable[..., dict[str, Any]]:
    counter = {"value": 0}

    def _make_update(*, user_id: int = 42, text: str | None = None, **fields: Any) -> dict[str, Any]:
        counter["value"] += 1
        message: dict[str, Any] = {
            "message_id": 100 + counter["value"],
            "date": 1700000000,
            "chat": {"id": user_id, "type": "private"},
            "from": {"id": user_id, "is_bot": False, "first_name": "Test"},
        }
        if text is not None:
            message["text"] = text
            if text.startswith("/"):
                command = text.split()[0]
                message["entities"] = [{"type": "bot_command", "offset": 0, "length": len(command)}]
        message.update(fields)
        return {"update_id": counter["value"], "message": message}

    return _make_update


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"
