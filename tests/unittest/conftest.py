import asyncio
import contextlib
import os
import threading
import time
import typing
from asyncio import sleep
from pathlib import Path

import pytest
import uvicorn
from curl_cffi.requests.headers import Headers
from fastapi import FastAPI, Form, UploadFile
from httpx import URL
from uvicorn.config import Config
from uvicorn.main import Server

from curl_formdata.attachment import AttachmentResolver
from curl_formdata.requests import AsyncSession, Response

FIXTURES = Path(__file__).parent / "fixtures"

ENVIRONMENT_VARIABLES = {
    "SSL_CERT_FILE",
    "SSL_CERT_DIR",
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "ALL_PROXY",
    "NO_PROXY",
    "SSLKEYLOGFILE",
}


@pytest.fixture(scope="function", autouse=True)
def clean_environ():
    """Keeps os.environ clean for every test without having to mock os.environ"""
    original_environ = os.environ.copy()
    os.environ.clear()
    os.environ.update(
        {
            k: v
            for k, v in original_environ.items()
            if k not in ENVIRONMENT_VARIABLES and k.lower() not in ENVIRONMENT_VARIABLES
        }
    )
    yield
    os.environ.clear()
    os.environ.update(original_environ)


@pytest.fixture
def fixtures() -> Path:
    return FIXTURES


class EchoTransport:
    """In-memory transport, answers every request with its own body and
    Content-Type, like an echo server would."""

    def __init__(self, upload_dir: typing.Optional[str] = None):
        self.upload_dir = upload_dir
        self.sent: list = []
        self.closed = False

    async def send(self, request, headers, body):
        chunks = []
        if body is not None:
            async for chunk in body:
                chunks.append(chunk)
        self.sent.append((request, headers, chunks))
        rsp = Response(request, upload_dir=self.upload_dir)
        rsp.url = request.url
        rsp.headers = Headers(
            {"Content-Type": headers.get("Content-Type", "text/plain")}
        )
        rsp.content = b"".join(chunks)
        return rsp

    async def close(self):
        self.closed = True


class DelayedResolver(AttachmentResolver):
    """Resolver whose reads finish after a per-file delay."""

    def __init__(self, delays: typing.Optional[dict] = None):
        super().__init__()
        self.delays = delays or {}
        self.completed: list[str] = []

    async def read(self, path):
        name = os.path.basename(path)
        await asyncio.sleep(self.delays.get(name, 0))
        data = await super().read(path)
        self.completed.append(name)
        return data


@pytest.fixture
def delayed_resolver():
    return DelayedResolver


@pytest.fixture
def echo_transport(tmp_path):
    return EchoTransport(upload_dir=str(tmp_path))


@pytest.fixture
async def session(echo_transport):
    async with AsyncSession(transport=echo_transport) as s:
        yield s


async def app(scope, receive, send):
    assert scope["type"] == "http"
    if scope["path"].startswith("/echo"):
        await echo(scope, receive, send)
    else:
        await hello_world(scope, receive, send)


async def hello_world(scope, receive, send):
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [[b"content-type", b"text/plain"]],
        }
    )
    await send({"type": "http.response.body", "body": b"Hello, world!"})


async def echo(scope, receive, send):
    """Send the request body back with the request's Content-Type."""
    body = b""
    more_body = True

    while more_body:
        message = await receive()
        body += message.get("body", b"")
        more_body = message.get("more_body", False)

    content_type = b"text/plain"
    for key, value in scope["headers"]:
        if key.lower() == b"content-type":
            content_type = value
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [[b"content-type", content_type]],
        }
    )
    await send({"type": "http.response.body", "body": body})


class TestServer(Server):
    @property
    def url(self) -> URL:
        protocol = "https" if self.config.is_ssl else "http"
        return URL(f"{protocol}://{self.config.host}:{self.config.port}/")

    def install_signal_handlers(self) -> None:
        # Disable the default installation of handlers for signals such as SIGTERM,
        # because it can only be done in the main thread.
        pass

    async def serve(self, sockets=None):
        self.restart_requested = asyncio.Event()

        loop = asyncio.get_event_loop()
        tasks = {
            loop.create_task(super().serve(sockets=sockets)),
            loop.create_task(self.watch_restarts()),
        }
        await asyncio.wait(tasks)

    async def restart(self) -> None:  # pragma: nocover
        self.started = False
        self.restart_requested.set()
        while not self.started:
            await sleep(0.2)

    async def watch_restarts(self):  # pragma: nocover
        while True:
            if self.should_exit:
                return

            try:
                await asyncio.wait_for(self.restart_requested.wait(), timeout=0.1)
            except asyncio.TimeoutError:
                continue

            self.restart_requested.clear()
            await self.shutdown()
            await self.startup()


def serve_in_thread(server: Server):
    thread = threading.Thread(target=server.run)
    thread.start()
    try:
        while not server.started:
            time.sleep(1e-3)
        yield server
    finally:
        server.should_exit = True
        thread.join()


@pytest.fixture(scope="session")
def server():
    config = Config(app=app, lifespan="off", loop="asyncio", port=2951)
    server = TestServer(config=config)
    yield from serve_in_thread(server)


class FileServer(uvicorn.Server):
    def install_signal_handlers(self):
        pass

    @contextlib.contextmanager
    def run_in_thread(self):
        thread = threading.Thread(target=self.run)
        thread.start()
        try:
            while not self.started:
                time.sleep(1e-3)
            yield
        finally:
            self.should_exit = True
            thread.join()

    @property
    def url(self):
        return f"http://{self.config.host}:{self.config.port}"


file_app = FastAPI()


@file_app.post("/file")
def upload_single_file(document: UploadFile, name: typing.Optional[str] = Form(None)):
    content = document.file.read()
    return {
        "name": name,
        "filename": document.filename,
        "content_type": document.content_type,
        "size": len(content),
        "content": content.decode("utf-8", errors="replace"),
    }


@file_app.post("/files")
def upload_multi_files(images: typing.List[UploadFile]):
    files = []
    for image in images:
        content = image.file.read()
        files.append(
            {
                "filename": image.filename,
                "content_type": image.content_type,
                "size": len(content),
            }
        )

    return {"files": files}


@pytest.fixture(scope="session")
def file_server():
    config = uvicorn.Config(file_app, host="127.0.0.1", port=2952, log_level="info")
    server = FileServer(config=config)
    with server.run_in_thread():
        yield server

