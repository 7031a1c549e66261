import os

import pytest

from curl_formdata import AttachmentError, Part, requests
from curl_formdata.requests import AsyncSession


async def test_upload_single_file(file_server, fixtures):
    async with AsyncSession() as s:
        r = await s.post(
            file_server.url + "/file",
            fields={"name": "tobi"},
            files={"document": fixtures / "user.html"},
        )
    data = r.json()
    assert data["name"] == "tobi"
    assert data["filename"] == "document"
    assert data["content_type"] == "text/html"
    assert data["size"] == os.path.getsize(fixtures / "user.html")
    assert data["content"] == "<h1>name</h1>"


async def test_upload_built_request(file_server, fixtures):
    async with AsyncSession() as s:
        req = s.build("POST", file_server.url + "/file")
        req.attach(fixtures / "user.txt", "document").field("name", "loki")
        r = await req.end()
    data = r.json()
    assert data["name"] == "loki"
    assert data["content_type"] == "text/plain"
    assert data["content"] == "Tobi"


async def test_upload_multiple_files(file_server, fixtures):
    async with AsyncSession() as s:
        r = await s.post(
            file_server.url + "/files",
            files=[("images", fixtures / "pixel.png"), ("images", fixtures / "pixel.png")],
        )
    data = r.json()
    assert len(data["files"]) == 2
    for file in data["files"]:
        assert file["filename"] == "images"
        assert file["content_type"] == "image/png"
        assert file["size"] == os.path.getsize(fixtures / "pixel.png")


async def test_upload_parts(file_server, fixtures):
    content = (fixtures / "pixel.png").read_bytes()
    parts = [
        Part().set_name("images").set_filename("one.png").write(content),
        Part().set_name("images").set_filename("two.png").write(content[:10]),
    ]
    async with AsyncSession() as s:
        r = await s.post(file_server.url + "/files", parts=parts)
    data = r.json()
    assert [f["filename"] for f in data["files"]] == ["one.png", "two.png"]
    assert [f["size"] for f in data["files"]] == [len(content), 10]
    assert data["files"][0]["content_type"] == "image/png"


async def test_upload_missing_file(file_server, fixtures):
    async with AsyncSession() as s:
        with pytest.raises(AttachmentError) as exc:
            await s.post(
                file_server.url + "/file",
                files={"document": fixtures / "missing.html"},
            )
    assert exc.value.path == fixtures / "missing.html"


async def test_echo_round_trip(server, fixtures, tmp_path):
    async with AsyncSession(upload_dir=str(tmp_path)) as s:
        r = await s.post(
            str(server.url) + "echo",
            fields={"user[name]": "tobi"},
            files=[fixtures / "user.json"],
        )
    assert r.status_code == 200
    assert r.content_type == "multipart/form-data"
    assert r.body == {"user[name]": "tobi"}
    file = r.files["user.json"]
    assert file.type == "application/json"
    assert file.read() == b'{"name":"tobi"}'
    assert os.path.dirname(file.path) == str(tmp_path)


def test_sync_post(file_server, fixtures):
    r = requests.post(
        file_server.url + "/file",
        fields={"name": "tobi"},
        files={"document": fixtures / "user.txt"},
    )
    r.raise_for_status()
    assert r.json()["content"] == "Tobi"


def test_sync_get(server):
    r = requests.get(str(server.url))
    assert r.text == "Hello, world!"
    assert r.body == {}
