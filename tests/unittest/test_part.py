import pytest

from curl_formdata import InvalidStateError, Part
from curl_formdata.part import Literal, PendingFile, ResolvedFile


def test_set_header_and_write():
    part = Part()
    part.set_header("Content-Type", "image/png")
    part.set_header("Content-Disposition", 'attachment; filename="another.png"')
    part.write("random")
    part.write(b"thing")
    part.write(bytearray(b"here"))
    assert part.content == Literal(b"randomthinghere")

    finalized = part.finalize()
    assert finalized.content == b"randomthinghere"
    assert finalized.filename == "another.png"
    assert finalized.name == "another.png"
    assert finalized.media_type == "image/png"


def test_headers_frozen_after_write():
    part = Part().set_name("name")
    part.write("tobi")
    with pytest.raises(InvalidStateError):
        part.set_header("Content-Type", "text/plain")
    with pytest.raises(InvalidStateError):
        part.set_name("other")
    with pytest.raises(InvalidStateError):
        part.set_filename("x.txt")
    # more content is fine until finalized
    part.write(" the ferret")
    assert part.finalize().content == b"tobi the ferret"


def test_finalized_part_rejects_changes():
    part = Part().set_name("a")
    finalized = part.finalize()
    with pytest.raises(InvalidStateError):
        part.set_header("X-Foo", "bar")
    with pytest.raises(InvalidStateError):
        part.write("late")
    assert part.finalize() is finalized


def test_set_name():
    part = Part().set_name("user[name]")
    assert part.headers["content-disposition"] == 'form-data; name="user[name]"'
    assert part.field_name == "user[name]"
    assert part.file_name is None


def test_set_name_keeps_filename():
    part = Part().set_header("Content-Disposition", 'attachment; filename="image.png"')
    part.set_name("image")
    assert (
        part.headers["Content-Disposition"]
        == 'form-data; name="image"; filename="image.png"'
    )


def test_set_filename_uses_base_name_and_infers_type():
    part = Part().set_filename("path/to/my.txt")
    assert part.headers["Content-Disposition"] == 'attachment; filename="my.txt"'
    assert part.headers["Content-Type"] == "text/plain"
    assert part.file_name == "my.txt"
    assert part.field_name == "my.txt"


def test_set_filename_keeps_explicit_type():
    part = Part().set_header("Content-Type", "application/x-custom")
    part.set_name("doc").set_filename("notes.txt")
    assert part.headers["Content-Type"] == "application/x-custom"
    assert (
        part.headers["Content-Disposition"]
        == 'form-data; name="doc"; filename="notes.txt"'
    )


def test_set_filename_unknown_extension():
    part = Part().set_filename("data.unknownext")
    assert part.media_type == "application/octet-stream"


def test_finalize_synthesizes_defaults():
    part = Part()
    part.write(b"\x00\x01")
    finalized = part.finalize()
    assert finalized.headers == (
        ("Content-Disposition", "form-data"),
        ("Content-Type", "application/octet-stream"),
    )


def test_finalize_field_has_no_content_type():
    finalized = Part().set_name("species").write("ferret").finalize()
    assert finalized.headers == (("Content-Disposition", 'form-data; name="species"'),)


def test_header_block_order_and_framing():
    part = Part()
    part.set_header("X-Trace", "1")
    part.set_header("Content-Type", "text/plain")
    part.set_name("name")
    part.write("Tobi")
    finalized = part.finalize()
    assert finalized.header_block() == (
        b'Content-Disposition: form-data; name="name"\r\n'
        b"Content-Type: text/plain\r\n"
        b"X-Trace: 1\r\n"
        b"\r\n"
    )
    assert finalized.encode() == finalized.header_block() + b"Tobi"


def test_file_part_lifecycle(tmp_path):
    path = tmp_path / "user.json"
    part = Part.for_file(path, "profile")
    assert isinstance(part.content, PendingFile)
    assert part.pending
    assert part.media_type == "application/json"
    with pytest.raises(InvalidStateError):
        part.finalize()
    with pytest.raises(InvalidStateError):
        part.write("nope")

    part.bind(b'{"name":"tobi"}')
    assert isinstance(part.content, ResolvedFile)
    assert part.content.size == 15
    with pytest.raises(InvalidStateError):
        part.write("nope")
    with pytest.raises(InvalidStateError):
        part.bind(b"twice")

    finalized = part.finalize()
    assert finalized.headers == (
        ("Content-Disposition", 'form-data; name="profile"; filename="profile"'),
        ("Content-Type", "application/json"),
    )
    assert finalized.content == b'{"name":"tobi"}'


def test_file_part_default_name(tmp_path):
    part = Part.for_file(tmp_path / "user.html")
    assert part.field_name == "user.html"
    assert part.file_name == "user.html"
    assert part.media_type == "text/html"
