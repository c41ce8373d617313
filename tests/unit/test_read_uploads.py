"""
Unit tests for reading multipart attachment parts.
"""

import io

from starlette.datastructures import UploadFile

from reportdesk.routers.occurrences import read_uploads


def make_part(data: bytes, filename: str = "photo.jpg") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename)


async def test_reads_whole_part_within_limit():
    files = await read_uploads([make_part(b"abc")], max_files=4, max_bytes=10)

    assert len(files) == 1
    assert files[0].data == b"abc"
    assert files[0].filename == "photo.jpg"


async def test_oversized_part_is_truncated_past_the_limit():
    files = await read_uploads([make_part(b"x" * 5000)], max_files=4, max_bytes=1024)

    assert files[0].size == 1025


async def test_stops_after_one_part_over_the_count():
    parts = [make_part(b"data", f"{i}.jpg") for i in range(10)]

    files = await read_uploads(parts, max_files=4, max_bytes=1024)

    assert len(files) == 5
    assert all(part.file.tell() == 0 for part in parts[5:])


async def test_empty_file_inputs_are_skipped():
    files = await read_uploads([make_part(b"", filename="")], max_files=4, max_bytes=1024)

    assert files == []


async def test_no_parts():
    assert await read_uploads(None, max_files=4, max_bytes=1024) == []
