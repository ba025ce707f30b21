from __future__ import annotations

import asyncio

import pytest

from core.errors import PayloadTooLargeError
from integrations.file_store import StaticFileStore, safe_filename
from integrations.message_log import SentMessage, SentMessageLog


def test_safe_filename_strips_paths_and_odd_characters():
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("my report (final).pdf") == "my_report_final_.pdf"
    assert safe_filename("") == "upload"


def test_save_writes_unique_files(tmp_path):
    store = StaticFileStore(tmp_path, url_prefix="/uploads/")

    async def _run():
        first = await store.save("doc.pdf", b"one")
        second = await store.save("doc.pdf", b"two")
        return first, second

    first, second = asyncio.run(_run())
    assert first.url != second.url
    assert first.url.startswith("/uploads/")
    assert first.filename == second.filename == "doc.pdf"
    assert first.path.read_bytes() == b"one"
    assert second.path.read_bytes() == b"two"


def test_sent_message_log_is_bounded():
    log = SentMessageLog(max_entries=2)
    for n in range(3):
        log.record(SentMessage(sid=f"SM{n}", from_number="+1", to="+2", body=str(n)))

    assert [entry["sid"] for entry in log.entries()] == ["SM1", "SM2"]


def test_save_rejects_content_over_the_cap(tmp_path):
    store = StaticFileStore(tmp_path, max_bytes=3)

    with pytest.raises(PayloadTooLargeError):
        asyncio.run(store.save("big.bin", b"abcd"))

    assert list(tmp_path.iterdir()) == []
    assert asyncio.run(store.save("ok.bin", b"abc")).path.read_bytes() == b"abc"
