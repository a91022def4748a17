"""Tests for logging/context.py."""

import logging
import threading

from mediabroker.logging.context import (
    DownloadContextFilter,
    clear_download_context,
    copy_context,
    download_context,
    get_download_context,
    new_request_id,
    set_download_context,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)


class TestDownloadContext:
    """Tests for the download context manager."""

    def test_sets_and_restores(self) -> None:
        assert get_download_context() == (None, None)
        with download_context(url="https://x") as request_id:
            assert get_download_context() == (request_id, "https://x")
        assert get_download_context() == (None, None)

    def test_nested_restores_outer(self) -> None:
        with download_context("outer", "u1"):
            with download_context("inner", "u2"):
                assert get_download_context() == ("inner", "u2")
            assert get_download_context() == ("outer", "u1")

    def test_generated_request_id(self) -> None:
        request_id = new_request_id()
        assert len(request_id) == 8
        int(request_id, 16)

    def test_set_and_clear(self) -> None:
        set_download_context("abc", "https://y")
        try:
            assert get_download_context() == ("abc", "https://y")
        finally:
            clear_download_context()
        assert get_download_context() == (None, None)

    def test_copied_context_reaches_thread(self) -> None:
        seen = []
        with download_context("t1", "https://z"):
            context = copy_context()
        thread = threading.Thread(
            target=context.run, args=(lambda: seen.append(get_download_context()),)
        )
        thread.start()
        thread.join()
        assert seen == [("t1", "https://z")]


class TestDownloadContextFilter:
    def test_injects_fields(self) -> None:
        record = _record()
        with download_context("abcd1234", "https://x"):
            assert DownloadContextFilter().filter(record) is True
        assert record.request_id == "abcd1234"
        assert record.url == "https://x"
        assert record.request_tag == "[abcd1234] "

    def test_empty_outside_download(self) -> None:
        record = _record()
        DownloadContextFilter().filter(record)
        assert record.request_id is None
        assert record.request_tag == ""
