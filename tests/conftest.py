"""Shared test fixtures for mediabroker."""

import os
import shutil
import tempfile
import threading
import time
from pathlib import Path

import pytest

from mediabroker.catalog import Catalog, load_default_catalog
from mediabroker.config import BrokerConfig, SupervisorConfig
from mediabroker.core.context import Context

_PROC_SELF = Path("/proc/self")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture(scope="session")
def catalog() -> Catalog:
    """The bundled format catalog."""
    return load_default_catalog()


@pytest.fixture
def ctx() -> Context:
    """A fresh cancellation context."""
    return Context()


@pytest.fixture
def fast_config() -> BrokerConfig:
    """Config with short supervision timeouts for tests."""
    return BrokerConfig(
        supervisor=SupervisorConfig(
            stop_grace_seconds=1.0,
            drain_timeout_seconds=5.0,
            chunk_size=4096,
        )
    )


def _child_pids() -> set[int]:
    children: set[int] = set()
    for task in (_PROC_SELF / "task").iterdir():
        try:
            text = (task / "children").read_text()
        except OSError:
            continue
        children.update(int(pid) for pid in text.split())
    return children


def _open_fds() -> set[int]:
    return {int(fd) for fd in os.listdir(_PROC_SELF / "fd")}


def _helper_threads() -> set[threading.Thread]:
    return {t for t in threading.enumerate() if t is not threading.main_thread()}


@pytest.fixture
def leak_check():
    """Fail the test if it leaves threads, child processes or fds behind.

    Supervised processes tear down asynchronously, so the check polls for a
    few seconds before failing.
    """
    if not (_PROC_SELF / "task").exists():
        pytest.skip("leak check requires /proc")

    threads_before = _helper_threads()
    children_before = _child_pids()
    fds_before = _open_fds()

    yield

    deadline = time.monotonic() + 5.0
    while True:
        threads = {t for t in _helper_threads() - threads_before if t.is_alive()}
        children = _child_pids() - children_before
        fds = _open_fds() - fds_before
        if not threads and not children and not fds:
            return
        if time.monotonic() > deadline:
            break
        time.sleep(0.05)

    details = []
    if threads:
        details.append(f"threads: {sorted(t.name for t in threads)}")
    if children:
        details.append(f"child processes: {sorted(children)}")
    if fds:
        targets = []
        for fd in sorted(fds):
            try:
                targets.append(f"{fd}->{os.readlink(_PROC_SELF / 'fd' / str(fd))}")
            except OSError:
                targets.append(str(fd))
        details.append(f"file descriptors: {targets}")
    pytest.fail("Resources leaked: " + "; ".join(details))
