import logging

import pytest


@pytest.fixture(autouse=True)
def capture_taskledger_logs(caplog):
    """Route every ``taskledger.*`` record to caplog at DEBUG.

    Service and launcher loggers are created with ``propagate=False``; the parent logger is forced to propagate
    for the duration of the test and restored afterwards.
    """
    caplog.set_level(logging.DEBUG)
    root = logging.getLogger()
    parent = logging.getLogger("taskledger")
    saved = root.level, parent.propagate
    root.setLevel(logging.DEBUG)
    parent.propagate = True

    yield

    root.setLevel(saved[0])
    parent.propagate = saved[1]
