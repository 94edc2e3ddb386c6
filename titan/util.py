"""Client id allocation and trace id generation."""

from __future__ import annotations

import itertools
import threading
import uuid
from typing import Callable


def client_id_generator() -> Callable[[], int]:
    """Return a thread-safe allocator of client ids.

    The counter starts at 1, so the first id handed out is 2.
    """
    counter = itertools.count(2)
    lock = threading.Lock()

    def next_id() -> int:
        with lock:
            return next(counter)

    return next_id


def generate_trace_id() -> str:
    """Return a fresh random trace id for one request."""
    return str(uuid.uuid4())