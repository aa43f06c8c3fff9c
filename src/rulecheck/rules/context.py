# SPDX-License-Identifier: MIT
"""Evaluation context — the cancellable execution context handed to each predicate."""

from __future__ import annotations

import subprocess
import threading
import time
from collections.abc import Sequence

# How often a running sub-process is checked for cancellation
_POLL_INTERVAL = 0.05


class EvaluationContext:
    """Deadline and cancellation state for a single predicate invocation.

    Predicates that do external work should call ``raise_if_cancelled()``
    between steps, or use ``run()`` for sub-processes, so that a timed-out or
    aborted evaluation actually stops.
    """

    def __init__(self, rule_id: str, *, timeout: float | None = None) -> None:
        self.rule_id = rule_id
        self.timeout = timeout
        self.deadline: float | None = None
        self._cancelled = threading.Event()

    def start(self) -> None:
        """Start the clock. Called by the analyzer when evaluation begins."""
        if self.timeout is not None:
            self.deadline = time.monotonic() + self.timeout

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def raise_if_cancelled(self) -> None:
        if self.cancelled or self.expired():
            msg = f"Evaluation of {self.rule_id} cancelled"
            raise TimeoutError(msg)

    def run(
        self,
        argv: Sequence[str],
        *,
        input: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a sub-process bounded by this context.

        The process is killed as soon as the context is cancelled or the
        deadline passes, and ``TimeoutError`` is raised.
        """
        self.raise_if_cancelled()
        proc = subprocess.Popen(
            list(argv),
            stdin=subprocess.PIPE if input is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        pending_input = input
        while True:
            try:
                stdout, stderr = proc.communicate(input=pending_input, timeout=_POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                # Input already handed over; retries must not resend it
                pending_input = None
                if self.cancelled or self.expired():
                    proc.kill()
                    proc.communicate()
                    msg = f"Sub-process for {self.rule_id} killed: {argv[0]}"
                    raise TimeoutError(msg) from None
        return subprocess.CompletedProcess(list(argv), proc.returncode, stdout, stderr)
