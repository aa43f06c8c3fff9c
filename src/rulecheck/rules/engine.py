# SPDX-License-Identifier: MIT
"""Analyzer — evaluates every applicable rule of a catalog against one artifact."""

from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from dataclasses import dataclass

from rulecheck.rules.base import Artifact, CheckResult, Evidence, Location, Outcome, Rule, Status
from rulecheck.rules.catalog import RuleCatalog
from rulecheck.rules.context import EvaluationContext

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_CONCURRENCY = 8

# Upper bound on how long the scheduler sleeps before re-checking run cancellation
_CANCEL_POLL = 0.05

TIMEOUT_REASON = "timeout"


@dataclass(frozen=True)
class AnalysisResult:
    """Ordered outcomes of one run plus what is needed to judge coverage."""

    outcomes: tuple[Outcome, ...]
    applicable_total: int
    incomplete: bool = False


def evaluation_order(catalog: RuleCatalog) -> list[Rule]:
    """Rules sorted by (category, id); independent of catalog insertion order."""
    return sorted(catalog, key=lambda r: (r.category, r.id))


def _to_outcome(rule_id: str, result: object, artifact: Artifact) -> Outcome:
    if isinstance(result, bool):
        if result:
            return Outcome(rule_id, Status.PASSED)
        return Outcome(rule_id, Status.FAILED, evidence=Evidence("", Location(artifact.path)))
    if not isinstance(result, CheckResult):
        return Outcome(
            rule_id,
            Status.INDETERMINATE,
            reason=f"predicate error: unexpected result type {type(result).__name__}",
        )
    if result.status is Status.FAILED:
        evidence = result.evidence or Evidence("", Location(artifact.path))
        return Outcome(rule_id, Status.FAILED, evidence=evidence)
    if result.status is Status.INDETERMINATE:
        return Outcome(rule_id, Status.INDETERMINATE, reason="predicate reported indeterminate")
    return Outcome(rule_id, result.status)


def evaluate_rule(rule: Rule, artifact: Artifact, ctx: EvaluationContext) -> Outcome:
    """Invoke one predicate in isolation. Never raises for predicate failures."""
    try:
        result = rule.predicate(artifact, ctx)
    except TimeoutError:
        return Outcome(rule.id, Status.INDETERMINATE, reason=TIMEOUT_REASON)
    except Exception as exc:  # one bad rule must not abort the run
        message = str(exc) or type(exc).__name__
        return Outcome(rule.id, Status.INDETERMINATE, reason=f"predicate error: {message}")
    return _to_outcome(rule.id, result, artifact)


class _Evaluation:
    """A running rule: its context, and the worker body that reports back."""

    def __init__(self, rule: Rule, artifact: Artifact, timeout: float | None) -> None:
        self.rule = rule
        self.artifact = artifact
        self.ctx = EvaluationContext(rule.id, timeout=timeout)

    def __call__(self, results: queue.Queue[tuple[str, Outcome]]) -> None:
        outcome = Outcome(self.rule.id, Status.INDETERMINATE, reason="predicate error: aborted")
        try:
            outcome = evaluate_rule(self.rule, self.artifact, self.ctx)
        finally:
            results.put((self.rule.id, outcome))


class Analyzer:
    """Evaluates rules on a bounded pool of worker threads.

    Workers share no state; each hands its Outcome back through a queue and
    the ordered list is assembled only once every worker has reported, so
    completion order never leaks into the result.

    A worker that overruns its budget is cancelled through its context and
    abandoned; its slot is released immediately so a predicate that ignores
    cancellation cannot starve the rules queued behind it.
    """

    def __init__(self, max_concurrency: int = DEFAULT_MAX_CONCURRENCY) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency

    def analyze(
        self,
        artifact: Artifact,
        catalog: RuleCatalog,
        timeout_per_rule: float | None = DEFAULT_TIMEOUT,
        *,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisResult:
        """Evaluate *catalog* against *artifact*.

        Args:
            artifact: The artifact to check.
            catalog: Rules to evaluate.
            timeout_per_rule: Seconds each predicate may run. None = unbounded.
            cancel_event: Set it to abort the run; outcomes produced so far
                are kept and the result is marked incomplete.
        """
        ordered = evaluation_order(catalog)
        settled: dict[str, Outcome] = {}
        jobs: list[_Evaluation] = []
        for rule in ordered:
            try:
                applies = rule.applies_to(artifact.domain_tag)
            except Exception as exc:  # recorded as Indeterminate
                settled[rule.id] = Outcome(
                    rule.id, Status.INDETERMINATE, reason=f"applicability error: {exc}"
                )
                continue
            if applies:
                jobs.append(_Evaluation(rule, artifact, timeout_per_rule))
            else:
                settled[rule.id] = Outcome(rule.id, Status.NOT_APPLICABLE)

        evaluated, incomplete = self._run_pool(jobs, cancel_event)
        settled.update(evaluated)
        # Rules a cancelled run never reached stay in the total
        applicable_total = len(ordered) - sum(
            1 for o in settled.values() if o.status is Status.NOT_APPLICABLE
        )

        outcomes = tuple(settled[r.id] for r in ordered if r.id in settled)
        for outcome in outcomes:
            if outcome.status is Status.INDETERMINATE:
                log.warning("Rule %s indeterminate: %s", outcome.rule_id, outcome.reason)
            else:
                log.debug("Rule %s: %s", outcome.rule_id, outcome.status.value)
        log.info(
            "Analyzed %s: %d rules, %d applicable%s",
            artifact.artifact_id,
            len(ordered),
            applicable_total,
            " (cancelled)" if incomplete else "",
        )
        return AnalysisResult(
            outcomes=outcomes,
            applicable_total=applicable_total,
            incomplete=incomplete,
        )

    def _run_pool(
        self,
        jobs: list[_Evaluation],
        cancel_event: threading.Event | None,
    ) -> tuple[dict[str, Outcome], bool]:
        """Run *jobs* with at most ``min(len(jobs), max_concurrency)`` in flight.

        Pending jobs wait in ``waiting``, evaluating ones sit in ``running``;
        every job leaves ``running`` with exactly one terminal outcome.
        """
        results: queue.Queue[tuple[str, Outcome]] = queue.Queue()
        waiting = deque(jobs)
        running: dict[str, _Evaluation] = {}
        outcomes: dict[str, Outcome] = {}
        pool_size = min(len(jobs), self.max_concurrency)

        while waiting or running:
            if cancel_event is not None and cancel_event.is_set():
                # Outcomes already queued by finished workers are kept
                self._settle(results, running, outcomes, block=False)
                for job in running.values():
                    job.ctx.cancel()
                log.warning(
                    "Run cancelled with %d rules in flight and %d not started",
                    len(running),
                    len(waiting),
                )
                return outcomes, True

            while waiting and len(running) < pool_size:
                job = waiting.popleft()
                job.ctx.start()
                running[job.rule.id] = job
                threading.Thread(
                    target=job,
                    args=(results,),
                    name=f"rulecheck-{job.rule.id}",
                    daemon=True,
                ).start()

            self._settle(
                results, running, outcomes, timeout=self._next_wakeup(running, cancel_event)
            )

            for rule_id, job in list(running.items()):
                if job.ctx.expired():
                    job.ctx.cancel()
                    del running[rule_id]
                    outcomes[rule_id] = Outcome(rule_id, Status.INDETERMINATE, reason=TIMEOUT_REASON)

        return outcomes, False

    @staticmethod
    def _settle(
        results: queue.Queue[tuple[str, Outcome]],
        running: dict[str, _Evaluation],
        outcomes: dict[str, Outcome],
        *,
        block: bool = True,
        timeout: float | None = None,
    ) -> None:
        """Move every queued report of a running job into *outcomes*."""
        try:
            item = results.get(block=block, timeout=timeout)
            while True:
                rule_id, outcome = item
                # Late reports from abandoned (timed-out) workers are dropped
                if rule_id in running:
                    del running[rule_id]
                    outcomes[rule_id] = outcome
                item = results.get_nowait()
        except queue.Empty:
            pass

    @staticmethod
    def _next_wakeup(
        running: dict[str, _Evaluation],
        cancel_event: threading.Event | None,
    ) -> float | None:
        remaining = [r for r in (job.ctx.remaining() for job in running.values()) if r is not None]
        wakeup = min(remaining) if remaining else None
        if cancel_event is not None:
            wakeup = _CANCEL_POLL if wakeup is None else min(wakeup, _CANCEL_POLL)
        return wakeup
