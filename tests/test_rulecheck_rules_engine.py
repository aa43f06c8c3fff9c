# SPDX-License-Identifier: MIT
"""Tests for rulecheck.rules.engine — Analyzer ordering, isolation, timeouts, cancellation."""

from __future__ import annotations

import threading
import time

import pytest

from rulecheck.errors import PredicateError
from rulecheck.rules.base import (
    Artifact,
    CheckResult,
    DomainTags,
    Evidence,
    Level,
    Location,
    Outcome,
    Rule,
    Status,
)
from rulecheck.rules.catalog import RuleCatalog
from rulecheck.rules.context import EvaluationContext
from rulecheck.rules.engine import (
    TIMEOUT_REASON,
    Analyzer,
    evaluate_rule,
    evaluation_order,
)

_ARTIFACT = Artifact(content="<DIV>Hi</DIV>", domain_tag="html", path="index.html")


def _passes(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
    return CheckResult.passed()


def _fails(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
    return CheckResult.failed(Evidence("<DIV>", Location(artifact.path, 1, 1)))


def _raises(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
    raise ValueError("boom")


def _cooperative_spin(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
    while True:
        ctx.raise_if_cancelled()
        time.sleep(0.01)


def _rule(
    rule_id: str,
    predicate=_passes,
    *,
    category: str = "Markup",
    tags: tuple[str, ...] = ("html",),
    level: Level = Level.MUST,
) -> Rule:
    return Rule(
        id=rule_id,
        level=level,
        category=category,
        description=f"rule {rule_id}",
        predicate=predicate,
        applicability=DomainTags(tags),
    )


def _statuses(outcomes: tuple[Outcome, ...]) -> dict[str, Status]:
    return {o.rule_id: o.status for o in outcomes}


class TestEvaluationOrder:
    def test_sorted_by_category_then_id(self) -> None:
        catalog = RuleCatalog.from_rules(
            [_rule("b", category="Z"), _rule("c", category="A"), _rule("a", category="Z")]
        )
        assert [r.id for r in evaluation_order(catalog)] == ["c", "a", "b"]

    def test_independent_of_insertion_order(self) -> None:
        rules = [_rule(f"r{i}", category=f"c{i % 3}") for i in range(9)]
        forward = evaluation_order(RuleCatalog.from_rules(rules))
        backward = evaluation_order(RuleCatalog.from_rules(reversed(rules)))
        assert [r.id for r in forward] == [r.id for r in backward]


class TestEvaluateRule:
    def test_bool_true(self) -> None:
        outcome = evaluate_rule(_rule("r", lambda a, c: True), _ARTIFACT, EvaluationContext("r"))
        assert outcome.status is Status.PASSED

    def test_bool_false_gets_empty_evidence(self) -> None:
        outcome = evaluate_rule(_rule("r", lambda a, c: False), _ARTIFACT, EvaluationContext("r"))
        assert outcome.status is Status.FAILED
        assert outcome.evidence == Evidence("", Location("index.html"))

    def test_exception_becomes_indeterminate(self) -> None:
        outcome = evaluate_rule(_rule("r", _raises), _ARTIFACT, EvaluationContext("r"))
        assert outcome.status is Status.INDETERMINATE
        assert outcome.reason == "predicate error: boom"

    def test_predicate_error(self) -> None:
        def _unsure(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
            raise PredicateError("parser gave up")

        outcome = evaluate_rule(_rule("r", _unsure), _ARTIFACT, EvaluationContext("r"))
        assert outcome.status is Status.INDETERMINATE
        assert outcome.reason == "predicate error: parser gave up"

    def test_exception_without_message(self) -> None:
        def _bare(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
            raise RuntimeError

        outcome = evaluate_rule(_rule("r", _bare), _ARTIFACT, EvaluationContext("r"))
        assert outcome.reason == "predicate error: RuntimeError"

    def test_timeout_error_is_timeout(self) -> None:
        def _late(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
            raise TimeoutError("slow")

        outcome = evaluate_rule(_rule("r", _late), _ARTIFACT, EvaluationContext("r"))
        assert outcome.reason == TIMEOUT_REASON

    def test_unexpected_result_type(self) -> None:
        outcome = evaluate_rule(_rule("r", lambda a, c: "yes"), _ARTIFACT, EvaluationContext("r"))
        assert outcome.status is Status.INDETERMINATE
        assert outcome.reason == "predicate error: unexpected result type str"

    def test_predicate_not_applicable(self) -> None:
        rule = _rule("r", lambda a, c: CheckResult.not_applicable())
        outcome = evaluate_rule(rule, _ARTIFACT, EvaluationContext("r"))
        assert outcome.status is Status.NOT_APPLICABLE


class TestAnalyzer:
    def test_one_outcome_per_rule_in_order(self) -> None:
        catalog = RuleCatalog.from_rules(
            [
                _rule("z-fail", _fails, category="B"),
                _rule("sql-only", tags=("sql",), category="A"),
                _rule("a-pass", category="B"),
            ]
        )
        result = Analyzer().analyze(_ARTIFACT, catalog)
        assert [o.rule_id for o in result.outcomes] == ["sql-only", "a-pass", "z-fail"]
        assert _statuses(result.outcomes) == {
            "sql-only": Status.NOT_APPLICABLE,
            "a-pass": Status.PASSED,
            "z-fail": Status.FAILED,
        }
        assert result.applicable_total == 2
        assert result.incomplete is False

    def test_throwing_predicate_does_not_abort_run(self) -> None:
        catalog = RuleCatalog.from_rules([_rule("bad", _raises), _rule("good")])
        result = Analyzer().analyze(_ARTIFACT, catalog)
        assert _statuses(result.outcomes) == {"bad": Status.INDETERMINATE, "good": Status.PASSED}

    def test_applicability_error(self) -> None:
        def _broken(domain_tag: str) -> bool:
            raise KeyError(domain_tag)

        rule = Rule(
            id="broken",
            level=Level.MAY,
            category="X",
            description="d",
            predicate=_passes,
            applicability=_broken,
        )
        result = Analyzer().analyze(_ARTIFACT, RuleCatalog.from_rules([rule]))
        (outcome,) = result.outcomes
        assert outcome.status is Status.INDETERMINATE
        assert outcome.reason is not None
        assert outcome.reason.startswith("applicability error:")
        assert result.applicable_total == 1

    def test_dynamic_not_applicable_leaves_coverage_total(self) -> None:
        catalog = RuleCatalog.from_rules(
            [_rule("na", lambda a, c: CheckResult.not_applicable()), _rule("ok")]
        )
        result = Analyzer().analyze(_ARTIFACT, catalog)
        assert result.applicable_total == 1

    def test_cooperative_timeout(self) -> None:
        catalog = RuleCatalog.from_rules([_rule("spin", _cooperative_spin), _rule("ok")])
        result = Analyzer().analyze(_ARTIFACT, catalog, timeout_per_rule=0.2)
        outcomes = {o.rule_id: o for o in result.outcomes}
        assert outcomes["spin"].status is Status.INDETERMINATE
        assert outcomes["spin"].reason == TIMEOUT_REASON
        assert outcomes["ok"].status is Status.PASSED
        assert result.incomplete is False

    def test_uncooperative_predicate_does_not_block_queue(self) -> None:
        release = threading.Event()

        def _stuck(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
            release.wait(10)
            return CheckResult.passed()

        catalog = RuleCatalog.from_rules(
            [_rule("a-stuck", _stuck)] + [_rule(f"b-{i}") for i in range(4)]
        )
        try:
            start = time.monotonic()
            result = Analyzer(max_concurrency=1).analyze(_ARTIFACT, catalog, timeout_per_rule=0.2)
            elapsed = time.monotonic() - start
        finally:
            release.set()
        statuses = _statuses(result.outcomes)
        assert statuses["a-stuck"] is Status.INDETERMINATE
        assert all(statuses[f"b-{i}"] is Status.PASSED for i in range(4))
        assert elapsed < 5

    def test_concurrency_is_bounded(self) -> None:
        lock = threading.Lock()
        active = 0
        peak = 0

        def _tracked(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.05)
            with lock:
                active -= 1
            return CheckResult.passed()

        catalog = RuleCatalog.from_rules([_rule(f"r{i}", _tracked) for i in range(8)])
        result = Analyzer(max_concurrency=2).analyze(_ARTIFACT, catalog)
        assert peak <= 2
        assert len(result.outcomes) == 8

    def test_results_independent_of_completion_order(self) -> None:
        def _sleepy(delay: float):
            def _predicate(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
                time.sleep(delay)
                return CheckResult.passed()

            return _predicate

        rules = [_rule(f"r{i}", _sleepy(0.01 * (5 - i))) for i in range(5)]
        catalog = RuleCatalog.from_rules(rules)
        serial = Analyzer(max_concurrency=1).analyze(_ARTIFACT, catalog)
        parallel = Analyzer(max_concurrency=5).analyze(_ARTIFACT, catalog)
        assert serial == parallel

    def test_cancel_before_start(self) -> None:
        cancel = threading.Event()
        cancel.set()
        catalog = RuleCatalog.from_rules([_rule("a"), _rule("b"), _rule("sql", tags=("sql",))])
        result = Analyzer().analyze(_ARTIFACT, catalog, cancel_event=cancel)
        assert result.incomplete is True
        assert _statuses(result.outcomes) == {"sql": Status.NOT_APPLICABLE}
        assert result.applicable_total == 2

    def test_cancel_mid_run(self) -> None:
        cancel = threading.Event()

        def _trigger(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
            cancel.set()
            return _cooperative_spin(artifact, ctx)

        catalog = RuleCatalog.from_rules(
            [_rule("a-first", category="A"), _rule("b-trigger", _trigger, category="B")]
            + [_rule(f"c-{i}", category="C") for i in range(3)]
        )
        result = Analyzer(max_concurrency=1).analyze(
            _ARTIFACT, catalog, timeout_per_rule=None, cancel_event=cancel
        )
        assert result.incomplete is True
        assert _statuses(result.outcomes) == {"a-first": Status.PASSED}
        assert result.applicable_total == 5

    def test_cancel_keeps_outcomes_already_queued(self) -> None:
        reported = threading.Event()

        class _CancelAfterReport(threading.Event):
            """Unset on the first check, then set once the worker has reported."""

            checks = 0

            def is_set(self) -> bool:
                self.checks += 1
                if self.checks == 1:
                    return False
                reported.wait(5)
                time.sleep(0.2)
                return True

        def _slow_pass(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
            time.sleep(0.3)
            reported.set()
            return CheckResult.passed()

        catalog = RuleCatalog.from_rules([_rule("slow", _slow_pass)])
        result = Analyzer().analyze(
            _ARTIFACT, catalog, timeout_per_rule=None, cancel_event=_CancelAfterReport()
        )
        assert result.incomplete is True
        assert _statuses(result.outcomes) == {"slow": Status.PASSED}

    def test_unbounded_timeout(self) -> None:
        catalog = RuleCatalog.from_rules([_rule("ok")])
        result = Analyzer().analyze(_ARTIFACT, catalog, timeout_per_rule=None)
        assert _statuses(result.outcomes) == {"ok": Status.PASSED}

    def test_empty_catalog(self) -> None:
        result = Analyzer().analyze(_ARTIFACT, RuleCatalog())
        assert result.outcomes == ()
        assert result.applicable_total == 0

    def test_invalid_concurrency(self) -> None:
        with pytest.raises(ValueError):
            Analyzer(max_concurrency=0)
