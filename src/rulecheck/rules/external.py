# SPDX-License-Identifier: MIT
"""Sub-process predicate — delegate a check to an external static analyzer."""

from __future__ import annotations

from collections.abc import Sequence

from rulecheck.rules.base import Artifact, CheckResult, Evidence, Location
from rulecheck.rules.context import EvaluationContext

# Evidence from tool output is capped to keep reports readable
MAX_EVIDENCE_CHARS = 2000


def command_exit_status(argv: Sequence[str], message: str = ""):
    """Run *argv* with the artifact on stdin; exit status 0 passes.

    The command runs inside the evaluation context, so it is killed when
    the rule times out or the run is cancelled.
    """
    if isinstance(argv, (str, bytes)):
        msg = "command.exit-status argv must be a list of arguments, not a string"
        raise ValueError(msg)
    if not argv:
        msg = "command.exit-status needs a non-empty argv"
        raise ValueError(msg)
    command = [str(a) for a in argv]

    def _command(artifact: Artifact, ctx: EvaluationContext) -> CheckResult:
        completed = ctx.run(command, input=artifact.content)
        if completed.returncode == 0:
            return CheckResult.passed()
        output = (completed.stdout or completed.stderr or "").strip()
        return CheckResult.failed(
            Evidence(
                snippet=output[:MAX_EVIDENCE_CHARS],
                location=Location(artifact.path),
                message=message or f"{command[0]} exited with status {completed.returncode}",
            )
        )

    return _command
