from __future__ import annotations

import logging
import sys
import traceback
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional, Tuple

from .eval.common import Options
from .eval.match import explain_match, match_shape
from .lower import Check, Definition, ShapeEnv, Show, Statement, lower_program
from .parse_lark import parse_source_lark
from .parser_rd import parse_source
from .types import Mismatch, ShapeError, ShapeNode, Verdict
from .utils import debug_py_trace_enabled, log_level_from_env, options_from_env, parse_log_level

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckResult:
    line: int
    candidate: ShapeNode
    expected: ShapeNode
    verdict: Verdict
    expected_verdict: Optional[Verdict] = None
    mismatches: Tuple[Mismatch, ...] = ()

    @property
    def ok(self) -> bool:
        return self.verdict is (self.expected_verdict or Verdict.MATCH)

    def render(self, explain: bool = False) -> str:
        status = "ok" if self.ok else "FAIL"
        text = f"{status} line {self.line}: {self.candidate!r} ~ {self.expected!r} -> {self.verdict.value}"

        if self.expected_verdict is not None and not self.ok:
            text += f" (expected {self.expected_verdict.value})"

        if explain:
            text += "".join(f"\n    {m}" for m in self.mismatches)

        return text


def parse_program(source: str, env: Optional[ShapeEnv] = None, use_lark: bool = False) -> List[Statement]:
    tree = parse_source_lark(source) if use_lark else parse_source(source)
    return lower_program(tree, env if env is not None else ShapeEnv())


def evaluate_check(check: Check, options: Optional[Options] = None, explain: bool = False) -> CheckResult:
    if explain:
        report = explain_match(check.candidate, check.expected, options)
        verdict, mismatches = report.verdict, report.mismatches
    else:
        verdict, mismatches = match_shape(check.candidate, check.expected, options), ()

    logger.debug("line %d: %s", check.line, verdict.value)
    return CheckResult(check.line, check.candidate, check.expected, verdict, check.expected_verdict, mismatches)


def run(
    source: str,
    options: Optional[Options] = None,
    env: Optional[ShapeEnv] = None,
    explain: bool = True,
    use_lark: bool = False,
) -> List[CheckResult]:
    """Run every check statement in *source*; definitions land in *env*.

    ``use_lark`` parses with the grammar.lark front end instead of the
    recursive descent parser.
    """
    stmts = parse_program(source, env, use_lark)
    return [evaluate_check(stmt, options, explain) for stmt in stmts if isinstance(stmt, Check)]


def repl_eval(source: str, env: ShapeEnv, options: Optional[Options] = None, explain: bool = False) -> List[str]:
    """Evaluate one REPL submission and return the lines to print."""
    out: List[str] = []

    for stmt in parse_program(source, env):
        match stmt:
            case Definition(ref=ref):
                out.append(f"type {ref.name} = {ref.target!r}")
            case Show(shape=shape):
                out.append(repr(shape))
            case Check():
                result = evaluate_check(stmt, options, explain)
                if result.expected_verdict is None:
                    line = result.verdict.value
                else:
                    line = "ok" if result.ok else f"FAIL: got {result.verdict.value}"
                out.append(line)
                out.extend(f"    {m}" for m in result.mismatches)

    return out


def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    try:
        is_file = Path(arg).is_file()
    except OSError:
        # e.g. ENAMETOOLONG for long literal source
        is_file = False

    if is_file:
        return Path(arg).read_text(encoding="utf-8")

    return arg


def _flag_value(token: str, it, flag: str) -> str:
    if token.startswith(flag + "="):
        return token.split("=", 1)[1]

    try:
        return next(it)
    except StopIteration:
        raise SystemExit(f"{flag} flag requires a value") from None


def main(argv: Optional[List[str]] = None) -> int:
    explain = False
    use_lark = False
    options = options_from_env()
    log_level = log_level_from_env()
    arg = None
    it = iter(sys.argv[1:] if argv is None else argv)

    for token in it:
        if token == "--explain":
            explain = True
            continue

        if token == "--lark":
            use_lark = True
            continue

        if token == "--no-recursion":
            options = replace(options, allow_recursion=False)
            continue

        if token == "--max-depth" or token.startswith("--max-depth="):
            raw = _flag_value(token, it, "--max-depth")
            try:
                options = replace(options, max_depth=max(1, int(raw)))
            except ValueError:
                raise SystemExit(f"--max-depth expects an integer, got {raw!r}") from None
            continue

        if token == "--log-level" or token.startswith("--log-level="):
            raw = _flag_value(token, it, "--log-level")
            try:
                log_level = parse_log_level(raw)
            except ValueError as exc:
                raise SystemExit(str(exc)) from None
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    logging.basicConfig(level=log_level, format="%(levelname)s %(name)s: %(message)s")
    source = _load_source(arg or "-")

    try:
        results = run(source, options, explain=explain, use_lark=use_lark)
    except ShapeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        if debug_py_trace_enabled():
            traceback.print_exc()
        return 2

    for result in results:
        print(result.render(explain))

    failed = sum(1 for r in results if not r.ok)
    logger.info("%d checks, %d failed", len(results), failed)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
