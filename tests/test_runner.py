"""Test runner for GLPC: data-driven parser/eval specs and app programs."""

import io
import signal
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from glpc import GlpcError, Interpreter, parse as glpc_parse, run as glpc_run
from glpc.emit import stmt_to_sexpr
from glpc.runtime import error_lines

TIMEOUT = 5
TESTS_DIR = Path(__file__).parent

TESTS = {
    "glpc_parse": {"dir": "parser", "run": "phase"},
    "glpc_eval": {"dir": "eval", "run": "phase"},
    "glpc_app": {"dir": "apps", "run": "glpc_app"},
}


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


def _timeout_handler(signum, frame):
    raise TimeoutError("timed out")


signal.signal(signal.SIGALRM, _timeout_handler)


# ---------------------------------------------------------------------------
# Spec file parsing
# ---------------------------------------------------------------------------


def parse_spec_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_specs(test_dir: Path) -> list[tuple[str, str, str]]:
    """Glob *.tests in test_dir, return (test_id, input, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, input_code, expected in parse_spec_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


def discover_apps(test_dir: Path) -> list[Path]:
    """Find all .gpc programs directly in a directory."""
    return sorted(test_dir.glob("*.gpc"))


# ---------------------------------------------------------------------------
# Phase result + assertion checker
# ---------------------------------------------------------------------------


@dataclass
class PhaseResult:
    errors: list[str] = field(default_factory=list)
    data: dict | None = None


def resolve_dotpath(obj: object, path: str) -> object:
    """Resolve a dot-separated path against a nested dict/list structure."""
    parts = path.split(".")
    current = obj
    for part in parts:
        if part == "length":
            return len(current)
        if isinstance(current, list):
            current = current[int(part)]
        elif isinstance(current, dict):
            if part not in current:
                raise KeyError(part)
            current = current[part]
        else:
            raise KeyError(
                f"cannot traverse {type(current).__name__} with key {part!r}"
            )
    return current


def to_comparable(value: object) -> str:
    """Convert a value to its string form for comparison."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value
    return str(value)


def check_expected(
    expected: str, result: PhaseResult, phase: str, *, allow_errors: bool = False
) -> None:
    if expected == "ok":
        if result.errors:
            pytest.fail(f"Expected ok, got error: {result.errors[0]}")
        return
    if expected.startswith("error:"):
        expected_msg = expected[6:].strip()
        if not result.errors:
            pytest.fail(f"Expected error containing '{expected_msg}', got ok")
        found = any(expected_msg.lower() in e.lower() for e in result.errors)
        if not found:
            pytest.fail(
                f"Expected error containing '{expected_msg}', got: {result.errors}"
            )
        return
    # Dotpath assertions
    if result.errors and not allow_errors:
        pytest.fail(f"{phase} failed: {result.errors[0]}")
    assert result.data is not None, f"No data returned from {phase}"
    for line in expected.split("\n"):
        line = line.strip()
        if not line:
            continue
        if "=" not in line:
            pytest.fail(f"Bad assertion (no '='): {line}")
        path, expected_val = line.split("=", 1)
        path = path.strip()
        expected_val = expected_val.strip()
        try:
            actual = resolve_dotpath(result.data, path)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            pytest.fail(f"Path '{path}' not found in result: {e}")
        actual_str = to_comparable(actual)
        if actual_str != expected_val:
            pytest.fail(
                f"Assertion failed: {path}\n"
                f"  expected: {expected_val!r}\n"
                f"  actual:   {actual_str!r}"
            )


# ---------------------------------------------------------------------------
# Phase runners
# ---------------------------------------------------------------------------


def run_glpc_parse(source: str) -> PhaseResult:
    try:
        signal.alarm(TIMEOUT)
        program = glpc_parse(source, "test.gpc")
    except TimeoutError as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)
    return PhaseResult(
        errors=[str(e) for e in program.errors],
        data={
            "errors": [
                {"line": e.line, "where": e.where, "msg": e.msg}
                for e in program.errors
            ],
            "stmts": [stmt_to_sexpr(s) for s in program.statements],
        },
    )


def run_glpc_eval(source: str) -> PhaseResult:
    program = glpc_parse(source)
    if program.errors:
        return PhaseResult(errors=[str(e) for e in program.errors])
    out = io.StringIO()
    interp = Interpreter(stdout=out)
    try:
        signal.alarm(TIMEOUT)
        interp.interpret(program.statements, program.distances)
    except GlpcError as e:
        return PhaseResult(errors=error_lines(e))
    except TimeoutError as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)
    return PhaseResult(
        data={
            "globals": {
                name: value.to_string()
                for name, value in interp.environment.values.items()
            },
            "out": out.getvalue().splitlines(),
        }
    )


# ---------------------------------------------------------------------------
# Parametrization
# ---------------------------------------------------------------------------


def pytest_generate_tests(metafunc):
    for name, cfg in TESTS.items():
        test_dir = TESTS_DIR / cfg["dir"]
        run = cfg["run"]
        if run == "phase":
            fixture = f"{name}_input"
            if fixture in metafunc.fixturenames:
                specs = discover_specs(test_dir)
                params = [pytest.param(inp, exp, id=tid) for tid, inp, exp in specs]
                metafunc.parametrize(f"{fixture},{name}_expected", params)
        elif run == "glpc_app" and "glpc_app" in metafunc.fixturenames:
            apps = discover_apps(test_dir)
            params = [pytest.param(p, id=p.stem) for p in apps]
            metafunc.parametrize("glpc_app", params)


# ---------------------------------------------------------------------------
# Test functions
# ---------------------------------------------------------------------------


def test_glpc_parse(glpc_parse_input, glpc_parse_expected):
    check_expected(
        glpc_parse_expected,
        run_glpc_parse(glpc_parse_input),
        "glpc_parse",
        allow_errors=True,
    )


def test_glpc_eval(glpc_eval_input, glpc_eval_expected):
    check_expected(glpc_eval_expected, run_glpc_eval(glpc_eval_input), "glpc_eval")


def test_glpc_app(glpc_app: Path):
    """Run a .gpc program in-process and compare against its .out/.err files."""
    source = glpc_app.read_text()
    try:
        signal.alarm(TIMEOUT)
        result = glpc_run(source, str(glpc_app), call_main=True)
    finally:
        signal.alarm(0)
    err_file = glpc_app.with_suffix(".err")
    if err_file.exists():
        expected_err = err_file.read_text().strip()
        assert result.exit_code == 1, f"expected failure, got:\n{result.stdout}"
        assert expected_err in result.stderr
    elif result.exit_code != 0:
        pytest.fail(f"Exit code {result.exit_code}:\n{result.stderr.strip()}")
    out_file = glpc_app.with_suffix(".out")
    expected_out = out_file.read_text() if out_file.exists() else ""
    assert result.stdout == expected_out
