"""CLI tests for the glpc entry point.

Test cases live in cli/*.tests files. Format:

    === test name
    args: --ast {script}
    script source here
    ---
    exit: 0
    stdout: (fn main ())
    ---

Special directives in the input section:
    args:           CLI arguments (first line, required); {script} is replaced
                    by the path of a temporary file holding the source below
    script-bytes:   hex-encoded raw bytes for the script instead of text

Assertion directives in the expected section:
    exit:             exact exit code
    stdout:           exact stdout content, \\n for newlines (trailing newline added)
    stdout-contains:  stdout must contain substring
    stdout-empty:     stdout must be empty
    stderr:           exact stderr content (trailing newline added)
    stderr-contains:  stderr must contain substring
    stderr-empty:     stderr must be empty
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

CLI_DIR = Path(__file__).parent / "cli"
ROOT_DIR = Path(__file__).parent.parent


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, spec) tuples.

    Each spec dict has keys: args, script, script_bytes, assertions.
    """
    lines = path.read_text().split("\n")
    result: list[tuple[str, dict]] = []
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
            result.append((test_name, _parse_spec(input_lines, expected_lines)))
        else:
            i += 1
    return result


def _parse_spec(input_lines: list[str], expected_lines: list[str]) -> dict:
    spec: dict = {
        "args": [],
        "script": None,
        "script_bytes": None,
        "assertions": [],
    }
    body_start = 0
    if input_lines and input_lines[0].startswith("args:"):
        args_str = input_lines[0][5:].strip()
        spec["args"] = args_str.split() if args_str else []
        body_start = 1

    remaining = input_lines[body_start:]
    if remaining and remaining[0].startswith("script-bytes:"):
        hex_str = remaining[0][len("script-bytes:") :].strip()
        spec["script_bytes"] = bytes.fromhex(hex_str)
    else:
        spec["script"] = "\n".join(remaining)

    for line in expected_lines:
        line = line.strip()
        if not line:
            continue
        if line.startswith("exit:"):
            spec["assertions"].append(("exit", int(line[5:].strip())))
        elif line.startswith("stdout:"):
            value = line[7:].strip().replace("\\n", "\n")
            spec["assertions"].append(("stdout", value))
        elif line.startswith("stdout-contains:"):
            spec["assertions"].append(("stdout-contains", line[16:].strip()))
        elif line.startswith("stdout-empty:"):
            spec["assertions"].append(("stdout-empty", None))
        elif line.startswith("stderr:"):
            spec["assertions"].append(("stderr", line[7:].strip()))
        elif line.startswith("stderr-contains:"):
            spec["assertions"].append(("stderr-contains", line[16:].strip()))
        elif line.startswith("stderr-empty:"):
            spec["assertions"].append(("stderr-empty", None))
    return spec


def discover_cli_tests() -> list[tuple[str, dict]]:
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        for name, spec in parse_cli_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", spec))
    return results


def run_cli(spec: dict, tmp_path: Path) -> subprocess.CompletedProcess[bytes]:
    """Run the glpc CLI from a test spec, writing its script to tmp_path."""
    script = tmp_path / "script.gpc"
    if spec["script_bytes"] is not None:
        script.write_bytes(spec["script_bytes"])
    else:
        script.write_text(spec["script"])
    args = [a.replace("{script}", str(script)) for a in spec["args"]]
    env = dict(os.environ)
    env["PYTHONPATH"] = str(ROOT_DIR / "src")
    return subprocess.run(
        [sys.executable, "-m", "glpc.cli", *args],
        capture_output=True,
        cwd=ROOT_DIR,
        env=env,
    )


def check_assertions(
    result: subprocess.CompletedProcess[bytes], assertions: list[tuple]
) -> None:
    stdout = result.stdout.decode(errors="replace")
    stderr = result.stderr.decode(errors="replace")
    for kind, value in assertions:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}\nstderr: {stderr}"
            )
        elif kind == "stdout":
            actual = stdout.rstrip("\n")
            assert actual == value, f"expected stdout {value!r}, got {actual!r}"
        elif kind == "stdout-contains":
            assert value in stdout, f"expected stdout to contain {value!r}, got {stdout!r}"
        elif kind == "stdout-empty":
            assert stdout == "", f"expected empty stdout, got {stdout[:200]!r}"
        elif kind == "stderr":
            actual = stderr.rstrip("\n")
            assert actual == value, f"expected stderr {value!r}, got {actual!r}"
        elif kind == "stderr-contains":
            assert value in stderr, f"expected stderr to contain {value!r}, got {stderr!r}"
        elif kind == "stderr-empty":
            assert stderr == "", f"expected empty stderr, got {stderr!r}"


def pytest_generate_tests(metafunc):
    if "cli_spec" in metafunc.fixturenames:
        tests = discover_cli_tests()
        params = [pytest.param(spec, id=test_id) for test_id, spec in tests]
        metafunc.parametrize("cli_spec", params)


def test_cli(cli_spec: dict, tmp_path: Path) -> None:
    result = run_cli(cli_spec, tmp_path)
    check_assertions(result, cli_spec["assertions"])
