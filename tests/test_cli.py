"""CLI tests for the gopy entry point."""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from gopy.cli import UsageError, keep_path, parse_args

REPO_DIR = Path(__file__).parent.parent

HELLO = 'print("hello")\n'


def run_cli(args: list[str], cwd: Path, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    """Run `python -m gopy` with a clean GOPY_* environment."""
    run_env = {k: v for k, v in os.environ.items() if not k.startswith("GOPY_")}
    run_env["PYTHONPATH"] = str(REPO_DIR)
    if env:
        run_env.update(env)
    return subprocess.run(
        [sys.executable, "-m", "gopy", *args],
        capture_output=True,
        text=True,
        cwd=cwd,
        env=run_env,
    )


def write(tmp_path: Path, source: str, name: str = "prog.gopy") -> str:
    path = tmp_path / name
    path.write_text(source)
    return str(path)


def test_help(tmp_path: Path):
    result = run_cli(["--help"], tmp_path)
    assert result.returncode == 0
    assert result.stdout.startswith("gopy [OPTIONS] FILE")


@pytest.mark.parametrize(
    "args,message",
    [
        ([], "missing file argument"),
        (["--bogus", "x.gopy"], "unknown flag '--bogus'"),
        (["--stop-at", "link", "x.gopy"], "unknown phase 'link'"),
        (["--stop-at"], "--stop-at requires an argument"),
        (["a.gopy", "b.gopy"], "unexpected argument 'b.gopy'"),
        (["--timeout", "soon", "x.gopy"], "invalid timeout 'soon'"),
        (["--timeout", "0", "x.gopy"], "timeout must be positive"),
    ],
)
def test_usage_errors(tmp_path: Path, args: list[str], message: str):
    result = run_cli(args, tmp_path)
    assert result.returncode == 2
    assert "gopy: " + message in result.stderr


def test_missing_file(tmp_path: Path):
    result = run_cli(["nope.gopy"], tmp_path)
    assert result.returncode == 1
    assert "gopy: nope.gopy: No such file or directory" in result.stderr


def test_stop_at_tokens(tmp_path: Path):
    path = write(tmp_path, "let x = 1\n")
    result = run_cli(["--stop-at", "tokens", path], tmp_path)
    assert result.returncode == 0
    lines = result.stdout.splitlines()
    assert lines[0] == "1:1\tLET\t'let'"
    assert lines[-1].endswith("\tEOF\t''")


def test_stop_at_parse_prints_json(tmp_path: Path):
    path = write(tmp_path, "let x = 1\n")
    result = run_cli(["--stop-at", "parse", path], tmp_path)
    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert data["_type"] == "Program"
    assert data["statements"][0]["_type"] == "LetStatement"


def test_stop_at_generate(tmp_path: Path):
    path = write(tmp_path, HELLO)
    result = run_cli(["--stop-at", "generate", path], tmp_path)
    assert result.returncode == 0
    assert result.stdout.startswith("package main\n")
    assert '\tfmt.Println("hello")\n' in result.stdout


def test_output_file(tmp_path: Path):
    path = write(tmp_path, HELLO)
    out = tmp_path / "out.go"
    result = run_cli(["--stop-at", "generate", "-o", str(out), path], tmp_path)
    assert result.returncode == 0
    assert result.stdout == ""
    assert out.read_text().startswith("package main\n")


def test_parse_errors_are_reported_and_logged(tmp_path: Path):
    path = write(tmp_path, "let = 1\nlet y = 2 3\n")
    result = run_cli(["--stop-at", "generate", path], tmp_path)
    assert result.returncode == 1
    lines = result.stderr.splitlines()
    assert lines[0] == "gopy: parse errors:"
    assert lines[1] == "\texpected next token to be IDENT, got = instead at line 1 col 5"
    assert lines[2].startswith("\tunexpected INT after statement")
    log = (tmp_path / "gopy_errors.log").read_text().splitlines()
    assert len(log) == 2
    assert log[0].startswith("[")
    assert "] Parser Error: expected next token to be IDENT" in log[0]


def test_generate_errors_are_reported_and_logged(tmp_path: Path):
    path = write(tmp_path, "print(y)\n")
    result = run_cli(["--stop-at", "generate", path], tmp_path)
    assert result.returncode == 1
    assert "gopy: Generator Error: undefined name y at line 1 col 7" in result.stderr
    log = (tmp_path / "gopy_errors.log").read_text()
    assert "] Generator Error: undefined name y" in log


def test_log_appends(tmp_path: Path):
    path = write(tmp_path, "print(y)\n")
    run_cli(["--stop-at", "generate", path], tmp_path)
    run_cli(["--stop-at", "generate", path], tmp_path)
    log = (tmp_path / "gopy_errors.log").read_text().splitlines()
    assert len(log) == 2


def test_log_path_flag_and_env(tmp_path: Path):
    path = write(tmp_path, "print(y)\n")
    run_cli(["--log", "flag.log", "--stop-at", "generate", path], tmp_path)
    run_cli(["--stop-at", "generate", path], tmp_path, {"GOPY_LOG": "env.log"})
    assert (tmp_path / "flag.log").exists()
    assert (tmp_path / "env.log").exists()
    assert not (tmp_path / "gopy_errors.log").exists()


def test_no_log(tmp_path: Path):
    path = write(tmp_path, "print(y)\n")
    result = run_cli(["--no-log", "--stop-at", "generate", path], tmp_path)
    assert result.returncode == 1
    assert not (tmp_path / "gopy_errors.log").exists()


def test_missing_toolchain(tmp_path: Path):
    path = write(tmp_path, HELLO)
    result = run_cli(["--go", str(tmp_path / "no-such-go"), path], tmp_path)
    assert result.returncode == 1
    assert "gopy: go toolchain not found" in result.stderr
    assert "Build Error: go toolchain not found" in (tmp_path / "gopy_errors.log").read_text()


def test_parse_args_env_defaults():
    opts = parse_args(["x.gopy"], {"GOPY_GO": "/opt/go/bin/go", "GOPY_TIMEOUT": "5"})
    assert opts.filepath == "x.gopy"
    assert opts.go == "/opt/go/bin/go"
    assert opts.timeout == 5.0
    assert opts.log_path == "gopy_errors.log"


def test_parse_args_flags_override_env():
    opts = parse_args(
        ["--timeout", "2.5", "--go", "go1.22", "--keep", "-o", "out.go", "x.gopy"],
        {"GOPY_TIMEOUT": "5", "GOPY_GO": "go"},
    )
    assert opts.timeout == 2.5
    assert opts.go == "go1.22"
    assert opts.keep
    assert opts.output_file == "out.go"


def test_parse_args_bad_env_timeout():
    with pytest.raises(UsageError):
        parse_args(["x.gopy"], {"GOPY_TIMEOUT": "-1"})


def test_keep_path():
    assert keep_path("demo/prog.gopy") == Path("demo/prog")
    assert keep_path("prog") == Path("prog.out")
