"""Tests for ProcessRunner (launchpad.runner.process).

The runner tests spawn the current Python interpreter as the "CLI" so that
streaming, prompt answering and exit codes are exercised for real.

Tests cover:
- PromptPolicy matching
- format_command masking
- Successful runs, non-zero exits with and without stderr, spawn failures
- Progress sink mirroring and secret masking of the invocation line
- Working directory and environment passing
- Single prompt answer and stdin handling
- Multi-byte output split across reads
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from launchpad.runner.process import ProcessRunner, PromptPolicy, format_command

PY = sys.executable


def _script(*lines: str) -> list[str]:
    return ["-c", "\n".join(lines)]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestPromptPolicy:
    @pytest.mark.unit
    def test_defaults(self):
        policy = PromptPolicy()
        assert policy.response == "\n"
        assert policy.trigger_patterns == ("?", "arrow keys")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "output",
        ["Select a team?", "Use arrow keys to move", "? Project name"],
    )
    def test_matches(self, output):
        assert PromptPolicy().matches(output)

    @pytest.mark.unit
    def test_no_match(self):
        assert not PromptPolicy().matches("Creating project...\nDone.")


class TestFormatCommand:
    @pytest.mark.unit
    def test_masks_redacted_values(self):
        argv = ["railway", "variables", "--set", "API_KEY=s3cr3t", "--service", "svc"]
        rendered = format_command(argv, redact=["s3cr3t"])
        assert "s3cr3t" not in rendered
        assert "API_KEY=***" in rendered

    @pytest.mark.unit
    def test_short_value_masks_only_its_own_argument(self):
        argv = ["netlify", "env:set", "FEATURE_FLAG", "true", "--site", "site-true-1"]
        rendered = format_command(argv, redact=["true"])
        assert rendered == "netlify env:set FEATURE_FLAG *** --site site-true-1"

    @pytest.mark.unit
    def test_no_redaction(self):
        assert format_command(["netlify", "deploy", "--prod"]) == "netlify deploy --prod"


# ---------------------------------------------------------------------------
# Real subprocesses
# ---------------------------------------------------------------------------


class TestProcessRunnerExitCodes:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_success_captures_stdout(self, tmp_path: Path):
        outcome = await ProcessRunner().run(PY, _script("print('hello')"), cwd=tmp_path)
        assert outcome.success is True
        assert outcome.exit_code == 0
        assert outcome.stdout.strip() == "hello"
        assert outcome.error is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_failure_uses_stderr(self, tmp_path: Path):
        outcome = await ProcessRunner().run(
            PY,
            _script("import sys", "sys.stderr.write('module not found\\n')", "sys.exit(3)"),
            cwd=tmp_path,
        )
        assert outcome.success is False
        assert outcome.exit_code == 3
        assert outcome.error == "module not found"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_failure_without_stderr(self, tmp_path: Path):
        outcome = await ProcessRunner().run(PY, _script("import sys", "sys.exit(2)"), cwd=tmp_path)
        assert outcome.success is False
        assert outcome.error == "Process exited with code 2"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_spawn_failure_is_an_outcome(self, tmp_path: Path):
        outcome = await ProcessRunner().run(
            str(tmp_path / "no-such-cli"), ["--version"], cwd=tmp_path
        )
        assert outcome.success is False
        assert outcome.error


class TestProcessRunnerStreaming:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_progress_receives_invocation_and_output(self, tmp_path: Path):
        lines: list[str] = []
        await ProcessRunner().run(
            PY,
            _script("import sys", "print('out line')", "sys.stderr.write('err line\\n')"),
            cwd=tmp_path,
            on_progress=lines.append,
        )
        joined = "".join(lines)
        assert lines[0].startswith("Running: ")
        assert "out line" in joined
        assert "err line" in joined

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_invocation_line_masks_secrets(self, tmp_path: Path):
        lines: list[str] = []
        await ProcessRunner().run(
            PY,
            [*_script("pass"), "KEY=hunter2"],
            cwd=tmp_path,
            on_progress=lines.append,
            redact=("hunter2",),
        )
        assert "hunter2" not in lines[0]
        assert "KEY=***" in lines[0]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_multibyte_output_split_across_reads(self, tmp_path: Path):
        runner = ProcessRunner(chunk_size=1)
        outcome = await runner.run(
            PY,
            _script(
                "import sys",
                "sys.stdout.buffer.write('héllo ✓'.encode('utf-8'))",
            ),
            cwd=tmp_path,
        )
        assert outcome.stdout == "héllo ✓"


class TestProcessRunnerEnvironment:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_cwd(self, tmp_path: Path):
        outcome = await ProcessRunner().run(
            PY, _script("import os", "print(os.getcwd())"), cwd=tmp_path
        )
        assert os.path.realpath(outcome.stdout.strip()) == os.path.realpath(tmp_path)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_env_is_passed(self, tmp_path: Path):
        env = {**os.environ, "LAUNCHPAD_TEST_VALUE": "from-parent"}
        outcome = await ProcessRunner().run(
            PY,
            _script("import os", "print(os.environ['LAUNCHPAD_TEST_VALUE'])"),
            cwd=tmp_path,
            env=env,
        )
        assert outcome.stdout.strip() == "from-parent"


class TestProcessRunnerPrompt:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_answers_detected_prompt(self, tmp_path: Path):
        outcome = await ProcessRunner().run(
            PY,
            _script(
                "import sys",
                "sys.stdout.write('Select a team? ')",
                "sys.stdout.flush()",
                "line = sys.stdin.readline()",
                "print('answer=' + repr(line))",
            ),
            cwd=tmp_path,
            prompt=PromptPolicy(delay=0.01),
        )
        assert outcome.success is True
        assert "answer='\\n'" in outcome.stdout

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_answers_only_once(self, tmp_path: Path):
        outcome = await ProcessRunner().run(
            PY,
            _script(
                "import sys",
                "sys.stdout.write('First? ')",
                "sys.stdout.flush()",
                "first = sys.stdin.readline()",
                "sys.stdout.write('Second? ')",
                "sys.stdout.flush()",
                "second = sys.stdin.readline()",
                "print('first=' + repr(first) + ' second=' + repr(second))",
            ),
            cwd=tmp_path,
            prompt=PromptPolicy(delay=0.01),
        )
        assert "first='\\n' second=''" in outcome.stdout

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_without_prompt_stdin_is_empty(self, tmp_path: Path):
        outcome = await ProcessRunner().run(
            PY, _script("import sys", "print(repr(sys.stdin.read()))"), cwd=tmp_path
        )
        assert outcome.stdout.strip() == "''"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_no_trigger_no_answer(self, tmp_path: Path):
        # stdin stays open but unanswered; the child must not block on it
        outcome = await ProcessRunner().run(
            PY,
            _script("print('Creating project... done')"),
            cwd=tmp_path,
            prompt=PromptPolicy(delay=0.01),
        )
        assert outcome.success is True
