"""Provider CLI process management.

Spawns one external command at a time, streams its stdout/stderr to both the
diagnostic console and the caller's progress sink, optionally answers a
single interactive prompt, and resolves to a ``CommandOutcome``. A run never
raises for process-level failures: spawn errors and non-zero exits come back
as failed outcomes.
"""

from __future__ import annotations

import asyncio
import codecs
import contextlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from launchpad.models import CommandOutcome, ProgressSink
from launchpad.utils import log_line, mask_secrets, print_warning


@dataclass(frozen=True)
class PromptPolicy:
    """How to recognise and answer an interactive prompt.

    Detection is a substring sniff over the accumulated stdout, not a real
    terminal protocol. The runner answers at most one prompt per run.
    """

    response: str = "\n"
    trigger_patterns: tuple[str, ...] = ("?", "arrow keys")
    delay: float = 0.1

    def matches(self, output: str) -> bool:
        return any(pattern in output for pattern in self.trigger_patterns)


def format_command(argv: Sequence[str], redact: Sequence[str] = ()) -> str:
    """Render an argument vector for display, masking *redact* values."""
    return " ".join(mask_secrets([str(part) for part in argv], redact))


class ProcessRunner:
    """Runs provider CLI commands and captures their output.

    Each call spawns the command without a shell (argument vector only),
    awaits it to completion and returns a structured outcome. There is no
    timeout: deploy commands rely on the CLI's own exit behaviour.
    """

    def __init__(self, chunk_size: int = 4096, prefix: str = "DEPLOY") -> None:
        self.chunk_size = chunk_size
        self.prefix = prefix

    async def run(
        self,
        command: str,
        args: Sequence[str],
        *,
        cwd: str | Path,
        env: Optional[Mapping[str, str]] = None,
        prompt: Optional[PromptPolicy] = None,
        on_progress: Optional[ProgressSink] = None,
        redact: Sequence[str] = (),
    ) -> CommandOutcome:
        """Execute ``command args...`` and collect its output.

        Args:
            command: Executable path or name.
            args: Arguments passed verbatim (no shell splitting).
            cwd: Working directory.
            env: Complete environment for the child; ``None`` inherits ours.
            prompt: If given, answer the first detected prompt with
                ``prompt.response`` and close stdin.
            on_progress: Caller sink that receives the invocation line and
                every output chunk.
            redact: Argument values to mask in the echoed invocation line.

        Returns:
            CommandOutcome with ``success`` set iff the exit code was 0.
        """
        argv = [command, *args]
        self._emit(f"Running: {format_command(argv, redact)}", on_progress)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                env=dict(env) if env is not None else None,
                stdin=asyncio.subprocess.PIPE if prompt else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as exc:
            message = str(exc) or f"Failed to start {command}"
            log_line(self.prefix, f"Failed to start {command}: {message}", style="red")
            return CommandOutcome(success=False, error=message)

        stdout_chunks: list[str] = []
        stderr_chunks: list[str] = []
        answer_task: Optional[asyncio.Task[None]] = None

        def collect_stdout(text: str) -> None:
            nonlocal answer_task
            stdout_chunks.append(text)
            if prompt and answer_task is None and prompt.matches("".join(stdout_chunks)):
                answer_task = asyncio.create_task(self._answer_prompt(process, prompt))

        await asyncio.gather(
            self._pump(process.stdout, collect_stdout, "stdout", on_progress),
            self._pump(process.stderr, stderr_chunks.append, "stderr", on_progress),
        )
        exit_code = await process.wait()

        if answer_task is not None and not answer_task.done():
            answer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await answer_task
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()

        stdout = "".join(stdout_chunks)
        stderr = "".join(stderr_chunks)

        if exit_code == 0:
            return CommandOutcome(success=True, stdout=stdout, stderr=stderr, exit_code=0)
        return CommandOutcome(
            success=False,
            stdout=stdout,
            stderr=stderr,
            error=stderr.strip() or f"Process exited with code {exit_code}",
            exit_code=exit_code,
        )

    async def _pump(
        self,
        stream: Optional[asyncio.StreamReader],
        collect: Callable[[str], None],
        label: str,
        on_progress: Optional[ProgressSink],
    ) -> None:
        """Read *stream* chunk by chunk until EOF.

        Prompts usually have no trailing newline, so reads are chunked rather
        than line-based. An incremental decoder keeps multi-byte characters
        split across chunks intact.
        """
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(self.chunk_size)
            final = not chunk
            text = decoder.decode(chunk, final=final)
            if text:
                collect(text)
                self._emit(text, on_progress, label)
            if final:
                return

    async def _answer_prompt(
        self, process: asyncio.subprocess.Process, prompt: PromptPolicy
    ) -> None:
        """Wait for the prompt to render, then send the answer and close stdin."""
        await asyncio.sleep(prompt.delay)
        stdin = process.stdin
        if stdin is None:
            return
        log_line(self.prefix, "Detected prompt, sending input...", style="yellow")
        try:
            stdin.write(prompt.response.encode("utf-8"))
            await stdin.drain()
            stdin.close()
        except (BrokenPipeError, ConnectionResetError) as exc:
            print_warning(f"Could not answer prompt, process closed its input: {exc}")

    def _emit(
        self,
        text: str,
        on_progress: Optional[ProgressSink],
        label: Optional[str] = None,
    ) -> None:
        """Mirror one line/chunk to the diagnostic console and the caller."""
        shown = text.rstrip()
        if shown:
            prefix = f"{self.prefix} {label.upper()}" if label else self.prefix
            log_line(prefix, shown, style="dim")
        if on_progress is not None:
            on_progress(text)
