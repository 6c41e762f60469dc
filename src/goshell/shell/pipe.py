"""Pipeline stage execution.

Each Pipeline of a program becomes one Pipe (stage). Adjacent stages are
joined by an OS pipe; two or more stages run concurrently, one thread each,
and are all joined before the terminal stage's result is inspected.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, TextIO

from goshell.shell.parser import Program, Statement
from goshell.shell.session import FormatMode, Streams

if TYPE_CHECKING:
    from goshell.shell.closure import Closure

logger = logging.getLogger(__name__)

PIPE_EXCEPTION = 'pipe-exception'


class StageResult:
    """Outcome of a pipeline stage: either a value or an error."""

    def __init__(self, value: Any = None, error: Optional[BaseException] = None):
        """Initialize stage result.

        Args:
            value: Result of the stage's last statement
            error: Exception that stopped the stage
        """
        self.value = value
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        if self.ok:
            return f"StageResult(value={self.value!r})"
        return f"StageResult(error={self.error!r})"


class Pipe:
    """Runs the statements of one pipeline stage."""

    def __init__(self, closure: Closure, statements: Sequence[Statement]):
        """Initialize stage.

        Args:
            closure: Closure that evaluates the statements
            statements: Statements of this stage
        """
        self.closure = closure
        self.statements = tuple(statements)
        self.streams: Optional[Streams] = None
        self.result = StageResult()
        self._owns_input = False
        self._downstream: Optional[TextIO] = None

    def bind(self, streams: Streams) -> None:
        """Attach this stage to existing streams (first stage)."""
        self.streams = streams

    def connect(self, following: Pipe) -> None:
        """Chain the next stage to this one through an OS pipe.

        This stage's output is redirected into the pipe; the following stage
        reads from it and starts out writing where this stage used to.

        Args:
            following: Next stage
        """
        read_fd, write_fd = os.pipe()
        reader = open(read_fd, 'r', encoding='utf-8')
        writer = open(write_fd, 'w', encoding='utf-8')

        following.streams = replace(self.streams, stdin=reader)
        following._owns_input = True

        self.streams = replace(self.streams, stdout=writer)
        self._downstream = writer

    @property
    def feeds_pipe(self) -> bool:
        return self._downstream is not None

    def run(self) -> StageResult:
        """Execute every statement of the stage.

        Errors are captured on the result, never raised.

        Returns:
            Stage result
        """
        value = None
        try:
            for statement in self.statements:
                value = self.closure.execute_statement(statement, self.streams)
                if value is not None and self.feeds_pipe:
                    self._forward(value)
            self.result = StageResult(value)
        except Exception as e:
            logger.debug(f"Stage stopped by {type(e).__name__}: {e}")
            self.result = StageResult(error=e)
        finally:
            self._release()
        return self.result

    def _forward(self, value: Any) -> None:
        text = self.closure.session.format(value, FormatMode.INSPECT)
        if not text:
            return
        self.streams.stdout.write(text)
        self.streams.stdout.write('\n')
        self.streams.stdout.flush()

    def _release(self) -> None:
        """Flush output and close pipe ends owned by this stage."""
        try:
            self.streams.stdout.flush()
        except (OSError, ValueError) as e:
            logger.debug(f"Flushing stage output failed: {e}")

        if self._owns_input:
            _close(self.streams.stdin)
        if self._downstream is not None:
            _close(self._downstream)


def _close(stream: TextIO) -> None:
    try:
        stream.close()
    except OSError as e:
        logger.debug(f"Closing pipe failed: {e}")


class PipelineExecutor:
    """Runs a program's pipelines as a chain of stages."""

    def __init__(self, closure: Closure):
        """Initialize executor.

        Args:
            closure: Closure whose statements are executed
        """
        self.closure = closure

    def execute(self, program: Program, streams: Streams) -> Any:
        """Execute a program.

        Args:
            program: Parsed program
            streams: Streams of the caller; the first stage reads from its
                input and the last stage writes to its output

        Returns:
            Result of the terminal stage (a tuple result becomes a list)

        Raises:
            Exception: The error captured by the terminal stage
        """
        if not program.pipelines:
            return None

        pipes: List[Pipe] = []
        for pipeline in program:
            current = Pipe(self.closure, pipeline.statements)
            if not pipes:
                current.bind(streams)
            else:
                pipes[-1].connect(current)
            pipes.append(current)

        if len(pipes) == 1:
            pipes[0].run()
        else:
            self._run_concurrently(pipes)

        last = pipes[-1]
        for index, pipe in enumerate(pipes[:-1], 1):
            if not pipe.result.ok:
                self._report(index, pipe.result.error, streams)

        if not last.result.ok:
            raise last.result.error

        result = last.result.value
        if isinstance(result, tuple):
            return list(result)
        return result

    def _run_concurrently(self, pipes: List[Pipe]) -> None:
        logger.debug(f"Starting {len(pipes)} pipeline stages")

        with ThreadPoolExecutor(max_workers=len(pipes), thread_name_prefix='goshell-pipe') as executor:
            futures: List[Future] = [executor.submit(pipe.run) for pipe in pipes]
            wait(futures)

        # re-raise anything that escaped a stage (SystemExit, KeyboardInterrupt)
        for future in futures:
            future.result()

    def _report(self, index: int, error: BaseException, streams: Streams) -> None:
        """Make a non-terminal stage error observable without raising it."""
        if isinstance(error, BrokenPipeError):
            # downstream stopped reading
            logger.debug(f"Pipeline stage {index} lost its reader: {error}")
            return

        self.closure.session.put(PIPE_EXCEPTION, error)

        logger.warning(f"Pipeline stage {index} failed: {error}")
        try:
            streams.stderr.write(f"pipe: {error}\n")
            streams.stderr.flush()
        except (OSError, ValueError) as e:
            logger.debug(f"Reporting stage error failed: {e}")
