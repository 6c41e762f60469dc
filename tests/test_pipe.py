"""Tests for pipeline stages and the pipeline executor."""

import threading

import pytest

from goshell.shell import pipe as pipe_module
from goshell.shell.closure import Closure
from goshell.shell.errors import CommandNotFoundError
from goshell.shell.parser import parse_program
from goshell.shell.pipe import PIPE_EXCEPTION, Pipe, StageResult


class TestStageResult:
    """Test StageResult."""

    def test_value(self):
        """Test successful result."""
        result = StageResult("v")
        assert result.ok
        assert result.value == "v"

    def test_error(self):
        """Test failed result."""
        error = ValueError("boom")
        result = StageResult(error=error)
        assert not result.ok
        assert result.error is error


class TestPipelineExecution:
    """Test the executor end to end."""

    @pytest.mark.parametrize("text", ["", "   ", "\n\n", " ; ;"])
    def test_empty_program(self, session, monkeypatch, text):
        """Test that an empty program runs no stage."""
        def no_pipe(*args, **kwargs):
            raise AssertionError("no stage should be created")

        monkeypatch.setattr(pipe_module, "Pipe", no_pipe)
        assert session.execute(text) is None

    def test_single_stage(self, session):
        """Test single stage returns the last statement."""
        assert session.execute("echo a; echo b") == "b"

    def test_two_stages(self, session):
        """Test output of one stage feeds the next."""
        assert session.execute("echo hi | tac") == "hi"

    def test_three_stages(self, session):
        """Test a longer chain."""
        assert session.execute("echo one | tac | tac -l") == ["one"]

    def test_ignoring_input(self, session, streams):
        """Test a terminal stage that never reads its input."""
        assert session.execute("echo hi | echo bye") == "bye"
        assert "pipe:" not in streams[2].getvalue()

    def test_list_forwarded_one_item_per_line(self, session):
        """Test lists are written in display form."""
        assert session.execute("[a, b, c] | tac -l") == ["a", "b", "c"]

    @pytest.mark.parametrize("text", ["[] | tac -l", "echo | tac -l"])
    def test_empty_rendering_not_forwarded(self, session, text):
        """Test values that render as nothing do not produce a blank line."""
        assert session.execute(text) == []

    def test_null_result_not_forwarded(self, session):
        """Test None results write nothing."""
        assert session.execute("null | tac -l") == []

    def test_grep_in_pipeline(self, session):
        """Test a stage that writes directly to its output."""
        assert session.execute("[apple, banana, cherry] | grep an | tac -l") == ["banana"]

    def test_terminal_stage_writes_to_caller_output(self, session, streams):
        """Test the last stage's output is the caller's output."""
        assert session.execute("[x, y] | grep y") is None
        assert streams[1].getvalue() == "y\n"

    def test_tuple_result_becomes_list(self, bare_session):
        """Test tuple results are normalised."""
        bare_session.registry.register("test", "pair", lambda s, io, *a: ("a", "b"))
        assert bare_session.execute("pair") == ["a", "b"]

    def test_nested_execution_in_stage(self, session):
        """Test <...> inside a stage reads that stage's input."""
        assert session.execute("echo in | echo <tac> out") == "in out"

    def test_closure_stage(self, session):
        """Test a stored closure used as a stage."""
        session.execute("lines = {tac -l}")
        assert session.execute("echo a | lines") == ["a"]


class TestStreaming:
    """Test that stages run concurrently and stream their output."""

    def test_intermediate_results_are_flushed(self, bare_session):
        """Test a downstream stage sees output before the upstream stage ends."""
        received = threading.Event()
        acked = []

        def read_one(session, streams, *args):
            line = streams.stdin.readline()
            received.set()
            return line.rstrip('\n')

        def wait_ack(session, streams, *args):
            acked.append(received.wait(5))

        bare_session.registry.register("test", "read-one", read_one)
        bare_session.registry.register("test", "wait-ack", wait_ack)

        assert bare_session.execute("first; wait-ack | read-one") == "first"
        assert acked == [True]

    def test_single_stage_runs_on_caller_thread(self, bare_session):
        """Test no thread is spawned for one stage."""
        seen = []
        bare_session.registry.register("test", "where", lambda s, io, *a: seen.append(threading.current_thread()))

        bare_session.execute("where")
        assert seen == [threading.current_thread()]

    def test_stages_run_on_worker_threads(self, bare_session):
        """Test each stage of a multi-stage pipeline gets its own thread."""
        seen = []
        lock = threading.Lock()
        barrier = threading.Barrier(2, timeout=5)

        def where(session, streams, *args):
            with lock:
                seen.append(threading.current_thread())
            barrier.wait()

        bare_session.registry.register("test", "where", where)
        bare_session.execute("where | where")

        assert len(seen) == 2
        assert seen[0] is not seen[1]
        assert threading.current_thread() not in seen
        assert all(t.name.startswith("goshell-pipe") for t in seen)


class TestStageErrors:
    """Test error propagation between stages."""

    def test_terminal_error_raised(self, session):
        """Test the last stage's error is raised."""
        with pytest.raises(CommandNotFoundError):
            session.execute("echo hi | nosuch x")

    def test_terminal_error_single_stage(self, session):
        """Test error of the only stage is raised."""
        with pytest.raises(CommandNotFoundError):
            session.execute("nosuch x")

    def test_non_terminal_error_reported(self, session, streams):
        """Test a failing middle stage does not fail the pipeline."""
        assert session.execute("nosuch x | echo after") == "after"

        assert streams[2].getvalue().startswith("pipe: ")
        assert "nosuch" in streams[2].getvalue()
        assert isinstance(session.get(PIPE_EXCEPTION), CommandNotFoundError)

    def test_lost_reader_keeps_earlier_error(self, session, streams):
        """Test a stage whose reader went away leaves pipe-exception alone."""
        earlier = ValueError("earlier failure")
        session.put(PIPE_EXCEPTION, earlier)

        def lost_reader(session, streams, *args):
            raise BrokenPipeError("reader closed")

        session.registry.register("test", "lost-reader", lost_reader)

        assert session.execute("lost-reader | echo after") == "after"
        assert session.get(PIPE_EXCEPTION) is earlier
        assert streams[2].getvalue() == ""

    def test_stage_halts_after_error(self, session):
        """Test statements after a failing one do not run."""
        calls = []
        session.registry.register("test", "mark", lambda s, io, *a: calls.append(a))

        session.execute("nosuch x; mark | echo after")
        assert calls == []

    def test_failed_stage_closes_its_output(self, session):
        """Test a failing upstream stage does not leave the reader hanging."""
        assert session.execute("nosuch x | tac -l") == []

    def test_exit_escapes_pipeline(self, session):
        """Test SystemExit from a stage is not swallowed."""
        with pytest.raises(SystemExit):
            session.execute("exit 3")


class TestPipeStreams:
    """Test stream wiring of individual stages."""

    def _stages(self, session, text):
        closure = Closure(session, None, "")
        pipelines = parse_program(text).pipelines
        first = Pipe(closure, pipelines[0].statements)
        second = Pipe(closure, pipelines[1].statements)
        first.bind(session.streams)
        first.connect(second)
        return first, second

    def test_connect(self, session):
        """Test the wiring produced by connect."""
        first, second = self._stages(session, "echo hi | tac")

        assert first.feeds_pipe
        assert not second.feeds_pipe
        assert first.streams.stdin is session.streams.stdin
        assert second.streams.stdout is session.streams.stdout
        assert first.streams.stdout is not session.streams.stdout
        assert second.streams.stdin is not session.streams.stdin

    def test_pipe_ends_closed_after_run(self, session, streams):
        """Test pipe ends are released once stages finish."""
        first, second = self._stages(session, "echo hi | tac")

        first.run()
        second.run()

        assert first.result.ok
        assert second.result.value == "hi"
        assert first.streams.stdout.closed
        assert second.streams.stdin.closed
        assert not streams[1].closed
        assert not streams[0].closed
