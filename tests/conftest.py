"""Shared fixtures for shell tests."""

import io

import pytest

from goshell.shell.builtins import install_builtins
from goshell.shell.session import Session


@pytest.fixture
def streams():
    """In-memory stdin/stdout/stderr."""
    return io.StringIO(""), io.StringIO(), io.StringIO()


@pytest.fixture
def bare_session(streams):
    """Session without any commands registered."""
    stdin, stdout, stderr = streams
    return Session(stdin=stdin, stdout=stdout, stderr=stderr)


@pytest.fixture
def session(bare_session):
    """Session with the builtin commands installed."""
    install_builtins(bare_session)
    return bare_session
