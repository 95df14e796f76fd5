"""Unit tests for starcharts.core.context."""

import pytest

from starcharts.api.github_exceptions import RequestCancelledError
from starcharts.core.context import RequestContext, background


def test_background_context_never_expires():
    ctx = background()
    ctx.check()
    assert ctx.remaining() is None
    assert ctx.timeout_for(30) == 30


def test_cancel_stops_requests():
    ctx = RequestContext(timeout=60)
    ctx.cancel()
    assert ctx.cancelled
    with pytest.raises(RequestCancelledError, match="cancelled"):
        ctx.check()


def test_expired_deadline():
    ctx = RequestContext(timeout=0)
    with pytest.raises(RequestCancelledError, match="deadline"):
        ctx.check()


def test_timeout_bounded_by_deadline():
    ctx = RequestContext(timeout=2)
    assert ctx.timeout_for(30) <= 2
    assert ctx.timeout_for(1) == 1
