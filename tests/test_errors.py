import pytest

from agentrun.errors import (
    AbortedError,
    AgentRunError,
    ErrorKind,
    InvalidRequestError,
    ProviderError,
    RateLimitError,
    StreamDecodeError,
    ToolNotFoundError,
    TransientNetworkError,
    classify,
    error_from_kind,
)


@pytest.mark.parametrize(
    "kind, expected",
    [
        ("transient_network", TransientNetworkError),
        ("rate_limit", RateLimitError),
        ("invalid_request", InvalidRequestError),
        ("stream_decode", StreamDecodeError),
        ("tool_not_found", ToolNotFoundError),
        ("aborted", AbortedError),
    ],
)
def test_error_from_kind(kind, expected):
    error = error_from_kind(kind, "details")

    assert type(error) is expected
    assert error.kind == ErrorKind(kind)
    assert error.message == "details"


def test_only_network_and_rate_limit_are_retryable():
    retryable = {
        cls.__name__
        for cls in AgentRunError.__subclasses__()
        if cls.retryable
    }

    assert retryable == {"TransientNetworkError", "RateLimitError"}


def test_classify():
    assert classify(RateLimitError()) == ErrorKind.RATE_LIMIT
    assert classify(ProviderError()) == ErrorKind.PROVIDER
    assert classify(KeyError("x")) == ErrorKind.PROVIDER


def test_message_defaults_to_class_name():
    assert InvalidRequestError().message == "InvalidRequestError"
    assert str(InvalidRequestError("bad")) == "bad"
