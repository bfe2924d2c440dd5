"""
Tests for the prefix invocation parser.
"""

from commands.registry import CommandRegistry, PrefixCommand
from services.dispatcher import parse_invoke
from utils.stream import Args, Stream


async def noop(*args):
    return None


REGISTRY = CommandRegistry(
    prefix=[
        PrefixCommand(names=("top",), description="top plays", exec=noop),
        PrefixCommand(names=("ping", "p"), description="ping", exec=noop),
    ]
)


def test_stream_primitives():
    stream = Stream("  <ping now")
    stream.skip_whitespace()

    assert stream.starts_with("<")
    assert not stream.starts_with("!")

    stream.increment(1)
    assert stream.take_until(str.isspace) == "ping"
    stream.skip_whitespace()
    assert stream.rest() == "now"

    stream.increment(100)
    assert stream.is_empty()


def test_parse_plain_name():
    stream = Stream("PING   hello world")
    command, num = parse_invoke(stream, REGISTRY)

    assert command.name == "ping"
    assert num is None
    assert stream.rest() == "hello world"


def test_parse_numeric_suffix():
    command, num = parse_invoke(Stream("top5 mrekk"), REGISTRY)

    assert command.name == "top"
    assert num == 5


def test_numeric_overflow_folds_into_name():
    assert parse_invoke(Stream("top99999999999999999999999"), REGISTRY) is None


def test_unknown_command():
    assert parse_invoke(Stream("nothing here"), REGISTRY) is None
    assert parse_invoke(Stream(""), REGISTRY) is None


def test_args():
    stream = Stream("ping  a b   c")
    parse_invoke(stream, REGISTRY)
    args = Args("ping  a b   c", stream, num=None)

    assert args.next() == "a"
    assert args.rest() == ["b", "c"]
    assert args.next() is None
