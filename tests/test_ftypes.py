import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from catalog_core.ftypes import Either, Maybe, pipe


def test_maybe_chain():
    assert Maybe.some(2).map(lambda x: x * 10).get_or_else(0) == 20
    assert Maybe.nothing().map(lambda x: x * 10).get_or_else(0) == 0
    assert Maybe.of(None).is_none()
    assert Maybe.some(3).bind(lambda x: Maybe.nothing()).is_none()


def test_maybe_to_either():
    assert Maybe.some(1).to_either("missing").is_right
    assert Maybe.nothing().to_either("missing").value == "missing"


def test_either_short_circuits_on_left():
    calls = []
    result = Either.left("err").map(lambda x: calls.append(x) or x)
    assert result.is_left
    assert calls == []
    assert Either.right(5).bind(lambda x: Either.right(x + 1)).value == 6


def test_either_fold():
    assert Either.left("boom").fold(lambda e: f"E:{e}", lambda v: v) == "E:boom"
    assert Either.right(7).fold(lambda e: 0, lambda v: v * 2) == 14
    assert Either.left("x").get_or_else(1) == 1


def test_pipe_order():
    assert pipe(lambda x: x + 1, lambda x: x * 3)(2) == 9
