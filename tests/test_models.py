import pytest
from pydantic import ValidationError as PydanticValidationError

from ephemeral_paste.models import Paste, is_available


def make_paste(**overrides):
    fields = {"id": "abc", "content": "hello", "created_at": 1000}
    fields.update(overrides)
    return Paste(**fields)


def test_time_expiry_boundary():
    paste = make_paste(expires_at=11000)
    assert is_available(paste, 10999)
    assert not is_available(paste, 11000)


def test_quota_expiry():
    assert is_available(make_paste(max_views=2, views=1), 1000)
    assert not is_available(make_paste(max_views=2, views=2), 1000)


def test_unlimited_paste_is_always_available():
    paste = make_paste(views=10_000)
    assert is_available(paste, 10**15)


def test_unavailability_is_monotonic():
    paste = make_paste(expires_at=5000)
    first_unavailable = next(t for t in range(1000, 6000) if not is_available(paste, t))
    assert first_unavailable == 5000
    assert not any(is_available(paste, t) for t in range(first_unavailable, first_unavailable + 2000))

    exhausted = make_paste(max_views=1, views=1)
    assert not is_available(exhausted.viewed(), 1000)


def test_viewed_returns_copy():
    paste = make_paste(max_views=3)
    after = paste.viewed()
    assert after.views == 1
    assert paste.views == 0
    assert after.content == paste.content


def test_paste_is_frozen():
    paste = make_paste()
    with pytest.raises(PydanticValidationError):
        paste.views = 5


@pytest.mark.parametrize(
    "overrides",
    [
        {"expires_at": 1000},
        {"expires_at": 999},
        {"max_views": 0},
        {"views": -1},
    ],
)
def test_paste_rejects_broken_invariants(overrides):
    with pytest.raises(PydanticValidationError):
        make_paste(**overrides)
