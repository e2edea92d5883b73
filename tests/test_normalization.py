import pytest

from admitgroup.domain.normalization import make_group_key, normalize_group_code


@pytest.mark.parametrize("raw, expected", [
    ("(01)", "01"),
    ("（01）", "01"),
    (" 01 ", "01"),
    ("01", "01"),
    ("（ 0 2 ）", "02"),
    ("　03　", "03"),
    ("A(1)b", "A1b"),
])
def test_normalize_strips_parentheses_and_whitespace(raw, expected):
    assert normalize_group_code(raw) == expected


@pytest.mark.parametrize("raw", [None, ""])
def test_normalize_empty_input(raw):
    assert normalize_group_code(raw) == ""


@pytest.mark.parametrize("raw", ["(01)", "（01）", " 0 1 ", "(（))", "12A", "   "])
def test_normalize_is_idempotent(raw):
    once = normalize_group_code(raw)
    assert normalize_group_code(once) == once


def test_group_key_uses_normalized_code():
    key = make_group_key("10001", "（01）", "Guangdong", "physics")
    assert key == ("10001", "01", "Guangdong", "physics")
    assert key == make_group_key("10001", "(01)", "Guangdong", "physics")
