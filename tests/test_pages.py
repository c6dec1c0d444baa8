import pytest

from pdf_to_image.errors import EmptySelection, InvalidRangeFormat
from pdf_to_image.pages import ALL_PAGES, ContiguousRange, coalesce, flatten, parse_page_selector


def test_all_keyword_selects_every_page():
    assert parse_page_selector("all") is ALL_PAGES
    assert parse_page_selector("  all ").is_all


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("1,3,5", (1, 3, 5)),
        ("1-3,7-9", (1, 2, 3, 7, 8, 9)),
        ("3,1,2,2", (1, 2, 3)),
        (" 2 - 4 , 10 ", (2, 3, 4, 10)),
        ("5", (5,)),
        ("4-4", (4,)),
        ("1-3,2-5", (1, 2, 3, 4, 5)),
    ],
)
def test_parse_page_selector(expression, expected):
    selection = parse_page_selector(expression)
    assert not selection.is_all
    assert selection.pages == expected


def test_invalid_token_is_named_in_error():
    with pytest.raises(InvalidRangeFormat) as excinfo:
        parse_page_selector("1,x,3")
    assert "'x'" in str(excinfo.value)
    assert excinfo.value.code == "INVALID_RANGE"


@pytest.mark.parametrize("expression", ["abc", "5-3", "0", "0-2", "1,,3", "1,", "1-2-3", "-1", "ALL", "2.5"])
def test_malformed_selectors_are_rejected(expression):
    with pytest.raises(InvalidRangeFormat):
        parse_page_selector(expression)


@pytest.mark.parametrize("expression", ["", "   ", " , ", ","])
def test_empty_selectors(expression):
    with pytest.raises(EmptySelection):
        parse_page_selector(expression)


def test_coalesce_groups_consecutive_pages():
    assert coalesce([1, 2, 3, 7, 8, 9]) == (ContiguousRange(1, 3), ContiguousRange(7, 9))
    assert coalesce([1, 3, 5]) == (ContiguousRange(1, 1), ContiguousRange(3, 3), ContiguousRange(5, 5))
    assert coalesce([2, 3, 4, 10]) == (ContiguousRange(2, 4), ContiguousRange(10, 10))
    assert coalesce([]) == ()


@pytest.mark.parametrize("pages", [[1], [1, 2, 3], [1, 3, 4, 5, 9], [2, 4, 6, 7, 8, 100]])
def test_flatten_inverts_coalesce(pages):
    assert flatten(coalesce(pages)) == pages


def test_contiguous_range_requires_ordered_bounds():
    assert len(ContiguousRange(3, 5)) == 3
    assert list(ContiguousRange(2, 2).pages()) == [2]
    with pytest.raises(ValueError):
        ContiguousRange(5, 3)


def test_coalesce_parsed_selector():
    ranges = coalesce(parse_page_selector("1-3,7,10-12").pages)
    assert [(r.start, r.end) for r in ranges] == [(1, 3), (7, 7), (10, 12)]


def test_page_limit_rejects_large_range_without_expanding():
    with pytest.raises(InvalidRangeFormat, match="exceeds the limit of 5000"):
        parse_page_selector("1-5000000", max_page=5000)
    with pytest.raises(InvalidRangeFormat):
        parse_page_selector("2,5001", max_page=5000)
    assert parse_page_selector("4999-5000", max_page=5000).pages == (4999, 5000)
    assert parse_page_selector("all", max_page=1) is ALL_PAGES
