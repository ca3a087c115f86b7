from __future__ import annotations

from datetime import date, datetime

import pytest

from taskpad import utils


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("buy milk", "buy milk #work"),
        ("buy milk #home", "buy milk #home"),
        ("see https://x.io/#anchor", "see https://x.io/#anchor"),
    ],
)
def test_ensure_default_tag(content: str, expected: str) -> None:
    assert utils.ensure_default_tag(content, "work") == expected


def test_parse_date() -> None:
    assert utils.parse_date("2026-03-09") == date(2026, 3, 9)
    assert utils.parse_date(" 2026-03-09T10:00:00 ") == date(2026, 3, 9)


@pytest.mark.parametrize("value", ["tomorrow", "2026-13-01", ""])
def test_parse_date_rejects_garbage(value: str) -> None:
    with pytest.raises(ValueError, match="Use YYYY-MM-DD format"):
        utils.parse_date(value)


def test_format_date() -> None:
    assert utils.format_date(date(2026, 1, 5)) == "Jan 05, 2026"
    assert utils.format_date(datetime(2026, 1, 5, 9, 0), "%Y/%m/%d") == "2026/01/05"
    assert utils.format_date("2026-01-05") == "Jan 05, 2026"
    assert utils.format_date("not a date") == "Invalid date"
    assert utils.format_date(None) == ""


@pytest.mark.parametrize(
    ("day", "expected"),
    [
        (date(2026, 6, 10), "Today"),
        (date(2026, 6, 9), "Overdue"),
        (date(2026, 6, 11), "Tomorrow"),
        (date(2026, 6, 15), "In 5 days"),
        (date(2026, 6, 17), "In 7 days"),
        (date(2026, 6, 18), "Jun 18, 2026"),
    ],
)
def test_relative_date(day: date, expected: str) -> None:
    assert utils.relative_date(day, today=date(2026, 6, 10)) == expected


def test_get_domain() -> None:
    assert utils.get_domain("https://docs.github.com/en") == "docs.github.com"
    assert utils.get_domain("not a url") is None


def test_shorten_url() -> None:
    short = "https://a.io/x"
    assert utils.shorten_url(short) == short

    long_url = "https://example.com/" + "segment/" * 20
    shortened = utils.shorten_url(long_url, max_length=40)
    assert shortened.startswith("example.com/")
    assert shortened.endswith("...")
    assert len(shortened) == 40


def test_open_url_reports_missing_browser(monkeypatch: pytest.MonkeyPatch) -> None:
    opened: list[str] = []

    def fake_open(url: str) -> bool:
        opened.append(url)
        return False

    monkeypatch.setattr(utils.webbrowser, "open", fake_open)
    assert utils.open_url("https://a.io") is False
    assert opened == ["https://a.io"]
