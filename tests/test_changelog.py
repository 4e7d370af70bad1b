from datetime import datetime, timezone

from bs4 import BeautifulSoup

from sprint_app.core import observer as events
from sprint_app.core.changelog import (
    ChangelogState,
    ChangeRow,
    assignment_events,
    collect_assignment_events,
    extract_page,
    parse_change_rows,
    strip_change_marker,
)
from sprint_app.core.timeutil import SprintWindow

ISSUE_URL = "https://www.drupal.org/project/ai/issues/3500000"
WINDOW = SprintWindow.from_strings("2025-02-01", "2025-02-14")
WHEN = datetime(2025, 2, 3, 10, 0, tzinfo=timezone.utc)


def _user(name):
    return f'<a class="username" href="/u/{name.lower()}">{name}</a>' if name else ""


def comment(author, when, rows=(), cid="1"):
    table = ""
    if rows:
        trs = "".join(
            f'<tr><td class="nodechanges-label">{label}</td>'
            f'<td class="nodechanges-old">{old}</td>'
            f'<td class="nodechanges-new">{new}</td></tr>'
            for label, old, new in rows
        )
        table = f'<table class="nodechanges-field-changes"><tbody>{trs}</tbody></table>'
    stamp = f'<time datetime="{when}">{when}</time>' if when else ""
    return (
        f'<div class="comment" id="comment-{cid}">'
        f'<div class="submitted">{_user(author)} {stamp}</div>'
        f'<div class="content">{table}<p>Comment text</p></div>'
        "</div>"
    )


def page(*comments, next_href=None):
    pager = ""
    if next_href:
        pager = f'<ul class="pager"><li class="pager-next"><a href="{next_href}">next ›</a></li></ul>'
    return f"<html><body><section class=\"comments\">{''.join(comments)}</section>{pager}</body></html>"


def test_strip_change_marker():
    assert strip_change_marker("» Needs review") == "Needs review"
    assert strip_change_marker("  Active ") == "Active"
    assert strip_change_marker(None) == ""


def test_status_row_updates_running_status():
    html = page(comment("alice", "2025-02-03T10:00:00+00:00", [("Status:", "Active", "» Needs review")]))
    state = ChangelogState()
    extract_page(html, WINDOW, state)
    assert state.status == "Needs review"


def test_unassign_to_unassigned_yields_single_event():
    html = page(
        comment("bob", "2025-02-03T10:00:00+00:00", [("Assigned:", _user("Alice"), "» Unassigned")])
    )
    out = extract_page(html, WINDOW, ChangelogState())
    assert len(out.events) == 1
    event = out.events[0]
    assert event.contributor == "Alice"
    assert event.type == "unassigned"
    assert event.commenter == "bob"
    assert event.instant == WHEN
    assert event.status == "Active"


def test_reassignment_yields_unassign_then_assign():
    row = ChangeRow(label="Assigned:", old="Alice", new="Bob")
    out = assignment_events(row, commenter="carol", instant=WHEN, status="Needs work")
    assert [(e.contributor, e.type) for e in out] == [("Alice", "unassigned"), ("Bob", "assigned")]


def test_empty_or_unassigned_both_sides_yields_nothing():
    for old, new in (("", ""), ("Unassigned", "UNASSIGNED"), ("unassigned", "")):
        row = ChangeRow(label="Assigned:", old=old, new=new)
        assert assignment_events(row, commenter="x", instant=WHEN, status="Active") == []


def test_parse_change_rows_positional_cells():
    soup = BeautifulSoup(
        '<div class="comment"><table class="nodechanges-field-changes">'
        "<tr><td>Status:</td><td>Active</td><td>» RTBC</td></tr></table></div>",
        "html.parser",
    )
    rows = parse_change_rows(soup.div)
    assert rows == [ChangeRow(label="Status:", old="Active", new="RTBC")]


def test_status_carries_across_comments_and_window():
    html = page(
        comment("early", "2025-01-20T09:00:00+00:00", [("Status:", "Active", "» Needs work")], cid="1"),
        comment("alice", "2025-02-02T09:00:00+00:00", [("Assigned:", "Unassigned", "» " + _user("Bob"))], cid="2"),
        comment(
            "bob",
            "2025-02-04T09:00:00+00:00",
            [("Status:", "Needs work", "» Needs review"), ("Assigned:", _user("Bob"), "» " + _user("Carol"))],
            cid="3",
        ),
        comment("late", "2025-03-01T09:00:00+00:00", [("Assigned:", _user("Carol"), "» " + _user("Dan"))], cid="4"),
    )
    state = ChangelogState()
    out = extract_page(html, WINDOW, state)
    assert [(e.contributor, e.type, e.commenter, e.status) for e in out.events] == [
        ("Bob", "assigned", "alice", "Needs work"),
        ("Bob", "unassigned", "bob", "Needs review"),
        ("Carol", "assigned", "bob", "Needs review"),
    ]
    assert out.comment_count == 4


def test_comment_without_timestamp_skipped_but_status_applies():
    html = page(
        comment("ghost", None, [("Status:", "Active", "» Postponed"), ("Assigned:", "", "» Zed")], cid="1"),
        comment("alice", "2025-02-05T00:00:00+00:00", [("Assigned:", "", "» " + _user("Zed"))], cid="2"),
    )
    out = extract_page(html, WINDOW, ChangelogState())
    assert [(e.contributor, e.commenter, e.status) for e in out.events] == [("Zed", "alice", "Postponed")]


def test_commenter_not_taken_from_change_table():
    html = (
        '<div class="comment"><time datetime="2025-02-03T10:00:00Z"></time>'
        '<table class="nodechanges-field-changes"><tr><td class="nodechanges-label">Assigned:</td>'
        '<td class="nodechanges-old"></td><td class="nodechanges-new">» <a class="username">Alice</a></td></tr></table>'
        '<footer><span class="username">triager</span></footer></div>'
    )
    out = extract_page(html, WINDOW, ChangelogState())
    assert [(e.contributor, e.commenter) for e in out.events] == [("Alice", "triager")]


def test_collect_follows_pager_and_keeps_status(make_renderer):
    second = ISSUE_URL + "?page=1"
    renderer = make_renderer(
        {
            ISSUE_URL: page(
                comment("alice", "2025-02-02T09:00:00+00:00", [("Status:", "Active", "» Needs review")]),
                next_href="/project/ai/issues/3500000?page=1",
            ),
            second: page(
                comment("bob", "2025-02-06T09:00:00+00:00", [("Assigned:", "", "» " + _user("Bob"))], cid="9"),
                next_href="/project/ai/issues/3500000?page=1",
            ),
        }
    )
    seen = []
    result = collect_assignment_events(renderer, ISSUE_URL, WINDOW, observer=seen.append)
    assert renderer.rendered == [ISSUE_URL, second]
    assert result.pages == 2
    assert result.status == "Needs review"
    assert [(e.contributor, e.status) for e in result.events] == [("Bob", "Needs review")]
    assert [e.kind for e in seen] == [events.ASSIGNMENTS_PAGE, events.ASSIGNMENTS_PAGE]


def test_collect_stops_on_page_without_comments(make_renderer):
    renderer = make_renderer({ISSUE_URL: page(next_href="/project/ai/issues/3500000?page=1")})
    result = collect_assignment_events(renderer, ISSUE_URL, WINDOW)
    assert renderer.rendered == [ISSUE_URL]
    assert result.events == []
    assert result.status == "Active"


def test_collect_render_failure_recorded(make_renderer):
    renderer = make_renderer({})
    seen = []
    result = collect_assignment_events(renderer, ISSUE_URL, WINDOW, observer=seen.append)
    assert result.error is not None
    assert result.error.url == ISSUE_URL
    assert result.pages == 0
    assert [e.kind for e in seen] == [events.FETCH_ERROR]


def test_status_row_applies_before_assignment_in_same_comment():
    html = page(
        comment(
            "bob",
            "2025-02-04T09:00:00+00:00",
            [("Assigned:", "", "» " + _user("Bob")), ("Status:", "Active", "» Needs work")],
        )
    )
    out = extract_page(html, WINDOW, ChangelogState())
    assert [(e.contributor, e.status) for e in out.events] == [("Bob", "Needs work")]
