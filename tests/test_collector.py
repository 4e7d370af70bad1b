from datetime import datetime, timezone

from sprint_app.core import observer as events
from sprint_app.core.collector import collect_contributors, collect_issues, issue_in_window
from sprint_app.core.timeutil import SprintWindow


def _issue(nid, changed, created=None):
    return {"nid": str(nid), "changed": str(changed), "created": str(created or changed)}


def _pages_handler(pages, always_next=False):
    def handler(url, params):
        index = params["page"]
        if index >= len(pages):
            return {"list": []}
        body = {"list": pages[index]}
        if always_next or index < len(pages) - 1:
            body["next"] = "more"
        return body

    return handler


def test_cutoff_after_page_with_old_changed(make_api, epoch):
    pages = [
        [_issue(1, epoch(2025, 2, 10)), _issue(2, epoch(2025, 2, 5))],
        [_issue(3, epoch(2025, 2, 3)), _issue(4, epoch(2025, 1, 20), created=epoch(2025, 1, 10))],
        [_issue(5, epoch(2025, 1, 15), created=epoch(2025, 2, 2))],
    ]
    api = make_api(_pages_handler(pages, always_next=True))
    seen = []
    window = SprintWindow.from_strings("2025-02-01")

    result = collect_issues(api, window, 205151, observer=seen.append)

    assert [raw["nid"] for raw in result.items] == ["1", "2", "3"]
    assert result.pages == 2
    assert result.stopped_early
    # Page 2 is never requested; its created-in-window issue is the known blind spot.
    assert [params["page"] for _, params in api.session.calls] == [0, 1]
    kinds = [e.kind for e in seen]
    assert kinds == [events.ISSUES_PAGE, events.ISSUES_PAGE, events.ISSUES_CUTOFF, events.ISSUES_DONE]
    assert seen[0].details["matched"] == 2
    assert seen[1].details["oldest_changed"] == datetime(2025, 1, 20, tzinfo=timezone.utc)


def test_last_page_without_next_is_not_early_stop(make_api, epoch):
    pages = [[_issue(1, epoch(2025, 2, 10)), _issue(2, epoch(2025, 1, 2))]]
    api = make_api(_pages_handler(pages))
    result = collect_issues(api, SprintWindow.from_strings("2025-02-01"), 1)
    assert [raw["nid"] for raw in result.items] == ["1"]
    assert not result.stopped_early
    assert result.pages == 1


def test_created_in_window_kept_on_same_page(make_api, epoch):
    pages = [[_issue(1, epoch(2025, 1, 5), created=epoch(2025, 2, 3))]]
    api = make_api(_pages_handler(pages))
    result = collect_issues(api, SprintWindow.from_strings("2025-02-01"), 1)
    assert [raw["nid"] for raw in result.items] == ["1"]


def test_issue_window_with_end_date():
    window = SprintWindow.from_strings("2025-02-01", "2025-02-10")

    def at(*args):
        return datetime(*args, tzinfo=timezone.utc)

    assert issue_in_window(at(2025, 1, 5), at(2025, 2, 10, 23, 59, 59), window)
    assert issue_in_window(at(2025, 1, 1), at(2025, 2, 15), window)
    assert not issue_in_window(at(2025, 2, 11), at(2025, 2, 12), window)
    assert not issue_in_window(at(2025, 1, 1), at(2025, 1, 31, 23, 59, 59), window)


def test_issue_fetch_error_retains_collected(make_api, fake_response, epoch):
    def handler(url, params):
        if params["page"] == 0:
            return {"list": [_issue(1, epoch(2025, 2, 10))], "next": "more"}
        return fake_response(500, None, "boom")

    api = make_api(handler)
    seen = []
    result = collect_issues(api, SprintWindow.from_strings("2025-02-01"), 1, observer=seen.append)
    assert [raw["nid"] for raw in result.items] == ["1"]
    assert result.error is not None
    assert events.FETCH_ERROR in [e.kind for e in seen]
    assert seen[-1].kind == events.ISSUES_DONE


def test_contributors_filtered_by_window_and_deduplicated(make_api, epoch):
    pages = [
        [
            {"cid": "1", "name": "early", "created": str(epoch(2025, 1, 30))},
            {"cid": "2", "name": "alice", "created": str(epoch(2025, 2, 1))},
            {"cid": "3", "name": "bob", "created": str(epoch(2025, 2, 3))},
        ],
        [
            {"cid": "4", "name": "alice", "created": str(epoch(2025, 2, 4))},
            {"cid": "5", "name": "late", "created": str(epoch(2025, 2, 15))},
            {"cid": "6", "name": "", "created": str(epoch(2025, 2, 5))},
            {"cid": "7", "name": "carol", "created": str(epoch(2025, 2, 14, 23, 59))},
        ],
    ]
    api = make_api(_pages_handler(pages))
    window = SprintWindow.from_strings("2025-02-01", "2025-02-14")
    result = collect_contributors(api, "3500000", window)
    assert result.names == ["alice", "bob", "carol"]
    assert result.comments_seen == 7
    assert result.pages == 2
    assert result.error is None


def test_contributors_walk_all_pages_regardless_of_age(make_api, epoch):
    pages = [
        [{"cid": "1", "name": "old", "created": str(epoch(2024, 1, 1))}],
        [{"cid": "2", "name": "older", "created": str(epoch(2023, 1, 1))}],
        [{"cid": "3", "name": "recent", "created": str(epoch(2025, 2, 2))}],
    ]
    api = make_api(_pages_handler(pages))
    result = collect_contributors(api, 1, SprintWindow.from_strings("2025-02-01"))
    assert result.names == ["recent"]
    assert len(api.session.calls) == 3
