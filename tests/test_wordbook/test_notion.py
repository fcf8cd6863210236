"""Unit tests for wordbook.remote.notion.NotionMirror against a fake Notion API."""

import httpx
import pytest

from fakes import API_KEY, DATABASE_ID, T0, FakeNotion, make_entry
from wordbook.entry import Entry, Example
from wordbook.errors import AuthError, NotFound, RemoteError, TransientError
from wordbook.remote.base import MirrorBackend
from wordbook.remote.notion import NotionMirror, remote_key
from wordbook.store.legacy import RemoteCredentials


def _rich(text: str) -> dict:
    return {"rich_text": [{"type": "text", "text": {"content": text}}]}


# ---------------------------------------------------------------------------
# upsert_all()
# ---------------------------------------------------------------------------


class TestUpsertAll:
    def test_creates_missing_pages(self, mirror: NotionMirror, notion: FakeNotion, casa):
        report = mirror.upsert_all([casa])
        assert report.created == ["casa"]
        assert notion.words() == ["casa"]

    def test_page_fields(self, mirror: NotionMirror, notion: FakeNotion, casa):
        mirror.upsert_all([casa])
        props = notion.page_for("casa")["properties"]
        assert props["Definition"]["rich_text"][0]["plain_text"] == "house"
        assert props["Examples"]["rich_text"][0]["plain_text"] == "Mi casa es grande → My house is big"
        assert props["Saved At"]["date"]["start"] == "2024-05-01T12:00:00.000Z"

    def test_existing_word_updated_not_duplicated(self, mirror: NotionMirror, notion: FakeNotion, casa):
        page_id = notion.add_page("casa", Definition=_rich("old"))
        report = mirror.upsert_all([casa])
        assert report.updated == ["casa"]
        assert report.created == []
        assert notion.words() == ["casa"]
        assert notion.page_for("casa")["id"] == page_id
        assert notion.page_for("casa")["properties"]["Definition"]["rich_text"][0]["plain_text"] == "house"

    def test_idempotent(self, mirror: NotionMirror, notion: FakeNotion):
        entries = [make_entry("a"), make_entry("b")]
        mirror.upsert_all(entries)
        mirror.upsert_all(entries)
        assert notion.words() == ["a", "b"]

    def test_match_is_case_sensitive(self, mirror: NotionMirror, notion: FakeNotion):
        notion.add_page("Casa")
        mirror.upsert_all([make_entry("casa")])
        assert notion.words() == ["casa"]

    def test_removed_words_archived(self, mirror: NotionMirror, notion: FakeNotion):
        notion.add_page("casa")
        report = mirror.upsert_all([])
        assert report.archived == ["casa"]
        assert notion.words() == []
        assert mirror.fetch_all() == []

    def test_archive_is_soft(self, mirror: NotionMirror, notion: FakeNotion):
        page_id = notion.add_page("casa")
        mirror.upsert_all([])
        assert notion.pages[page_id]["archived"] is True

    def test_shared_word_collapses_to_one_page(self, mirror: NotionMirror, notion: FakeNotion):
        first = make_entry("casa", millis=1, definition="first")
        second = make_entry("casa", millis=2, definition="second")
        mirror.upsert_all([first, second])
        assert notion.words() == ["casa"]
        props = notion.page_for("casa")["properties"]
        assert props["Definition"]["rich_text"][0]["plain_text"] == "second"

    def test_duplicate_remote_pages_reduced_to_one(self, mirror: NotionMirror, notion: FakeNotion):
        notion.add_page("casa")
        notion.add_page("casa")
        mirror.upsert_all([make_entry("casa")])
        assert notion.words() == ["casa"]

    def test_partial_failure_isolated(self, mirror: NotionMirror, notion: FakeNotion):
        notion.fail_words = {"b"}
        report = mirror.upsert_all([make_entry("a"), make_entry("b"), make_entry("c")])
        assert notion.words() == ["a", "c"]
        assert set(report.failures) == {"b"}
        assert not report.ok

    def test_follows_pagination(self, mirror: NotionMirror, notion: FakeNotion):
        notion.page_size = 2
        for word in "abcde":
            notion.add_page(word)
        report = mirror.upsert_all([make_entry(w) for w in "abcde"])
        assert sorted(report.updated) == list("abcde")
        assert report.created == []

    def test_long_definition_split_into_segments(self, mirror: NotionMirror, notion: FakeNotion):
        long_def = "x" * 4500
        mirror.upsert_all([make_entry("a", definition=long_def)])
        segments = notion.page_for("a")["properties"]["Definition"]["rich_text"]
        assert len(segments) == 3
        assert mirror.fetch_all()[0].definition == long_def

    def test_empty_word_skipped_not_created(self, mirror: NotionMirror, notion: FakeNotion):
        blank = Entry(id="a-1", word="", saved_at=T0)
        for _ in range(3):
            report = mirror.upsert_all([blank, make_entry("casa")])
        assert len(notion.live_pages()) == 1
        assert notion.words() == ["casa"]
        assert report.skipped == ["a-1"]
        assert report.ok
        assert "1 skipped" in report.summary()


# ---------------------------------------------------------------------------
# fetch_all()
# ---------------------------------------------------------------------------


class TestFetchAll:
    def test_round_trip(self, mirror: NotionMirror, casa):
        mirror.upsert_all([casa])
        (entry,) = mirror.fetch_all()
        assert entry.word == "casa"
        assert entry.definition == "house"
        assert entry.examples == [Example("Mi casa es grande", "My house is big")]
        assert entry.saved_at == T0

    def test_skips_pages_without_word(self, mirror: NotionMirror, notion: FakeNotion):
        notion.add_page("")
        notion.add_page("casa")
        assert [e.word for e in mirror.fetch_all()] == ["casa"]

    def test_malformed_example_line_dropped(self, mirror: NotionMirror, notion: FakeNotion):
        notion.add_page("casa", Examples=_rich("Hola → Hello\n\nbroken line"))
        assert mirror.fetch_all()[0].examples == [Example("Hola", "Hello")]

    def test_missing_fields_default(self, mirror: NotionMirror, notion: FakeNotion):
        notion.add_page("casa")
        entry = mirror.fetch_all()[0]
        assert entry.examples == []
        assert entry.definition == ""
        assert entry.image_url == ""

    def test_unreadable_date_defaults_to_now(self, mirror: NotionMirror, notion: FakeNotion):
        notion.add_page("casa", **{"Saved At": {"date": {"start": "not a date"}}})
        (entry,) = mirror.fetch_all()
        assert entry.word == "casa"
        assert entry.saved_at > T0

    def test_ids_unique_and_stable(self, mirror: NotionMirror, notion: FakeNotion):
        notion.add_page("casa")
        notion.add_page("casa")
        ids = [e.id for e in mirror.fetch_all()]
        assert len(set(ids)) == 2
        assert ids == [e.id for e in mirror.fetch_all()]

    def test_image_property(self, notion: FakeNotion):
        m = NotionMirror(
            API_KEY,
            DATABASE_ID,
            base_url="https://notion.test",
            image_property="Image",
            transport=httpx.MockTransport(notion),
        )
        m.upsert_all([make_entry("a", image_url="https://img/a.png")])
        assert m.fetch_all()[0].image_url == "https://img/a.png"
        m.close()


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_bad_key(self, mirror: NotionMirror):
        with pytest.raises(AuthError) as info:
            mirror.fetch_all(RemoteCredentials("wrong", DATABASE_ID))
        assert info.value.status_code == 401

    def test_bad_database(self, mirror: NotionMirror):
        with pytest.raises(NotFound):
            mirror.upsert_all([], RemoteCredentials(API_KEY, "missing"))

    def test_missing_credentials(self, notion: FakeNotion, monkeypatch):
        monkeypatch.delenv("WORDBOOK_NOTION_API_KEY", raising=False)
        monkeypatch.delenv("WORDBOOK_NOTION_DATABASE_ID", raising=False)
        m = NotionMirror(base_url="https://notion.test", transport=httpx.MockTransport(notion))
        assert not m.configured
        with pytest.raises(AuthError):
            m.fetch_all()
        assert notion.requests == []

    def test_network_failure_is_transient(self):
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        m = NotionMirror(API_KEY, DATABASE_ID, base_url="https://notion.test", transport=httpx.MockTransport(boom))
        with pytest.raises(TransientError):
            m.fetch_all()

    @pytest.mark.parametrize(
        "status, expected",
        [(429, TransientError), (503, TransientError), (403, AuthError), (400, RemoteError)],
    )
    def test_status_mapping(self, status, expected):
        m = NotionMirror(
            API_KEY,
            DATABASE_ID,
            base_url="https://notion.test",
            transport=httpx.MockTransport(lambda r: httpx.Response(status, json={"message": "nope"})),
        )
        with pytest.raises(expected):
            m.fetch_all()

    def test_non_json_success_is_transient(self):
        m = NotionMirror(
            API_KEY,
            DATABASE_ID,
            base_url="https://notion.test",
            transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>gateway</html>")),
        )
        with pytest.raises(TransientError):
            m.fetch_all()

    def test_non_json_create_recorded_as_failure(self, notion: FakeNotion):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST" and request.url.path == "/v1/pages" and b'"b"' in request.content:
                return httpx.Response(200, text="oops")
            return notion(request)

        m = NotionMirror(API_KEY, DATABASE_ID, base_url="https://notion.test", transport=httpx.MockTransport(handler))
        report = m.upsert_all([make_entry("a"), make_entry("b"), make_entry("c")])
        assert notion.words() == ["a", "c"]
        assert set(report.failures) == {"b"}
        m.close()

    def test_credentials_from_environment(self, notion: FakeNotion, monkeypatch, casa):
        monkeypatch.setenv("WORDBOOK_NOTION_API_KEY", API_KEY)
        monkeypatch.setenv("WORDBOOK_NOTION_DATABASE_ID", DATABASE_ID)
        with NotionMirror(base_url="https://notion.test", transport=httpx.MockTransport(notion)) as m:
            m.upsert_all([casa])
        assert notion.words() == ["casa"]


class TestProtocol:
    def test_satisfies_mirror_backend(self, mirror: NotionMirror):
        assert isinstance(mirror, MirrorBackend)

    def test_remote_key_is_word(self, casa):
        assert remote_key(casa) == "casa"
