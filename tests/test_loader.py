"""Tests for src.data.loader — roster document loading and validation."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.core.roster import members_of
from src.data.loader import MAX_GROUP_ID_BYTES, DataLoadError, load_roster, parse_roster
from src.data.models import Weekday


def _doc(**overrides):
    doc = {
        "groups": [
            {"id": "g1", "name": "G1", "description": "Public"},
            {"id": "g2", "name": "G2", "description": "Locked", "password": "xyz"},
        ],
        "people": [
            {
                "id": "alice",
                "name": "Alice",
                "groups": ["g1", "g2"],
                "schedule": [
                    {
                        "day": "Tuesday", "startTime": "09:00", "endTime": "10:00",
                        "course": "Math", "time": "09:00-10:00", "location": "Room 301",
                    },
                ],
            },
            {"id": "bob", "name": "Bob", "groups": ["g1"], "schedule": []},
        ],
    }
    doc.update(overrides)
    return doc


def _entry(**overrides):
    entry = {"day": "Monday", "startTime": "08:00", "endTime": "09:00", "course": "X"}
    entry.update(overrides)
    return entry


def _with_schedule(*entries):
    return _doc(people=[{"id": "p", "name": "P", "groups": ["g1"], "schedule": list(entries)}])


class TestParseRoster:
    def test_valid_document(self):
        roster = parse_roster(_doc())
        assert [g.id for g in roster.groups] == ["g1", "g2"]
        assert roster.group("g1").secret is None
        assert roster.group("g2").secret == "xyz"

        alice = roster.people[0]
        assert alice.group_memberships == frozenset({"g1", "g2"})
        entry = alice.schedule[0]
        assert entry.day is Weekday.TUESDAY
        assert (entry.start, entry.end) == (540, 600)
        assert entry.activity == "Math"
        assert entry.location == "Room 301"
        assert entry.time_label == "09:00-10:00"

    def test_optional_fields_default(self):
        roster = parse_roster(_doc(people=[{"id": "p", "name": "P"}]))
        person = roster.people[0]
        assert person.group_memberships == frozenset()
        assert person.schedule == ()

    def test_numeric_ids_coerced(self):
        roster = parse_roster(
            _doc(groups=[{"id": 1, "name": "One"}], people=[{"id": 7, "name": "P", "groups": [1]}])
        )
        assert roster.groups[0].id == "1"
        assert roster.people[0].group_memberships == frozenset({"1"})

    def test_empty_password_is_public(self):
        roster = parse_roster(_doc(groups=[{"id": "g1", "name": "G1", "password": ""}]))
        assert roster.group("g1").secret is None

    def test_missing_top_level_key(self):
        with pytest.raises(DataLoadError, match="malformed"):
            parse_roster({"groups": []})

    def test_not_an_object(self):
        with pytest.raises(DataLoadError):
            parse_roster(["groups", "people"])

    @pytest.mark.parametrize("bad_time", ["9am", "25:00", "12:5", ""])
    def test_bad_time_rejected(self, bad_time):
        with pytest.raises(DataLoadError):
            parse_roster(_with_schedule(_entry(startTime=bad_time)))

    def test_unknown_day_rejected(self):
        with pytest.raises(DataLoadError):
            parse_roster(_with_schedule(_entry(day="Funday")))

    def test_inverted_window_rejected(self):
        with pytest.raises(DataLoadError, match="earlier than startTime"):
            parse_roster(_with_schedule(_entry(startTime="10:00", endTime="09:00")))

    def test_zero_length_window_allowed(self):
        roster = parse_roster(_with_schedule(_entry(startTime="10:00", endTime="10:00")))
        assert roster.people[0].schedule[0].start == 600

    def test_duplicate_group_ids_rejected(self):
        groups = [{"id": "g1", "name": "A"}, {"id": "g1", "name": "B"}]
        with pytest.raises(DataLoadError, match="Duplicate group ids"):
            parse_roster(_doc(groups=groups))

    def test_unknown_group_reference_warns(self, caplog):
        doc = _doc(people=[{"id": "p", "name": "P", "groups": ["g1", "ghost"]}])
        with caplog.at_level(logging.WARNING, logger="src.data.loader"):
            roster = parse_roster(doc)
        assert "ghost" in caplog.text
        assert roster.people[0].group_memberships == frozenset({"g1", "ghost"})

    def test_overlapping_entries_warn_but_load(self, caplog):
        doc = _with_schedule(
            _entry(startTime="09:00", endTime="10:00", course="Math"),
            _entry(startTime="09:30", endTime="11:00", course="Lab"),
        )
        with caplog.at_level(logging.WARNING, logger="src.data.loader"):
            roster = parse_roster(doc)
        assert "Overlapping" in caplog.text
        assert [e.activity for e in roster.people[0].schedule] == ["Math", "Lab"]

    def test_back_to_back_entries_reported_as_overlap(self, caplog):
        doc = _with_schedule(
            _entry(startTime="09:00", endTime="10:00"),
            _entry(startTime="10:00", endTime="11:00"),
        )
        with caplog.at_level(logging.WARNING, logger="src.data.loader"):
            parse_roster(doc)
        assert "Overlapping" in caplog.text

    def test_different_days_do_not_overlap(self, caplog):
        doc = _with_schedule(_entry(day="Monday"), _entry(day="Tuesday"))
        with caplog.at_level(logging.WARNING, logger="src.data.loader"):
            parse_roster(doc)
        assert "Overlapping" not in caplog.text

    def test_null_groups_and_schedule_load_as_empty(self):
        roster = parse_roster(_doc(people=[{"id": "p", "name": "P", "groups": None, "schedule": None}]))
        person = roster.people[0]
        assert person.group_memberships == frozenset()
        assert person.schedule == ()
        assert members_of(roster.people, "g1") == []

    def test_group_id_fits_callback_data(self):
        roster = parse_roster(_doc(groups=[{"id": "g" * MAX_GROUP_ID_BYTES, "name": "Long"}]))
        assert len(roster.groups[0].id) == MAX_GROUP_ID_BYTES

    def test_overlong_group_id_rejected(self):
        groups = [{"id": "g" * (MAX_GROUP_ID_BYTES + 1), "name": "Too long"}]
        with pytest.raises(DataLoadError, match="longer than"):
            parse_roster(_doc(groups=groups))


class TestLoadRosterFromFile:
    @pytest.mark.asyncio
    async def test_loads_file(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text(json.dumps(_doc()), encoding="utf-8")
        roster = await load_roster(str(path))
        assert len(roster.people) == 2

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(DataLoadError, match="Could not read roster file"):
            await load_roster(str(tmp_path / "missing.json"))

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataLoadError, match="not valid JSON"):
            await load_roster(str(path))

    @pytest.mark.asyncio
    async def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_bytes(b'{"groups": [{"id": "g\xff", "name": "G"}], "people": []}')
        with pytest.raises(DataLoadError, match="not valid UTF-8"):
            await load_roster(str(path))


def _mock_client(resp=None, side_effect=None):
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client.get = AsyncMock(return_value=resp, side_effect=side_effect)
    return mock_client


class TestLoadRosterFromUrl:
    @pytest.mark.asyncio
    async def test_fetches_url(self):
        mock_resp = MagicMock()
        mock_resp.json.return_value = _doc()
        mock_resp.raise_for_status = MagicMock()
        mock_client = _mock_client(resp=mock_resp)

        with patch("src.data.loader.httpx.AsyncClient", return_value=mock_client):
            roster = await load_roster("https://example.com/data.json")

        mock_client.get.assert_awaited_once_with("https://example.com/data.json")
        assert roster.group("g2").secret == "xyz"

    @pytest.mark.asyncio
    async def test_http_error(self):
        mock_client = _mock_client(side_effect=httpx.ConnectError("connection refused"))

        with patch("src.data.loader.httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(DataLoadError, match="Could not fetch roster"):
                await load_roster("http://example.com/data.json")

    @pytest.mark.asyncio
    async def test_bad_status(self):
        mock_resp = MagicMock()
        mock_resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "404 Not Found", request=MagicMock(), response=MagicMock(),
        )
        mock_client = _mock_client(resp=mock_resp)

        with patch("src.data.loader.httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(DataLoadError, match="404"):
                await load_roster("https://example.com/data.json")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        mock_resp = MagicMock()
        mock_resp.raise_for_status = MagicMock()
        mock_resp.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
        mock_client = _mock_client(resp=mock_resp)

        with patch("src.data.loader.httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(DataLoadError, match="not valid JSON"):
                await load_roster("https://example.com/data.json")
