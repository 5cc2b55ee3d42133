"""
Unit tests for edit_state_store module.

Tests saving, loading and listing .oaedit files, including tolerance for
missing and malformed files.
"""

import json

import pytest

from OA_Libs.ImageEditingLib.filter_model import FilterParameters
from OA_Libs.SessionLib.edit_session import EditSession
from OA_Libs.SessionLib.edit_state_store import (
    build_edit_state,
    list_edit_state_files,
    load_edit_state,
    save_edit_state,
)


@pytest.fixture
def session(png_bytes_factory):
    """Provide a session with two images, the second rotated and blurred."""
    session = EditSession(80, 60)
    session.add_images([png_bytes_factory(), png_bytes_factory()])
    session.update_filters(1, FilterParameters(rotation=90, blur=2.5))
    session.select_image(1)
    return session


class TestBuildEditState:
    """Tests for build_edit_state function."""

    def test_payload_fields(self, session):
        payload = build_edit_state(session)

        assert payload["schema_version"] == 1
        assert payload["active_index"] == 1
        assert "saved_at" in payload
        assert [entry["label"] for entry in payload["entries"]] == ["image-0", "image-1"]
        assert payload["entries"][1]["filters"]["rotation"] == 90
        assert payload["entries"][1]["filters"]["blur"] == 2.5

    def test_payload_is_json_serializable(self, session):
        json.dumps(build_edit_state(session))


class TestSaveEditState:
    """Tests for save_edit_state function."""

    def test_appends_extension(self, session, tmp_path):
        path = save_edit_state(tmp_path / "review", session)

        assert path == tmp_path / "review.oaedit"
        assert path.exists()

    def test_keeps_existing_extension(self, session, tmp_path):
        path = save_edit_state(tmp_path / "review.oaedit", session)

        assert path == tmp_path / "review.oaedit"

    def test_creates_parent_directories(self, session, tmp_path):
        path = save_edit_state(tmp_path / "nested" / "dir" / "state", session)

        assert path.exists()

    def test_writes_indented_json(self, session, tmp_path):
        path = save_edit_state(tmp_path / "state", session)

        text = path.read_text(encoding="utf-8")
        assert text.startswith("{\n  ")
        assert json.loads(text)["active_index"] == 1


class TestLoadEditState:
    """Tests for load_edit_state function."""

    def test_round_trip(self, session, tmp_path):
        path = save_edit_state(tmp_path / "state", session)

        state = load_edit_state(path)

        assert state["schema_version"] == 1
        assert state["active_index"] == 1
        assert state["labels"] == ["image-0", "image-1"]
        assert state["filters"] == [FilterParameters(), FilterParameters(rotation=90, blur=2.5)]

    def test_missing_file_loads_empty(self, tmp_path):
        state = load_edit_state(tmp_path / "missing.oaedit")

        assert state["filters"] == []
        assert state["labels"] == []
        assert state["active_index"] == 0

    def test_malformed_json_loads_empty(self, tmp_path):
        path = tmp_path / "broken.oaedit"
        path.write_text("{not json", encoding="utf-8")

        assert load_edit_state(path)["filters"] == []

    def test_non_object_payload_loads_empty(self, tmp_path):
        path = tmp_path / "list.oaedit"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        assert load_edit_state(path)["filters"] == []

    def test_invalid_entries_get_defaults(self, tmp_path):
        path = tmp_path / "partial.oaedit"
        path.write_text(json.dumps({
            "active_index": "two",
            "entries": [
                "not a dict",
                {"label": "bad filters", "filters": {"blur": "heavy"}},
                {"label": "no filters"},
            ],
        }), encoding="utf-8")

        state = load_edit_state(path)

        assert state["active_index"] == 0
        assert state["labels"] == ["", "bad filters", "no filters"]
        assert state["filters"] == [FilterParameters()] * 3

    def test_out_of_range_values_are_clamped(self, tmp_path):
        path = tmp_path / "wild.oaedit"
        path.write_text(json.dumps({
            "active_index": -4,
            "entries": [{"filters": {"rotation": 100, "blur": 99, "brightness": -5, "extra": 1}}],
        }), encoding="utf-8")

        state = load_edit_state(path)

        assert state["active_index"] == 0
        assert state["filters"] == [FilterParameters(rotation=90, blur=20, brightness=0)]


class TestListEditStateFiles:
    """Tests for list_edit_state_files function."""

    def test_lists_sorted_state_files(self, tmp_path):
        (tmp_path / "b.oaedit").write_text("{}", encoding="utf-8")
        (tmp_path / "a.oaedit").write_text("{}", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("", encoding="utf-8")

        files = list_edit_state_files(tmp_path)

        assert [f.name for f in files] == ["a.oaedit", "b.oaedit"]

    def test_missing_directory(self, tmp_path):
        assert list_edit_state_files(tmp_path / "nope") == []
