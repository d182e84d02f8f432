"""Tests for core/models - record normalization."""

from core.models import Record, RecordFields, SortOrder

from conftest import make_record


class TestRecordFieldsFromData:
    """Whatever the service stored becomes well-typed fields."""

    def test_well_formed(self):
        fields = RecordFields.from_data({"title": "T", "notes": "N", "completed": True})
        assert (fields.title, fields.notes, fields.completed) == ("T", "N", True)

    def test_none_gives_defaults(self):
        assert RecordFields.from_data(None) == RecordFields()

    def test_non_string_title_and_notes_become_empty(self):
        fields = RecordFields.from_data({"title": 5, "notes": None})
        assert fields.title == ""
        assert fields.notes == ""

    def test_completion_from_strings_and_truthiness(self):
        assert RecordFields.from_data({"completed": "True"}).completed is True
        assert RecordFields.from_data({"completed": "yes"}).completed is False
        assert RecordFields.from_data({"completed": 1}).completed is True
        assert RecordFields.from_data({"completed": 0}).completed is False

    def test_extension_fields_preserved(self):
        fields = RecordFields.from_data({"title": "T", "priority": "high"})
        assert fields.to_payload() == {
            "title": "T",
            "notes": "",
            "completed": False,
            "priority": "high",
        }

    def test_trimmed(self):
        fields = RecordFields(title="  T ", notes=" n ").trimmed()
        assert (fields.title, fields.notes) == ("T", "n")


class TestRecord:

    def test_parses_service_shape(self):
        record = Record.model_validate(make_record("r1", "Title", completed=True))

        assert record.id == "r1"
        assert record.owner_id == "user-1"
        assert record.fields.title == "Title"
        assert record.completed is True

    def test_numeric_id_and_missing_data(self):
        record = Record.model_validate({"id": 12, "data": None})

        assert record.id == "12"
        assert record.data == {}
        assert record.owner_id is None


class TestSortOrder:

    def test_parse(self):
        assert SortOrder.parse("asc") is SortOrder.ASC
        assert SortOrder.parse("ASC") is SortOrder.ASC
        assert SortOrder.parse("desc") is SortOrder.DESC
        assert SortOrder.parse(None) is SortOrder.DESC
        assert SortOrder.parse("random") is SortOrder.DESC
