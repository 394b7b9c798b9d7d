"""Tests for the file-backed data source."""

import json

import pytest

from timetable_engine.config import DirectorySource, SchedulingDataSource, Scope
from timetable_engine.exceptions import ConfigurationError


@pytest.fixture
def data_root(tmp_path):
    scope_dir = tmp_path / "school-1" / "term-1"
    scope_dir.mkdir(parents=True)
    (scope_dir / "teachers.json").write_text(
        json.dumps(
            [
                {
                    "id": "t1",
                    "first_name": "Anna",
                    "last_name": "Berg",
                    "preferred_periods": [{"day": "monday", "period": 1}],
                }
            ]
        ),
        encoding="utf-8",
    )
    (scope_dir / "classes.csv").write_text(
        "id,name,grade_level,student_count\n 7a , 7A ,7,24\n", encoding="utf-8"
    )
    (scope_dir / "subjects.csv").write_text(
        "id,name,requires_lab\nmath,Mathematics,false\nchem,Chemistry,true\n",
        encoding="utf-8",
    )
    (scope_dir / "rooms.csv").write_text(
        'id,name,room_type,capacity,equipment\nr1,Room 1,classroom,30,"projector;whiteboard"\n',
        encoding="utf-8",
    )
    (scope_dir / "teacher-subjects.csv").write_text(
        "teacher_id,subject_id,proficiency\nt1,math,4\n", encoding="utf-8"
    )
    (scope_dir / "class-subjects.json").write_text(
        json.dumps([{"class_id": "7a", "subject_id": "math", "periods_per_week": 2}]),
        encoding="utf-8",
    )
    (scope_dir / "settings.json").write_text(
        json.dumps({"workingDays": ["monday", "tuesday"], "periodsPerDay": 2}),
        encoding="utf-8",
    )
    (tmp_path / "school-1" / "term-2").mkdir()
    return tmp_path


class TestDirectorySource:
    """Tests for DirectorySource."""

    def test_satisfies_protocol(self, data_root):
        assert isinstance(DirectorySource(data_root), SchedulingDataSource)

    def test_reads_json_rows(self, data_root):
        teachers = DirectorySource(data_root).list_teachers(Scope("school-1", "term-1"))
        assert teachers[0]["id"] == "t1"
        assert teachers[0]["preferred_periods"] == [{"day": "monday", "period": 1}]

    def test_csv_values_are_stripped(self, data_root):
        classes = DirectorySource(data_root).list_classes(Scope("school-1", "term-1"))
        assert classes == [{"id": "7a", "name": "7A", "grade_level": "7", "student_count": "24"}]

    def test_quoted_csv_field(self, data_root):
        rooms = DirectorySource(data_root).list_rooms(Scope("school-1", "term-1"))
        assert rooms[0]["equipment"] == "projector;whiteboard"

    def test_missing_files_yield_no_rows(self, data_root):
        source = DirectorySource(data_root)
        scope = Scope("school-1", "term-1")
        assert source.list_availability(scope) == []
        assert source.list_fixed_assignments(scope) == []
        assert source.list_teachers(Scope("school-1", "term-2")) == []
        assert source.get_settings(Scope("school-1", "term-2")) == {}

    def test_settings(self, data_root):
        settings = DirectorySource(data_root).get_settings(Scope("school-1", "term-1"))
        assert settings == {"workingDays": ["monday", "tuesday"], "periodsPerDay": 2}

    def test_malformed_json(self, data_root):
        (data_root / "school-1" / "term-1" / "teachers.json").write_text("[{", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            DirectorySource(data_root).list_teachers(Scope("school-1", "term-1"))
        assert "teachers.json" in str(exc_info.value)

    def test_json_rows_must_be_a_list(self, data_root):
        (data_root / "school-1" / "term-1" / "class-subjects.json").write_text(
            '{"class_id": "7a"}', encoding="utf-8"
        )
        with pytest.raises(ConfigurationError):
            DirectorySource(data_root).list_class_subject_requirements(Scope("school-1", "term-1"))

    def test_settings_must_be_an_object(self, data_root):
        (data_root / "school-1" / "term-1" / "settings.json").write_text("[]", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            DirectorySource(data_root).get_settings(Scope("school-1", "term-1"))

    def test_list_scopes(self, data_root):
        assert DirectorySource(data_root).list_scopes() == [
            Scope("school-1", "term-1"),
            Scope("school-1", "term-2"),
        ]

    def test_list_scopes_of_missing_root(self, tmp_path):
        assert DirectorySource(tmp_path / "nowhere").list_scopes() == []
