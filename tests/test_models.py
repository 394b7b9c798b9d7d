"""Tests for data models."""

import pytest

from timetable_engine.exceptions import SearchBudgetExceeded
from timetable_engine.models import (
    Assignment,
    Candidate,
    PeriodWindow,
    Room,
    RoomType,
    SearchResult,
    SearchStatus,
    Subject,
    Teacher,
    TimeSlot,
    TimetableVersion,
    Variable,
)


class TestTimeSlot:
    """Tests for TimeSlot."""

    def test_ordering_is_day_major(self):
        slots = [TimeSlot(1, 1), TimeSlot(0, 3), TimeSlot(0, 1)]
        assert sorted(slots) == [TimeSlot(0, 1), TimeSlot(0, 3), TimeSlot(1, 1)]

    def test_equal_coordinates_are_equal(self):
        assert TimeSlot(2, 4) == TimeSlot(2, 4)
        assert len({TimeSlot(2, 4), TimeSlot(2, 4)}) == 1

    def test_str(self):
        assert str(TimeSlot(0, 3)) == "D0P3"


class TestPeriodWindow:
    """Tests for PeriodWindow."""

    def test_window_without_day_applies_every_day(self):
        window = PeriodWindow(2, 4)
        assert window.contains(TimeSlot(0, 2))
        assert window.contains(TimeSlot(3, 4))
        assert not window.contains(TimeSlot(0, 5))

    def test_window_with_day(self):
        window = PeriodWindow(1, 2, day_index=1)
        assert window.contains(TimeSlot(1, 1))
        assert not window.contains(TimeSlot(0, 1))


class TestVariable:
    """Tests for Variable."""

    def test_id_format(self):
        assert Variable("7a", "math", 2).id == "7a_math_2"

    def test_requirement_key(self):
        assert Variable("7a", "math", 0).requirement_key == ("7a", "math")


class TestTeacher:
    """Tests for Teacher."""

    def test_capabilities(self):
        teacher = Teacher(id="t1", name="Anna", capabilities={"math": 4})
        assert teacher.can_teach("math")
        assert not teacher.can_teach("art")
        assert teacher.proficiency("math") == 4
        assert teacher.proficiency("art") == 0

    def test_identity_by_id(self):
        assert Teacher(id="t1", name="A") == Teacher(id="t1", name="B")
        assert len({Teacher(id="t1", name="A"), Teacher(id="t1", name="B")}) == 1


class TestRoom:
    """Tests for Room."""

    def test_lab_subject_needs_lab(self):
        subject = Subject(id="chem", name="Chemistry", requires_lab=True)
        assert not Room(id="r1", name="Room 1").satisfies(subject)
        assert Room(id="lab", name="Lab", room_type=RoomType.LAB, is_lab=True).satisfies(subject)

    def test_specialist_subject_needs_specialist_room(self):
        subject = Subject(id="music", name="Music", requires_specialist_room=True)
        assert not Room(id="r1", name="Room 1").satisfies(subject)
        assert Room(id="m", name="Music Room", is_specialist=True).satisfies(subject)

    def test_capacity_checked_when_both_known(self):
        subject = Subject(id="math", name="Math")
        room = Room(id="r1", name="Room 1", capacity=20)
        assert room.satisfies(subject, student_count=20)
        assert not room.satisfies(subject, student_count=21)
        assert room.satisfies(subject, student_count=0)
        assert Room(id="r2", name="Room 2").satisfies(subject, student_count=500)

    def test_availability_windows(self):
        room = Room(id="r1", name="Room 1", availability=(PeriodWindow(1, 3),))
        assert room.is_open(TimeSlot(0, 3))
        assert not room.is_open(TimeSlot(0, 4))
        assert Room(id="r2", name="Room 2").is_open(TimeSlot(4, 8))


class TestAssignment:
    """Tests for Assignment."""

    def test_for_variable(self):
        candidate = Candidate(TimeSlot(1, 2), "t1", "r1")
        assignment = Assignment.for_variable(Variable("7a", "math", 0), candidate)
        assert assignment.variable_id == "7a_math_0"
        assert assignment.candidate == candidate
        assert not assignment.pinned

    def test_moved_to_keeps_identity(self):
        assignment = Assignment("7a_math_0", "7a", "math", TimeSlot(0, 1), "t1", "r1", pinned=True)
        moved = assignment.moved_to(Candidate(TimeSlot(0, 2), "t2", "r2"))
        assert moved.variable_id == "7a_math_0"
        assert moved.slot == TimeSlot(0, 2)
        assert moved.teacher_id == "t2"
        assert moved.pinned
        assert assignment.slot == TimeSlot(0, 1)

    def test_dict_round_trip(self):
        assignment = Assignment("7a_math_1", "7a", "math", TimeSlot(3, 5), "t1", "r1")
        data = assignment.to_dict()
        assert data["day_index"] == 3
        assert data["period"] == 5
        assert Assignment.from_dict(data) == assignment


class TestSearchResult:
    """Tests for SearchResult."""

    def test_complete(self):
        result = SearchResult(status=SearchStatus.COMPLETE)
        assert result.is_complete
        result.raise_for_status()

    def test_partial_raises_on_request(self):
        result = SearchResult(
            status=SearchStatus.BUDGET_EXHAUSTED,
            unresolved_variables=["7a_math_1"],
            iteration_count=10,
        )
        assert not result.is_complete
        with pytest.raises(SearchBudgetExceeded) as exc_info:
            result.raise_for_status()
        assert exc_info.value.unresolved == ["7a_math_1"]
        assert exc_info.value.status == "budget_exhausted"


class TestTimetableVersion:
    """Tests for TimetableVersion."""

    def test_to_dict(self):
        assignment = Assignment("7a_math_0", "7a", "math", TimeSlot(0, 1), "t1", "r1")
        version = TimetableVersion(
            version_id="v1",
            school_id="school-1",
            term_id="term-1",
            name="Generated timetable",
            assignments=(assignment,),
            status=SearchStatus.COMPLETE,
            score=99.5,
        )
        data = version.to_dict()
        assert data["version_id"] == "v1"
        assert data["status"] == "complete"
        assert data["assignments"] == [assignment.to_dict()]
        assert "assignments" not in version.metadata()

    def test_is_immutable(self):
        version = TimetableVersion("v1", "s", "t", "n", (), SearchStatus.COMPLETE, 0.0)
        with pytest.raises(AttributeError):
            version.score = 10.0
