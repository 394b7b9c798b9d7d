"""Tests for occupancy tracking and conflict detection."""

import pytest

from timetable_engine.conflicts import ConflictDetector, ConflictTracker
from timetable_engine.models import Assignment, ConflictType, TimeSlot, Variable


def _assignment(variable_id, class_id, teacher_id, room_id, day=0, period=1, subject_id="math"):
    return Assignment(
        variable_id=variable_id,
        class_id=class_id,
        subject_id=subject_id,
        slot=TimeSlot(day, period),
        teacher_id=teacher_id,
        room_id=room_id,
    )


class TestConflictTracker:
    """Tests for ConflictTracker."""

    def test_reserve_marks_busy(self):
        tracker = ConflictTracker()
        tracker.reserve(_assignment("7a_math_1", "7a", "t1", "r1"))
        slot = TimeSlot(0, 1)

        assert not tracker.is_class_free("7a", slot)
        assert not tracker.is_teacher_free("t1", slot)
        assert not tracker.is_room_free("r1", slot)
        assert tracker.is_class_free("7b", slot)
        assert tracker.is_teacher_free("t1", TimeSlot(0, 2))
        assert tracker.class_occupant("7a", slot) == "7a_math_1"
        assert tracker.get_teacher_daily_load("t1", 0) == 1
        assert tracker.get_teacher_weekly_load("t1") == 1
        assert len(tracker) == 1

    def test_release_frees_slot(self):
        tracker = ConflictTracker.from_assignments(
            [
                _assignment("7a_math_1", "7a", "t1", "r1"),
                _assignment("7a_math_2", "7a", "t1", "r1", day=1),
            ]
        )

        released = tracker.release("7a_math_1")

        assert released.variable_id == "7a_math_1"
        assert tracker.is_teacher_free("t1", TimeSlot(0, 1))
        assert tracker.get_teacher_daily_load("t1", 0) == 0
        assert tracker.get_teacher_weekly_load("t1") == 1
        assert tracker.class_occupant("7a", TimeSlot(0, 1)) is None

    def test_double_reserve_rejected(self):
        tracker = ConflictTracker()
        assignment = _assignment("7a_math_1", "7a", "t1", "r1")
        tracker.reserve(assignment)

        with pytest.raises(ValueError):
            tracker.reserve(assignment)

    def test_release_unknown(self):
        with pytest.raises(KeyError):
            ConflictTracker().release("nope")

    def test_release_keeps_other_occupant(self):
        tracker = ConflictTracker()
        tracker.reserve(_assignment("a", "7a", "t1", "r1"))
        tracker.reserve(_assignment("b", "7b", "t1", "r2"))

        tracker.release("a")

        # the teacher entry points at "b" now
        assert not tracker.is_teacher_free("t1", TimeSlot(0, 1))


class TestConflictDetector:
    """Tests for ConflictDetector."""

    def test_clean_timetable(self):
        assignments = [
            _assignment("7a_math_1", "7a", "t1", "r1"),
            _assignment("7b_math_1", "7b", "t2", "r2"),
            _assignment("7a_math_2", "7a", "t1", "r1", period=2),
        ]

        assert ConflictDetector().detect(assignments) == []

    def test_teacher_double_booked(self):
        assignments = [
            _assignment("7a_math_1", "7a", "t1", "r1"),
            _assignment("7b_math_1", "7b", "t1", "r2"),
        ]

        conflicts = ConflictDetector().detect(assignments)

        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.conflict_type == ConflictType.TEACHER_DOUBLE_BOOKED
        assert conflict.entity_id == "t1"
        assert conflict.slot == TimeSlot(0, 1)
        assert conflict.variable_ids == ("7a_math_1", "7b_math_1")

    def test_all_kinds_in_slot_order(self):
        assignments = [
            _assignment("x", "7a", "t1", "r1", day=1),
            _assignment("y", "7a", "t1", "r1", day=1),
            _assignment("z", "7b", "t2", "r2", day=0, period=3),
            _assignment("w", "7c", "t3", "r2", day=0, period=3),
        ]

        conflicts = ConflictDetector().detect(assignments)

        assert [(c.slot, c.conflict_type) for c in conflicts] == [
            (TimeSlot(0, 3), ConflictType.ROOM_DOUBLE_BOOKED),
            (TimeSlot(1, 1), ConflictType.TEACHER_DOUBLE_BOOKED),
            (TimeSlot(1, 1), ConflictType.ROOM_DOUBLE_BOOKED),
            (TimeSlot(1, 1), ConflictType.CLASS_DOUBLE_BOOKED),
        ]

    def test_detection_is_repeatable(self):
        assignments = [
            _assignment("b", "7b", "t1", "r2"),
            _assignment("a", "7a", "t1", "r1"),
        ]
        detector = ConflictDetector()

        assert detector.detect(assignments) == detector.detect(list(reversed(assignments)))

    def test_conflict_to_dict(self):
        conflicts = ConflictDetector().detect(
            [_assignment("a", "7a", "t1", "r1"), _assignment("b", "7b", "t2", "r1")]
        )

        data = conflicts[0].to_dict()

        assert data["type"] == "room_double_booked"
        assert data["variable_ids"] == ["a", "b"]
        assert data["entity_id"] == "r1"

    def test_coverage_gaps(self):
        variables = [Variable("7a", "math", 1), Variable("7a", "math", 2)]
        assignments = [
            _assignment("7a_math_1", "7a", "t1", "r1"),
            _assignment("7a_math_1", "7a", "t1", "r1", period=2),
        ]

        missing, duplicated = ConflictDetector().find_coverage_gaps(variables, assignments)

        assert missing == ["7a_math_2"]
        assert duplicated == ["7a_math_1"]
