"""Variable domains and the undo trail used during search."""

from collections import Counter, defaultdict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from ..models import Candidate, TimeSlot


class DomainStore:
    """Candidate sets of every variable, indexed by slot.

    Indexing by slot keeps propagation local: an assignment at a slot can
    only invalidate other candidates at the same slot. The store also keeps
    per-slot demand counters (entries per class, teacher, room and
    teacher+room) that the value-ordering heuristic reads.
    """

    def __init__(
        self,
        domains: dict[str, Iterable[Candidate]] | None = None,
        class_of: dict[str, str] | None = None,
    ):
        self._domains: dict[str, dict[TimeSlot, set[Candidate]]] = {}
        self._sizes: dict[str, int] = {}
        self._class_of: dict[str, str] = dict(class_of or {})
        self.class_demand: Counter = Counter()
        self.teacher_demand: Counter = Counter()
        self.room_demand: Counter = Counter()
        self.pair_demand: Counter = Counter()
        for variable_id, candidates in (domains or {}).items():
            self.restore(variable_id, candidates)

    def __contains__(self, variable_id: str) -> bool:
        return variable_id in self._domains

    def variable_ids(self) -> list[str]:
        return list(self._domains)

    def size(self, variable_id: str) -> int:
        return self._sizes[variable_id]

    def is_empty(self, variable_id: str) -> bool:
        return self._sizes[variable_id] == 0

    def contains(self, variable_id: str, candidate: Candidate) -> bool:
        return candidate in self._domains[variable_id].get(candidate.slot, ())

    def iter_candidates(self, variable_id: str) -> Iterator[Candidate]:
        for entries in self._domains[variable_id].values():
            yield from entries

    def candidates(self, variable_id: str) -> list[Candidate]:
        """All candidates of a variable in lattice order."""
        return sorted(self.iter_candidates(variable_id))

    def slots(self, variable_id: str) -> list[TimeSlot]:
        return sorted(s for s, entries in self._domains[variable_id].items() if entries)

    def at_slot(self, variable_id: str, slot: TimeSlot) -> set[Candidate]:
        """Candidates of a variable at one slot. Do not mutate the result."""
        return self._domains[variable_id].get(slot, set())

    def _count(self, variable_id: str, candidate: Candidate, delta: int) -> None:
        slot, teacher_id, room_id = candidate
        class_id = self._class_of.get(variable_id)
        if class_id is not None:
            self.class_demand[(slot, class_id)] += delta
        self.teacher_demand[(slot, teacher_id)] += delta
        self.room_demand[(slot, room_id)] += delta
        self.pair_demand[(slot, teacher_id, room_id)] += delta

    def remove(self, variable_id: str, candidates: Iterable[Candidate]) -> set[Candidate]:
        """Remove candidates and return the ones that were actually present."""
        domain = self._domains[variable_id]
        removed = set()
        for candidate in candidates:
            entries = domain.get(candidate.slot)
            if entries and candidate in entries:
                entries.remove(candidate)
                removed.add(candidate)
                self._count(variable_id, candidate, -1)
                if not entries:
                    del domain[candidate.slot]
        self._sizes[variable_id] -= len(removed)
        return removed

    def restore(self, variable_id: str, candidates: Iterable[Candidate]) -> None:
        """Put candidates back into a variable's domain."""
        domain = self._domains.setdefault(variable_id, {})
        added = 0
        for candidate in candidates:
            entries = domain.setdefault(candidate.slot, set())
            if candidate not in entries:
                entries.add(candidate)
                self._count(variable_id, candidate, 1)
                added += 1
        self._sizes[variable_id] = self._sizes.get(variable_id, 0) + added

    def snapshot(
        self, variable_ids: Iterable[str] | None = None
    ) -> dict[str, frozenset[Candidate]]:
        """Immutable copy of the domains, for comparisons and diagnostics."""
        ids = list(self._domains) if variable_ids is None else variable_ids
        return {vid: frozenset(self.iter_candidates(vid)) for vid in ids}

    def copy(self) -> "DomainStore":
        return DomainStore(
            {vid: list(self.iter_candidates(vid)) for vid in self._domains},
            class_of=self._class_of,
        )


@dataclass
class TrailFrame:
    """Domain removals caused by one tentative assignment."""

    variable_id: str
    candidate: Candidate
    removed: dict[str, set[Candidate]] = field(default_factory=lambda: defaultdict(set))
    wiped_out: str | None = None

    @property
    def removed_count(self) -> int:
        return sum(len(entries) for entries in self.removed.values())


class Trail:
    """Stack of trail frames; undoing a frame restores exactly its removals."""

    def __init__(self, store: DomainStore):
        self.store = store
        self._frames: list[TrailFrame] = []

    def __len__(self) -> int:
        return len(self._frames)

    def push(self, frame: TrailFrame) -> None:
        self._frames.append(frame)

    def record(
        self, frame: TrailFrame, variable_id: str, candidates: Iterable[Candidate]
    ) -> None:
        """Remove candidates from a domain and log them in the frame."""
        removed = self.store.remove(variable_id, candidates)
        if removed:
            frame.removed[variable_id].update(removed)

    def undo(self) -> TrailFrame:
        """Pop the most recent frame and restore its removals.

        Raises:
            IndexError: If the trail is empty
        """
        frame = self._frames.pop()
        for variable_id, candidates in frame.removed.items():
            self.store.restore(variable_id, candidates)
        return frame
