"""
Lane records - per-lane arming, timing and placement.
"""

from __future__ import annotations

from dataclasses import dataclass

from track_host.config import LANE_COUNT


@dataclass
class Lane:
    """One physical lane with its own start and finish beams."""

    number: int  # 1-based, matches track-N-* keys
    armed: bool = False
    finish_ms: int | None = None
    placement: int | None = None
    previous_finish_ms: int | None = None

    @property
    def has_finished(self) -> bool:
        return self.finish_ms is not None

    def clear_result(self):
        """Forget this race's finish time and rank."""
        self.finish_ms = None
        self.placement = None

    def clear(self):
        """Forget everything except the previous race's time."""
        self.armed = False
        self.clear_result()


class LaneBoard:
    """
    Fixed-size collection of lanes, indexed by lane number.

    Usage:
        board = LaneBoard()
        board[1].armed = True
        board.record_finish(1, 1200)
        board.rank()
    """

    def __init__(self, count: int = LANE_COUNT):
        if count < 1:
            raise ValueError(f"Need at least one lane, got {count}")
        self.lanes = [Lane(number=n) for n in range(1, count + 1)]

    def __len__(self) -> int:
        return len(self.lanes)

    def __iter__(self):
        return iter(self.lanes)

    def __getitem__(self, number: int) -> Lane:
        if not 1 <= number <= len(self.lanes):
            raise KeyError(f"No lane {number}")
        return self.lanes[number - 1]

    @property
    def any_armed(self) -> bool:
        return any(lane.armed for lane in self.lanes)

    @property
    def all_armed_finished(self) -> bool:
        """True when every armed lane has a finish (vacuously true if none armed)."""
        return all(lane.has_finished for lane in self.lanes if lane.armed)

    def clear(self):
        for lane in self.lanes:
            lane.clear()

    def clear_results(self):
        for lane in self.lanes:
            lane.clear_result()

    def record_finish(self, number: int, elapsed_ms: int) -> bool:
        """
        Record a finish for one lane.

        Returns:
            False if the lane is not armed or already finished.
        """
        lane = self[number]
        if not lane.armed or lane.has_finished:
            return False
        lane.finish_ms = elapsed_ms
        return True

    def rank(self) -> list[Lane]:
        """
        Assign placements 1..k to finished lanes, fastest first.

        Ties go to the lower lane number. Unfinished lanes get no placement.

        Returns:
            Finished lanes in placement order.
        """
        finished = sorted(
            (lane for lane in self.lanes if lane.has_finished),
            key=lambda lane: (lane.finish_ms, lane.number),
        )
        for lane in self.lanes:
            lane.placement = None
        for place, lane in enumerate(finished, start=1):
            lane.placement = place
        return finished

    def archive_finishes(self):
        """Keep this race's times for display after the reset."""
        for lane in self.lanes:
            lane.previous_finish_ms = lane.finish_ms
