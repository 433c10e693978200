"""
LaneBoard tests: finish recording and placement ranking.
"""
import pytest

from track_host.race.lanes import LaneBoard


@pytest.fixture
def board():
    board = LaneBoard(3)
    for lane in board:
        lane.armed = True
    return board


def test_lane_lookup_is_one_based():
    board = LaneBoard(3)
    assert board[1].number == 1
    assert board[3].number == 3
    assert len(board) == 3
    with pytest.raises(KeyError):
        board[0]
    with pytest.raises(KeyError):
        board[4]


def test_lane_count_is_configurable():
    assert len(LaneBoard(5)) == 5
    with pytest.raises(ValueError):
        LaneBoard(0)


def test_record_finish_requires_armed():
    board = LaneBoard(3)
    assert not board.record_finish(1, 1000)
    assert board[1].finish_ms is None


def test_record_finish_once(board):
    assert board.record_finish(2, 1500)
    assert not board.record_finish(2, 1700)
    assert board[2].finish_ms == 1500


def test_rank_is_permutation_of_finishers(board):
    board.record_finish(1, 3000)
    board.record_finish(3, 1000)

    order = board.rank()

    assert [lane.number for lane in order] == [3, 1]
    assert board[3].placement == 1
    assert board[1].placement == 2
    assert board[2].placement is None


def test_rank_breaks_ties_by_lane_number(board):
    board.record_finish(3, 1200)
    board.record_finish(1, 1200)
    board.record_finish(2, 1200)
    board.rank()
    assert [board[n].placement for n in (1, 2, 3)] == [1, 2, 3]


def test_rank_with_no_finishers(board):
    assert board.rank() == []
    assert all(lane.placement is None for lane in board)


def test_all_armed_finished(board):
    board[3].armed = False
    board.record_finish(1, 900)
    assert not board.all_armed_finished
    board.record_finish(2, 950)
    assert board.all_armed_finished


def test_clear_keeps_previous_finish(board):
    board.record_finish(1, 800)
    board.rank()
    board.archive_finishes()
    board.clear()

    lane = board[1]
    assert not lane.armed
    assert lane.finish_ms is None
    assert lane.placement is None
    assert lane.previous_finish_ms == 800


def test_clear_results_keeps_armed(board):
    board.record_finish(1, 800)
    board.clear_results()
    assert board[1].armed
    assert board[1].finish_ms is None
