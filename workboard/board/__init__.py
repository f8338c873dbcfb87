"""
Workboard Board

Prioritization of activity signals into a bounded task board.
"""

from .pipeline import BoardSink, BoardSnapshot, board_candidates, generate_board
from .prioritization import build_task_board

__all__ = ["BoardSink", "BoardSnapshot", "board_candidates", "generate_board", "build_task_board"]
