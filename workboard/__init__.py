"""
Workboard

Turns a user's chat activity into a short, ranked task board.

Philosophy:
- A signal is identified by its natural key; re-syncing never duplicates
- Only work aimed at the user counts: DMs and direct mentions
- Classification failures degrade to "not a task", never to a failed sync
- The board is bounded (at most 20 tasks) and every entry says why

Usage:
    from workboard.common import load_config
    from workboard.sync import SignalSyncService, InMemoryCredentialProvider
    from workboard.board import build_task_board, generate_board
"""

__version__ = "0.1.0"
