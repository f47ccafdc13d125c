"""Per-player mutual exclusion for ledger mutations.

Check-then-act on a credit account (read available credit, then credit it)
must happen under the same lock. The lock covers one process; across
processes the account's version column is the compare-and-swap guard.
"""

import asyncio
from collections import defaultdict


class PlayerLockRegistry:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def for_player(self, player_id: str) -> asyncio.Lock:
        return self._locks[player_id]


player_locks = PlayerLockRegistry()
