"""Action point economy.

Each player has ordinary AP (refreshed to the maximum at turn start) and
void AP (reset to the player's void-stone count at turn start). Void AP
is spent first and never rises mid-turn from newly drawn void stones.
"""

from __future__ import annotations

from pydantic import BaseModel


class APState(BaseModel):
    current: int = 0
    void: int = 0

    @property
    def total(self) -> int:
        return self.current + self.void

    def can_afford(self, cost: int) -> bool:
        return self.current + self.void >= cost

    def spend(self, cost: int) -> None:
        """Deduct ``cost``, void first. Callers must check ``can_afford``."""
        if cost > self.total:
            raise ValueError(f"Cannot spend {cost} AP with only {self.total}")
        from_void = min(self.void, cost)
        self.void -= from_void
        self.current -= cost - from_void

    def refresh(self, max_ap: int, void_stones: int) -> None:
        self.current = max_ap
        self.void = void_stones

    def add(self, amount: int, max_ap: int, void_stones: int) -> None:
        """Gain AP: fill ordinary AP first, overflow goes to void AP.

        Void AP never exceeds the player's current void-stone count.
        """
        room = max(0, max_ap - self.current)
        to_current = min(room, amount)
        self.current += to_current
        overflow = amount - to_current
        if overflow > 0:
            self.void = max(self.void, min(self.void + overflow, void_stones))

    def clamp_void(self, void_stones: int) -> None:
        """Lose void AP when void stones leave the player's pool."""
        if self.void > void_stones:
            self.void = max(0, void_stones)


def cast_cost(
    level: int,
    base_cost: int,
    reduced: bool = False,
    level_one_free: bool = False,
) -> int:
    """AP cost of casting a scroll normally.

    Level-1-free beats the flat reduction, which beats the base cost.
    """
    if level_one_free and level == 1:
        return 0
    if reduced:
        return min(base_cost, 1)
    return base_cost
