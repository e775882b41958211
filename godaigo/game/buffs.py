"""Turn-scoped buffs granted by scroll effects."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class BuffKind(str, Enum):
    MUDSLIDE = "mudslide"                      # earth/water act as wind
    STEAM_VENTS = "steam_vents"                # every other paid step free
    SIMPLIFY = "simplify"                      # casts cost 1
    QUICK_REFLEXES = "quick_reflexes"          # level-1 casts free, responses draw
    MASONS_SAVVY = "masons_savvy"              # earth placement range 5
    AVALANCHE = "avalanche"                    # any stone anywhere
    SEED_THE_SKIES = "seed_the_skies"          # water and wind anywhere
    BURNING_MOTIVATION = "burning_motivation"  # +2 AP per stone placed
    MINE = "mine"                              # doubled shrine output
    RESPIRATE = "respirate"                    # return wind at end of turn
    REFLECTING_POOL_USED = "reflecting_pool_used"


class BuffExpiry(str, Enum):
    END_OF_TURN = "end_of_turn"
    NEXT_TURN = "next_turn"  # cleared when the owner's next turn starts


class Buff(BaseModel):
    kind: BuffKind
    player_index: int
    expiry: BuffExpiry = BuffExpiry.END_OF_TURN
    stacks: int = 1
    data: dict = Field(default_factory=dict)


class TurnBuffs(BaseModel):
    buffs: list[Buff] = Field(default_factory=list)

    def add(
        self,
        kind: BuffKind,
        player_index: int,
        expiry: BuffExpiry = BuffExpiry.END_OF_TURN,
        data: dict | None = None,
        stackable: bool = False,
    ) -> Buff:
        existing = self.get(kind, player_index)
        if existing is not None:
            if stackable:
                existing.stacks += 1
            if data:
                existing.data.update(data)
            return existing
        buff = Buff(kind=kind, player_index=player_index, expiry=expiry, data=data or {})
        self.buffs.append(buff)
        return buff

    def get(self, kind: BuffKind, player_index: int) -> Buff | None:
        for buff in self.buffs:
            if buff.kind == kind and buff.player_index == player_index:
                return buff
        return None

    def has(self, kind: BuffKind, player_index: int) -> bool:
        return self.get(kind, player_index) is not None

    def stacks(self, kind: BuffKind, player_index: int) -> int:
        buff = self.get(kind, player_index)
        return buff.stacks if buff is not None else 0

    def clear_end_of_turn(self) -> list[Buff]:
        expired = [b for b in self.buffs if b.expiry == BuffExpiry.END_OF_TURN]
        self.buffs = [b for b in self.buffs if b.expiry != BuffExpiry.END_OF_TURN]
        return expired

    def clear_next_turn(self, player_index: int) -> list[Buff]:
        def due(b: Buff) -> bool:
            return b.expiry == BuffExpiry.NEXT_TURN and b.player_index == player_index

        expired = [b for b in self.buffs if due(b)]
        self.buffs = [b for b in self.buffs if not due(b)]
        return expired
