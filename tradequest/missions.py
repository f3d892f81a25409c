# tradequest/missions.py
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Sequence
from .papertrade import EquityPoint, Position
from .utils import equity_series, get_logger, max_drawdown

log = get_logger(__name__)

@dataclass(frozen=True)
class MissionContext:
    positions: Mapping[str, Position]
    cash: float
    equity: float
    history: Sequence[EquityPoint]

@dataclass(frozen=True)
class Mission:
    id: int
    title: str
    text: str
    check: Callable[[MissionContext], bool]
    reward: str

# ---------- predicates ----------
def holds_any(ctx: MissionContext) -> bool: return len(ctx.positions) > 0

def holds_distinct(n: int) -> Callable[[MissionContext], bool]:
    return lambda ctx: len(ctx.positions) >= n

def equity_at_least(target: float) -> Callable[[MissionContext], bool]:
    return lambda ctx: ctx.equity >= target

def drawdown_below(limit: float, window: int) -> Callable[[MissionContext], bool]:
    def check(ctx: MissionContext) -> bool:
        if len(ctx.history) < window: return False
        return max_drawdown(equity_series(list(ctx.history)[-window:])) < limit
    return check

DEFAULT_MISSIONS: List[Mission] = [
    Mission(1, "First Steps", "Make your first purchase.", holds_any, "Badge: First Trade"),
    Mission(2, "Don't Put All Eggs in One Basket", "Hold at least 3 different assets.",
            holds_distinct(3), "Badge: Diversifier"),
    Mission(3, "Green Day", "Reach a total equity of $10,500.", equity_at_least(10_500.0), "Badge: Profit Seeker"),
    Mission(4, "Storm Rider", "End a 60-tick session without a 20% drawdown.",
            drawdown_below(0.20, 60), "Badge: Risk Manager"),
]

@dataclass
class Progression:
    level: int = 1
    badges: List[str] = field(default_factory=list)

    def is_complete(self, missions: Sequence[Mission]) -> bool: return self.level > len(missions)
    def to_dict(self) -> dict: return {"level": self.level, "badges": list(self.badges)}

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "Progression":
        d = d or {}
        badges: List[str] = []
        for b in d.get("badges") or []:
            if b not in badges: badges.append(b)
        return cls(level=max(1, int(d.get("level", 1))), badges=badges)

def current_mission(progression: Progression, missions: Sequence[Mission]) -> Optional[Mission]:
    return next((m for m in missions if m.id == progression.level), None)

def evaluate(progression: Progression, missions: Sequence[Mission], ctx: MissionContext) -> Optional[Mission]:
    """Checks the current level's mission once; advances at most one level. Returns the completed mission."""
    mission = current_mission(progression, missions)
    if mission is None or not mission.check(ctx): return None
    progression.level += 1
    if mission.reward not in progression.badges:
        progression.badges.append(mission.reward)
    log.info("mission %d '%s' complete -> level %d", mission.id, mission.title, progression.level)
    return mission
