"""Global type definitions."""

from enum import Enum


class Side(str, Enum):
    """Order side."""

    BUY = "buy"
    SELL = "sell"

    @property
    def is_buy(self) -> bool:
        return self is Side.BUY

    def opposite(self) -> "Side":
        return Side.SELL if self is Side.BUY else Side.BUY


class PositionSide(str, Enum):
    """Position direction."""

    LONG = "long"
    SHORT = "short"


class TimeInForce(str, Enum):
    """Time in force for limit orders (Hyperliquid naming)."""

    GTC = "Gtc"  # Good Till Cancel
    IOC = "Ioc"  # Immediate or Cancel
    ALO = "Alo"  # Add Liquidity Only (post only)


class ActionKind(str, Enum):
    """Throttled action kinds tracked by the cooldown tracker."""

    BUY = "buy"
    SELL = "sell"

    @classmethod
    def for_side(cls, side: Side) -> "ActionKind":
        return cls.BUY if side is Side.BUY else cls.SELL


class MarketKind(str, Enum):
    """Market type of a trading pair."""

    SPOT = "spot"
    PERP = "perp"


class SubAccount(str, Enum):
    """Agent sub-accounts holding quote balance."""

    SPOT = "spot"
    PERP = "perp"

    @property
    def sibling(self) -> "SubAccount":
        return SubAccount.PERP if self is SubAccount.SPOT else SubAccount.SPOT


class Mandate(str, Enum):
    """What kind of exposure an agent is allowed to hold."""

    SPOT_ONLY = "spot_only"
    PERPS_ALLOWED = "perps_allowed"


class RiskProfile(str, Enum):
    """Strategy variants selectable through an agent's strategy config."""

    CONSERVATIVE = "Conservative"
    AGGRESSIVE = "Aggressive"
    SPOT_DCA = "SpotDca"

    @classmethod
    def parse(cls, tag: str | None) -> "RiskProfile":
        """Map a stored risk tag to a profile.

        Unknown tags fall back to CONSERVATIVE, the default written for new agents.
        """
        normalized = (tag or "").strip().lower().replace("-", "").replace("_", "")
        aliases = {
            "conservative": cls.CONSERVATIVE,
            "safe": cls.CONSERVATIVE,
            "aggressive": cls.AGGRESSIVE,
            "spotdca": cls.SPOT_DCA,
            "spot": cls.SPOT_DCA,
            "dca": cls.SPOT_DCA,
            "halal": cls.SPOT_DCA,
        }
        return aliases.get(normalized, cls.CONSERVATIVE)
