"""
Engine configuration
Thresholds and the category reward table as one immutable value
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class CategoryReward:
    """A keyword group and the points a matching label is worth"""
    name: str
    keywords: Tuple[str, ...]
    points: int

    def __post_init__(self):
        if not self.keywords or any(not k for k in self.keywords):
            raise ValueError(f"Category '{self.name}' needs at least one non-empty keyword")
        if self.points < 0:
            raise ValueError(f"Category '{self.name}' has negative points: {self.points}")
        # Matching is case-insensitive, store keywords lowered once
        object.__setattr__(self, "keywords", tuple(k.lower() for k in self.keywords))


# Priority order matters: first matching group wins
DEFAULT_CATEGORY_REWARDS: Tuple[CategoryReward, ...] = (
    CategoryReward("plastic", ("plastic", "пластик"), 10),
    CategoryReward("metal", ("metal", "металл"), 20),
    CategoryReward("glass", ("glass", "стекло"), 30),
)


@dataclass(frozen=True)
class EngineConfig:
    """
    Static configuration for the reward engine

    Args:
        confidence_threshold: A frame qualifies only when confidence is strictly above this
        required_streak_length: Consecutive qualifying same-label frames needed to fire
        cooldown_seconds: Minimum gap between payouts (strictly greater than)
        category_rewards: Ordered keyword groups, first match wins
        max_frame_gap_seconds: If set, a gap larger than this between frames
            resets the streak. None keeps streaks across any gap.
    """
    confidence_threshold: float = 0.75
    required_streak_length: int = 8
    cooldown_seconds: float = 5.0
    category_rewards: Tuple[CategoryReward, ...] = DEFAULT_CATEGORY_REWARDS
    max_frame_gap_seconds: Optional[float] = None

    def __post_init__(self):
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(f"confidence_threshold must be within [0, 1], got {self.confidence_threshold}")
        if self.required_streak_length < 1:
            raise ValueError(f"required_streak_length must be >= 1, got {self.required_streak_length}")
        if self.cooldown_seconds < 0:
            raise ValueError(f"cooldown_seconds must be >= 0, got {self.cooldown_seconds}")
        if self.max_frame_gap_seconds is not None and self.max_frame_gap_seconds <= 0:
            raise ValueError(f"max_frame_gap_seconds must be > 0, got {self.max_frame_gap_seconds}")
        object.__setattr__(self, "category_rewards", tuple(self.category_rewards))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "EngineConfig":
        """
        Build config from the ``engine`` section of the JSON config

        Example:
            {
              "confidence_threshold": 0.75,
              "required_streak_length": 8,
              "cooldown_seconds": 5.0,
              "categories": [
                {"name": "plastic", "keywords": ["plastic", "пластик"], "points": 10}
              ]
            }
        """
        data = data or {}
        defaults = cls()

        categories = data.get("categories")
        if categories is None:
            category_rewards = defaults.category_rewards
        else:
            category_rewards = tuple(cls._category_from_dict(c) for c in categories)

        max_gap = data.get("max_frame_gap_seconds")
        return cls(
            confidence_threshold=float(data.get("confidence_threshold", defaults.confidence_threshold)),
            required_streak_length=int(data.get("required_streak_length", defaults.required_streak_length)),
            cooldown_seconds=float(data.get("cooldown_seconds", defaults.cooldown_seconds)),
            category_rewards=category_rewards,
            max_frame_gap_seconds=float(max_gap) if max_gap is not None else None,
        )

    @staticmethod
    def _category_from_dict(data: Mapping[str, Any]) -> CategoryReward:
        keywords = data["keywords"]
        # A bare string would otherwise split into one-letter keywords
        if not isinstance(keywords, (list, tuple)):
            raise ValueError(
                f"Category '{data.get('name')}' keywords must be a list, got {type(keywords).__name__}"
            )
        return CategoryReward(
            name=str(data["name"]),
            keywords=tuple(str(k) for k in keywords),
            points=int(data["points"]),
        )

    def to_dict(self) -> Dict:
        return {
            "confidence_threshold": self.confidence_threshold,
            "required_streak_length": self.required_streak_length,
            "cooldown_seconds": self.cooldown_seconds,
            "max_frame_gap_seconds": self.max_frame_gap_seconds,
            "categories": [
                {"name": c.name, "keywords": list(c.keywords), "points": c.points}
                for c in self.category_rewards
            ],
        }
