from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

T = TypeVar("T")


class ConfigError(ValueError):
    """Raised when curl-counter tunables are inconsistent or unparseable."""


@dataclass(frozen=True)
class CurlConfig:
    # Thresholds (degrees)
    smoothing_window: int = 3           # samples in the recency-weighted average
    min_curl_angle: float = 60.0        # below this the arm counts as curled
    max_extend_angle: float = 150.0     # above this the arm counts as extended
    rep_cooldown_ms: float = 400.0      # per limb, between two counted reps
    min_range_of_motion: float = 60.0   # max_angle - min_angle required for a rep
    # Arbitration
    activity_threshold: float = 3.0     # score a limb must exceed to be active
    both_active_margin: float = 2.0     # scores closer than this -> "both"

    def __post_init__(self):
        if self.smoothing_window < 1:
            raise ConfigError(f"smoothing_window must be >= 1, got {self.smoothing_window}")
        for name in ("min_curl_angle", "max_extend_angle"):
            value = getattr(self, name)
            if not 0.0 <= value <= 180.0:
                raise ConfigError(f"{name} must be within [0, 180], got {value}")
        if self.min_curl_angle >= self.max_extend_angle:
            raise ConfigError(
                f"min_curl_angle ({self.min_curl_angle}) must be below max_extend_angle ({self.max_extend_angle})"
            )
        for name in ("rep_cooldown_ms", "min_range_of_motion", "activity_threshold", "both_active_margin"):
            value = getattr(self, name)
            if value < 0:
                raise ConfigError(f"{name} must be non-negative, got {value}")

    @classmethod
    def from_env(cls) -> "CurlConfig":
        """Build a config from CURL_* environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            smoothing_window=_env("CURL_SMOOTHING_WINDOW", int, defaults.smoothing_window),
            min_curl_angle=_env("CURL_MIN_CURL_ANGLE", float, defaults.min_curl_angle),
            max_extend_angle=_env("CURL_MAX_EXTEND_ANGLE", float, defaults.max_extend_angle),
            rep_cooldown_ms=_env("CURL_REP_COOLDOWN_MS", float, defaults.rep_cooldown_ms),
            min_range_of_motion=_env("CURL_MIN_RANGE_OF_MOTION", float, defaults.min_range_of_motion),
            activity_threshold=_env("CURL_ACTIVITY_THRESHOLD", float, defaults.activity_threshold),
            both_active_margin=_env("CURL_BOTH_ACTIVE_MARGIN", float, defaults.both_active_margin),
        )


def _env(name: str, cast: Callable[[str], T], default: T) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name}={raw!r} is not a valid {cast.__name__}") from e


def env_flag(name: str, default: bool = False) -> bool:
    raw: Optional[str] = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
