# config.py
"""Scoring scales and negotiation schedule for a tender evaluation."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Tuple

import yaml

from .errors import ValidationError


@dataclass
class EvaluationSettings:
    """Tunable parameters of the evaluation.

    The negotiation schedule reproduces the scripted reductions of the
    commercial simulation: round k lowers the initial offer by
    base_reductions[k-1] plus a random jitter in [0, jitter_max) scaled by
    jitter_scales[k-1].
    """

    technical_max_points: float = 80.0
    commercial_max_points: float = 20.0
    max_rounds: int = 3
    base_reductions: Tuple[float, ...] = (0.02, 0.04, 0.055)
    jitter_max: float = 0.005
    jitter_scales: Tuple[float, ...] = (1.0, 1.5, 2.0)
    excellent_threshold: float = 80.0
    acceptable_threshold: float = 60.0

    def __post_init__(self):
        self.base_reductions = tuple(float(r) for r in self.base_reductions)
        self.jitter_scales = tuple(float(s) for s in self.jitter_scales)

        if self.technical_max_points < 0 or self.commercial_max_points < 0:
            raise ValidationError("Stage points must be non-negative.")
        if abs(self.technical_max_points + self.commercial_max_points - 100) > 1e-9:
            raise ValidationError(
                "technical_max_points and commercial_max_points must sum to 100, got: "
                f"{self.technical_max_points} + {self.commercial_max_points}"
            )
        if not 1 <= self.max_rounds <= 3:
            raise ValidationError(f"max_rounds must be between 1 and 3, got: {self.max_rounds}")
        if len(self.base_reductions) != self.max_rounds:
            raise ValidationError(
                f"base_reductions needs {self.max_rounds} entries, got: {len(self.base_reductions)}"
            )
        if len(self.jitter_scales) != self.max_rounds:
            raise ValidationError(
                f"jitter_scales needs {self.max_rounds} entries, got: {len(self.jitter_scales)}"
            )
        if any(not 0 <= r < 1 for r in self.base_reductions):
            raise ValidationError("base_reductions must be fractions in [0, 1).")
        if list(self.base_reductions) != sorted(self.base_reductions):
            raise ValidationError("base_reductions must not decrease between rounds.")
        if not 0 <= self.jitter_max < 1:
            raise ValidationError(f"jitter_max must be in [0, 1), got: {self.jitter_max}")
        if any(s < 0 for s in self.jitter_scales):
            raise ValidationError("jitter_scales must be non-negative.")
        worst = max(r + self.jitter_max * s
                    for r, s in zip(self.base_reductions, self.jitter_scales))
        if worst >= 1:
            raise ValidationError("Negotiation schedule can reduce an offer to zero or below.")
        if self.acceptable_threshold > self.excellent_threshold:
            raise ValidationError("acceptable_threshold cannot exceed excellent_threshold.")

    # === Factory methods ===

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EvaluationSettings":
        """
        Create settings from a configuration dictionary

        Unknown keys raise ValidationError.

        Example:
            config = {
                'technical_max_points': 70,
                'commercial_max_points': 30,
                'base_reductions': [0.01, 0.03, 0.05],
                'jitter_max': 0,
            }
            settings = EvaluationSettings.from_config(config)
        """
        config = dict(config or {})
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(config) - known)
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(unknown)}")
        return cls(**config)

    @classmethod
    def from_yaml(cls, filepath: str) -> "EvaluationSettings":
        """Create settings from a YAML file with an optional 'settings' key."""
        with open(filepath, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_config(data.get("settings", data))

    @classmethod
    def from_json(cls, filepath: str) -> "EvaluationSettings":
        """Create settings from a JSON file with an optional 'settings' key."""
        with open(filepath, "r") as f:
            data = json.load(f)
        return cls.from_config(data.get("settings", data))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "technical_max_points": self.technical_max_points,
            "commercial_max_points": self.commercial_max_points,
            "max_rounds": self.max_rounds,
            "base_reductions": list(self.base_reductions),
            "jitter_max": self.jitter_max,
            "jitter_scales": list(self.jitter_scales),
            "excellent_threshold": self.excellent_threshold,
            "acceptable_threshold": self.acceptable_threshold,
        }
