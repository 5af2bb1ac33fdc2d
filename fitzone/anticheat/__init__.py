"""Anti-cheat evaluation for activity streams."""

from .evaluator import evaluate_anti_cheat, suspicion_score
from .rules import AntiCheatThresholds

__all__ = ["AntiCheatThresholds", "evaluate_anti_cheat", "suspicion_score"]
