"""Continuous foot grounding correction"""

from dataclasses import dataclass
from typing import Iterable, Optional

from vmdrec.core import get_logger, Config


@dataclass
class GroundingState:
    """Last evaluation of the corrector."""
    lowest_foot: float
    error: float
    correction: float


class GroundingCorrector:
    """
    Keeps the lowest foot on a target ground height.

    Each update moves the body by a damped fraction of the remaining error
    instead of snapping: a large damping factor while the error is large,
    a small one for fine corrections. At contact the correction is zero.
    """

    def __init__(self, config: Optional[Config] = None):
        self.logger = get_logger("motion.grounding")
        self.config = config or Config()

        grounding_config = self.config.retarget.get("grounding", {})

        self.enabled = grounding_config.get("enabled", True)
        self.target_height = float(grounding_config.get("target_height", 0.0))
        self.foot_radius = float(grounding_config.get("foot_radius", 0.08))
        self.large_threshold = float(grounding_config.get("large_threshold", 0.05))
        self.large_damping = float(grounding_config.get("large_damping", 0.5))
        self.small_damping = float(grounding_config.get("small_damping", 0.1))
        self.epsilon = float(grounding_config.get("epsilon", 1e-5))

        self.last_state: Optional[GroundingState] = None

    def lowest_foot_height(self, ankle_heights: Iterable[float]) -> Optional[float]:
        """Height of the lowest foot bottom (ankle height minus foot radius)."""
        heights = [float(h) for h in ankle_heights]
        if not heights:
            return None
        return min(heights) - self.foot_radius

    def compute(self, ankle_heights: Iterable[float]) -> float:
        """
        Vertical correction for this tick.

        Args:
            ankle_heights: World Y of each ankle present

        Returns:
            Offset to add to the body's vertical position
        """
        if not self.enabled:
            return 0.0

        lowest = self.lowest_foot_height(ankle_heights)
        if lowest is None:
            return 0.0

        error = self.target_height - lowest
        if abs(error) <= self.epsilon:
            correction = 0.0
        elif abs(error) > self.large_threshold:
            correction = error * self.large_damping
        else:
            correction = error * self.small_damping

        self.last_state = GroundingState(lowest_foot=lowest, error=error, correction=correction)
        return correction
