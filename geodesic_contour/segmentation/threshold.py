"""Binary mask from a level set."""

from dataclasses import dataclass
import numpy as np

from ..errors import InvalidConfigurationError


@dataclass
class ThresholdConfig:
    """
    Configuration for level set thresholding.

    Points whose value lies in [lower, upper] are inside. With the defaults
    the non-positive side of the zero crossing becomes the object.

    Attributes:
        lower: Lower bound of the inside interval (default: -1000.0)
        upper: Upper bound of the inside interval (default: 0.0)
        inside_value: Mask value for inside points (default: 255)
        outside_value: Mask value for outside points (default: 0)
    """
    lower: float = -1000.0
    upper: float = 0.0
    inside_value: int = 255
    outside_value: int = 0

    def __post_init__(self):
        """Validate configuration parameters."""
        if not self.lower <= self.upper:
            raise InvalidConfigurationError(
                f"lower must be <= upper, got lower={self.lower}, upper={self.upper}"
            )
        for name in ('inside_value', 'outside_value'):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise InvalidConfigurationError(f"{name} must be in [0, 255], got {value}")


class ThresholdExtractor:
    """
    Map a level set to an 8-bit mask.

    Pure: the input is never modified and the same input always gives the
    same mask. NaN values are outside.
    """

    def __init__(self, config: ThresholdConfig = None):
        self.config = config or ThresholdConfig()

    def extract(self, level_set: np.ndarray) -> np.ndarray:
        config = self.config
        values = np.asarray(level_set)
        with np.errstate(invalid='ignore'):
            inside = (values >= config.lower) & (values <= config.upper)
        return np.where(inside, config.inside_value, config.outside_value).astype(np.uint8)
