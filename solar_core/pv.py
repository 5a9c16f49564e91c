from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .config import PVArrayParams


@dataclass(frozen=True)
class PVCurve:
    """
    Parabolic I-V approximation: I = i_peak * (1 - ((V - v_peak) / v_peak)^2).

    The current peaks at ``v_peak``; the power V*I keeps rising past it and
    peaks at 4/3 * v_peak.
    """
    v_peak: float = 35.0
    i_peak: float = 7.5

    @classmethod
    def from_array(cls, params: PVArrayParams) -> "PVCurve":
        return cls(v_peak=params.v_mpp * params.n_series, i_peak=params.i_mpp * params.n_parallel)

    def current(self, voltage):
        v = np.asarray(voltage, dtype=float)
        i = self.i_peak * (1 - ((v - self.v_peak) / self.v_peak) ** 2)
        return float(i) if i.ndim == 0 else i

    def power(self, voltage):
        v = np.asarray(voltage, dtype=float)
        p = v * self.current(v)
        return float(p) if np.ndim(p) == 0 else p

    def maximum_power_point(self, v_min: float, v_max: float, points: int = 10001) -> Tuple[float, float]:
        """
        Locate the maximum power point inside [v_min, v_max] by dense grid search.

        Returns:
            Tuple[float, float]: (voltage, power) at the maximum.
        """
        v = np.linspace(v_min, v_max, points)
        p = self.power(v)
        idx = int(np.argmax(p))
        return float(v[idx]), float(p[idx])
