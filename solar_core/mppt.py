import logging
import math
from dataclasses import dataclass
from typing import Optional

from .config import FSCCParams, MPPTParams

logger = logging.getLogger(__name__)

# smallest voltage magnitude used as a denominator
V_EPSILON = 1e-6
# |dI/dV + I/V| band treated as the maximum power point
MPP_TOLERANCE = 0.001


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(min(value, upper), lower)


def perturb_and_observe(v_pv: float, i_pv: float, p_prev: float, v_prev: float,
                        step_size: float = 0.5, v_min: float = 20.0, v_max: float = 48.0) -> float:
    """
    Perturb & Observe: keep stepping in the direction that increased power.

    Args:
        v_pv (float): Measured PV voltage (V).
        i_pv (float): Measured PV current (A).
        p_prev (float): PV power at the previous sample (W).
        v_prev (float): PV voltage at the previous sample (V).
        step_size (float, optional): Voltage perturbation (V). Defaults to 0.5.
        v_min (float, optional): Lower bound of the reference (V). Defaults to 20.
        v_max (float, optional): Upper bound of the reference (V). Defaults to 48.

    Returns:
        float: The next PV voltage reference (V).
    """
    p = v_pv * i_pv
    dp = p - p_prev
    dv = v_pv - v_prev

    if dp >= 0:
        # moved towards the MPP, keep going
        v_ref = v_pv + step_size if dv >= 0 else v_pv - step_size
    else:
        # moved away from the MPP, turn around
        v_ref = v_pv - step_size if dv >= 0 else v_pv + step_size

    return _clamp(v_ref, v_min, v_max)


def incremental_conductance(v_pv: float, i_pv: float, v_prev: float, i_prev: float,
                            step_size: float = 0.5, v_min: float = 20.0, v_max: float = 48.0) -> float:
    """
    Incremental Conductance: at the MPP dI/dV = -I/V.

    Args:
        v_pv (float): Measured PV voltage (V).
        i_pv (float): Measured PV current (A).
        v_prev (float): PV voltage at the previous sample (V).
        i_prev (float): PV current at the previous sample (A).
        step_size (float, optional): Voltage perturbation (V). Defaults to 0.5.
        v_min (float, optional): Lower bound of the reference (V). Defaults to 20.
        v_max (float, optional): Upper bound of the reference (V). Defaults to 48.

    Returns:
        float: The next PV voltage reference (V).
    """
    dv = v_pv - v_prev
    di = i_pv - i_prev

    if abs(dv) < V_EPSILON:
        # biases a flat step to the positive side, not a true zero crossing
        dv = V_EPSILON

    v_den = v_pv
    if abs(v_den) < V_EPSILON:
        logger.debug("PV voltage %.3g below epsilon, substituting %g", v_pv, V_EPSILON)
        v_den = V_EPSILON

    inc_cond = di / dv
    inst_cond = i_pv / v_den
    slope = inc_cond + inst_cond

    if abs(slope) < MPP_TOLERANCE:
        v_ref = v_pv
    elif slope > 0:
        # left of the MPP
        v_ref = v_pv + step_size
    else:
        # right of the MPP
        v_ref = v_pv - step_size

    return _clamp(v_ref, v_min, v_max)


def fractional_short_circuit(i_pv: float, i_sc: float, k: float = 0.76,
                             voc_proxy: float = 35.0) -> float:
    """
    Fractional Short-Circuit Current estimate: k * (Isc / Ipv) * voc_proxy.

    The result is not clamped. A zero PV current follows IEEE division: an
    infinity with the sign of ``k * i_sc * voc_proxy``, or NaN when that is zero.
    """
    if i_pv == 0:
        logger.warning("FSCC called with zero PV current, reference is undefined")
        numerator = k * i_sc * voc_proxy
        if numerator == 0:
            return math.nan
        return math.copysign(math.inf, numerator)
    return k * (i_sc / i_pv) * voc_proxy


@dataclass(frozen=True)
class MPPTHistory:
    """Previous-sample measurement carried from one tracker call to the next."""
    prev_voltage: float
    prev_power: float = 0.0
    prev_current: float = 0.0

    def advance(self, v_pv: float, i_pv: float) -> "MPPTHistory":
        return MPPTHistory(prev_voltage=v_pv, prev_power=v_pv * i_pv, prev_current=i_pv)


class MPPTTracker:
    def __init__(self, params: Optional[MPPTParams] = None, fscc: Optional[FSCCParams] = None):
        """
        Bind a tracking algorithm to its configuration and the caller's history.

        ``step`` never touches the history; the caller carries each measurement
        forward with ``record`` once the reference has been applied.

        Args:
            params (MPPTParams, optional): Step size, clamp bounds, initial reference and method.
            fscc (FSCCParams, optional): Constants for the fractional short-circuit estimate.
        """
        self.params = params if params is not None else MPPTParams()
        self.fscc_params = fscc if fscc is not None else FSCCParams()
        self.step_size = self.params.step_size
        self.v_min = self.params.v_min
        self.v_max = self.params.v_max
        self.history = MPPTHistory(prev_voltage=self.params.v_ref_init)

    @property
    def prev_voltage(self) -> float:
        return self.history.prev_voltage

    @property
    def prev_power(self) -> float:
        return self.history.prev_power

    def step(self, v_pv: float, i_pv: float) -> float:
        if self.params.method == "inc_cond":
            return incremental_conductance(v_pv, i_pv, self.history.prev_voltage,
                                           self.history.prev_current,
                                           self.step_size, self.v_min, self.v_max)
        return perturb_and_observe(v_pv, i_pv, self.history.prev_power, self.history.prev_voltage,
                                   self.step_size, self.v_min, self.v_max)

    def estimate_from_short_circuit(self, i_pv: float, i_sc: float) -> float:
        return fractional_short_circuit(i_pv, i_sc, self.fscc_params.k, self.fscc_params.voc_proxy)

    def record(self, v_pv: float, i_pv: float) -> MPPTHistory:
        self.history = self.history.advance(v_pv, i_pv)
        return self.history

    def reset(self, v_start: Optional[float] = None):
        """
        Forget the carried measurement and restart from ``v_start`` (defaults to v_ref_init).
        """
        v_start = self.params.v_ref_init if v_start is None else v_start
        self.history = MPPTHistory(prev_voltage=v_start)
