import logging
from typing import Dict, Optional

import numpy as np

from .battery import BatteryModel, FaultCode
from .config import MPPTParams
from .mppt import MPPTTracker
from .pv import PVCurve

logger = logging.getLogger(__name__)


def sinusoidal_profile(time, amplitude: float = 25.0, period: float = 1.0) -> np.ndarray:
    """
    Oscillating charge/discharge current, amplitude * sin(2*pi*t/period).
    """
    return amplitude * np.sin(2 * np.pi * np.asarray(time, dtype=float) / period)


def simulate_battery(model: BatteryModel, time, current_profile) -> Dict[str, np.ndarray]:
    """
    Drive a battery model through a sampled current profile.

    The first sample only measures; each later sample integrates the current over
    the interval since the previous sample, then reads the terminal voltage at
    the commanded current and runs the protection logic on it.

    Args:
        model (BatteryModel): The battery to drive, mutated in place.
        time (array-like): Sample instants (s), increasing.
        current_profile (array-like): Commanded current at each instant (A).

    Returns:
        Dict[str, np.ndarray]: soc (%), voltage (V), limited_current (A) and
        fault_code per sample.
    """
    t = np.asarray(time, dtype=float)
    currents = np.asarray(current_profile, dtype=float)
    if t.shape != currents.shape:
        raise ValueError("time and current_profile must have the same length")

    n = len(t)
    soc = np.zeros(n)
    voltage = np.zeros(n)
    limited = np.zeros(n)
    faults = np.zeros(n, dtype=int)

    for k in range(n):
        if k > 0:
            model.update(currents[k], t[k] - t[k - 1])

        v = model.voltage_at(currents[k])
        i_limited, fault = model.apply_protection(currents[k], v)

        soc[k] = model.soc * 100
        voltage[k] = v
        limited[k] = i_limited
        faults[k] = int(fault)

    n_faults = int(np.count_nonzero(faults != FaultCode.NONE))
    if n_faults:
        logger.info("Battery run finished with %d faulted samples out of %d", n_faults, n)

    return {
        "time": t,
        "soc": soc,
        "voltage": voltage,
        "limited_current": limited,
        "fault_code": faults,
    }


def simulate_tracking(curve: PVCurve, params: Optional[MPPTParams] = None, v_start: float = 25.0,
                      iterations: int = 100) -> Dict[str, object]:
    """
    Close the loop between a tracker and an analytic PV curve.

    Each iteration measures the curve at the present reference, asks the tracker
    for the next reference and then carries the measurement forward as history.

    Returns:
        Dict[str, object]: sample instants (s, spaced by ``params.sample_time``),
        voltage and power trajectories, the true maximum power point inside the
        clamp bounds, and the per-step tracking efficiency (%).
    """
    params = params if params is not None else MPPTParams()
    tracker = MPPTTracker(params)
    tracker.reset(v_start)

    v_track = np.zeros(iterations)
    p_track = np.zeros(iterations)

    v_ref = v_start
    for k in range(iterations):
        i_pv = curve.current(v_ref)
        v_track[k] = v_ref
        p_track[k] = v_ref * i_pv

        v_next = tracker.step(v_ref, i_pv)
        tracker.record(v_ref, i_pv)
        v_ref = v_next

    v_mpp, p_max = curve.maximum_power_point(params.v_min, params.v_max)
    efficiency = p_track / p_max * 100

    return {
        "time": np.arange(iterations) * params.sample_time,
        "voltage": v_track,
        "power": p_track,
        "v_mpp": v_mpp,
        "p_max": p_max,
        "efficiency": efficiency,
    }
