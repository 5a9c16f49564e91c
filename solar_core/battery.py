import logging
from collections import deque
from dataclasses import replace
from enum import IntEnum
from typing import Deque, Dict, FrozenSet, List, Optional, Tuple

from scipy.interpolate import interp1d

from .config import BatteryParams, OCVTable

logger = logging.getLogger(__name__)

# most recent journal entries kept; apply_protection runs every control tick
MAX_ACTIONS = 1000


class FaultCode(IntEnum):
    NONE = 0
    OVER_DISCHARGE_VOLTAGE = 1
    OVER_DISCHARGE_CURRENT = 2
    OVER_CHARGE_VOLTAGE = 3
    OVER_TEMPERATURE = 4


class BatteryModel:
    def __init__(self, capacity_ah: Optional[float] = None, v_nominal: Optional[float] = None,
                 soc_init: Optional[float] = None, params: Optional[BatteryParams] = None):
        """
        Initialize a battery pack state estimator.

        Args:
            capacity_ah (float, optional): Nameplate capacity in Ampere-hours (Ah). Defaults to 100 Ah.
            v_nominal (float, optional): Nominal pack voltage in Volts (V). Defaults to 48 V.
            soc_init (float, optional): Initial state of charge as a fraction (0-1). Defaults to 0.5.
            params (BatteryParams, optional): Remaining pack parameters. Explicit arguments
                above take precedence over the matching fields of ``params``.

        Attributes:
            soc (float): State of charge, fraction, always within [0, 1].
            soh (float): State of health, fraction, always within [eol_soh, 1].
            q_remaining (float): Remaining charge in Ah.
            q_total (float): Effective capacity in Ah (capacity_ah * soh).
            cycles_count (float): Lifetime cycle count.
            temperature_c (float): Pack temperature in °C, set by the caller.
            q_in (float): Cumulative charge counted in (Ah), diagnostic only.
            q_out (float): Cumulative charge counted out (Ah), diagnostic only.
        """
        params = params if params is not None else BatteryParams()
        overrides = {name: value for name, value in (("capacity_ah", capacity_ah),
                                                     ("v_nominal", v_nominal),
                                                     ("soc_init", soc_init)) if value is not None}
        self.params = replace(params, **overrides) if overrides else params
        capacity_ah = self.params.capacity_ah
        soc_init = self.params.soc_init

        self.capacity_ah = capacity_ah  # Ah
        self.v_nominal = self.params.v_nominal  # V
        self.v_max = self.params.v_max  # V
        self.v_min = self.params.v_min  # V
        self.r_internal = self.params.r_internal  # Ohm
        self.i_max_charge = self.params.i_max_charge  # A
        self.i_max_discharge = self.params.i_max_discharge  # A

        self.soc = soc_init
        self.soh = self.params.soh_init
        self.q_remaining = capacity_ah * soc_init  # Ah
        self.q_total = capacity_ah * self.soh  # Ah
        self.cycles_count = 0
        self.temperature_c = self.params.temperature_init  # °C

        self.q_in = 0.0
        self.q_out = 0.0

        self.ocv_table = self.params.ocv_table
        self._ocv = self._build_ocv_lookup(self.ocv_table)

        self.active_faults: FrozenSet[FaultCode] = frozenset()
        self.actions: Deque[str] = deque(maxlen=MAX_ACTIONS)

    @classmethod
    def from_params(cls, params: BatteryParams) -> "BatteryModel":
        return cls(params=params)

    @staticmethod
    def _build_ocv_lookup(table: OCVTable):
        # linear extrapolation past the table ends, never clamped
        return interp1d(table.soc, table.ocv, kind="linear", fill_value="extrapolate",
                        assume_sorted=True)

    @property
    def energy_wh(self) -> float:
        return self.v_nominal * self.capacity_ah

    def update(self, current: float, dt: float) -> "BatteryModel":
        """
        Advance the coulomb counter by one control interval.

        Args:
            current (float): Battery current (A). Positive for charging, negative for discharging.
            dt (float): Length of the interval (s).

        Returns:
            BatteryModel: self, mutated in place.

        Not idempotent: every call integrates ``current * dt`` again.
        """
        delta_q = current * dt / 3600  # Ah

        self.q_remaining += delta_q
        if delta_q > 0:
            self.q_in += delta_q
        else:
            self.q_out += abs(delta_q)

        self.q_total = self.capacity_ah * self.soh
        soc = self.q_remaining / self.q_total
        self.soc = max(0.0, min(1.0, soc))
        if self.soc != soc:
            logger.debug("SOC saturated at %.3f (unclamped %.4f)", self.soc, soc)

        # keep the counter consistent with the clamped SOC
        self.q_remaining = self.soc * self.q_total
        return self

    def open_circuit_voltage(self) -> float:
        return float(self._ocv(self.soc))

    def voltage_at(self, current: float) -> float:
        """
        Terminal voltage at the present SOC: OCV(soc) - current * r_internal.

        Args:
            current (float): Load current (A), same sign convention as ``update``.

        Returns:
            float: Terminal voltage (V).
        """
        return self.open_circuit_voltage() - current * self.r_internal

    def apply_protection(self, commanded_current: float, terminal_voltage: float) -> Tuple[float, FaultCode]:
        """
        Limit a commanded current to the safe operating area.

        The rules are evaluated in order and each one may overwrite the current and
        fault code left by the previous ones, so only the last fault raised is
        returned. Every fault raised during the call is kept in ``active_faults``.

        Args:
            commanded_current (float): Requested battery current (A).
            terminal_voltage (float): Measured terminal voltage (V).

        Returns:
            Tuple[float, FaultCode]: The limited current and the fault code
            (FaultCode.NONE when nothing was raised).
        """
        limited_current = commanded_current
        fault_code = FaultCode.NONE
        raised = set()
        margin = self.params.voltage_fault_margin

        # over-charge voltage
        if terminal_voltage >= self.v_max:
            limited_current = 0.0
            if terminal_voltage > self.v_max + margin:
                fault_code = FaultCode.OVER_CHARGE_VOLTAGE
                raised.add(fault_code)

        # over-discharge voltage
        if terminal_voltage <= self.v_min:
            limited_current = 0.0
            if terminal_voltage < self.v_min - margin:
                fault_code = FaultCode.OVER_DISCHARGE_VOLTAGE
                raised.add(fault_code)

        # current limits
        if commanded_current > 0 and commanded_current > self.i_max_charge:
            limited_current = self.i_max_charge
        elif commanded_current < 0 and commanded_current < -self.i_max_discharge:
            limited_current = -self.i_max_discharge
            fault_code = FaultCode.OVER_DISCHARGE_CURRENT
            raised.add(fault_code)

        # over-temperature derating
        if self.temperature_c > self.params.max_temperature:
            limited_current = limited_current * 0.5
            fault_code = FaultCode.OVER_TEMPERATURE
            raised.add(fault_code)

        self.active_faults = frozenset(raised)
        if raised:
            names = ", ".join(sorted(f.name for f in raised))
            logger.warning("Protection fault(s) %s: commanded %.2f A -> %.2f A at %.2f V",
                           names, commanded_current, limited_current, terminal_voltage)
            self.actions.append(f"Fault(s) Detected: {names}")
        elif limited_current != commanded_current:
            self.actions.append(f"Current Limited to {limited_current:.2f} A")
        else:
            self.actions.append("Safety Check Passed")

        return limited_current, fault_code

    def estimate_health(self, cycles: float) -> "BatteryModel":
        """
        Re-estimate SoH from the lifetime cycle count (linear fade to eol_soh at cycle_life).

        Args:
            cycles (float): Cycles completed so far.

        Returns:
            BatteryModel: self, mutated in place.
        """
        self.cycles_count = max(self.cycles_count, cycles)

        fade = 1.0 - self.params.eol_soh
        soh = 1.0 - (cycles / self.params.cycle_life) * fade
        self.soh = max(self.params.eol_soh, min(1.0, soh))
        logger.debug("SoH re-estimated at %.4f after %s cycles", self.soh, cycles)
        self.actions.append("Health Estimated")
        return self

    def within_operating_window(self) -> bool:
        return self.params.soc_min <= self.soc <= self.params.soc_max

    def status_summary(self) -> Dict[str, float]:
        """
        Snapshot of the pack state. SOC and SoH are reported in percent.
        """
        return {
            "soc_percent": self.soc * 100,
            "soh_percent": self.soh * 100,
            "q_remaining": self.q_remaining,
            "cycles_count": self.cycles_count,
            "temperature_c": self.temperature_c,
        }

    def get_actions(self) -> List[str]:
        return list(self.actions)

    def get_last_action(self) -> str:
        return self.actions[-1] if self.actions else "No actions recorded"

    def clear_actions(self):
        self.actions.clear()
