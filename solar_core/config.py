from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class OCVTable:
    """Open-circuit voltage lookup table (SOC fraction -> volts)."""
    soc: Tuple[float, ...]
    ocv: Tuple[float, ...]

    def __post_init__(self):
        if len(self.soc) != len(self.ocv):
            raise ValueError("OCV table needs one voltage per SOC point")
        if len(self.soc) < 2:
            raise ValueError("OCV table needs at least two points")
        if any(b <= a for a, b in zip(self.soc, self.soc[1:])):
            raise ValueError("OCV table SOC points must be strictly increasing")


# 48 V lithium pack (12 cells in series)
DEFAULT_OCV_TABLE = OCVTable(
    soc=(0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0),
    ocv=(40.0, 45.5, 48.0, 49.5, 50.5, 51.2, 51.8, 52.4, 53.0, 53.6, 54.6),
)


@dataclass(frozen=True)
class BatteryParams:
    """
    Nameplate and protection parameters of a battery pack.

    Defaults describe a 48 V, 100 Ah lithium pack.
    """
    capacity_ah: float = 100.0
    v_nominal: float = 48.0
    soc_init: float = 0.5
    v_max: float = 54.6               # V (4.55 V per cell * 12)
    v_min: float = 40.0               # V (3.33 V per cell * 12)
    r_internal: float = 0.01          # Ohm
    i_max_charge: float = 50.0        # A (0.5C)
    i_max_discharge: float = 100.0    # A (1C)
    soh_init: float = 0.95
    temperature_init: float = 25.0    # °C
    max_temperature: float = 60.0     # °C
    voltage_fault_margin: float = 0.5 # V beyond the envelope before a fault is raised
    soc_min: float = 0.1
    soc_max: float = 0.95
    cycle_life: float = 3000.0        # cycles to reach end-of-life SoH
    eol_soh: float = 0.8
    ocv_table: OCVTable = field(default=DEFAULT_OCV_TABLE)

    def __post_init__(self):
        if self.capacity_ah <= 0:
            raise ValueError(f"capacity_ah must be positive, got {self.capacity_ah}")
        if not self.v_min < self.v_nominal < self.v_max:
            raise ValueError(
                f"voltage envelope must satisfy v_min < v_nominal < v_max, "
                f"got {self.v_min} / {self.v_nominal} / {self.v_max}"
            )
        if self.r_internal < 0:
            raise ValueError("r_internal cannot be negative")
        if self.i_max_charge <= 0 or self.i_max_discharge <= 0:
            raise ValueError("current limits must be positive")
        if not 0.0 <= self.soc_init <= 1.0:
            raise ValueError(f"soc_init must be within [0, 1], got {self.soc_init}")
        if not 0.0 <= self.soc_min < self.soc_max <= 1.0:
            raise ValueError("operating window must satisfy 0 <= soc_min < soc_max <= 1")
        if self.cycle_life <= 0:
            raise ValueError("cycle_life must be positive")
        if not 0.0 < self.eol_soh <= 1.0:
            raise ValueError(f"eol_soh must be within (0, 1], got {self.eol_soh}")
        if not self.eol_soh <= self.soh_init <= 1.0:
            raise ValueError(
                f"soh_init must be within [eol_soh, 1] = [{self.eol_soh}, 1], got {self.soh_init}"
            )


MPPT_METHODS = ("po", "inc_cond")


@dataclass(frozen=True)
class MPPTParams:
    step_size: float = 0.5      # V
    v_min: float = 20.0         # V
    v_max: float = 48.0         # V
    sample_time: float = 0.001  # s
    v_ref_init: float = 35.0    # V
    method: str = "po"

    def __post_init__(self):
        if self.step_size <= 0:
            raise ValueError("step_size must be positive")
        if self.sample_time <= 0:
            raise ValueError("sample_time must be positive")
        if self.v_min >= self.v_max:
            raise ValueError(f"v_min ({self.v_min}) must be below v_max ({self.v_max})")
        if self.method not in MPPT_METHODS:
            raise ValueError(f"unknown MPPT method {self.method!r}, expected one of {MPPT_METHODS}")


@dataclass(frozen=True)
class FSCCParams:
    k: float = 0.76
    voc_proxy: float = 35.0  # V, assumed open-circuit voltage folded into the estimate


@dataclass(frozen=True)
class PVArrayParams:
    """Datasheet values of the reference PV module."""
    v_mpp: float = 35.0     # V
    i_mpp: float = 7.5      # A
    n_series: int = 1
    n_parallel: int = 1
