from .battery import BatteryModel, FaultCode
from .config import (BatteryParams, DEFAULT_OCV_TABLE, FSCCParams, MPPTParams, OCVTable,
                     PVArrayParams)
from .mppt import (MPPTHistory, MPPTTracker, fractional_short_circuit, incremental_conductance,
                   perturb_and_observe)
from .pv import PVCurve
from .simulation import simulate_battery, simulate_tracking, sinusoidal_profile

__all__ = [
    'BatteryModel', 'FaultCode',
    'BatteryParams', 'DEFAULT_OCV_TABLE', 'FSCCParams', 'MPPTParams', 'OCVTable', 'PVArrayParams',
    'MPPTHistory', 'MPPTTracker', 'fractional_short_circuit', 'incremental_conductance',
    'perturb_and_observe',
    'PVCurve',
    'simulate_battery', 'simulate_tracking', 'sinusoidal_profile',
]
