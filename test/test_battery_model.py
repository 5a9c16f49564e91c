import unittest
from solar_core.battery import MAX_ACTIONS, BatteryModel, FaultCode
from solar_core.config import BatteryParams


class TestBatteryModel(unittest.TestCase):

    def setUp(self):
        """
        Set up a default 48 V, 100 Ah pack at 50% SOC.
        """
        self.battery = BatteryModel(capacity_ah=100, v_nominal=48, soc_init=0.5)

    def test_initial_conditions(self):
        """
        Test that the pack starts from the nameplate defaults.
        """
        self.assertEqual(self.battery.soc, 0.5)
        self.assertEqual(self.battery.soh, 0.95)
        self.assertEqual(self.battery.q_remaining, 50)
        self.assertAlmostEqual(self.battery.q_total, 95)
        self.assertEqual(self.battery.cycles_count, 0)
        self.assertEqual(self.battery.temperature_c, 25)
        self.assertEqual(self.battery.q_in, 0)
        self.assertEqual(self.battery.q_out, 0)
        self.assertEqual(self.battery.v_max, 54.6)
        self.assertEqual(self.battery.v_min, 40)
        self.assertEqual(self.battery.i_max_charge, 50)
        self.assertEqual(self.battery.i_max_discharge, 100)
        self.assertEqual(self.battery.energy_wh, 4800)

    def test_explicit_arguments_override_params(self):
        battery = BatteryModel(capacity_ah=200, soc_init=0.25, params=BatteryParams(r_internal=0.02))
        self.assertEqual(battery.capacity_ah, 200)
        self.assertEqual(battery.q_remaining, 50)
        self.assertEqual(battery.r_internal, 0.02)
        self.assertEqual(battery.v_nominal, 48)

    def test_from_params(self):
        battery = BatteryModel.from_params(BatteryParams(capacity_ah=50, soc_init=0.8))
        self.assertEqual(battery.capacity_ah, 50)
        self.assertEqual(battery.soc, 0.8)
        self.assertAlmostEqual(battery.q_remaining, 40)

    def test_update_charge_saturates_at_full(self):
        """
        Test that one hour at 50 A overflows the effective capacity and clamps SOC to 1.
        """
        result = self.battery.update(current=50, dt=3600)
        self.assertIs(result, self.battery)
        self.assertEqual(self.battery.soc, 1.0)
        self.assertAlmostEqual(self.battery.q_remaining, 95)
        self.assertAlmostEqual(self.battery.q_in, 50)
        self.assertEqual(self.battery.q_out, 0)

    def test_update_discharge(self):
        """
        Test that discharging reduces the remaining charge and counts it out.
        """
        self.battery.update(current=-10, dt=3600)
        self.assertAlmostEqual(self.battery.q_remaining, 40)
        self.assertAlmostEqual(self.battery.soc, 40 / 95)
        self.assertAlmostEqual(self.battery.q_out, 10)
        self.assertEqual(self.battery.q_in, 0)

    def test_update_is_not_idempotent(self):
        self.battery.update(current=-5, dt=3600)
        self.battery.update(current=-5, dt=3600)
        self.assertAlmostEqual(self.battery.q_remaining, 40)
        self.assertAlmostEqual(self.battery.q_out, 10)

    def test_soc_stays_within_bounds(self):
        """
        Test that SOC never leaves [0, 1] however much charge is pushed in or out.
        """
        for current in [-100, -100, -100, 80, 80, 80, 80, -30, 100, 100]:
            self.battery.update(current=current, dt=3600)
            self.assertGreaterEqual(self.battery.soc, 0.0)
            self.assertLessEqual(self.battery.soc, 1.0)
            self.assertAlmostEqual(self.battery.q_remaining, self.battery.soc * self.battery.q_total)

    def test_counter_does_not_drift_past_empty(self):
        """
        Test that a saturated counter recovers immediately once the current reverses.
        """
        self.battery.update(current=-100, dt=3 * 3600)
        self.assertEqual(self.battery.soc, 0.0)
        self.assertEqual(self.battery.q_remaining, 0.0)
        self.battery.update(current=9.5, dt=3600)
        self.assertAlmostEqual(self.battery.soc, 0.1)

    def test_voltage_at_table_knot(self):
        """
        Test that the OCV lookup returns the table value exactly at a knot.
        """
        self.assertAlmostEqual(self.battery.voltage_at(0), 51.2, places=9)

    def test_voltage_interpolation_and_load_drop(self):
        self.battery.soc = 0.55
        self.assertAlmostEqual(self.battery.voltage_at(0), 51.5)
        self.assertAlmostEqual(self.battery.voltage_at(10), 51.4)
        self.assertAlmostEqual(self.battery.voltage_at(-10), 51.6)

    def test_voltage_extrapolates_beyond_table(self):
        """
        Test that SOC outside the table domain extrapolates the end segments.
        """
        self.battery.soc = 1.1
        self.assertAlmostEqual(self.battery.voltage_at(0), 55.6)
        self.battery.soc = -0.1
        self.assertAlmostEqual(self.battery.voltage_at(0), 34.5)

    def test_protection_normal_operation(self):
        limited, fault = self.battery.apply_protection(20, 50.0)
        self.assertEqual(limited, 20)
        self.assertEqual(fault, FaultCode.NONE)
        self.assertEqual(self.battery.active_faults, frozenset())
        self.assertEqual(self.battery.get_last_action(), "Safety Check Passed")

    def test_protection_overvoltage(self):
        """
        Test that a terminal voltage well above v_max zeroes the current and raises code 3.
        """
        limited, fault = self.battery.apply_protection(10, 55.2)
        self.assertEqual(limited, 0)
        self.assertEqual(fault, 3)
        self.assertEqual(fault, FaultCode.OVER_CHARGE_VOLTAGE)

    def test_protection_voltage_within_margin(self):
        """
        Test that reaching the envelope cuts the current without raising a fault.
        """
        self.assertEqual(self.battery.apply_protection(10, 54.8), (0, FaultCode.NONE))
        self.assertEqual(self.battery.apply_protection(-10, 39.8), (0, FaultCode.NONE))
        # the fault needs more than v_max + 0.5 = 55.1 V
        self.assertEqual(self.battery.apply_protection(10, 55.0), (0, FaultCode.NONE))

    def test_protection_undervoltage(self):
        limited, fault = self.battery.apply_protection(-10, 39.0)
        self.assertEqual(limited, 0)
        self.assertEqual(fault, FaultCode.OVER_DISCHARGE_VOLTAGE)

    def test_protection_discharge_current_clamp(self):
        """
        Test that an excessive discharge command is clamped and raises code 2.
        """
        limited, fault = self.battery.apply_protection(-150, 48.0)
        self.assertEqual(limited, -100)
        self.assertEqual(fault, 2)

    def test_protection_charge_current_clamp(self):
        """
        Test that an excessive charge command is clamped without a fault.
        """
        limited, fault = self.battery.apply_protection(120, 48.0)
        self.assertEqual(limited, 50)
        self.assertEqual(fault, FaultCode.NONE)
        self.assertEqual(self.battery.get_last_action(), "Current Limited to 50.00 A")

    def test_protection_current_clamp_overrides_voltage_cutoff(self):
        """
        Test that the current rule runs after the voltage rules and rewrites their zero.
        """
        limited, fault = self.battery.apply_protection(120, 55.2)
        self.assertEqual(limited, 50)
        self.assertEqual(fault, FaultCode.OVER_CHARGE_VOLTAGE)

    def test_protection_overtemperature_halves_current(self):
        self.battery.temperature_c = 65
        limited, fault = self.battery.apply_protection(20, 48.0)
        self.assertEqual(limited, 10)
        self.assertEqual(fault, FaultCode.OVER_TEMPERATURE)

    def test_protection_temperature_threshold_is_exclusive(self):
        self.battery.temperature_c = 60
        self.assertEqual(self.battery.apply_protection(20, 48.0), (20, FaultCode.NONE))

    def test_protection_last_fault_wins(self):
        """
        Test that simultaneous faults collapse to the last one while all are kept in active_faults.
        """
        self.battery.temperature_c = 70
        with self.assertLogs('solar_core.battery', level='WARNING'):
            limited, fault = self.battery.apply_protection(-150, 30.0)
        self.assertEqual(limited, -50)
        self.assertEqual(fault, FaultCode.OVER_TEMPERATURE)
        self.assertEqual(self.battery.active_faults, frozenset({
            FaultCode.OVER_DISCHARGE_VOLTAGE,
            FaultCode.OVER_DISCHARGE_CURRENT,
            FaultCode.OVER_TEMPERATURE,
        }))

    def test_estimate_health_floor(self):
        """
        Test that SoH bottoms out at 80% at and beyond the rated cycle life.
        """
        self.battery.estimate_health(3000)
        self.assertEqual(self.battery.soh, 0.8)
        self.battery.estimate_health(6000)
        self.assertEqual(self.battery.soh, 0.8)

    def test_estimate_health_linear_fade(self):
        self.assertIs(self.battery.estimate_health(1500), self.battery)
        self.assertAlmostEqual(self.battery.soh, 0.9)
        self.assertEqual(self.battery.cycles_count, 1500)
        self.battery.estimate_health(1500)
        self.assertAlmostEqual(self.battery.soh, 0.9)
        self.battery.estimate_health(0)
        self.assertEqual(self.battery.soh, 1.0)

    def test_cycle_count_never_decreases(self):
        self.battery.estimate_health(1500)
        self.battery.estimate_health(1000)
        self.assertEqual(self.battery.cycles_count, 1500)

    def test_health_changes_effective_capacity(self):
        self.battery.estimate_health(1500)
        self.battery.update(current=0, dt=1)
        self.assertAlmostEqual(self.battery.q_total, 90)
        self.assertAlmostEqual(self.battery.soc, 50 / 90)

    def test_status_summary(self):
        summary = self.battery.status_summary()
        self.assertEqual(summary["soc_percent"], 50)
        self.assertAlmostEqual(summary["soh_percent"], 95)
        self.assertEqual(summary["q_remaining"], 50)
        self.assertEqual(summary["cycles_count"], 0)
        self.assertEqual(summary["temperature_c"], 25)
        self.assertEqual(self.battery.soc, 0.5)

    def test_operating_window(self):
        self.assertTrue(self.battery.within_operating_window())
        self.battery.soc = 0.97
        self.assertFalse(self.battery.within_operating_window())
        self.battery.soc = 0.05
        self.assertFalse(self.battery.within_operating_window())

    def test_clear_actions(self):
        self.battery.apply_protection(10, 48.0)
        self.battery.estimate_health(10)
        self.assertEqual(len(self.battery.get_actions()), 2)
        self.battery.clear_actions()
        self.assertEqual(self.battery.get_actions(), [])
        self.assertEqual(self.battery.get_last_action(), "No actions recorded")

    def test_action_journal_is_bounded(self):
        """
        Test that a long run at the control rate keeps only the most recent journal entries.
        """
        for _ in range(3 * MAX_ACTIONS):
            self.battery.update(current=1.0, dt=0.01)
            self.battery.apply_protection(1.0, self.battery.voltage_at(1.0))
        self.battery.apply_protection(120, 48.0)
        self.assertEqual(len(self.battery.get_actions()), MAX_ACTIONS)
        self.assertEqual(self.battery.get_last_action(), "Current Limited to 50.00 A")

    def test_health_at_end_of_life_keeps_counting(self):
        battery = BatteryModel(params=BatteryParams(soh_init=0.8))
        battery.update(current=10, dt=3600)
        self.assertAlmostEqual(battery.q_total, 80)
        self.assertAlmostEqual(battery.soc, 60 / 80)

if __name__ == '__main__':
    unittest.main()
