from datetime import date

import pytest

from taqlp.time import Timestep, Timestepper, time_index


class TestTimestep:
    def test_defaults_to_one_day(self):
        t = Timestep(index=0, date=date(2020, 1, 1))
        assert t.days == 1.0

    def test_usable_as_index(self):
        values = [10.0, 20.0, 30.0]
        t = Timestep(index=2, date=date(2020, 1, 3))
        assert values[t] == 30.0
        assert int(t) == 2

    def test_is_frozen(self):
        t = Timestep(index=0, date=date(2020, 1, 1))
        with pytest.raises(AttributeError):
            t.index = 1


class TestTimestepper:
    def test_end_is_inclusive(self):
        stepper = Timestepper(start=date(2020, 1, 1), end=date(2020, 1, 3))
        assert len(stepper) == 3

    def test_single_day_range_has_one_step(self):
        stepper = Timestepper(start=date(2020, 1, 1), end=date(2020, 1, 1))
        assert len(stepper) == 1

    def test_multi_day_step(self):
        stepper = Timestepper(start=date(2020, 1, 1), end=date(2020, 1, 10), step=7)
        steps = stepper.timesteps()
        assert [t.date for t in steps] == [date(2020, 1, 1), date(2020, 1, 8)]
        assert all(t.days == 7.0 for t in steps)

    def test_indices_are_consecutive(self):
        stepper = Timestepper(start=date(2020, 1, 1), end=date(2020, 1, 5))
        assert [t.index for t in stepper.timesteps()] == [0, 1, 2, 3, 4]

    def test_rejects_end_before_start(self):
        with pytest.raises(ValueError, match="end cannot be before start"):
            Timestepper(start=date(2020, 1, 2), end=date(2020, 1, 1))

    @pytest.mark.parametrize("step", [0, -1])
    def test_rejects_non_positive_step(self, step):
        with pytest.raises(ValueError, match="step must be positive"):
            Timestepper(start=date(2020, 1, 1), end=date(2020, 1, 2), step=step)

    def test_from_strings(self):
        stepper = Timestepper.from_strings("2021-03-01", "2021-03-31")
        assert stepper.start == date(2021, 3, 1)
        assert len(stepper) == 31

    def test_from_strings_custom_format(self):
        stepper = Timestepper.from_strings("01/02/2021", "03/02/2021", fmt="%d/%m/%Y")
        assert stepper.end == date(2021, 2, 3)

    def test_time_index(self):
        stepper = Timestepper(start=date(2020, 12, 31), end=date(2021, 1, 1))
        assert time_index(stepper) == (date(2020, 12, 31), date(2021, 1, 1))
