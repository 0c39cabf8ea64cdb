"""Tests for the ETA estimator."""

from website_source.utils.progress import EtaEstimator, format_duration


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_format_duration():
    assert format_duration(12) == "12s"
    assert format_duration(65) == "1m 05s"


def test_no_estimate_during_warmup():
    clock = FakeClock()
    eta = EtaEstimator(clock=clock)
    eta.start()

    clock.now = 3.0
    assert eta.update(3, 10) is None
    assert eta.describe(5, 10) == ""


def test_estimate_after_warmup():
    clock = FakeClock()
    eta = EtaEstimator(clock=clock)
    eta.start()

    clock.now = 10.0
    assert eta.update(10, 20) == 10.0
    assert eta.describe(10, 20) == "ETA 10s"


def test_moving_average_smooths_samples():
    clock = FakeClock()
    eta = EtaEstimator(smoothing=0.5, warmup=0, clock=clock)
    eta.start()

    clock.now = 1.0
    eta.update(1, 10)
    clock.now = 6.0
    # average = 3.0 * 0.5 + 1.0 * 0.5 = 2.0
    assert eta.update(2, 10) == 14.0


def test_finishing_up_near_the_end():
    clock = FakeClock()
    eta = EtaEstimator(clock=clock)
    eta.start()

    clock.now = 19.0
    assert eta.describe(19, 20) == "Finishing up..."

    clock.now = 20.0
    assert eta.describe(20, 20) == ""
