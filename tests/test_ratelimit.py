import pytest

from market_health.indexer.ratelimit import TokenBucket


class FakeTime:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_burst_up_to_capacity_then_refill() -> None:
    fake = FakeTime()
    bucket = TokenBucket(rate_per_sec=2, capacity=2, clock=fake.clock, sleep=fake.sleep)

    assert bucket.try_acquire() is True
    assert bucket.try_acquire() is True
    assert bucket.try_acquire() is False

    fake.now += 0.5
    assert bucket.try_acquire() is True


def test_acquire_waits_for_next_token() -> None:
    fake = FakeTime()
    bucket = TokenBucket(rate_per_sec=4, capacity=1, clock=fake.clock, sleep=fake.sleep)

    bucket.acquire()
    bucket.acquire()

    assert fake.sleeps == [pytest.approx(0.25)]


def test_rate_must_be_positive() -> None:
    with pytest.raises(ValueError):
        TokenBucket(rate_per_sec=0)
