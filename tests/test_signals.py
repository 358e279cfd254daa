import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from notification_client.infrastructure.notifications import SignalChannel, SignalKind


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def delivered():
    return []


@pytest.fixture
def channel(clock, delivered):
    return SignalChannel(
        lambda kind, message: delivered.append((kind, message)),
        cooldown=5.0,
        clock=clock,
    )


def test_info_signals_inside_cooldown_are_suppressed(channel, clock, delivered):
    assert channel.info("primero") is True
    clock.now += 4.9
    assert channel.info("segundo") is False

    assert delivered == [(SignalKind.INFO, "primero")]


def test_info_signal_after_cooldown_is_delivered(channel, clock, delivered):
    channel.info("primero")
    clock.now += 5.0

    assert channel.info("segundo") is True
    assert [message for _, message in delivered] == ["primero", "segundo"]


def test_errors_bypass_the_cooldown(channel, clock, delivered):
    channel.info("reconectando")
    clock.now += 1

    assert channel.error("sesion expirada") is True
    assert delivered[-1] == (SignalKind.ERROR, "sesion expirada")


def test_error_restarts_the_window(channel, clock, delivered):
    channel.error("fallo")
    clock.now += 1

    assert channel.info("reconectando") is False
    assert len(delivered) == 1


def test_failing_sink_is_contained(clock):
    def broken(kind, message):
        raise RuntimeError("sink down")

    channel = SignalChannel(broken, cooldown=0, clock=clock)

    assert channel.error("mensaje") is True


def test_negative_cooldown_is_rejected():
    with pytest.raises(ValueError):
        SignalChannel(cooldown=-1)
