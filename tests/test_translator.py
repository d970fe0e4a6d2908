import pytest

from hexapod_host.core.commands import Command, CommandKind
from hexapod_host.core.errors import UnknownCommandError
from hexapod_host.core.packet import NEUTRAL, Packet
from hexapod_host.core.translator import Calibration, CommandTranslator, to_cycles


@pytest.fixture
def translator():
    return CommandTranslator(Calibration(speed_factor=13, rotation_period=13))


def t(translator, kind, *args):
    return translator.translate(Command(kind, args))


def test_move_forward_and_back(translator):
    p, s = t(translator, CommandKind.MOVE_FORWARD, 1)
    assert s == 13
    assert p == Packet(power=100, duration=650)

    p, s = t(translator, CommandKind.MOVE_BACK, 0.5)
    assert s == 6.5
    assert (p.power, p.angle, p.duration) == (100, 180, 325)


def test_turns_use_rotation_period(translator):
    p, s = t(translator, CommandKind.TURN_LEFT, 90)
    assert s == pytest.approx(3.25)
    assert (p.rotation, p.duration) == (-100, 162)

    p, s = t(translator, CommandKind.TURN_RIGHT, 360)
    assert s == pytest.approx(13)
    assert (p.rotation, p.duration) == (100, 650)


@pytest.mark.parametrize(
    "kind,acc",
    [
        (CommandKind.TILT_FORWARD, (-30, 0)),
        (CommandKind.TILT_BACK, (30, 0)),
        (CommandKind.TILT_LEFT, (0, -30)),
        (CommandKind.TILT_RIGHT, (0, 30)),
    ],
)
def test_tilts(translator, kind, acc):
    p, s = t(translator, kind, 2)
    assert s == 2
    assert p.static_tilt == 1
    assert (p.acc_x, p.acc_y) == acc
    assert p.duration == 100


def test_rest(translator):
    p, s = t(translator, CommandKind.REST, 2)
    assert s == 2
    assert p == Packet(duration=100)

    p, s = t(translator, CommandKind.REST, 0)
    assert s == 0
    assert p == NEUTRAL


def test_custom_packet_passes_verbatim(translator):
    custom = Packet(power=40, angle=90, duration=75)
    p, s = t(translator, CommandKind.CUSTOM, custom)
    assert p is custom
    assert s == 1.5

    p, s = t(translator, CommandKind.CUSTOM, Packet(power=40))
    assert s == 0


def test_calibration_is_injected():
    tr = CommandTranslator(Calibration(speed_factor=2, rotation_period=8))
    assert t(tr, CommandKind.MOVE_FORWARD, 3)[1] == 6
    assert t(tr, CommandKind.TURN_RIGHT, 180)[1] == 4


def test_malformed_numbers_propagate_into_packet(translator):
    p, s = t(translator, CommandKind.TILT_LEFT, -1)
    assert s == -1
    assert p.duration == -50


def test_numeric_strings_are_coerced(translator):
    p, s = t(translator, CommandKind.TURN_RIGHT, "90")
    assert s == pytest.approx(3.25)
    assert p.duration == 162


def test_non_numeric_argument_raises(translator):
    with pytest.raises((TypeError, ValueError)):
        t(translator, CommandKind.MOVE_FORWARD, None)
    with pytest.raises((TypeError, ValueError)):
        t(translator, CommandKind.REST, "soon")


def test_unknown_kind_raises():
    tr = CommandTranslator()
    with pytest.raises(UnknownCommandError):
        tr.translate(Command("jump", (1,)))  # type: ignore[arg-type]


def test_to_cycles_truncates():
    assert to_cycles(3.25) == 162
    assert to_cycles(13) == 650
