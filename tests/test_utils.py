import pytest

from rxquartz.mechanism import QuartzException
from rxquartz.utils import (
    get_full_error_info,
    get_short_error_info,
    printable,
    terminate,
    wire_decode,
    wire_encode,
)


def test_wire_encode_is_one_byte_per_char():
    assert wire_encode(".RAD1,Caméra\r") == b".RAD1,Cam\xe9ra\r"


def test_wire_encode_rejects_wide_chars():
    with pytest.raises(ValueError):
        wire_encode(".RAD1,漢")


def test_wire_decode():
    assert wire_decode(b"\xff.A") == "ÿ.A"
    assert wire_decode(bytearray(b".P")) == ".P"
    assert wire_decode(".E") == ".E"


def test_terminate_appends_once():
    assert terminate(".SV1,5") == ".SV1,5\r"
    assert terminate(".SV1,5\r") == ".SV1,5\r"


def test_printable():
    assert printable(".RD1\r.RD2\r") == ".RD1\\r.RD2\\r"


def test_error_info_functions():
    try:
        raise ValueError('oops')
    except Exception as e:
        short = get_short_error_info(e)
        full = get_full_error_info(e)

    assert 'ValueError' in short and 'oops' in short
    assert 'ValueError' in full and 'oops' in full


def test_quartz_exception_str():
    err = QuartzException(OSError("unreachable"), source="QuartzConnection", note="connect")
    assert str(err) == "<QuartzConnection> connect: unreachable"
    assert isinstance(err.exception, OSError)
