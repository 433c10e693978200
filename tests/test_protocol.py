"""
Frame codec tests.
"""
import pytest

from track_host.comm.protocol import ProtocolError, decode


def test_decode_single_frame():
    assert decode("{track-1-start:1}\r\n") == [{"track-1-start": "1"}]


def test_decode_several_frames_on_one_line():
    assert decode("{track-2-finish:1}{arduino-ready:true}") == [
        {"track-2-finish": "1"},
        {"arduino-ready": "true"},
    ]


def test_decode_blank_line():
    assert decode("   \n") == []


def test_decode_garbage_raises():
    with pytest.raises(ProtocolError):
        decode("booting...")
