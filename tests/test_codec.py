import struct

import pytest

from bytemodel.codec import (
    Reader,
    Type,
    decode_int,
    encode_int,
    encode_value,
    is_little_endian,
    load,
    save,
    type_size,
)


@pytest.mark.parametrize("kind", list(Type))
def test_type_size_matches_encoded_length(kind):
    assert len(encode_value(kind, 0)) == type_size(kind)


def test_type_size_accepts_raw_value():
    assert type_size(int(Type.I64)) == type_size(Type.I64)
    assert type_size(int(Type.I16)) == type_size(Type.I16)


def test_encode_int_is_big_endian():
    assert encode_int(231, 4) == b"\x00\x00\x00\xe7"


def test_encode_int_negative_wraps():
    assert encode_int(-1, 2) == b"\xff\xff"


@pytest.mark.parametrize("value,size", [(0, 1), (127, 1), (-128, 1), (150, 4),
                                        (-231, 4), (-5, 2), (2**62, 8), (-(2**40), 8)])
def test_int_round_trip(value, size):
    assert decode_int(encode_int(value, size), size) == value


def test_encode_int_rejects_non_positive_size():
    with pytest.raises(ValueError):
        encode_int(1, 0)


def test_decode_int_short_buffer():
    with pytest.raises(ValueError):
        decode_int(b"\x00", 4)


def test_float_and_double_round_trip():
    assert struct.unpack(">f", encode_value(Type.FLOAT, 1.5))[0] == 1.5
    assert struct.unpack(">d", encode_value(Type.DOUBLE, -2.25))[0] == -2.25


def test_bool_encoding_round_trip():
    assert decode_int(encode_value(Type.BOOL, True), 1) == 1
    assert decode_int(encode_value(Type.BOOL, False), 1) == 0


def test_reader_sequential_reads():
    data = encode_int(7, 1) + encode_int(-5, 2) + encode_int(150, 4) + b"xyz"
    reader = Reader(data)
    assert reader.read_u8() == 7
    assert reader.read_i16() == -5
    assert reader.read_i32() == 150
    assert reader.read_bytes(3) == b"xyz"
    assert reader.offset == len(data)


def test_reader_u8_is_unsigned():
    assert Reader(b"\xff").read_u8() == 255


def test_reader_read_int_signed():
    assert Reader(encode_int(-2, 2)).read_int(2) == -2


def test_reader_read_name():
    name = "int32"
    reader = Reader(encode_int(len(name), 2) + name.encode() + b"tail")
    assert reader.read_name() == name
    assert reader.offset == 2 + len(name)


def test_reader_starts_at_offset():
    reader = Reader(b"ab" + encode_int(231, 4), 2)
    assert reader.read_i32() == 231


def test_reader_past_end_raises():
    reader = Reader(b"\x00\x01")
    with pytest.raises(ValueError):
        reader.read_i32()
    assert reader.offset == 0


def test_reader_negative_count_raises():
    with pytest.raises(ValueError):
        Reader(b"abc").read_bytes(-1)


def test_is_little_endian():
    assert is_little_endian(5) is True
    assert is_little_endian(4) is False


def test_save_load_round_trip(tmp_path):
    payload = bytes(range(256))
    target = tmp_path / "blob.abc"
    save(target, payload)
    assert load(target) == payload