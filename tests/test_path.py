import pytest

from bytemodel.merkle.hash import Hash, serialise_uint64, sha256_compress
from bytemodel.merkle.path import Direction, Path, PathElement


def _hash(byte):
    return Hash(bytes([byte]) * 32)


@pytest.fixture
def sample_path():
    elements = [
        PathElement(_hash(0x11), Direction.LEFT),
        PathElement(_hash(0x22), Direction.RIGHT),
    ]
    return Path(_hash(0xAB), 2, elements, 5)


def test_empty_path_root_is_leaf():
    leaf = _hash(0x42)
    path = Path(leaf, 0, [], 0)
    assert path.root() == leaf
    assert path.verify(leaf)
    assert len(path) == 0


def test_root_combines_in_direction_order(sample_path):
    step = sha256_compress(_hash(0x11), _hash(0xAB))
    expected = sha256_compress(step, _hash(0x22))
    assert sample_path.root() == expected
    assert sample_path.verify(expected)
    assert not sample_path.verify(_hash(0x00))


def test_direction_changes_root():
    left = Path(_hash(1), 0, [PathElement(_hash(2), Direction.LEFT)], 1)
    right = Path(_hash(1), 0, [PathElement(_hash(2), Direction.RIGHT)], 1)
    assert left.root() != right.root()


def test_serialise_empty_path_wire_format():
    path = Path(Hash(), 3, [], 7)
    expected = bytes(32) + serialise_uint64(3) + serialise_uint64(7) + serialise_uint64(0)
    assert path.serialise() == expected
    assert path.serialised_size == 56


def test_serialise_direction_bytes(sample_path):
    data = sample_path.serialise()
    header = 32 + 8 * 3
    assert data[header:header + 32] == _hash(0x11).bytes
    assert data[header + 32] == 1
    assert data[header + 33 + 32] == 0
    assert len(data) == header + 2 * 33


def test_round_trip(sample_path):
    data = sample_path.serialise()
    restored, position = Path.deserialise(data)
    assert position == len(data)
    assert restored == sample_path
    assert restored.leaf_index == 2
    assert restored.max_index == 5
    assert [e.direction for e in restored] == [Direction.LEFT, Direction.RIGHT]


def test_deserialise_at_offset(sample_path):
    prefix = b"\xff\xfe\xfd"
    data = prefix + sample_path.serialise()
    restored, position = Path.deserialise(data, len(prefix))
    assert restored == sample_path
    assert position == len(data)


def test_deserialise_nonzero_direction_is_left(sample_path):
    data = bytearray(sample_path.serialise())
    data[32 + 24 + 32 + 33] = 7
    restored, _ = Path.deserialise(bytes(data))
    assert restored.elements[1].direction is Direction.LEFT


def test_deserialise_truncated_raises(sample_path):
    data = sample_path.serialise()
    with pytest.raises(ValueError):
        Path.deserialise(data[:-1])
    with pytest.raises(ValueError):
        Path.deserialise(data[:40])


def test_getitem_and_iter(sample_path):
    assert sample_path[0] == _hash(0x11)
    assert sample_path[1] == _hash(0x22)
    assert [e.hash for e in sample_path] == [_hash(0x11), _hash(0x22)]
    with pytest.raises(IndexError):
        sample_path[2]


def test_to_string(sample_path):
    assert sample_path.to_string(2) == "abab 1111(L) 2222(R)"
    upper = Path(_hash(0xAB), 0, [PathElement(_hash(0xCD), Direction.RIGHT)], 1)
    assert upper.to_string(1, lower_case=False) == "ab CD(R)"


def test_equality_ignores_indices(sample_path):
    other = Path(_hash(0xAB), 0, list(sample_path.elements), 9)
    assert other == sample_path
    different = Path(_hash(0xAB), 2, sample_path.elements[:1], 5)
    assert not (different == sample_path)
    flipped = Path(
        _hash(0xAB), 2,
        [PathElement(_hash(0x11), Direction.RIGHT), sample_path.elements[1]], 5,
    )
    assert flipped != sample_path


def test_tuple_elements_accepted():
    path = Path(_hash(1), 0, [(_hash(2), Direction.LEFT)], 1)
    assert path.elements == [PathElement(_hash(2), Direction.LEFT)]