import random

import pytest

from egc_final import (
    CorruptFrameError,
    DictionaryOverflowError,
    EmptyInputError,
    codebook,
    decode,
    dictionary_decode,
    dictionary_encode,
    encode,
    exp_golomb_pattern,
    frequency_rank,
    min_scale_decode,
    min_scale_encode,
    radix_convert,
    rank_order,
)


def _value(digits, base):
    v = 0
    for d in digits:
        v = v * base + d
    return v


###############################################################################
# Radix conversion
###############################################################################

@pytest.mark.parametrize("digits,src,dst,expected", [
    ([1, 0, 1], 2, 10, [5]),
    ([], 2, 256, [0]),
    ([0, 0, 0], 2, 256, [0]),
    ([1, 0, 0, 0, 0, 0, 0, 0, 0], 2, 256, [1, 0]),
    ([255, 255], 256, 16, [15, 15, 15, 15]),
    ([2, 5, 5], 10, 2, [1, 1, 1, 1, 1, 1, 1, 1]),
    ([0, 0, 7], 10, 3, [2, 1]),
])
def test_radix_convert_known_values(digits, src, dst, expected):
    assert radix_convert(digits, src, dst) == expected


@pytest.mark.parametrize("src,dst", [(2, 256), (256, 2), (3, 256), (256, 3), (7, 10)])
def test_radix_convert_inverse_law(src, dst):
    rng = random.Random(src * 1000 + dst)
    digits = [rng.randrange(src) for _ in range(60)]
    there = radix_convert(digits, src, dst)
    assert _value(there, dst) == _value(digits, src)
    back = radix_convert(there, dst, src)
    stripped = digits[next((i for i, d in enumerate(digits) if d), len(digits)):] or [0]
    assert back == stripped


def test_radix_convert_does_not_mutate_input():
    digits = [1, 2, 3]
    radix_convert(digits, 10, 2)
    assert digits == [1, 2, 3]


@pytest.mark.parametrize("digits,src,dst", [
    ([2], 2, 256),
    ([1], 1, 10),
    ([1], 10, 257),
    ([-1], 10, 2),
])
def test_radix_convert_rejects_bad_arguments(digits, src, dst):
    with pytest.raises(ValueError):
        radix_convert(digits, src, dst)


###############################################################################
# Codebook
###############################################################################

@pytest.mark.parametrize("rank,bits", [
    (0, (1, 0)),
    (1, (1, 1)),
    (2, (0, 1, 0, 0)),
    (5, (0, 1, 1, 1)),
    (6, (0, 0, 1, 0, 0, 0)),
    (254, (0,) * 7 + (1, 0, 0, 0, 0, 0, 0, 0, 0)),
])
def test_codebook_patterns(rank, bits):
    assert codebook().encode(rank) == bits
    assert codebook().decode(''.join(map(str, bits))) == rank


def test_codebook_is_built_once():
    assert codebook() is codebook()


def test_codebook_is_prefix_free():
    texts = [exp_golomb_pattern(r) for r in range(256)]
    assert len(set(texts)) == 256
    for a in texts:
        for b in texts:
            if a != b:
                assert not b.startswith(a)


def test_codebook_lookup_is_read_only():
    with pytest.raises(TypeError):
        codebook().lookup['0'] = 1


def test_codebook_max_length():
    assert codebook().max_length == 16
    assert codebook().decode('0') is None


###############################################################################
# Frequency ranking
###############################################################################

def test_frequency_rank_orders_by_count_then_value():
    ranks = frequency_rank(b"Mississippi")
    assert ranks[ord('i')] == 0
    assert ranks[ord('s')] == 1
    assert ranks[ord('p')] == 2
    assert ranks[ord('M')] == 3
    assert sum(r is not None for r in ranks) == 4
    assert bytes(rank_order(ranks)) == b"ispM"


def test_frequency_rank_ties_keep_ascending_values():
    ranks = frequency_rank(b"cba")
    assert rank_order(ranks) == [ord('a'), ord('b'), ord('c')]


###############################################################################
# Dictionary codec
###############################################################################

def test_min_scale_round_trip():
    values = bytes(range(10, 42))
    assert min_scale_decode(min_scale_encode(values)) == values


def test_min_scale_empty_sequence():
    assert min_scale_decode(min_scale_encode(b"")) == b""


@pytest.mark.parametrize("length", [1, 2, 17, 128, 255])
def test_dictionary_round_trip_sorted(length):
    rng = random.Random(length)
    symbols = sorted(rng.sample(range(256), length))
    assert dictionary_decode(dictionary_encode(symbols)) == bytes(symbols)


@pytest.mark.parametrize("length", [1, 40, 255])
def test_dictionary_round_trip_shuffled(length):
    rng = random.Random(length + 7)
    symbols = rng.sample(range(256), length)
    assert dictionary_decode(dictionary_encode(symbols)) == bytes(symbols)


def test_dictionary_without_leading_delimiter():
    # base-3 digits [1, 2]: the first group has no delimiter in front
    assert min_scale_decode(bytes([5])) == b""


def test_dictionary_rejects_wide_entry():
    blob = bytes(radix_convert([2] + [1] * 9, 3, 256))
    with pytest.raises(CorruptFrameError):
        min_scale_decode(blob)


def test_dictionary_rejects_empty_group():
    blob = bytes(radix_convert([2, 2, 1], 3, 256))
    with pytest.raises(CorruptFrameError):
        min_scale_decode(blob)


def test_dictionary_rejects_empty_blob():
    with pytest.raises(CorruptFrameError):
        dictionary_decode(b"")


###############################################################################
# Frame encode/decode
###############################################################################

def test_mississippi_shrinks_and_round_trips():
    data = b"Mississippi" * 10
    frame = encode(data)
    assert len(frame) < len(data)
    # 'M' has rank 3, codeword 0101
    assert frame[1] == 1
    assert frame[0] == 256 - 7
    assert decode(frame) == data


def test_uniform_digits_round_trip():
    data = b"0123456789 " * 10
    assert decode(encode(data)) == data


def test_random_bytes_round_trip():
    rng = random.Random(2024)
    data = bytes(rng.getrandbits(8) for _ in range(200))
    assert decode(encode(data)) == data


def test_single_symbol_input():
    data = b"A" * 50
    frame = encode(data)
    assert frame[0] == 254
    assert frame[1] == 0
    assert dictionary_decode(frame[-2:]) == b"A"
    assert decode(frame) == data


def test_single_byte_input():
    assert decode(encode(b"\x00")) == b"\x00"


def test_sorted_255_symbols_round_trip():
    data = bytes(range(255))
    assert decode(encode(data)) == data


def test_255_symbols_succeed_or_fail_cleanly():
    rng = random.Random(99)
    values = list(range(1, 256)) + rng.choices(range(1, 256), k=300)
    rng.shuffle(values)
    data = bytes(values)
    assert len(set(data)) == 255
    try:
        frame = encode(data)
    except DictionaryOverflowError:
        return
    assert decode(frame) == data


def test_dictionary_overflow_is_rejected():
    rng = random.Random(1234)
    order = list(range(255))
    rng.shuffle(order)
    # distinct counts force the shuffled order into the rank table
    data = b"".join(bytes([v]) * (255 - i) for i, v in enumerate(order))
    assert len(dictionary_encode(order)) > 255
    with pytest.raises(DictionaryOverflowError):
        encode(data)


def test_encode_is_deterministic():
    data = b"abracadabra" * 7
    assert encode(data) == encode(data)
    assert encode(bytearray(data)) == encode(data)


def test_encode_rejects_empty_input():
    with pytest.raises(EmptyInputError):
        encode(b"")
    with pytest.raises(ValueError):
        encode(b"")


@pytest.mark.parametrize("frame", [
    b"",
    b"\xff\x00",
    b"\x00\x00\x01",
    bytes([1, 0, 5]),
])
def test_decode_rejects_bad_lengths(frame):
    with pytest.raises(CorruptFrameError):
        decode(frame)


def test_decode_rejects_overlong_prefix():
    frame = bytearray(encode(b"A" * 50))
    frame[1] = 20
    with pytest.raises(CorruptFrameError):
        decode(bytes(frame))


def test_decode_rejects_rank_outside_dictionary():
    d = dictionary_encode(b"A")
    # bit payload 0b11 is the codeword of rank 1
    frame = bytes([(-len(d)) % 256, 0, 3]) + d
    with pytest.raises(CorruptFrameError):
        decode(frame)


def test_decode_rejects_dangling_bits():
    d = dictionary_encode(b"A")
    frame = bytes([(-len(d)) % 256, 0, 1]) + d
    with pytest.raises(CorruptFrameError):
        decode(frame)
