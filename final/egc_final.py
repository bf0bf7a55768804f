#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
egc_final.py -- Adaptive Exponential‑Golomb codec for short byte strings.

This module contains a self‑contained implementation of a small entropy
codec aimed at inputs of up to roughly three thousand bytes.  Every input
byte is replaced by its *rank* (0 = most frequent byte of the input), each
rank is written as a prefix‑free Exponential‑Golomb codeword (k = 1) and
the resulting bit string is packed into bytes by treating it as one big
base‑2 number and converting it to base 256.  The rank table needed to
undo the remapping travels with the data as a tiny side channel
dictionary, itself packed through a base‑3 → base‑256 conversion.

### Frame format

``encode`` produces a single frame without magic or version::

    u8  dict_len_neg    -- (-dict_len) mod 256
    u8  leading_zeros   -- zero bits dropped by the base‑256 packing
    ... bit_payload     -- codeword bits, base 2 -> base 256
    ... dict_payload    -- rank table, dict_len bytes

The split point between the two payloads is ``len(frame) - dict_len``.
The dictionary therefore has to fit into 255 bytes, which caps the usable
alphabet for poorly ordered symbol sets.

### Dictionary ("min‑diff scaling")

The rank ordered symbol list is delta coded modulo 256, the smallest delta
is subtracted from every element and stored in front, and each element is
written as the ternary delimiter digit ``2`` followed by its binary digits.
The ternary digit string is then radix converted to base 256.

### Block container

Larger files are cut into blocks of at most ``DEFAULT_BLOCK_SIZE`` bytes.
The container begins with ``b'EGCB'`` followed by:

* ``u32 block_size`` – nominal block size used when slicing the input.
* ``u64 total_len`` – total length of the original input.
* ``u32 nblocks`` – number of blocks encoded.

Each block then consists of ``u8 method_id`` (0 = RAW, 1 = EGC),
``u32 orig_len``, ``u32 payload_len`` and the payload.  The shorter of the
RAW copy and the EGC frame is kept for every block.

The radix conversion is the schoolbook repeated long division and costs
O(n²) in the digit count, which is why the codec is meant for short inputs.
"""

from __future__ import annotations

import math
import os
import struct
import sys
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

__version__ = "0.1.0"

EGC_K = 1
ALPHABET_SIZE = 256
DELIMITER = 2
MAX_DICT_LEN = 255
RECOMMENDED_MAX_INPUT = 3000

MAGIC = b'EGCB'
DEFAULT_BLOCK_SIZE = 2048
MAX_BLOCK_SIZE = 4096
METHOD_RAW = 0
METHOD_EGC = 1

# Progress switch (set by the CLI)
G_PROGRESS: bool = False

def _print_progress(label: str, i: int, n: int, final: bool = False) -> None:
    """Block level progress line: [{label}] block i/n ... / done."""
    if not G_PROGRESS:
        return
    if not final:
        print(f"[{label}] block {i}/{n} ...", end="\r", flush=True)
    else:
        print(f"[{label}] block {n}/{n} done.", flush=True)

###############################################################################
# Errors
###############################################################################

class EgcError(ValueError):
    """Base class for codec failures on otherwise well‑typed input."""

class EmptyInputError(EgcError):
    """Raised by ``encode`` when there is nothing to rank."""

class DictionaryOverflowError(EgcError):
    """The serialized rank table does not fit into one length byte."""

class CorruptFrameError(EgcError):
    """Raised when a frame or container cannot be parsed."""

###############################################################################
# Radix conversion
###############################################################################

def radix_convert(digits: Iterable[int], source_base: int, target_base: int) -> List[int]:
    """Re‑express a non‑negative number from ``source_base`` in ``target_base``.

    ``digits`` is read most significant digit first and the result uses
    the same order.  The conversion is repeated long division: each sweep
    divides the whole digit buffer by ``target_base`` in place and the
    final remainder of the sweep is the next least significant output
    digit.  Sweeping stops once the buffer is all zeros.  Leading zeros
    of the input are not represented in the output, and an empty input
    (or the value zero) yields ``[0]``.

    Both bases must lie in 2..256 and every digit must be smaller than
    ``source_base``; ``ValueError`` is raised otherwise.
    """
    if not 2 <= source_base <= 256 or not 2 <= target_base <= 256:
        raise ValueError(f"bases must be in 2..256, got {source_base} -> {target_base}")
    buf = list(digits)
    if not buf:
        return [0]
    for d in buf:
        if not 0 <= d < source_base:
            raise ValueError(f"digit {d} out of range for base {source_base}")
    n = len(buf)
    start = 0
    out: List[int] = []
    while True:
        rem = 0
        nonzero = False
        for i in range(start, n):
            q, rem = divmod(rem * source_base + buf[i], target_base)
            buf[i] = q
            if q:
                nonzero = True
        out.append(rem)
        if not nonzero:
            break
        # skip the zeros the division has produced at the front
        while buf[start] == 0:
            start += 1
    out.reverse()
    return out

###############################################################################
# Exponential‑Golomb codebook
###############################################################################

def exp_golomb_pattern(value: int, k: int = EGC_K) -> str:
    """Return the order‑``k`` Exponential‑Golomb codeword of ``value`` as '0'/'1' text.

    With ``b = value + 2**k`` the codeword is ``bit_length(b) - 1 - k``
    zeros followed by the binary digits of ``b``.
    """
    if value < 0:
        raise ValueError("Exponential-Golomb codes need non-negative values")
    b = value + (1 << k)
    zeros = b.bit_length() - 1 - k
    return '0' * max(zeros, 0) + format(b, 'b')

@dataclass(frozen=True)
class Codebook:
    """Immutable rank <-> codeword table shared by every encode/decode call."""
    patterns: Tuple[Tuple[int, ...], ...]
    lookup: Mapping[str, int]
    max_length: int

    def encode(self, rank: int) -> Tuple[int, ...]:
        return self.patterns[rank]

    def decode(self, pattern: str) -> Optional[int]:
        return self.lookup.get(pattern)

@lru_cache(maxsize=None)
def codebook() -> Codebook:
    """Build the 256 entry codebook on first use and return the cached copy.

    Two threads racing on the first call may both build the table; the
    result is deterministic so whichever copy the cache keeps is fine.
    """
    texts = [exp_golomb_pattern(r) for r in range(ALPHABET_SIZE)]
    patterns = tuple(tuple(int(c) for c in t) for t in texts)
    lookup = MappingProxyType({t: r for r, t in enumerate(texts)})
    return Codebook(patterns, lookup, max(len(t) for t in texts))

###############################################################################
# Frequency ranking
###############################################################################

def frequency_rank(data: bytes) -> List[Optional[int]]:
    """Assign dense ranks to the byte values present in ``data``.

    The result is a 256 entry list indexed by byte value.  The most
    frequent byte gets rank 0; equal counts keep ascending byte order
    because the sort is stable over the ascending value scan.  Bytes that
    do not occur map to ``None``.
    """
    counts = [0] * ALPHABET_SIZE
    for b in data:
        counts[b] += 1
    order = sorted(range(ALPHABET_SIZE), key=lambda v: -counts[v])
    ranks: List[Optional[int]] = [None] * ALPHABET_SIZE
    for r, v in enumerate(order):
        # zero counts are sorted to the end
        if counts[v] == 0:
            break
        ranks[v] = r
    return ranks

def rank_order(ranks: Sequence[Optional[int]]) -> List[int]:
    """Invert a rank table into the rank ordered symbol list."""
    present = [(r, v) for v, r in enumerate(ranks) if r is not None]
    symbols = [0] * len(present)
    for r, v in present:
        symbols[r] = v
    return symbols

###############################################################################
# Dictionary codec (min‑diff scaling)
###############################################################################

def _ternary_digits(values: Iterable[int]) -> List[int]:
    digits: List[int] = []
    for v in values:
        digits.append(DELIMITER)
        digits.extend(int(c) for c in format(v, 'b'))
    return digits

def _split_groups(digits: Sequence[int]) -> List[List[int]]:
    """Cut a ternary digit string into the binary groups between delimiters.

    Delimiter positions are used as boundaries.  A string that does not
    start with a delimiter gets a virtual boundary before its first
    digit, and one that does not end with a delimiter gets a virtual
    boundary after its last digit.
    """
    n = len(digits)
    marks: List[int] = []
    if digits[0] != DELIMITER:
        marks.append(-1)
    marks.extend(i for i, d in enumerate(digits) if d == DELIMITER)
    if digits[-1] != DELIMITER:
        marks.append(n)
    return [list(digits[a + 1:b]) for a, b in zip(marks, marks[1:])]

def min_scale_encode(values: Iterable[int]) -> bytes:
    """Pack byte values by subtracting their minimum and radix converting.

    The minimum ``m`` (0 for an empty input) is written first, followed by
    every value minus ``m``.  Each element becomes the delimiter digit 2
    followed by its binary digits and the ternary string is converted to
    base 256.
    """
    vals = list(values)
    m = min(vals) if vals else 0
    digits = _ternary_digits([m] + [(v - m) % ALPHABET_SIZE for v in vals])
    return bytes(radix_convert(digits, 3, 256))

def min_scale_decode(blob: bytes) -> bytes:
    """Inverse of ``min_scale_encode``."""
    if not blob:
        raise CorruptFrameError("empty dictionary payload")
    groups = _split_groups(radix_convert(blob, 256, 3))
    values: List[int] = []
    for g in groups:
        if not g:
            raise CorruptFrameError("empty group in dictionary payload")
        v = int(''.join(map(str, g)), 2)
        if v >= ALPHABET_SIZE:
            raise CorruptFrameError(f"dictionary entry {v} exceeds one byte")
        values.append(v)
    if not values:
        raise CorruptFrameError("dictionary payload holds no minimum")
    m = values[0]
    return bytes((v + m) % ALPHABET_SIZE for v in values[1:])

def dictionary_encode(symbols: Iterable[int]) -> bytes:
    """Serialize a rank ordered symbol list: forward differences, then min scaling."""
    deltas: List[int] = []
    prev = 0
    for s in symbols:
        deltas.append((s - prev) % ALPHABET_SIZE)
        prev = s
    return min_scale_encode(deltas)

def dictionary_decode(blob: bytes) -> bytes:
    acc = 0
    out = bytearray()
    for d in min_scale_decode(blob):
        acc = (acc + d) % ALPHABET_SIZE
        out.append(acc)
    return bytes(out)

###############################################################################
# Frame encode/decode
###############################################################################

def encode(data: bytes) -> bytes:
    """Encode ``data`` into a single EGC frame.

    The rank table is serialized before any bits are produced so that an
    oversized dictionary is rejected without paying for the quadratic
    bit packing.  Raises ``EmptyInputError`` for empty input and
    ``DictionaryOverflowError`` when the dictionary needs more than 255
    bytes.
    """
    if not data:
        raise EmptyInputError("cannot encode an empty buffer")
    book = codebook()
    ranks = frequency_rank(data)
    dict_payload = dictionary_encode(rank_order(ranks))
    if len(dict_payload) > MAX_DICT_LEN:
        raise DictionaryOverflowError(
            f"dictionary needs {len(dict_payload)} bytes, at most {MAX_DICT_LEN} fit")
    bits: List[int] = []
    for b in data:
        bits.extend(book.encode(ranks[b]))
    # every codeword contains a one bit
    leading_zeros = bits.index(1)
    bit_payload = radix_convert(bits, 2, 256)
    out = bytearray()
    out.append((-len(dict_payload)) % 256)
    out.append(leading_zeros)
    out += bytes(bit_payload)
    out += dict_payload
    return bytes(out)

def decode(frame: bytes) -> bytes:
    """Decode a frame produced by ``encode``.

    Reads the two header bytes, splits the payloads, rebuilds the rank
    table and walks the restored bit string, growing a prefix one bit at
    a time until it names a codeword.  Raises ``CorruptFrameError`` when
    the lengths do not fit the frame, a prefix grows past the longest
    codeword or runs into the end of the stream, or a rank is missing
    from the dictionary.
    """
    frame = bytes(frame)
    if len(frame) < 3:
        raise CorruptFrameError(f"frame too short: {len(frame)} bytes")
    dict_len = (-frame[0]) % 256
    leading_zeros = frame[1]
    split = len(frame) - dict_len
    if dict_len == 0 or split < 3:
        raise CorruptFrameError(
            f"dictionary length {dict_len} does not fit a {len(frame)} byte frame")
    symbols = dictionary_decode(frame[split:])
    bits = radix_convert(frame[2:split], 256, 2)
    stream = '0' * leading_zeros + ''.join(map(str, bits))
    book = codebook()
    out = bytearray()
    pos = 0
    n = len(stream)
    while pos < n:
        limit = min(n, pos + book.max_length)
        end = pos + 1
        rank = book.decode(stream[pos:end])
        while rank is None:
            if end >= limit:
                raise CorruptFrameError(f"no codeword matches the bits at offset {pos}")
            end += 1
            rank = book.decode(stream[pos:end])
        if rank >= len(symbols):
            raise CorruptFrameError(
                f"rank {rank} outside a dictionary of {len(symbols)} symbols")
        out.append(symbols[rank])
        pos = end
    return bytes(out)

def shannon_entropy(data: bytes) -> float:
    """Empirical entropy H(X) = -sum(p_i log2 p_i) in bits per byte."""
    n = len(data)
    if n == 0:
        return 0.0
    hist: Dict[int, int] = {}
    for b in data:
        hist[b] = hist.get(b, 0) + 1
    H = 0.0
    for cnt in hist.values():
        p = cnt / n
        H -= p * math.log2(p)
    return H

###############################################################################
# Block container
###############################################################################

def _encode_block(block: bytes) -> Tuple[int, bytes]:
    """Pick the shorter of RAW and EGC for one block.

    Blocks whose dictionary overflows are stored RAW.  Ties go to RAW.
    """
    try:
        payload = encode(block)
    except DictionaryOverflowError:
        return METHOD_RAW, block
    if len(payload) < len(block):
        return METHOD_EGC, payload
    return METHOD_RAW, block

def _decode_raw(payload: bytes, orig_len: int) -> bytes:
    if len(payload) != orig_len:
        raise CorruptFrameError("payload length mismatch for RAW block")
    return payload

def _decode_egc(payload: bytes, orig_len: int) -> bytes:
    return decode(payload)

_DECODERS = {
    METHOD_RAW: _decode_raw,
    METHOD_EGC: _decode_egc,
}

def compress(data: bytes, block_size: int = DEFAULT_BLOCK_SIZE) -> bytes:
    """Compress ``data`` of any length into an ``EGCB`` container.

    The input is sliced into fixed blocks of ``block_size`` bytes (the
    last one may be shorter) and each block is stored as whichever of
    RAW or EGC is shorter.
    """
    if not 1 <= block_size <= MAX_BLOCK_SIZE:
        raise ValueError(f"block_size must be in 1..{MAX_BLOCK_SIZE}, got {block_size}")
    blocks = [data[i:i + block_size] for i in range(0, len(data), block_size)]
    nblocks = len(blocks)
    out = bytearray(MAGIC)
    out += struct.pack('<I', block_size)
    out += struct.pack('<Q', len(data))
    out += struct.pack('<I', nblocks)
    for i, block in enumerate(blocks, 1):
        _print_progress("compress", i, nblocks)
        method_id, payload = _encode_block(block)
        out.append(method_id)
        out += struct.pack('<I', len(block))
        out += struct.pack('<I', len(payload))
        out += payload
    if nblocks:
        _print_progress("compress", nblocks, nblocks, final=True)
    return bytes(out)

def decompress(blob: bytes) -> bytes:
    """Decompress a container produced by ``compress``.

    Raises ``CorruptFrameError`` on a bad magic, truncated headers or
    payloads, unknown method ids and length mismatches.
    """
    p = 0
    if blob[p:p + 4] != MAGIC:
        raise CorruptFrameError("Bad magic header")
    p += 4
    if p + 16 > len(blob):
        raise CorruptFrameError("Truncated container header")
    block_size = struct.unpack_from('<I', blob, p)[0]
    p += 4
    total_len = struct.unpack_from('<Q', blob, p)[0]
    p += 8
    nblocks = struct.unpack_from('<I', blob, p)[0]
    p += 4
    out = bytearray()
    for i in range(1, nblocks + 1):
        _print_progress("decompress", i, nblocks)
        if p + 9 > len(blob):
            raise CorruptFrameError("Truncated block header")
        method_id = blob[p]
        p += 1
        if method_id not in _DECODERS:
            raise CorruptFrameError(f"Unknown method id {method_id}")
        orig_len, payload_len = struct.unpack_from('<II', blob, p)
        p += 8
        if orig_len > block_size:
            raise CorruptFrameError(f"Block of {orig_len} bytes exceeds block size {block_size}")
        if p + payload_len > len(blob):
            raise CorruptFrameError("Truncated payload")
        payload = blob[p:p + payload_len]
        p += payload_len
        block = _DECODERS[method_id](payload, orig_len)
        if len(block) != orig_len:
            raise CorruptFrameError(
                f"Decoded length mismatch: expected {orig_len}, got {len(block)}")
        out += block
    if nblocks:
        _print_progress("decompress", nblocks, nblocks, final=True)
    if len(out) != total_len:
        raise CorruptFrameError(
            f"Total decoded length mismatch: expected {total_len}, got {len(out)}")
    return bytes(out)

###############################################################################
# CLI
###############################################################################

def main(argv: Optional[List[str]] = None) -> int:
    import argparse
    global G_PROGRESS
    parser = argparse.ArgumentParser(description="Adaptive Exponential-Golomb compressor")
    parser.add_argument('input', help="Input file to compress or decompress")
    parser.add_argument('-d', '--decompress', action='store_true', help="Decompress instead of compress")
    parser.add_argument('-o', '--output', help="Output file")
    parser.add_argument('-b', '--block', type=int, default=DEFAULT_BLOCK_SIZE,
                        help=f"Block size for compression (default {DEFAULT_BLOCK_SIZE})")
    parser.add_argument('-v', '--verbose', action='store_true', help="Print per-block progress")
    args = parser.parse_args(argv)
    G_PROGRESS = args.verbose
    with open(args.input, 'rb') as f:
        data = f.read()
    try:
        if args.decompress:
            out = decompress(data)
            outname = args.output or (os.path.splitext(args.input)[0] + '.out')
        else:
            out = compress(data, block_size=args.block)
            outname = args.output or (args.input + '.egc')
    except EgcError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        parser.error(str(exc))
    with open(outname, 'wb') as f:
        f.write(out)
    if args.decompress:
        print(f"Decompressed {len(data)} bytes to {len(out)} bytes → {outname}")
    else:
        ratio = len(out) / len(data) if len(data) else 1.0
        print(f"Compressed {len(data)} bytes to {len(out)} bytes "
              f"(ratio {ratio:.3f}, H={shannon_entropy(data):.3f} bits/byte) → {outname}")
    return 0

if __name__ == '__main__':
    sys.exit(main())
