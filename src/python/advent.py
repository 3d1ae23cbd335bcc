#!/usr/bin/env python3
"""
Advent of Code 2017 puzzle solvers

Two puzzles built on small reusable pieces:
  - Circular views:    wrap-around cursors over a fixed-size mutable sequence.
                       Cursors count logical steps, so [c, c + n) names n ring
                       elements even when n exceeds the ring size.
  - Knot hash (day 10): reversal rounds over a 256-element ring; the single
                       pass product and the 64-round dense hash.
  - Stream processing (day 9): recursive-descent parser for nested {groups}
                       and <garbage>, with the nesting score and the count of
                       non-escaped garbage characters.

Usage:
  python advent.py 9  <part> [input] [--input TEXT] [--verbose]
  python advent.py 10 <part> [input] [--input TEXT] [--size N] [--verbose]

Input is read from --input, else the named file, else standard input.
"""

import argparse
import array
import sys
from abc import ABC
from collections.abc import Sequence
from dataclasses import dataclass, replace
from functools import reduce
from operator import xor
from typing import Iterator, List, Tuple, Union


# ============================================================================
# Circular Views
#
# A CircularView borrows an existing mutable sequence and hands out cursors
# that wrap from the last element back to the first.  A cursor carries
#   index  raw position in the storage, always 0 <= index < len(storage)
#   count  logical steps taken since begin(); never wraps
# Cursors compare by count alone.  That is what lets a window of n steps be
# written as the half-open range [c, c + n) for any n, including windows
# that cover the ring more than once.
#
# Forward-only storage gets CircularCursor (step, dereference, equality).
# Storage that can be walked backwards gets BidirectionalCursor, which adds
# retreat, bulk moves, cursor differences and ordering.  Asking a forward
# cursor for those fails with TypeError instead of computing nonsense.
# ============================================================================

class EmptyRangeError(ValueError):
    """A circular view was requested over a zero-length sequence."""


class BidirectionalRing(ABC):
    """Marker for storage whose elements can be visited in reverse.

    Every collections.abc.Sequence qualifies.  Other indexable types can
    opt in with BidirectionalRing.register().
    """

    @classmethod
    def __subclasshook__(cls, C):
        if cls is BidirectionalRing and issubclass(C, Sequence):
            return True
        return NotImplemented


BidirectionalRing.register(array.array)


class _Unbounded:
    """End of a circular traversal.  No cursor ever compares equal to it."""
    __slots__ = ()

    def __repr__(self):
        return "UNBOUNDED"


UNBOUNDED = _Unbounded()


class CircularCursor:
    """Forward cursor over a CircularView."""
    __slots__ = ('_storage', '_size', 'index', 'count')

    def __init__(self, storage, index: int = 0, count: int = 0):
        self._storage = storage
        self._size = len(storage)
        self.index = index
        self.count = count

    @property
    def value(self):
        """The storage element under the cursor (writable)."""
        return self._storage[self.index]

    @value.setter
    def value(self, v):
        self._storage[self.index] = v

    def step(self) -> 'CircularCursor':
        """Advance one logical step, wrapping to the start of the storage."""
        self.index += 1
        if self.index == self._size:
            self.index = 0
        self.count += 1
        return self

    def copy(self) -> 'CircularCursor':
        return type(self)(self._storage, self.index, self.count)

    def __iter__(self):
        return self

    def __next__(self):
        v = self._storage[self.index]
        self.step()
        return v

    def __eq__(self, other):
        if isinstance(other, CircularCursor):
            return self.count == other.count
        if other is UNBOUNDED:
            return False
        return NotImplemented

    def __repr__(self):
        return (f"{type(self).__name__}(index={self.index}, "
                f"count={self.count})")


class BidirectionalCursor(CircularCursor):
    """Cursor over storage that also supports reverse traversal.

    Bulk moves land exactly where |n| single steps would; they are computed
    modulo the storage length instead of looping.
    """
    __slots__ = ()

    def retreat(self) -> 'BidirectionalCursor':
        """Move back one logical step, wrapping from the start to the end."""
        if self.index == 0:
            self.index = self._size
        self.index -= 1
        self.count -= 1
        return self

    def advance(self, n: int) -> 'BidirectionalCursor':
        """Move n logical steps, backwards when n is negative."""
        self.index = (self.index + n) % self._size
        self.count += n
        return self

    def __iadd__(self, n: int):
        return self.advance(n)

    def __isub__(self, n: int):
        return self.advance(-n)

    def __add__(self, n):
        if not isinstance(n, int):
            return NotImplemented
        return self.copy().advance(n)

    __radd__ = __add__

    def __sub__(self, other):
        if isinstance(other, CircularCursor):
            return self.count - other.count
        if isinstance(other, int):
            return self.copy().advance(-other)
        return NotImplemented

    def __lt__(self, other):
        if not isinstance(other, CircularCursor):
            return NotImplemented
        return self.count < other.count

    def __le__(self, other):
        if not isinstance(other, CircularCursor):
            return NotImplemented
        return self.count <= other.count

    def __gt__(self, other):
        if not isinstance(other, CircularCursor):
            return NotImplemented
        return self.count > other.count

    def __ge__(self, other):
        if not isinstance(other, CircularCursor):
            return NotImplemented
        return self.count >= other.count

    def __getitem__(self, n: int):
        return self._storage[(self.index + n) % self._size]

    def __setitem__(self, n: int, v):
        self._storage[(self.index + n) % self._size] = v


class CircularView:
    """Wrap-around view over a caller-owned mutable sequence.

    The view aliases the storage: writes through any cursor are visible
    through every other cursor and to the owner.  The storage must not be
    resized while the view is in use.
    """

    def __init__(self, storage):
        if len(storage) == 0:
            raise EmptyRangeError("circular view over an empty sequence")
        self.storage = storage
        self.bidirectional = isinstance(storage, BidirectionalRing)
        self._cursor_type = (BidirectionalCursor if self.bidirectional
                             else CircularCursor)

    def __len__(self):
        return len(self.storage)

    def begin(self) -> CircularCursor:
        """Cursor at raw index 0 with logical count 0."""
        return self._cursor_type(self.storage)

    def end(self) -> _Unbounded:
        return UNBOUNDED

    def __iter__(self) -> Iterator:
        # Endless; bound it with itertools.islice or an external counter.
        return self.begin()


def reverse(first: CircularCursor, last: CircularCursor) -> None:
    """Reverse the ring window [first, last) in place.

    Pairs are swapped from both ends inward as list.reverse() would, but a
    cursor stepping past the physical end of the storage continues at its
    start, so a window that straddles the boundary is reversed as if the
    ring were contiguous.  The caller's cursors are not moved.
    """
    if not (isinstance(first, BidirectionalCursor)
            and isinstance(last, BidirectionalCursor)):
        raise TypeError("reverse() requires bidirectional cursors")
    if last < first:
        raise ValueError("reverse() window ends before it starts")
    lo, hi = first.copy(), last.copy()
    while lo != hi:
        hi.retreat()
        if lo == hi:
            break
        lo.value, hi.value = hi.value, lo.value
        lo.step()


# ============================================================================
# Knot Hash (Day 10)
#
# A ring of RING_SIZE values starts as 0..RING_SIZE-1.  For every length in
# the list: reverse the `length` elements starting at the cursor, move the
# cursor forward by length + skip_size, then increment skip_size.
#
#   part 1:  one pass over the parsed lengths; answer = ring[0] * ring[1]
#   part 2:  lengths = input bytes + KNOT_SUFFIX, KNOT_ROUNDS passes with
#            cursor and skip_size carried across passes; XOR each block of
#            KNOT_BLOCK values (the dense hash) and render it as hex.
# ============================================================================

RING_SIZE = 256
KNOT_ROUNDS = 64
KNOT_BLOCK = 16
KNOT_SUFFIX = (17, 31, 73, 47, 23)


class SkipListError(ValueError):
    """Malformed knot length list."""


@dataclass
class KnotOptions:
    """Options for knot hash computations."""
    size: int = RING_SIZE
    rounds: int = KNOT_ROUNDS
    block: int = KNOT_BLOCK
    verbose: bool = False


class KnotState:
    """Ring, cursor and skip size of a single scramble.

    Each computation builds its own; nothing is shared between digests.
    """
    __slots__ = ('ring', 'cursor', 'skip_size')

    def __init__(self, size: int = RING_SIZE):
        self.ring = list(range(size))
        self.cursor = CircularView(self.ring).begin()
        self.skip_size = 0


def parse_skip_list(text: str) -> List[int]:
    """Parse comma-separated, non-negative knot lengths."""
    text = text.strip()
    if not text:
        raise SkipListError("empty length list")
    lengths = []
    for token in text.split(','):
        token = token.strip()
        try:
            n = int(token, 10)
        except ValueError:
            raise SkipListError(f'invalid integer string "{token}"') from None
        if n < 0:
            raise SkipListError(f"negative length {n}")
        lengths.append(n)
    return lengths


def skip_round(state: KnotState, lengths) -> None:
    """One pass of the knot over lengths, updating state in place."""
    cursor = state.cursor
    for length in lengths:
        reverse(cursor, cursor + length)
        cursor.advance(length + state.skip_size)
        state.skip_size += 1


def sparse_hash(lengths, size: int = RING_SIZE, rounds: int = 1,
                opts: 'KnotOptions' = None) -> List[int]:
    """Run `rounds` passes over lengths and return the resulting ring.

    When opts is given, its size, rounds and verbose fields are used.
    """
    verbose = False
    if opts is not None:
        size, rounds, verbose = opts.size, opts.rounds, opts.verbose
    lengths = list(lengths)
    state = KnotState(size)
    for _ in range(rounds):
        skip_round(state, lengths)

    if verbose:
        print(f"knot: size={size}, lengths={len(lengths)}, rounds={rounds}\n"
              f"  final: position={state.cursor.index}, "
              f"skip_size={state.skip_size}, steps={state.cursor.count:,}",
              file=sys.stderr)
    return state.ring


def knot_product(lengths, size: int = RING_SIZE,
                 opts: 'KnotOptions' = None) -> int:
    """Part 1: product of the first two ring values after a single pass."""
    if opts is not None:
        opts = replace(opts, rounds=1)
        size = opts.size
    if size < 2:
        raise ValueError("knot product needs a ring of at least 2 elements")
    ring = sparse_hash(lengths, size, rounds=1, opts=opts)
    return ring[0] * ring[1]


def knot_lengths(data: Union[str, bytes]) -> List[int]:
    """Part 2 lengths: the input's byte values followed by KNOT_SUFFIX."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return list(data) + list(KNOT_SUFFIX)


def dense_hash(sparse: List[int], block: int = KNOT_BLOCK) -> bytes:
    """XOR each consecutive block of the sparse hash into one byte."""
    if len(sparse) % block:
        raise ValueError(f"ring of {len(sparse)} values does not split "
                         f"into blocks of {block}")
    return bytes(reduce(xor, sparse[i:i + block])
                 for i in range(0, len(sparse), block))


def knot_hash_bytes(data: Union[str, bytes],
                    opts: 'KnotOptions' = None) -> bytes:
    """Part 2 digest as raw bytes (16 bytes with the default options)."""
    if opts is None:
        opts = KnotOptions()
    sparse = sparse_hash(knot_lengths(data), opts=opts)
    return dense_hash(sparse, opts.block)


def knot_hash(data: Union[str, bytes], opts: 'KnotOptions' = None) -> str:
    """Part 2 digest as lowercase hex (32 characters by default)."""
    return knot_hash_bytes(data, opts).hex()


# ============================================================================
# Stream Processing (Day 9)
#
#   group    := '{' [ thing (',' thing)* ] '}'
#   thing    := group | garbage
#   garbage  := '<' ( '!' any | any-but-'>' )* '>'
#
# Every decision point needs one character of lookahead: '{' or '<' picks
# the alternative, ',' continues a group and '}' closes it.  The parse
# functions take (text, pos) and return (node, new_pos).  parse_group keeps
# a stack of open-group frames instead of recursing, so nesting depth is
# bounded only by memory.
#
# Errors are raised at the first violation.  Nothing partial is returned.
# ============================================================================

GROUP_OPEN = '{'
GROUP_CLOSE = '}'
GARBAGE_OPEN = '<'
GARBAGE_CLOSE = '>'
SEPARATOR = ','
ESCAPE = '!'


class StreamError(ValueError):
    """Base class for malformed group/garbage streams."""

    def __init__(self, message: str, position: int):
        super().__init__(f"{message} at offset {position}")
        self.position = position


class UnterminatedGarbageError(StreamError):
    def __init__(self, position: int):
        super().__init__("unterminated garbage", position)


class UnterminatedGroupError(StreamError):
    def __init__(self, position: int):
        super().__init__("unterminated group", position)


class UnexpectedCharacterError(StreamError):
    def __init__(self, character: str, position: int):
        super().__init__(f"unexpected character {character!r}", position)
        self.character = character


class UnexpectedEndOfInputError(StreamError):
    def __init__(self, position: int):
        super().__init__("unexpected end of input", position)


@dataclass(frozen=True)
class Garbage:
    """A <...> span.  count excludes the delimiters, '!' and what it escapes."""
    count: int = 0


@dataclass(frozen=True)
class Group:
    """A {...} group of nested groups and garbage."""
    children: Tuple['Thing', ...] = ()


Thing = Union[Group, Garbage]


def _unexpected(text: str, pos: int) -> StreamError:
    if pos >= len(text):
        return UnexpectedEndOfInputError(pos)
    return UnexpectedCharacterError(text[pos], pos)


def parse_garbage(text: str, pos: int = 0) -> Tuple[Garbage, int]:
    """Parse a garbage span starting at text[pos] == '<'.

    Returns the leaf and the offset just past the closing '>'.
    """
    if text[pos:pos + 1] != GARBAGE_OPEN:
        raise _unexpected(text, pos)
    pos += 1
    count = 0
    n = len(text)
    while pos < n:
        c = text[pos]
        if c == ESCAPE:
            if pos + 1 >= n:
                raise UnterminatedGarbageError(pos)
            pos += 2
        elif c == GARBAGE_CLOSE:
            return Garbage(count), pos + 1
        else:
            count += 1
            pos += 1
    raise UnterminatedGarbageError(pos)


def parse_group(text: str, pos: int = 0) -> Tuple[Group, int]:
    """Parse a group starting at text[pos] == '{'.

    Returns the group and the offset just past its closing '}'.  A group
    whose closing brace is missing, whether the input ends or another
    character appears in its place, raises UnterminatedGroupError.
    """
    if text[pos:pos + 1] != GROUP_OPEN:
        raise _unexpected(text, pos)
    pos += 1
    frames = [[]]           # children of each open group, innermost last
    while True:
        # Expect a thing; a group with no children yet may close instead.
        c = text[pos:pos + 1]
        if c == GROUP_OPEN:
            frames.append([])
            pos += 1
            continue
        if c == GARBAGE_OPEN:
            leaf, pos = parse_garbage(text, pos)
            frames[-1].append(leaf)
        elif c != GROUP_CLOSE or frames[-1]:
            if not c:
                raise UnterminatedGroupError(pos)
            raise UnexpectedCharacterError(c, pos)

        # ',' goes back for another thing; each '}' closes one frame.
        while True:
            c = text[pos:pos + 1]
            if c == SEPARATOR:
                pos += 1
                break
            if c != GROUP_CLOSE:
                raise UnterminatedGroupError(pos)
            pos += 1
            group = Group(tuple(frames.pop()))
            if not frames:
                return group, pos
            frames[-1].append(group)


def parse_thing(text: str, pos: int = 0) -> Tuple[Thing, int]:
    """Parse a group or a garbage span, chosen by the character at pos."""
    c = text[pos:pos + 1]
    if c == GROUP_OPEN:
        return parse_group(text, pos)
    if c == GARBAGE_OPEN:
        return parse_garbage(text, pos)
    raise _unexpected(text, pos)


def parse_stream(text: str) -> Thing:
    """Parse a whole stream: one thing, optionally followed by whitespace."""
    thing, pos = parse_thing(text)
    rest = text[pos:]
    if rest.strip():
        offset = pos + len(rest) - len(rest.lstrip())
        raise UnexpectedCharacterError(text[offset], offset)
    return thing


def _walk(tree: Thing):
    """Yield (node, depth) for every node; the root has depth 1."""
    stack = [(tree, 1)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        if isinstance(node, Group):
            stack.extend((child, depth + 1) for child in node.children)


def score(tree: Thing) -> int:
    """Sum of the nesting depth of every group."""
    return sum(depth for node, depth in _walk(tree) if isinstance(node, Group))


def total_garbage(tree: Thing) -> int:
    """Number of non-escaped characters inside all garbage spans."""
    return sum(node.count for node, _ in _walk(tree)
               if isinstance(node, Garbage))


def stream_summary(tree: Thing) -> dict:
    """Compute summary statistics for a parsed stream."""
    groups = garbage_spans = max_depth = total = chars = 0
    for node, depth in _walk(tree):
        if isinstance(node, Group):
            groups += 1
            total += depth
            max_depth = max(max_depth, depth)
        else:
            garbage_spans += 1
            chars += node.count
    return {
        'groups': groups,
        'garbage_spans': garbage_spans,
        'max_depth': max_depth,
        'score': total,
        'garbage': chars,
    }


# ============================================================================
# CLI helpers
# ============================================================================

def _read_input(args) -> str:
    """Return the puzzle input from --input, a file, or standard input."""
    if args.input is not None:
        text = args.input
    elif args.path is not None:
        try:
            with open(args.path, 'r', encoding='utf-8') as f:
                text = f.read()
        except OSError as e:
            raise SystemExit(
                f"error: cannot read {args.path}: {e.strerror or e}")
        except UnicodeDecodeError as e:
            raise SystemExit(
                f"error: cannot read {args.path}: not UTF-8 text ({e.reason})")
    else:
        text = sys.stdin.read()
    return text.rstrip('\r\n')


def _add_input_arguments(p):
    p.add_argument('part', type=int, choices=[1, 2], help='Puzzle part')
    p.add_argument('path', nargs='?',
                   help='Input file (default: standard input)')
    p.add_argument('--input', metavar='TEXT',
                   help='Puzzle input given inline')
    p.add_argument('--verbose', action='store_true',
                   help='Print diagnostic messages to stderr')


# ============================================================================
# CLI
# ============================================================================

def cmd_stream(args):
    text = _read_input(args)
    try:
        tree = parse_stream(text)
    except StreamError as e:
        raise SystemExit(f"error: invalid stream: {e}")

    if args.verbose:
        stats = stream_summary(tree)
        print(f"stream: {len(text):,} chars, {stats['groups']} groups, "
              f"{stats['garbage_spans']} garbage spans, "
              f"max depth {stats['max_depth']}",
              file=sys.stderr)

    print(score(tree) if args.part == 1 else total_garbage(tree))


def cmd_knot(args):
    # Part 2 hashes the input bytes as given, apart from the line ending.
    text = _read_input(args)
    if not text.strip():
        raise SystemExit("error: empty input")

    if args.part == 1:
        if args.size < 2:
            raise SystemExit("error: --size must be >= 2")
        try:
            lengths = parse_skip_list(text)
        except SkipListError as e:
            raise SystemExit(f"error: {e}")
        opts = KnotOptions(size=args.size, verbose=args.verbose)
        print(knot_product(lengths, opts=opts))
    else:
        print(knot_hash(text, opts=KnotOptions(verbose=args.verbose)))


def main(argv=None):
    ap = argparse.ArgumentParser(
        description='Advent of Code 2017 puzzle solvers')
    sub = ap.add_subparsers(dest='day', metavar='day')

    # day 9
    stream = sub.add_parser('9', help='Stream Processing: group score (1) '
                                      'or garbage count (2)')
    _add_input_arguments(stream)
    stream.set_defaults(func=cmd_stream)

    # day 10
    knot = sub.add_parser('10', help='Knot Hash: single-pass product (1) '
                                     'or dense hash (2)')
    _add_input_arguments(knot)
    knot.add_argument('--size', type=int, default=RING_SIZE, metavar='N',
                      help=f'Ring size for part 1 (default: {RING_SIZE})')
    knot.set_defaults(func=cmd_knot)

    args = ap.parse_args(argv)
    if args.day is None:
        ap.print_help()
        sys.exit(1)
    args.func(args)


# ============================================================================

if __name__ == '__main__':
    main()
