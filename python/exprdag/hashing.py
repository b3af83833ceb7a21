"""Structural hashing of expression nodes.

A node's fingerprint is a 64-bit blake2b digest over the node's own identity
(opcode or leaf discriminant plus payload) and the cached fingerprints of its
children. Children are never re-hashed, so a shared subgraph is hashed once
per node handle no matter how many parents reference it.

Two structurally different expressions can collide. Expression equality is
defined on these fingerprints, so ``a == b`` means "same fingerprint", which
is structural equality up to a 2**-64 chance of collision. Callers that
cannot accept that use ``Expression.structurally_equal``.
"""
from __future__ import annotations

import hashlib
import struct

from typing import TYPE_CHECKING

from .value import Rational, Value, Variable, discriminant

if TYPE_CHECKING:
    from .expression import Operation

DIGEST_SIZE = 8


def _digest(*chunks : bytes) -> int:
    h = hashlib.blake2b(digest_size=DIGEST_SIZE)
    for chunk in chunks:
        h.update(chunk)
    return int.from_bytes(h.digest(), "little")


def hash_leaf(value : Value) -> int:
    chunks = [struct.pack("<I", discriminant(value))]
    match value:
        case Rational(num, den):
            chunks.append(struct.pack("<QQ", num, den))
        case Variable(name):
            chunks.append(name.encode("utf-8"))
    return _digest(*chunks)


def hash_operation(op : Operation) -> int:
    chunks = [
        struct.pack("<I", op.kind.opcode),
        struct.pack("<Q", len(op.children)),
    ]
    chunks.extend(struct.pack("<Q", child.hash()) for child in op.children)
    return _digest(*chunks)
