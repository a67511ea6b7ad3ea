# Copyright (C) 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Comparison maps: per-call aggregation of comparison traces.

Maps an observed operand to the set of values it was compared against.
Integer keys are tagged with the width of the comparison that produced them,
byte-sequence keys map to candidates of the same length.
"""

from binascii import hexlify

from hint_fuzzer.prog.prog import WIDTHS, width_mask

# width of byte-sequence records in a raw trace
DATA_WIDTH = 0


def _fmt(val):
    if isinstance(val, bytes):
        return hexlify(val).decode()
    return "0x%x" % val


def _is_int(val):
    return isinstance(val, int) and not isinstance(val, bool)


class CompMap:

    def __init__(self):
        self.ints = {}
        self.data = {}

    @staticmethod
    def from_trace(records):
        """
        Aggregate raw trace records of the form (width, op1, op2, is_const).

        A width of DATA_WIDTH marks a comparison of two byte sequences.
        """
        comps = CompMap()
        for (width, op1, op2, is_const) in records:
            comps.add_comp(width, op1, op2, is_const)
        return comps

    def add_comp(self, width, op1, op2, is_const=False):
        # a constant operand is never influenced by the input,
        # otherwise either side may be the one derived from it
        add = self.add_data if width == DATA_WIDTH else lambda a, b: self.add_int(a, b, width)
        add(op1, op2)
        if not is_const:
            add(op2, op1)

    def add_int(self, op1, op2, width=64):
        if width not in WIDTHS:
            raise ValueError("Unsupported comparison width %r" % (width,))
        mask = width_mask(width)
        key = op1 & mask
        self.ints.setdefault(width, {}).setdefault(key, set()).add(op2 & mask)

    def add_data(self, op1, op2):
        op1, op2 = bytes(op1), bytes(op2)
        if len(op1) != len(op2):
            raise ValueError("Operand length mismatch: %d != %d" % (len(op1), len(op2)))
        self.data.setdefault(op1, set()).add(op2)

    def lookup_int(self, key, width):
        return self.ints.get(width, {}).get(key, set())

    def lookup_data(self, key):
        return self.data.get(bytes(key), set())

    def data_keys(self):
        return self.data.keys()

    def merge(self, other):
        for width, entries in other.ints.items():
            dest = self.ints.setdefault(width, {})
            for key, candidates in entries.items():
                dest.setdefault(key, set()).update(candidates)
        for key, candidates in other.data.items():
            self.data.setdefault(key, set()).update(candidates)
        return self

    def to_struct(self):
        return {
            "ints": {width: {key: sorted(candidates) for key, candidates in entries.items()}
                     for width, entries in self.ints.items()},
            "data": [[key, sorted(candidates)] for key, candidates in self.data.items()],
        }

    @staticmethod
    def from_struct(struct):
        # entries of the wrong type are dropped one by one,
        # range and length checks are left to the resolvers
        comps = CompMap()
        for width, entries in struct.get("ints", {}).items():
            if not _is_int(width) or not isinstance(entries, dict):
                continue
            for key, candidates in entries.items():
                if not _is_int(key):
                    continue
                comps.ints.setdefault(width, {})[key] = set(c for c in candidates if _is_int(c))
        for entry in struct.get("data", []):
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                continue
            if not isinstance(entry[0], (bytes, bytearray)):
                continue
            key, candidates = entry
            comps.data[bytes(key)] = set(bytes(c) for c in candidates
                                         if isinstance(c, (bytes, bytearray)))
        return comps

    def __len__(self):
        num = sum(len(entries) for entries in self.ints.values())
        return num + len(self.data)

    def __bool__(self):
        return len(self) > 0

    def __eq__(self, other):
        if not isinstance(other, CompMap):
            return NotImplemented
        ints = {w: e for w, e in self.ints.items() if e}
        other_ints = {w: e for w, e in other.ints.items() if e}
        return ints == other_ints and self.data == other.data

    def __str__(self):
        lines = []
        for width in sorted(self.ints):
            for key in sorted(self.ints[width]):
                lines.append("u%s %s -> %s" % (width, _fmt(key), ", ".join(
                    _fmt(c) for c in sorted(self.ints[width][key]))))
        for key in sorted(self.data):
            lines.append("mem %s -> %s" % (_fmt(key), ", ".join(
                _fmt(c) for c in sorted(self.data[key]))))
        return "\n".join(lines)
