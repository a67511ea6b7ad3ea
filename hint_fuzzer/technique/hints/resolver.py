# Copyright (C) 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Hint resolvers: turn a comparison map into replacement candidates for one argument.

Scalars are probed at every supported comparison width. The target may have
compared only the low bytes of an argument (shrink) or a promoted, possibly
sign-extended version of it (expand). Matched candidates are converted back to
the width of the argument.

Buffers are searched for every recorded byte sequence. Each occurrence and each
candidate of that sequence yields one length-preserving patch.
"""

from collections import namedtuple

from hint_fuzzer.prog.prog import WIDTHS, width_mask


def _probe_keys(val, width):
    for w in WIDTHS:
        if w < width:
            yield w, val & width_mask(w)
        elif w > width:
            yield w, val
            if val >> (width - 1) & 1:
                yield w, val | (width_mask(w) ^ width_mask(width))
        else:
            yield w, val


def _is_valid_int(val, width):
    return isinstance(val, int) and not isinstance(val, bool) and 0 <= val <= width_mask(width)


def _reconcile(cand, w, width):
    # narrower records carry no sign, wider ones are cut to the argument
    if w <= width:
        return cand
    return cand & width_mask(width)


def scalar_replacers(val, width, comp_map, nudge=False):
    """
    Return the sorted list of replacement values for a scalar of `width` bits.

    With nudge=True, candidate+1 and candidate-1 (wrapping at the width the
    candidate was recorded with) are tried as well.
    """
    replacers = set()
    for w, key in _probe_keys(val, width):
        for cand in comp_map.lookup_int(key, w):
            if not _is_valid_int(cand, w):
                continue
            variants = [cand]
            if nudge:
                variants += [(cand + 1) & width_mask(w), (cand - 1) & width_mask(w)]
            for variant in variants:
                replacers.add(_reconcile(variant, w, width))
    replacers.discard(val)
    return sorted(replacers)


class Patch(namedtuple("Patch", ["offset", "data"])):
    __slots__ = ()

    def fits(self, buf):
        return self.offset + len(self.data) <= len(buf)

    def apply(self, buf):
        end = self.offset + len(self.data)
        return buf[:self.offset] + self.data + buf[end:]


def find_all(data, key):
    """Yield every offset of key in data, overlapping matches included."""
    offset = data.find(key)
    while offset >= 0:
        yield offset
        offset = data.find(key, offset + 1)


def buffer_patches(data, comp_map):
    """
    Return the patches for buffer `data` in first-match order.

    Ties at the same offset are ordered by key, then by candidate. Patches
    which would produce the same buffer are reported once.
    """
    data = bytes(data)
    matches = []
    for key in comp_map.data_keys():
        if not key:
            continue
        candidates = [c for c in comp_map.lookup_data(key)
                      if isinstance(c, bytes) and len(c) == len(key) and c != key]
        if not candidates:
            continue
        for offset in find_all(data, key):
            for cand in candidates:
                matches.append((offset, key, cand))

    patches = []
    seen = set()
    for (offset, _, cand) in sorted(matches):
        patch = Patch(offset, cand)
        result = patch.apply(data)
        if result in seen:
            continue
        seen.add(result)
        patches.append(patch)
    return patches
