# Copyright (C) 2020 Intel Corporation
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Helper functions for hint_fuzzer tests
"""

from hint_fuzzer.common.rand import rand
from hint_fuzzer.prog.prog import (WIDTHS, Call, ConstArg, DataArg, GroupArg,
                                   PointerArg, Program, ResultArg, foreach_arg)
from hint_fuzzer.technique.hints.mutate import mutate_with_hints


def simple_prog(val, width=64):
    return Program([Call("test$simple_test_call", [ConstArg(val, width)])])

def data_prog(data):
    return Program([Call("test$data_call", [PointerArg(DataArg(data))])])

def collect(program, comp_maps, **kwargs):
    got = []
    mutate_with_hints(program, comp_maps, got.append, **kwargs)
    return got

def first_const(program):
    return program.calls[0].args[0].val

def arg_diff(a, b):
    """Return the paths of all leaf arguments which differ between two programs."""
    assert len(a.calls) == len(b.calls)
    diffs = []
    for i, (call_a, call_b) in enumerate(zip(a.calls, b.calls)):
        assert call_a.name == call_b.name
        leaves_a = [(p, x) for (p, x) in foreach_arg(call_a.args) if not x.children()]
        leaves_b = [(p, x) for (p, x) in foreach_arg(call_b.args) if not x.children()]
        assert [p for p, _ in leaves_a] == [p for p, _ in leaves_b]
        for (path, x), (_, y) in zip(leaves_a, leaves_b):
            if x != y:
                diffs.append((i,) + path)
    return diffs

def bindiff_regions(a, b):
    """Return (first, last) offsets where two equal-length buffers differ."""
    assert len(a) == len(b)
    offsets = [i for i in range(len(a)) if a[i] != b[i]]
    if not offsets:
        return None
    return offsets[0], offsets[-1]

def random_const():
    width = rand.select(WIDTHS)
    return ConstArg(rand.bits(width), width, signed=bool(rand.int(2)))

def random_program(num_calls=3, num_args=4):
    calls = []
    for n in range(num_calls):
        args = []
        for _ in range(num_args):
            choice = rand.int(5)
            if choice == 0:
                args.append(random_const())
            elif choice == 1:
                args.append(PointerArg(DataArg(rand.bytes(1 + rand.int(16)))))
            elif choice == 2:
                args.append(GroupArg([random_const(), DataArg(rand.bytes(rand.int(8)))]))
            elif choice == 3:
                args.append(ResultArg("fd", rand.int(16)))
            else:
                args.append(PointerArg(None))
        calls.append(Call("test$call%d" % n, args))
    return Program(calls)
