# Copyright (C) 2020 Intel Corporation
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Test hinted program mutations
"""

import pytest

from hint_fuzzer.common.rand import rand
from hint_fuzzer.prog.prog import (Call, ConstArg, DataArg, Dir, GroupArg,
                                   PointerArg, Program, ProgramError, ResultArg)
from hint_fuzzer.technique.hints import mutate
from hint_fuzzer.technique.hints.compmap import DATA_WIDTH, CompMap
from hint_fuzzer.technique.hints.mutate import (HintsMismatchError, iter_hinted_mutations,
                                                mutate_call_with_hints, mutate_with_hints)
from hint_fuzzer.tests.helper import (arg_diff, bindiff_regions, collect, data_prog,
                                      first_const, random_program, simple_prog)

ITERATIONS = 64


def int_map(key, candidates, width=64):
    comps = CompMap()
    for cand in candidates:
        comps.add_int(key, cand, width)
    return comps

def data_map(key, candidates):
    comps = CompMap()
    for cand in candidates:
        comps.add_data(key, cand)
    return comps

def buffers(programs):
    return [p.calls[0].args[0].inner.data for p in programs]


def test_exact_match():
    got = collect(simple_prog(0xdeadbeef), [int_map(0xdeadbeef, [0xcafebabe])])
    assert [first_const(p) for p in got] == [0xcafebabe]

def test_shrink_match():
    comps = int_map(0xab, [0x1], width=8)
    for val in [0x12ab, 0x123456ab, 0x1234567890abcdab, 0xffab, 0xffffffab, 0xffffffffffffffab]:
        got = collect(simple_prog(val), [comps])
        assert [first_const(p) for p in got] == [0x1], "Shrink failed for 0x%x" % val

def test_expand_match():
    comps = int_map(0xffffffffffffffab, [0x1], width=64)
    for (val, width) in [(0xab, 8), (0xffab, 16), (0xffffffab, 32)]:
        got = collect(simple_prog(val, width), [comps])
        assert [first_const(p) for p in got] == [0x1], "Expand failed for 0x%x" % val
        assert got[0].calls[0].args[0].width == width

def test_signed_argument():
    prog = Program([Call("test$signed", [ConstArg(-0x55, 8, signed=True)])])
    got = collect(prog, [int_map(-0x55, [-2], width=64)])
    assert [first_const(p) for p in got] == [0xfe]
    assert got[0].calls[0].args[0].signed_val == -2

def test_buffer_occurrences():
    prog = data_prog(b'\x01\x02\x01\x02\x01\x02')
    got = collect(prog, [data_map(b'\x01\x02', [b'\x08\x09'])])
    assert buffers(got) == [
        b'\x08\x09\x01\x02\x01\x02',
        b'\x01\x02\x08\x09\x01\x02',
        b'\x01\x02\x01\x02\x08\x09',
    ]

def test_buffer_simple():
    got = collect(data_prog(b'abcdef'), [data_map(b'cd', [b'42'])])
    assert buffers(got) == [b'ab42ef']

def test_empty_map():
    prog = Program([Call("test$a", [ConstArg(1), PointerArg(DataArg(b'abc'))]),
                    Call("test$b", [ConstArg(0xdeadbeef)])])
    assert collect(prog, [CompMap(), CompMap()]) == []
    assert collect(prog, [None, None]) == []

    got = collect(prog, [CompMap(), int_map(0xdeadbeef, [0x1])])
    assert len(got) == 1
    assert got[0].calls[1].args[0].val == 0x1

def test_maps_are_per_call():
    prog = Program([Call("test$a", [ConstArg(0x10)]), Call("test$b", [ConstArg(0x10)])])
    got = collect(prog, [int_map(0x10, [0x1]), int_map(0x10, [0x2])])
    assert [(p.calls[0].args[0].val, p.calls[1].args[0].val) for p in got] == [(0x1, 0x10), (0x10, 0x2)]

def test_dict_maps():
    prog = Program([Call("test$a", [ConstArg(0x10)]), Call("test$b", [ConstArg(0x10)])])
    got = collect(prog, {1: int_map(0x10, [0x2])})
    assert len(got) == 1
    assert got[0].calls[1].args[0].val == 0x2

def test_mismatched_maps():
    prog = simple_prog(0x10)
    with pytest.raises(HintsMismatchError):
        collect(prog, [CompMap(), CompMap()])
    with pytest.raises(HintsMismatchError):
        collect(prog, [])
    with pytest.raises(HintsMismatchError):
        collect(prog, {1: CompMap()})
    with pytest.raises(HintsMismatchError):
        iter_hinted_mutations(prog, {-1: CompMap()})
    with pytest.raises(HintsMismatchError):
        mutate_call_with_hints(prog, 1, CompMap(), lambda p: None)

def test_visit_order():
    comps = CompMap.from_trace([
        (64, 0x10, 0x1, True),
        (64, 0x20, 0x2, True),
        (DATA_WIDTH, b'ab', b'xy', True),
    ])
    prog = Program([Call("test$order", [
        ConstArg(0x20),
        GroupArg([PointerArg(DataArg(b'zab')), ConstArg(0x10, 32)]),
        ConstArg(0x10),
    ])])
    got = collect(prog, [comps])
    assert [arg_diff(prog, p) for p in got] == [[(0, 0)], [(0, 1, 0, 0)], [(0, 1, 1)], [(0, 2)]]

def test_ineligible_arguments():
    comps = CompMap.from_trace([(64, 0x10, 0x1, True), (DATA_WIDTH, b'ab', b'xy', True)])
    prog = Program([Call("test$skip", [
        ConstArg(0x10, dir=Dir.OUT),
        ConstArg(0x10, const_kind="proc"),
        ConstArg(0x10, const_kind="csum"),
        PointerArg(DataArg(b'ab', varlen=True)),
        PointerArg(DataArg(b'ab', buffer_kind="filename")),
        PointerArg(DataArg(b'ab'), dir=Dir.OUT),
        ResultArg("fd", 0x10),
        PointerArg(None),
    ])])
    assert collect(prog, [comps]) == []

def test_eligible_kinds():
    comps = CompMap.from_trace([(64, 0x10, 0x1, True), (DATA_WIDTH, b'ab', b'xy', True)])
    prog = Program([Call("test$ok", [
        ConstArg(0x10, const_kind="len"),
        ConstArg(0x10, const_kind="flags", dir=Dir.INOUT),
        PointerArg(DataArg(b'ab', buffer_kind="string")),
    ])])
    assert len(collect(prog, [comps])) == 3

def test_input_program_untouched():
    comps = CompMap.from_trace([(64, 0x10, 0x1, True), (DATA_WIDTH, b'ab', b'xy', True)])
    prog = Program([Call("test$a", [ConstArg(0x10), PointerArg(DataArg(b'abab'))])])
    before = prog.clone()

    def consumer(p):
        # mutating the clone must not leak into the parent or later clones
        p.calls[0].args[0].val = 0x42
        p.calls[0].args[1].inner.data = b'zzzz'

    assert mutate_with_hints(prog, [comps], consumer) == 3
    assert prog == before

def test_clones_are_independent():
    comps = int_map(0x10, [0x1, 0x2])
    got = collect(simple_prog(0x10), [comps])
    assert got[0] is not got[1]
    assert got[0].calls[0] is not got[1].calls[0]
    assert got[0].calls[0].args[0] is not got[1].calls[0].args[0]

def test_lazy_form_matches_callback():
    comps = CompMap.from_trace([(8, 0x10, 0x1, True), (DATA_WIDTH, b'a', b'b', True)])
    prog = Program([Call("test$lazy", [ConstArg(0x1210, 16), DataArg(b'aaa')])])

    lazy = iter_hinted_mutations(prog, [comps])
    assert next(lazy).calls[0].args[0].val == 0x1
    assert list(lazy) == collect(prog, [comps])[1:]

    # restartable
    assert list(iter_hinted_mutations(prog, [comps])) == collect(prog, [comps])

def test_single_call():
    prog = Program([Call("test$a", [ConstArg(0x10)]), Call("test$b", [ConstArg(0x10)])])
    got = []
    assert mutate_call_with_hints(prog, 1, int_map(0x10, [0x1, 0x2]), got.append) == 2
    assert [p.calls[1].args[0].val for p in got] == [0x1, 0x2]
    assert all(p.calls[0].args[0].val == 0x10 for p in got)
    assert mutate_call_with_hints(prog, 0, None, got.append) == 0

def test_boundary_nudge():
    got = collect(simple_prog(0x10, 32), [int_map(0x10, [0x20], width=32)], nudge=True)
    assert [first_const(p) for p in got] == [0x1f, 0x20, 0x21]

def test_debug_validation(monkeypatch):
    got = collect(simple_prog(0xab, 8), [int_map(0xab, [0x1], width=8)], debug=True)
    assert [first_const(p) for p in got] == [0x1]

    # a replacer that does not fit the argument is only caught with debug on
    monkeypatch.setattr(mutate, "scalar_replacers", lambda val, width, comp_map, nudge=False: [0x1ab])
    comps = [int_map(0xab, [0x1], width=8)]
    assert [first_const(p) for p in collect(simple_prog(0xab, 8), comps)] == [0x1ab]
    with pytest.raises(ProgramError):
        collect(simple_prog(0xab, 8), comps, debug=True)


def test_random_invariants():
    rand.reseed(0x1337)
    for _ in range(ITERATIONS):
        prog = random_program()
        before = prog.clone()

        # trace every scalar and a slice of every buffer of the program
        comp_maps = []
        for call in prog.calls:
            comps = CompMap()
            for arg in call.args:
                for leaf in [arg] + list(arg.children()) + [c for a in arg.children() for c in a.children()]:
                    if isinstance(leaf, ConstArg):
                        comps.add_int(leaf.val, rand.bits(leaf.width), leaf.width)
                    elif isinstance(leaf, DataArg) and len(leaf.data) >= 2:
                        comps.add_data(leaf.data[:2], rand.bytes(2))
            comp_maps.append(comps)

        first = collect(prog, comp_maps)
        second = collect(prog, comp_maps)

        assert first == second, "Mutations are not deterministic"
        assert prog == before, "Input program was modified"

        for mutant in first:
            assert mutant != prog, "Emitted a no-op mutation"
            diffs = arg_diff(prog, mutant)
            assert len(diffs) == 1, "Expected exactly one substitution, got %r" % diffs

            (call_index, *path) = diffs[0]
            old = prog.calls[call_index].arg_at(tuple(path))
            new = mutant.calls[call_index].arg_at(tuple(path))
            if isinstance(old, DataArg):
                assert len(old.data) == len(new.data)
                first_diff, last_diff = bindiff_regions(old.data, new.data)
                assert last_diff - first_diff < 2
            mutant.validate()
