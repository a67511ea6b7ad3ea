# Copyright (C) 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Hinted mutations: one new program per distinct comparison hint.

Every call of a program is paired with the comparison map recorded while it
executed. Each eligible argument of the call is resolved against that map and
every candidate is applied to a fresh clone of the program, so an emitted
program differs from its parent in exactly one argument.
"""

from hint_fuzzer.prog.prog import ArgKind, foreach_arg
from hint_fuzzer.technique.hints.compmap import CompMap
from hint_fuzzer.technique.hints.resolver import buffer_patches, scalar_replacers

# scalars filled in by the executor
SKIP_CONST_KINDS = ("proc", "csum")


class HintsMismatchError(ValueError):
    pass


def normalize_comp_maps(program, comp_maps):
    """
    Return one CompMap per call of program.

    Accepts a sequence with one entry per call or a dict keyed by call index.
    None entries and missing indexes stand for calls without a trace.
    """
    num_calls = len(program.calls)
    if isinstance(comp_maps, dict):
        for index in comp_maps:
            if not isinstance(index, int) or not 0 <= index < num_calls:
                raise HintsMismatchError("Comparison map for call %r, program has %d calls" % (index, num_calls))
        comp_maps = [comp_maps.get(i) for i in range(num_calls)]
    else:
        comp_maps = list(comp_maps)
        if len(comp_maps) != num_calls:
            raise HintsMismatchError("Got %d comparison maps for %d calls" % (len(comp_maps), num_calls))
    return [comps if comps is not None else CompMap() for comps in comp_maps]


def is_hintable(arg):
    if arg.kind == ArgKind.CONST:
        return arg.const_kind not in SKIP_CONST_KINDS
    if arg.kind == ArgKind.DATA:
        # resizing a buffer would invalidate its len fields
        return not arg.varlen and arg.buffer_kind != "filename"
    return False


def _call_mutations(program, call_index, comp_map, nudge, debug):
    if not comp_map:
        return

    def emit(path, update):
        clone = program.clone()
        update(clone.calls[call_index].arg_at(path))
        if debug:
            clone.validate()
        return clone

    call = program.calls[call_index]
    for path, arg in foreach_arg(call.args, skip_out=True):
        if not is_hintable(arg):
            continue

        if arg.kind == ArgKind.CONST:
            for replacer in scalar_replacers(arg.val, arg.width, comp_map, nudge=nudge):
                def update(target, replacer=replacer):
                    target.val = replacer
                yield emit(path, update)

        elif arg.kind == ArgKind.DATA:
            for patch in buffer_patches(arg.data, comp_map):
                if not patch.fits(arg.data):
                    continue
                def update(target, patch=patch):
                    target.data = patch.apply(target.data)
                yield emit(path, update)


def iter_hinted_mutations(program, comp_maps, nudge=False, debug=False):
    """
    Lazy form of mutate_with_hints(): return a generator of mutated programs.

    A mismatch between comp_maps and the program raises HintsMismatchError
    right away, not on first iteration.
    """
    comp_maps = normalize_comp_maps(program, comp_maps)

    def generate():
        for call_index, comp_map in enumerate(comp_maps):
            yield from _call_mutations(program, call_index, comp_map, nudge, debug)

    return generate()


def mutate_with_hints(program, comp_maps, consumer, nudge=False, debug=False):
    """
    Call consumer(clone) for every hinted mutation of program.

    Calls are visited in program order, arguments depth first. Returns the
    number of emitted programs. The input program is never modified.
    """
    num = 0
    for mutant in iter_hinted_mutations(program, comp_maps, nudge=nudge, debug=debug):
        consumer(mutant)
        num += 1
    return num


def mutate_call_with_hints(program, call_index, comp_map, consumer, nudge=False, debug=False):
    """Like mutate_with_hints() but restricted to a single call."""
    if not isinstance(call_index, int) or not 0 <= call_index < len(program.calls):
        raise HintsMismatchError("Comparison map for call %r, program has %d calls"
                                 % (call_index, len(program.calls)))
    num = 0
    for mutant in _call_mutations(program, call_index, comp_map or CompMap(), nudge, debug):
        consumer(mutant)
        num += 1
    return num
