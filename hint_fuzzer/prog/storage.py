# Copyright (C) 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Persistent storage of programs and comparison maps.

Programs and maps are converted to plain structs and packed with msgpack.
Files ending in .lz4 are stored as lz4 frames.
"""

import lz4.frame
import mmh3
import msgpack

from hint_fuzzer.common.util import atomic_write, read_binary_file
from hint_fuzzer.prog.prog import (ArgKind, Call, ConstArg, DataArg, GroupArg,
                                   PointerArg, Program, ProgramError, ResultArg)
from hint_fuzzer.technique.hints.compmap import CompMap


def arg_to_struct(arg):
    struct = {"kind": arg.kind, "dir": arg.dir}
    if arg.kind == ArgKind.CONST:
        struct.update(val=arg.val, width=arg.width, signed=arg.signed, const_kind=arg.const_kind)
    elif arg.kind == ArgKind.DATA:
        struct.update(data=arg.data, varlen=arg.varlen, buffer_kind=arg.buffer_kind)
    elif arg.kind == ArgKind.POINTER:
        struct["inner"] = arg_to_struct(arg.inner) if arg.inner is not None else None
    elif arg.kind == ArgKind.GROUP:
        struct["inner"] = [arg_to_struct(a) for a in arg.inner]
    elif arg.kind == ArgKind.RESULT:
        struct.update(resource=arg.resource, val=arg.val)
    else:
        raise ProgramError("Cannot store argument of kind %r" % (arg.kind,))
    return struct


def arg_from_struct(struct):
    kind = struct["kind"]
    if kind == ArgKind.CONST:
        return ConstArg(struct["val"], struct["width"], struct["signed"], struct["const_kind"], struct["dir"])
    if kind == ArgKind.DATA:
        return DataArg(struct["data"], struct["varlen"], struct["buffer_kind"], struct["dir"])
    if kind == ArgKind.POINTER:
        inner = struct["inner"]
        return PointerArg(arg_from_struct(inner) if inner is not None else None, struct["dir"])
    if kind == ArgKind.GROUP:
        return GroupArg([arg_from_struct(s) for s in struct["inner"]], struct["dir"])
    if kind == ArgKind.RESULT:
        return ResultArg(struct["resource"], struct["val"], struct["dir"])
    raise ProgramError("Unknown argument kind %r" % (kind,))


def program_to_struct(program):
    return {"calls": [{"name": call.name, "args": [arg_to_struct(a) for a in call.args]}
                      for call in program.calls]}


def program_from_struct(struct):
    try:
        return Program([Call(c["name"], [arg_from_struct(a) for a in c["args"]])
                        for c in struct["calls"]])
    except (KeyError, TypeError) as e:
        raise ProgramError("Malformed program struct: %r" % e) from e


def pack_program(program):
    return msgpack.packb(program_to_struct(program), use_bin_type=True)


def unpack_program(data):
    try:
        struct = msgpack.unpackb(data, raw=False)
    except (ValueError, msgpack.ExtraData) as e:
        raise ProgramError("Failed to unpack program: %s" % e) from e
    return program_from_struct(struct)


def pack_comp_maps(comp_maps):
    return msgpack.packb([comps.to_struct() if comps is not None else None for comps in comp_maps],
                         use_bin_type=True)


def unpack_comp_maps(data):
    try:
        structs = msgpack.unpackb(data, raw=False, strict_map_key=False)
        return [CompMap.from_struct(s) if s is not None else None for s in structs]
    except (ValueError, TypeError, AttributeError, msgpack.ExtraData) as e:
        raise ProgramError("Failed to unpack comparison maps: %s" % e) from e


def program_hash(program):
    return "%032x" % mmh3.hash128(pack_program(program), signed=False)


def write_packed(filename, data):
    if filename.endswith(".lz4"):
        data = lz4.frame.compress(data)
    atomic_write(filename, data)


def read_packed(filename):
    data = read_binary_file(filename)
    if filename.endswith(".lz4"):
        data = lz4.frame.decompress(data)
    return data
