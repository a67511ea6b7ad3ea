# Copyright (C) 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Structured test programs: an ordered list of calls, each owning typed arguments.

Arguments form a closed set of kinds (see ArgKind). Only scalar constants and
byte buffers carry values the hint engine may replace; pointers and groups make
nested arguments reachable, results are inert.

Programs are plain values. Any change made by a mutation stage is applied to a
clone(), never to the program that was traced.
"""

WIDTHS = (8, 16, 32, 64)


class ProgramError(Exception):
    pass


class ArgKind:
    CONST = "const"
    DATA = "data"
    POINTER = "pointer"
    GROUP = "group"
    RESULT = "result"


class Dir:
    IN = "in"
    OUT = "out"
    INOUT = "inout"

    ALL = (IN, OUT, INOUT)


# scalar sub-kinds; proc and csum values are derived by the executor
CONST_KINDS = ("int", "flags", "len", "proc", "csum")
# buffer sub-kinds; filenames must stay valid paths
BUFFER_KINDS = ("blob", "string", "filename")


def width_mask(width):
    return (1 << width) - 1


def _check_dir(dir):
    if dir not in Dir.ALL:
        raise ProgramError("Invalid argument direction %r" % (dir,))
    return dir


class Arg:
    kind = None

    def __init__(self, dir=Dir.IN):
        self.dir = _check_dir(dir)

    def children(self):
        return ()

    def clone(self):
        raise NotImplementedError

    def validate(self):
        _check_dir(self.dir)
        for child in self.children():
            child.validate()

    def _key(self):
        raise NotImplementedError

    def __eq__(self, other):
        return type(self) is type(other) and self._key() == other._key()

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash(self._key())


class ConstArg(Arg):
    """
    Integer scalar stored as an unsigned bit pattern of `width` bits.

    Negative values are accepted for signed scalars and stored in their
    two's complement form.
    """
    kind = ArgKind.CONST

    def __init__(self, val, width=64, signed=False, const_kind="int", dir=Dir.IN):
        super().__init__(dir)
        if width not in WIDTHS:
            raise ProgramError("Unsupported scalar width %r" % (width,))
        if const_kind not in CONST_KINDS:
            raise ProgramError("Unknown scalar kind %r" % (const_kind,))
        if signed and -(1 << (width - 1)) <= val < 0:
            val &= width_mask(width)
        self.width = width
        self.signed = signed
        self.const_kind = const_kind
        self.val = val
        self.validate()

    @property
    def signed_val(self):
        if self.val >> (self.width - 1):
            return self.val - (1 << self.width)
        return self.val

    def validate(self):
        super().validate()
        if not isinstance(self.val, int) or not 0 <= self.val <= width_mask(self.width):
            raise ProgramError("Value %r does not fit in %d bits" % (self.val, self.width))

    def clone(self):
        return ConstArg(self.val, self.width, self.signed, self.const_kind, self.dir)

    def _key(self):
        return (self.dir, self.val, self.width, self.signed, self.const_kind)

    def __repr__(self):
        return "0x%x" % self.val


class DataArg(Arg):
    kind = ArgKind.DATA

    def __init__(self, data, varlen=False, buffer_kind="blob", dir=Dir.IN):
        super().__init__(dir)
        if buffer_kind not in BUFFER_KINDS:
            raise ProgramError("Unknown buffer kind %r" % (buffer_kind,))
        self.data = bytes(data)
        self.varlen = varlen
        self.buffer_kind = buffer_kind

    def validate(self):
        super().validate()
        if not isinstance(self.data, bytes):
            raise ProgramError("Buffer data must be bytes, got %s" % type(self.data).__name__)

    def clone(self):
        return DataArg(self.data, self.varlen, self.buffer_kind, self.dir)

    def _key(self):
        return (self.dir, self.data, self.varlen, self.buffer_kind)

    def __repr__(self):
        return '"%s"' % self.data.hex()


class PointerArg(Arg):
    kind = ArgKind.POINTER

    def __init__(self, inner=None, dir=Dir.IN):
        super().__init__(dir)
        self.inner = inner

    def children(self):
        if self.inner is None:
            return ()
        return (self.inner,)

    def clone(self):
        inner = self.inner.clone() if self.inner is not None else None
        return PointerArg(inner, self.dir)

    def _key(self):
        return (self.dir, self.inner)

    def __repr__(self):
        if self.inner is None:
            return "nil"
        return "&%r" % (self.inner,)


class GroupArg(Arg):
    kind = ArgKind.GROUP

    def __init__(self, inner, dir=Dir.IN):
        super().__init__(dir)
        self.inner = list(inner)

    def children(self):
        return tuple(self.inner)

    def clone(self):
        return GroupArg([arg.clone() for arg in self.inner], self.dir)

    def _key(self):
        return (self.dir, tuple(self.inner))

    def __repr__(self):
        return "{%s}" % ", ".join(repr(arg) for arg in self.inner)


class ResultArg(Arg):
    kind = ArgKind.RESULT

    def __init__(self, resource, val=0, dir=Dir.IN):
        super().__init__(dir)
        self.resource = resource
        self.val = val

    def clone(self):
        return ResultArg(self.resource, self.val, self.dir)

    def _key(self):
        return (self.dir, self.resource, self.val)

    def __repr__(self):
        return "<%s=0x%x>" % (self.resource, self.val)


def foreach_arg(args, skip_out=False, prefix=()):
    """
    Yield (path, arg) for every argument below args, depth first.

    With skip_out=True, output arguments and everything they contain are left out.
    """
    for i, arg in enumerate(args):
        if skip_out and arg.dir == Dir.OUT:
            continue
        path = prefix + (i,)
        yield path, arg
        yield from foreach_arg(arg.children(), skip_out, path)


class Call:
    def __init__(self, name, args=()):
        self.name = name
        self.args = list(args)

    def clone(self):
        return Call(self.name, [arg.clone() for arg in self.args])

    def arg_at(self, path):
        if not path:
            raise ProgramError("Empty argument path")
        try:
            arg = self.args[path[0]]
            for index in path[1:]:
                arg = arg.children()[index]
        except IndexError:
            raise ProgramError("No argument at path %r in call %s" % (path, self.name)) from None
        return arg

    def validate(self):
        for arg in self.args:
            if not isinstance(arg, Arg):
                raise ProgramError("Call %s holds a non-argument %r" % (self.name, arg))
            arg.validate()

    def __eq__(self, other):
        return isinstance(other, Call) and self.name == other.name and self.args == other.args

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return "%s(%s)" % (self.name, ", ".join(repr(arg) for arg in self.args))


class Program:
    def __init__(self, calls=()):
        self.calls = list(calls)

    def clone(self):
        return Program([call.clone() for call in self.calls])

    def validate(self):
        for call in self.calls:
            call.validate()

    def __len__(self):
        return len(self.calls)

    def __eq__(self, other):
        return isinstance(other, Program) and self.calls == other.calls

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return "\n".join(repr(call) for call in self.calls)
