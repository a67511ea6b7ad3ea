# Copyright 2017-2019 Sergej Schumilo, Cornelius Aschermann, Tim Blazytko
# Copyright 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Hint stage: run one comparison-hint mutation pass over a stored program.

Reads a packed program and its per-call comparison maps, emits one mutant per
distinct hint and stores each mutant in $workdir/hints. Mutants are
deduplicated by their mmh3 hash.
"""

import os

import msgpack

from hint_fuzzer.common.logger import init_logger, logger
from hint_fuzzer.common.self_check import post_self_check
from hint_fuzzer.common.util import prepare_working_dir
from hint_fuzzer.prog.prog import ProgramError
from hint_fuzzer.prog.storage import (pack_program, program_hash, read_packed,
                                      unpack_comp_maps, unpack_program, write_packed)
from hint_fuzzer.technique.hints.mutate import (HintsMismatchError, mutate_call_with_hints,
                                                normalize_comp_maps)


class HintStage:

    def __init__(self, config):
        self.work_dir = config.work_dir
        self.nudge = config.hints_boundary
        self.debug = config.debug
        self.max_mutants = config.hints_max
        self.hashes = set()
        self.stats = {"emitted": 0, "stored": 0, "duplicates": 0, "skipped": 0, "per_call": {}}

    def __str__(self):
        return "HintStage"

    def mutant_path(self, num):
        return "%s/hints/mutant_%05d.lz4" % (self.work_dir, num)

    def stats_path(self):
        return "%s/hints/stats.msgpack" % self.work_dir

    def limit_reached(self):
        return self.max_mutants and self.stats["stored"] >= self.max_mutants

    def store(self, program):
        self.stats["emitted"] += 1
        if self.limit_reached():
            self.stats["skipped"] += 1
            return

        digest = program_hash(program)
        if digest in self.hashes:
            self.stats["duplicates"] += 1
            return
        self.hashes.add(digest)

        write_packed(self.mutant_path(self.stats["stored"]), pack_program(program))
        self.stats["stored"] += 1

    def run(self, program, comp_maps):
        comp_maps = normalize_comp_maps(program, comp_maps)

        for call_index, comp_map in enumerate(comp_maps):
            if self.limit_reached():
                logger.info("%s Reached limit of %d mutants, skipping remaining calls." % (self, self.max_mutants))
                break
            call = program.calls[call_index]
            if comp_map:
                logger.debug("%s Comparisons for call %d (%s):\n%s" % (self, call_index, call.name, comp_map))
            num = mutate_call_with_hints(program, call_index, comp_map, self.store,
                                         nudge=self.nudge, debug=self.debug)
            self.stats["per_call"][call_index] = num
            logger.debug("%s Call %d (%s): %d hinted mutations" % (self, call_index, call.name, num))

        write_packed(self.stats_path(), msgpack.packb(self.stats))
        logger.info("%s Emitted %d mutants, stored %d (%d duplicates, %d over limit)."
                    % (self, self.stats["emitted"], self.stats["stored"],
                       self.stats["duplicates"], self.stats["skipped"]))
        return self.stats


def load_inputs(config):
    program = unpack_program(read_packed(config.program))
    comp_maps = unpack_comp_maps(read_packed(config.comparisons))
    return program, comp_maps


def start(config):

    if not post_self_check(config):
        logger.error("Startup checks failed. Exit.")
        return 1

    if not prepare_working_dir(config):
        logger.error("Refuse to operate on existing work directory. Use --purge to override.")
        return 1

    init_logger(config)

    try:
        try:
            program, comp_maps = load_inputs(config)
        except (ProgramError, RuntimeError, OSError) as e:
            logger.error("Failed to load inputs: %s" % e)
            return 1

        logger.info("Loaded program with %d calls from %s" % (len(program), os.path.basename(config.program)))

        try:
            HintStage(config).run(program, comp_maps)
        except HintsMismatchError as e:
            logger.error("Comparison maps do not match program: %s" % e)
            return 1
    finally:
        logger.close()

    return 0
