#!/usr/bin/env python3
#
# Copyright (C) 2017-2019 Sergej Schumilo, Cornelius Aschermann, Tim Blazytko
# Copyright (C) 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Launcher for comparison-hint mutation. Check hint_fuzzer/worker/hint_stage.py for more.
"""

import sys

from hint_fuzzer.common.self_check import self_check
from hint_fuzzer.common.config import ConfigArgsParser
from hint_fuzzer.common.util import print_banner

from hint_fuzzer.worker import hint_stage

def main():

    print_banner("Hint Mutator")

    if not self_check():
        return 1

    parser = ConfigArgsParser()
    config = parser.parse_hint_options()

    return hint_stage.start(config)


if __name__ == "__main__":
    sys.exit(main())
