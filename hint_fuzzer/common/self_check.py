# Copyright 2017-2019 Sergej Schumilo, Cornelius Aschermann, Tim Blazytko
# Copyright 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import importlib
import os
import sys

from hint_fuzzer.common.logger import logger


def check_version():
    if sys.version_info < (3, 6, 0):
        logger.error("This script requires python 3!")
        return False
    return True


def check_packages():

    deps = [
            'msgpack',
            'mmh3',
            'lz4',
            'fastrand',
            'confuse',
            'flatdict',
            ]

    for pkg in deps:
        try:
            importlib.import_module(pkg)
        except ImportError:
            logger.error("Failed to import package %s - check dependencies!" % pkg)
            return False

    return True

def check_input_files(config):
    for path in [config.program, config.comparisons]:
        if not path or not os.path.isfile(path):
            logger.error("Could not find input file %s..." % path)
            return False
    return True

def check_hints_max(config):
    if config.hints_max < 0:
        logger.error("--hints-max must not be negative (0 disables the limit)")
        return False
    return True

def self_check():
    if not check_version():
        return False
    if not check_packages():
        return False
    return True


def post_self_check(config):
    if not check_input_files(config):
        return False
    if not check_hints_max(config):
        return False
    return True
