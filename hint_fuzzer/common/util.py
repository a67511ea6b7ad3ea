# Copyright 2017-2019 Sergej Schumilo, Cornelius Aschermann, Tim Blazytko
# Copyright 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import os
import shutil
import sys
import tempfile

from hint_fuzzer.common import color
from hint_fuzzer.common.logger import logger


def print_banner(msg, quiet=False):
    if quiet:
        return
    print(color.BOLD + color.OKBLUE + "%s (hint_fuzzer)" % msg + color.ENDC, file=sys.stdout)

def atomic_write(filename, data):
    # rename() is atomic only on same filesystem so the tempfile must be in same directory
    with tempfile.NamedTemporaryFile(dir=os.path.dirname(filename), delete=False) as f:
        f.write(data)
    os.chmod(f.name, 0o644)
    os.rename(f.name, filename)

def read_binary_file(filename):
    with open(filename, 'rb') as f:
        return f.read()

def prepare_working_dir(config):

    work_dir = config.work_dir
    purge    = config.purge

    folders = ["/hints"]

    if purge:
        for folder in folders:
            shutil.rmtree(work_dir + folder, ignore_errors=True)

    try:
        for folder in folders:
            os.makedirs(work_dir + folder, exist_ok=False)
    except FileExistsError:
        logger.error("Refuse to operate on existing work_dir without --purge")
        return False

    return True
