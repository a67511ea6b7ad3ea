# Copyright 2021 Armand Schinkel
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import os
import sys
import time

from datetime import timedelta

import hint_fuzzer.common.color as color

LOG_LEVEL = {
    "DEBUG": 1, # verbose/debug - enable with --debug or -v
    "INFO":  2, # normal reporting - disable stdout with --quiet but --log will still include them
    "WARN":  3, # minor/correctable issues, e.g. dropped hints in debug mode
    "ERROR": 4, # major/fatal issues
}

# --quiet - mute stdout, disabling debug and info output
# --verbose - enable verbose stdout (logger.debug())
# --debug - enable program validation on every emitted mutant
# --log - log outputs to $workdir/debug.log, combine with --debug for max verbosity


class Logger():
    def __init__(self):
        self.init_time = time.time()
        self.stdout_level = LOG_LEVEL["INFO"]
        self.file_level = None
        self.log_file = None
        self.work_dir = None

    def init(self, stdout_level="INFO", file_level=None, log_file="debug.log"):
        self.stdout_level = LOG_LEVEL[stdout_level]
        self.close()
        if file_level:
            self.file_level = LOG_LEVEL[file_level]
            self.log_file = open(os.path.join(self.work_dir or ".", log_file), "w+")
        else:
            self.file_level = None

    def close(self):
        if self.log_file:
            self.log_file.close()
            self.log_file = None

    def file_log(self, msg_level, msg):
        if self.log_file and self.file_level <= LOG_LEVEL[msg_level]:
            self.log_file.write(str(timedelta(seconds=time.time() - self.init_time)) + " " + msg + "\n")
            self.log_file.flush()

    def debug(self, msg):
        self.file_log("DEBUG", msg)
        if self.stdout_level <= LOG_LEVEL["DEBUG"]:
            print(color.FLUSH_LINE + msg)

    def info(self, msg):
        self.file_log("INFO", msg)
        if self.stdout_level <= LOG_LEVEL["INFO"]:
            print(color.FLUSH_LINE + msg)

    def warn(self, msg):
        self.file_log("WARN", "[WARN] " + msg)
        if self.stdout_level <= LOG_LEVEL["WARN"]:
            print(color.FLUSH_LINE + color.WARNING + msg + color.ENDC, file=sys.stderr, flush=True)

    def error(self, msg):
        self.file_log("ERROR", "[ERROR] " + msg)
        print(color.FLUSH_LINE + color.FAIL + "[ERROR] " + msg + color.ENDC, file=sys.stderr, flush=True)


logger = Logger()

def init_logger(config):

    # Default is INFO level to console, and no file logging.
    # Useful modifiers:
    #  -v / -q to increase/decrease console logging
    #  -l / --log to enable file logging at standard level
    #  --debug to enable extra validation and max file verbosity
    #
    # We allow some sensible combinations, e.g. --quiet --log [--debug]
    if config.quiet:
        stdout_level = "WARN"
    elif config.verbose or config.debug:
        stdout_level = "DEBUG"
    else:
        stdout_level = "INFO"

    if config.log:
        if config.debug:
            file_level = "DEBUG"
        else:
            file_level = "INFO"
    else:
        file_level = None

    logger.work_dir = config.work_dir
    logger.init(stdout_level, file_level)
