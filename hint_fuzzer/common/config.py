# Copyright 2017-2019 Sergej Schumilo, Cornelius Aschermann, Tim Blazytko
# Copyright 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import argparse
import os

import confuse
from flatdict import FlatDict

from hint_fuzzer.common.logger import logger


class FullPath(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        setattr(namespace, self.dest, os.path.abspath(os.path.expanduser(values)))


def create_dir(dirname):
    if not os.path.isdir(dirname):
        try:
            os.makedirs(dirname)
        except OSError:
            msg = "Cannot create directory: {0}".format(dirname)
            raise argparse.ArgumentTypeError(msg)
    return dirname


def parse_is_file(dirname):
    if not os.path.isfile(dirname):
        msg = "{0} is not a file".format(dirname)
        raise argparse.ArgumentTypeError(msg)
    else:
        return dirname


def parse_non_negative(string):
    try:
        value = int(string, 0)
    except ValueError:
        raise argparse.ArgumentTypeError("'" + string + "' is not a number.")
    if value < 0:
        raise argparse.ArgumentTypeError("Value must not be negative.")
    return value


def hidden(msg, unmask=False):
    if unmask or 'HINT_FUZZER_CONFIG_DEBUG' in os.environ:
        return msg
    return argparse.SUPPRESS

# General startup options
def add_args_general(parser):
    parser.add_argument('-h', '--help', action='help',
                        help='show this help message and exit')
    parser.add_argument('-w', '--work-dir', metavar='<dir>', action=FullPath, type=create_dir,
                        required=True, help='path to the output/working directory.')
    parser.add_argument('--purge', required=False, help='purge previous results from the working directory at startup.',
                        action='store_true', default=False)
    parser.add_argument('-v', '--verbose', required=False, action='store_true', default=False,
                        help='enable verbose output')
    parser.add_argument('-q', '--quiet', help='only print warnings and errors to console',
                        required=False, action='store_true', default=False)
    parser.add_argument('-l', '--log', help='enable logging to $workdir/debug.log',
                        action='store_true', default=False)
    parser.add_argument('--debug', help='validate every emitted program and max logging verbosity',
                        action='store_true', default=False)

# Hint mutation options
def add_args_hints(parser):
    parser.add_argument('--program', metavar='<file>', action=FullPath, type=parse_is_file,
                        required=True, help='path to the packed input program (.msgpack or .lz4).')
    parser.add_argument('--comparisons', metavar='<file>', action=FullPath, type=parse_is_file,
                        required=True, help='path to the packed per-call comparison maps (.msgpack or .lz4).')
    parser.add_argument('--hints-boundary', required=False, help='also try candidate +/- 1 for scalar hints',
                        action='store_true', default=False)
    parser.add_argument('--hints-max', metavar='<n>', type=parse_non_negative, required=False, default=0,
                        help=hidden('stop after storing <n> mutants (default: 0, no limit)'))


class ConfigArgsParser():

    def _base_parser(self):
        short_usage = '%(prog)s --work-dir <dir> --program <file> --comparisons <file> [options]'
        return argparse.ArgumentParser(usage=short_usage, add_help=False, fromfile_prefix_chars='@')

    def _parse_with_config(self, parser, argv=None):

        config = confuse.Configuration('hint_fuzzer', modname='hint_fuzzer')

        # check default config search paths
        config.read(defaults=True, user=True)

        # local / workdir config
        workdir_config = os.path.join(os.getcwd(), 'hint_fuzzer.yaml')
        if os.path.exists(workdir_config):
            config.set_file(workdir_config, base_for_paths=True)

        # ENV based config
        if 'HINT_FUZZER_CONFIG' in os.environ:
            config.set_file(os.environ['HINT_FUZZER_CONFIG'], base_for_paths=True)

        # merge all configs into a flat dictionary, delimiter = ':'
        config_values = FlatDict(config.flatten())
        if 'HINT_FUZZER_CONFIG_DEBUG' in os.environ:
            print("Options picked up from config: %s" % str(config_values))

        # adopt defaults into parser, fixup 'required' and file/path fields
        for action in parser._actions:
            if action.dest in config_values:
                if action.type == parse_is_file:
                    action.default = config[action.dest].as_filename()
                else:
                    action.default = config[action.dest].get()
                action.required = False
                config_values.pop(action.dest)

        # remove options not defined in argparse
        for option in list(config_values.keys()):
            if 'HINT_FUZZER_CONFIG_DEBUG' in os.environ:
                logger.warn("Dropping unrecognized option '%s'." % option)
            config_values.pop(option)

        args = parser.parse_args(argv)

        if 'HINT_FUZZER_CONFIG_DEBUG' in os.environ:
            print("Final parsed args: %s" % repr(args))
        return args

    def parse_hint_options(self, argv=None):

        parser = self._base_parser()

        general = parser.add_argument_group('General options')
        add_args_general(general)

        hints = parser.add_argument_group('Hint options')
        add_args_hints(hints)

        return self._parse_with_config(parser, argv)
