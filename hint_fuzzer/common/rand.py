# Copyright (C) 2017-2019 Sergej Schumilo, Cornelius Aschermann, Tim Blazytko
# Copyright (C) 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Wrapper for your favorite RNG solution
"""

import random

import fastrand

class rand:

    @staticmethod
    def reseed(seed=None):
        # seed from system and flush initial output
        if seed is None:
            seed = random.getrandbits(63)
        fastrand.pcg32_seed(seed)
        fastrand.pcg32()
        fastrand.pcg32()

    @staticmethod
    def bytes(num):
        return bytes([rand.int(256) for _ in range(num)])

    # return integer N := 0 <= n < limit
    # Intended semantics:
    #   if rand.int(100) < 50 # execute with p(0.5)
    #   if rand.int(2)        # execute with p(0.5)
    # a[rand.int(len(a)) = 5  # never out of bounds
    @staticmethod
    def int(limit):
        if limit <= 0:
            return 0
        return fastrand.pcg32bounded(limit)

    # return an unsigned value of the given bit width
    # pcg32 only delivers 32 bits, wider values are assembled from two draws
    @staticmethod
    def bits(width):
        if width <= 32:
            return fastrand.pcg32() & ((1 << width) - 1)
        return ((fastrand.pcg32() & 0xffffffff) << 32) | (fastrand.pcg32() & 0xffffffff)

    @staticmethod
    def select(arg):
        return arg[rand.int(len(arg))]
