# Copyright (C) 2019-2020 Intel Corporation
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Comparison-hint mutation engine for structured program fuzzing.
"""
