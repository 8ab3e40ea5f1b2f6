#!/usr/bin/env python
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0
#
# nsppack - Package content archives into a PFS0 submission package
# Copyright (C) 2025-2026 nsppack contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import os
import sys

import bitmath

from nsppack.Kernel import getLogger

# Decimal (SI) units, largest last. Nothing above TB is used.
SIZE_UNITS = (
    ('B', bitmath.Byte),
    ('KB', bitmath.kB),
    ('MB', bitmath.MB),
    ('GB', bitmath.GB),
    ('TB', bitmath.TB),
)

logger = getLogger(__name__)


def flushPrint(text, file=None):
    file = file or sys.stdout
    try:
        print(text, file=file, flush=True)
    except UnicodeEncodeError as e:
        # Terminals without UTF-8 (e.g. cp950 consoles) still get a readable line.
        logger.debug(f"UnicodeEncodeError during print, using fallback encoding: {e}")
        encoding = getattr(file, 'encoding', None) or 'ascii'
        print(text.encode(encoding, errors='replace').decode(encoding), file=file, flush=True)


def splitSize(size):
    """
    Split a byte count into (value, unit) using the largest decimal unit that does not exceed it.

    >>> splitSize(1500)
    (1.5, 'KB')
    """
    unit, unitClass = SIZE_UNITS[0]
    for name, candidate in SIZE_UNITS[1:]:
        if size < candidate(1).bytes:
            break
        unit, unitClass = name, candidate

    return float(unitClass(bytes=size).value), unit


def formatSize(size, decimal=2):
    value, unit = splitSize(size)
    return f'{value:.{decimal}f} {unit}'


def reportError(message, file=None):
    """Print a literal error message to stderr. Returns the exit status to use."""
    flushPrint(f'Error: {message}', file=file or sys.stderr)
    return 1


def reportErrorf(fmt, *args, file=None):
    """Format with %-style arguments, then report like reportError()."""
    return reportError(fmt % args, file=file)


def getEnv(envVar, default):
    """Safely get value from environment variable with automatic type detection based on default"""
    try:
        value = os.getenv(envVar)
        if value is not None:
            if default is None:
                return value

            if isinstance(default, bool):
                return value == "True"
            elif isinstance(default, int):
                return int(value)
            elif isinstance(default, float):
                return float(value)
            else:
                return type(default)(value)
        return default
    except (ValueError, TypeError):
        return default
