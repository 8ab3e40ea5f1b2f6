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

import sys
import time

from tqdm import tqdm

from nsppack.Kernel import getLogger
from nsppack.Settings import DEFAULT_PROGRESS_INTERVAL, DEFAULT_PROGRESS_WIDTH
from nsppack.Utils import formatSize, splitSize

logger = getLogger(__name__)


class BitmathTqdm(tqdm):
    """tqdm bar whose sizes go through the same decimal formatter as the plain bar."""

    def __init__(self, *args, sizeFormatter=None, **kwargs):
        self.sizeFormatter = sizeFormatter or formatSize

        if 'bar_format' not in kwargs:
            kwargs['bar_format'] = (
                '{desc}: {percentage:5.1f}%|{bar}| '
                '{n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]'
            )

        super().__init__(*args, unit='B', unit_scale=False, **kwargs)

    def _formatSpeed(self, rateBytesPerSec):
        if not rateBytesPerSec or rateBytesPerSec <= 0:
            return "0/sec"
        return f"{self.sizeFormatter(int(rateBytesPerSec))}/sec"

    @property
    def format_dict(self):
        d = super().format_dict

        d['rate_fmt'] = self._formatSpeed(d.get('rate'))
        d['n_fmt'] = self.sizeFormatter(d.get('n', 0))

        total = d.get('total')
        d['total_fmt'] = self.sizeFormatter(total) if total is not None else '?'

        return d


def renderBar(processed, totalSize, width=DEFAULT_PROGRESS_WIDTH):
    """
    Render one progress line, e.g.

        \\r[============                                      ]  25.0% (50.00 B/200.00 B)
    """
    total, totalUnit = splitSize(totalSize)

    if totalSize == 0:
        totalSize = 1 # Avoid division by zero

    percent = processed / totalSize
    filled = min(int(percent * width), width)

    bar = '=' * filled + ' ' * (width - filled)

    current, currentUnit = splitSize(processed)

    return f"\r[{bar}] {percent * 100:5.1f}% ({current:3.2f} {currentUnit}/{total:3.2f} {totalUnit})"


class Progress:
    """
    Byte-accurate progress of a single build.

    The processed counter is shared by every entry of the build. Rendering is throttled to one
    update per interval (milliseconds) and each render overwrites the previous one in place.
    """

    def __init__(
        self,
        totalSize,
        interval=DEFAULT_PROGRESS_INTERVAL,
        width=DEFAULT_PROGRESS_WIDTH,
        useBar=False,
        stream=None,
    ):
        self.totalSize = totalSize
        self.interval = interval
        self.width = width
        self.useBar = useBar
        self.stream = stream or sys.stdout

        self.processed = 0
        self.lastRenderTime = time.monotonic()
        self.lastWidth = 0

        self.pbar = None
        if self.useBar:
            self.pbar = BitmathTqdm(
                total=self.totalSize,
                desc='Progress',
                file=self.stream,
                leave=False,
                ncols=100,
                mininterval=self.interval / 1000.0,
            )

    def update(self, increment):
        self.processed += increment

        if self.pbar is not None:
            self.pbar.update(increment)
            return

        currentTime = time.monotonic()
        if (currentTime - self.lastRenderTime) * 1000 >= self.interval:
            self.draw()
            self.lastRenderTime = currentTime

    def draw(self):
        progressString = renderBar(self.processed, self.totalSize, self.width)
        self.clearLine()
        self.stream.write(progressString)
        self.stream.flush()
        self.lastWidth = len(progressString)

    def clearLine(self):
        if self.pbar is not None or not self.lastWidth:
            return

        self.stream.write("\r" + " " * self.lastWidth + "\r")
        self.stream.flush()
        self.lastWidth = 0

    def write(self, text):
        """Print a full line without corrupting the bar."""
        if self.pbar is not None:
            self.pbar.write(text, file=self.stream)
        else:
            self.clearLine()
            self.stream.write(text + "\n")
            self.stream.flush()

    def getPercentage(self):
        return (self.processed * 100.0 / self.totalSize) if self.totalSize > 0 else 0

    def finish(self):
        if self.pbar is not None:
            try:
                self.pbar.close()
            except (ValueError, AttributeError) as e:
                logger.debug(f"Exception during progress bar cleanup: {e}")
            finally:
                self.pbar = None
        else:
            self.clearLine()

    def __enter__(self):
        return self

    def __exit__(self, excType, excVal, excTb):
        self.finish()
