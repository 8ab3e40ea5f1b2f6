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

from enum import Enum

from nsppack.Kernel import Singleton, getLogger
from nsppack.Utils import getEnv

APP_DESCRIPTION = 'A utility to package Nintendo Content Archive (NCA) files into a Nintendo Submission Package (NSP).'

DEFAULT_OUTPUT_NAME = 'out.nsp'

# Bytes per read/write chunk while streaming payloads
DEFAULT_BUFFER_SIZE = getEnv('NSP_BUFFER_SIZE', 4096)

# Minimum milliseconds between two progress renders
DEFAULT_PROGRESS_INTERVAL = getEnv('NSP_PROGRESS_INTERVAL', 100)

# Cells in the progress bar
DEFAULT_PROGRESS_WIDTH = getEnv('NSP_PROGRESS_WIDTH', 50)

logger = getLogger(__name__)


class ProgressStyle(Enum):
    BAR = 'bar'
    TQDM = 'tqdm'


DEFAULT_PROGRESS_STYLE = getEnv('NSP_PROGRESS_STYLE', ProgressStyle.BAR.value)


# Singleton
class SettingsGetter(Singleton):

    def initialize(
        self,
        bufferSize=DEFAULT_BUFFER_SIZE,
        progressInterval=DEFAULT_PROGRESS_INTERVAL,
        progressWidth=DEFAULT_PROGRESS_WIDTH,
        progressStyle=DEFAULT_PROGRESS_STYLE,
        platform=None,
    ):
        """Resolve build defaults. Invalid values fall back to the built-in defaults."""
        self._bufferSize = bufferSize if bufferSize > 0 else 4096
        self._progressInterval = max(0, progressInterval)
        self._progressWidth = progressWidth if progressWidth > 0 else 50
        self._progressStyle = self._parseProgressStyle(progressStyle)
        self._platform = platform

    def _parseProgressStyle(self, style):
        if isinstance(style, ProgressStyle):
            return style

        try:
            return ProgressStyle(str(style).lower())
        except ValueError:
            logger.warning(f"Unknown progress style '{style}', using '{ProgressStyle.BAR.value}'")
            return ProgressStyle.BAR

    @property
    def bufferSize(self) -> int:
        return self._bufferSize

    @property
    def progressInterval(self) -> int:
        return self._progressInterval

    @property
    def progressWidth(self) -> int:
        return self._progressWidth

    @property
    def progressStyle(self) -> ProgressStyle:
        return self._progressStyle

    @property
    def platform(self):
        return self._platform
