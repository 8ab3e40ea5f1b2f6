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
import platform
import signal
import sys

from nsppack.Builder import Builder, BuildError
from nsppack.CLI import configureCLIParser, configureLogging, loadEnvFile, showVersion
from nsppack.Kernel import EventTiming, NSPEvent, getLogger
from nsppack.Settings import (
    DEFAULT_BUFFER_SIZE, DEFAULT_PROGRESS_INTERVAL, DEFAULT_PROGRESS_STYLE, DEFAULT_PROGRESS_WIDTH, SettingsGetter
)
from nsppack.Utils import flushPrint, getEnv, reportError, reportErrorf

logger = getLogger(__name__)


def setupGracefulShutdown():
    """First Ctrl+C unwinds the build through KeyboardInterrupt, a second one exits at once."""
    context = {'shutdownInProgress': False}

    def signalHandler(signum, frame):
        if context['shutdownInProgress']:
            os._exit(0)
        else:
            context['shutdownInProgress'] = True
            raise KeyboardInterrupt()

    signal.signal(signal.SIGINT, signalHandler)


def setupSettings():
    # .env must be loaded before defaults are resolved.
    loadEnvFile()

    return SettingsGetter(
        bufferSize=getEnv('NSP_BUFFER_SIZE', DEFAULT_BUFFER_SIZE),
        progressInterval=getEnv('NSP_PROGRESS_INTERVAL', DEFAULT_PROGRESS_INTERVAL),
        progressWidth=getEnv('NSP_PROGRESS_WIDTH', DEFAULT_PROGRESS_WIDTH),
        progressStyle=getEnv('NSP_PROGRESS_STYLE', DEFAULT_PROGRESS_STYLE),
        platform=platform.system(),
    )


def processBuild(args):
    """Build args.output from args.files. Returns the process exit code."""
    builder = Builder(
        args.output,
        bufferSize=args.bufferSize,
        showProgress=args.showProgress,
        progressInterval=args.progressInterval,
    )
    currentBuilder = builder

    def onEntryCopy(builder, entry, index, count, progress=None, **kwargs):
        if builder is not currentBuilder:
            return

        line = f"Processing ({index + 1}/{count}): {entry.name}"
        if progress is not None:
            progress.write(line)
        else:
            flushPrint(line)

    try:
        builder.addFiles(args.files)
    except BuildError as e:
        logger.debug(f"Adding files failed: {e}")
        return reportErrorf("Failed to add files to NSP builder: %s", e)

    if args.showProgress:
        flushPrint(f"Building NSP: {args.output}")
        NSPEvent.entryCopy.subscribe(onEntryCopy, timing=EventTiming.BEFORE)

    try:
        builder.build()
    except BuildError as e:
        logger.exception(e)
        return reportErrorf("Failed to build NSP file: %s", e)
    finally:
        NSPEvent.entryCopy.unsubscribe(onEntryCopy)

    flushPrint(f"Successfully built NSP file: {args.output}")
    return 0


def runCLIMain(argv=None):
    parser = configureCLIParser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    configureLogging(args.logLevel)

    if args.version:
        showVersion()
        return 0

    if not args.files:
        reportError("no NCA files specified")
        parser.print_usage(sys.stderr)
        return 1

    return processBuild(args)


def main(argv=None):
    setupSettings()
    setupGracefulShutdown()

    try:
        return runCLIMain(argv)
    except KeyboardInterrupt:
        flushPrint('\nExiting on user request (Ctrl+C)...')
        return 0


if __name__ == '__main__':
    sys.exit(main() or 0)
