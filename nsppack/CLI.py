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

import argparse
import json
import os
import logging
import logging.config
import platform

from nsppack.Kernel import APP_NAME, PUBLIC_VERSION, StorageLocator, configureGlobalLogLevel, getLogger
from nsppack.Settings import APP_DESCRIPTION, DEFAULT_OUTPUT_NAME, SettingsGetter
from nsppack.Utils import flushPrint, getEnv

logger = getLogger(__name__)


def loadEnvFile():
    """
    Load KEY=VALUE lines from the .env file found by StorageLocator.
    Variables already present in os.environ are left untouched.
    """
    envFilePath = StorageLocator.getInstance().findConfig('.env')

    if not os.path.exists(envFilePath):
        return 0

    loadedCount = 0
    try:
        with open(envFilePath, 'r', encoding='utf-8') as f:
            for lineNum, line in enumerate(f, 1):
                line = line.strip()

                if not line or line.startswith('#'):
                    continue

                if '=' not in line:
                    logger.warning(f'.env line {lineNum}: Invalid format (missing =): {line}')
                    continue

                key, _, value = line.partition('=')
                key = key.strip()
                value = value.strip()

                if not key:
                    logger.warning(f'.env line {lineNum}: Empty key')
                    continue

                if (value.startswith('"') and value.endswith('"')) or \
                   (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]

                if key not in os.environ:
                    os.environ[key] = value
                    loadedCount += 1
                else:
                    logger.debug(f'.env: Skipped {key} (already set in environment)')

    except OSError as e:
        logger.error(f'Unexpected error loading .env file {envFilePath}: {e}', exc_info=True)

    logger.debug(f'Loaded {loadedCount} environment variables from {envFilePath}')
    return loadedCount


def configureLogging(logLevel):
    """Configure logging from --log-level, falling back to NSP_LOGGING_LEVEL.

    Either value can be a level name (DEBUG, INFO, WARNING, ERROR) or a path to a
    logging configuration JSON file for logging.config.dictConfig().
    """

    def suppressNoisyLogger():
        logging.getLogger('sentry_sdk').setLevel(logging.INFO)

    if logLevel is None:
        logLevel = getEnv('NSP_LOGGING_LEVEL', None)

    if logLevel is None:
        suppressNoisyLogger()
        return None

    if os.path.isfile(logLevel):
        try:
            with open(logLevel, 'r') as configFile:
                configDict = json.load(configFile)

            logging.config.dictConfig(configDict)
            logger.info(f"Logging configured from file: {logLevel}")
            suppressNoisyLogger()
            return logLevel

        except (json.JSONDecodeError, ValueError, KeyError) as e:
            flushPrint(f"Failed to load logging config from {logLevel}: {e}")
            flushPrint("Falling back to default logging level configuration")

    levelMapping = {'DEBUG': logging.DEBUG, 'INFO': logging.INFO, 'WARNING': logging.WARNING, 'ERROR': logging.ERROR}

    if logLevel.upper() in levelMapping:
        configureGlobalLogLevel(levelMapping[logLevel.upper()])
        logger.info(f"Logging level set to {logLevel}")
    else:
        logger.warning(f"Invalid logging level '{logLevel}', using WARNING as default")
        configureGlobalLogLevel(logging.WARNING)

    suppressNoisyLogger()

    return logLevel


def showVersion():
    flushPrint(f"{APP_NAME} v{PUBLIC_VERSION}")

    uname = platform.uname()
    system = SettingsGetter.getInstance().platform or uname.system
    logger.debug(f"Architecture: {system} {uname.release} {uname.machine}")


def positiveInt(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'")

    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: '{value}'")
    return number


def configureCLIParser():
    settingsGetter = SettingsGetter.getInstance()

    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=f"{APP_NAME} v{PUBLIC_VERSION} - {APP_DESCRIPTION}",
        usage='%(prog)s -o <output.nsp> [options] file1.nca [file2.nca ...]',
    )

    parser.add_argument('-v', '--version', action='store_true', help='Display version information')
    parser.add_argument(
        '-o', '--output', dest='output', default=DEFAULT_OUTPUT_NAME, help='NSP output file name'
    )
    parser.add_argument(
        '--buffer',
        dest='bufferSize',
        type=positiveInt,
        default=settingsGetter.bufferSize,
        help='Buffer size for file copying operations',
    )
    parser.add_argument(
        '--progress', dest='showProgress', action='store_true', help='Show progress bar during NSP creation'
    )
    parser.add_argument(
        '--progress-interval',
        dest='progressInterval',
        type=int,
        default=settingsGetter.progressInterval,
        help='Progress update frequency in milliseconds',
    )
    parser.add_argument(
        '--log-level', dest='logLevel', default=None, help='Logging level name or logging config JSON file'
    )
    parser.add_argument('files', nargs='*', metavar='file', help='Files to include in the NSP')

    return parser
