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
import shutil
import tempfile
import unittest

from unittest.mock import patch

from nsppack.CLI import configureCLIParser, configureLogging, loadEnvFile
from nsppack.Settings import DEFAULT_OUTPUT_NAME


class CLIParserTest(unittest.TestCase):

    def setUp(self):
        self.parser = configureCLIParser()

    def testDefaults(self):
        args = self.parser.parse_args(['a.nca', 'b.nca'])

        self.assertEqual(args.output, DEFAULT_OUTPUT_NAME)
        self.assertEqual(args.files, ['a.nca', 'b.nca'])
        self.assertFalse(args.showProgress)
        self.assertFalse(args.version)
        self.assertGreater(args.bufferSize, 0)

    def testOptions(self):
        args = self.parser.parse_args(
            ['-o', 'game.nsp', '--buffer', '65536', '--progress', '--progress-interval', '250', 'a.nca']
        )

        self.assertEqual(args.output, 'game.nsp')
        self.assertEqual(args.bufferSize, 65536)
        self.assertTrue(args.showProgress)
        self.assertEqual(args.progressInterval, 250)

    def testRejectsNonPositiveBuffer(self):
        with patch('sys.stderr'):
            with self.assertRaises(SystemExit):
                self.parser.parse_args(['--buffer', '0', 'a.nca'])


class LoadEnvFileTest(unittest.TestCase):

    def setUp(self):
        self.tempDir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tempDir)

    def testLoadsWithoutOverriding(self):
        with open(os.path.join(self.tempDir, '.env'), 'w', encoding='utf-8') as f:
            f.write('# comment\n')
            f.write('NSP_TEST_ENV_A="quoted value"\n')
            f.write('NSP_TEST_ENV_B=from-file\n')
            f.write('not a pair\n')
            f.write('=novalue\n')

        environ = {'NSP_STORAGE_LOCATION': self.tempDir, 'NSP_TEST_ENV_B': 'from-env'}
        with patch.dict(os.environ, environ):
            loaded = loadEnvFile()

            self.assertEqual(loaded, 1)
            self.assertEqual(os.environ['NSP_TEST_ENV_A'], 'quoted value')
            self.assertEqual(os.environ['NSP_TEST_ENV_B'], 'from-env')


class ConfigureLoggingTest(unittest.TestCase):

    def testLevelName(self):
        with patch('nsppack.CLI.configureGlobalLogLevel') as configureGlobalLogLevel:
            self.assertEqual(configureLogging('debug'), 'debug')

        configureGlobalLogLevel.assert_called_once_with(10)

    def testNoLevel(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('NSP_LOGGING_LEVEL', None)
            with patch('nsppack.CLI.configureGlobalLogLevel') as configureGlobalLogLevel:
                self.assertIsNone(configureLogging(None))

        configureGlobalLogLevel.assert_not_called()


if __name__ == '__main__':
    unittest.main()
