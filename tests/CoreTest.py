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
"""
End-to-end tests running Core.py as a separate process, the way users invoke it.
"""

import os
import shutil
import subprocess
import sys
import tempfile
import unittest

from pathlib import Path

from nsppack.Kernel import PUBLIC_VERSION

CORE_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'Core.py')


class CoreCliTest(unittest.TestCase):
    """Command line behaviour: exit codes, messages and the produced archive."""

    def setUp(self):
        self.tempDir = tempfile.mkdtemp()
        self.storageDir = os.path.join(self.tempDir, 'storage')
        os.makedirs(self.storageDir)

    def tearDown(self):
        if Path(self.tempDir).exists():
            shutil.rmtree(self.tempDir)

    def _run(self, *args):
        env = dict(os.environ)
        env['NSP_STORAGE_LOCATION'] = self.storageDir
        env.pop('NSP_LOGGING_LEVEL', None)
        env.pop('SENTRY_DSN', None)

        return subprocess.run(
            [sys.executable, CORE_PATH, *args],
            cwd=self.tempDir,
            env=env,
            capture_output=True,
            text=True,
            timeout=60,
        )

    def _createFile(self, name, content):
        path = os.path.join(self.tempDir, name)
        Path(path).write_bytes(content)
        return path

    def testBuildArchive(self):
        bPath = self._createFile('b.bin', b'\x01\x02\x03')
        aPath = self._createFile('a.bin', b'\xaa\xbb')
        outputPath = os.path.join(self.tempDir, 'game.nsp')

        result = self._run('-o', outputPath, bPath, aPath)

        self.assertEqual(result.returncode, 0, result.stderr)
        self.assertIn(f'Successfully built NSP file: {outputPath}', result.stdout)

        data = Path(outputPath).read_bytes()
        self.assertEqual(data[:4], b'PFS0')
        self.assertEqual(len(data), 85)
        self.assertEqual(data[80:], b'\xaa\xbb\x01\x02\x03')

    def testProgressMessages(self):
        paths = [self._createFile(name, os.urandom(5000)) for name in ('z.nca', 'y.nca')]

        result = self._run('-o', 'out.nsp', '--progress', '--progress-interval', '0', '--buffer', '512', *paths)

        self.assertEqual(result.returncode, 0, result.stderr)
        self.assertIn('Building NSP: out.nsp', result.stdout)
        self.assertIn('Processing (1/2): y.nca', result.stdout)
        self.assertIn('Processing (2/2): z.nca', result.stdout)
        self.assertLess(result.stdout.index('(1/2)'), result.stdout.index('(2/2)'))
        self.assertIn('100.0% (10.00 KB/10.00 KB)', result.stdout)
        self.assertTrue(os.path.exists(os.path.join(self.tempDir, 'out.nsp')))

    def testNoInputFiles(self):
        result = self._run('-o', 'out.nsp')

        self.assertEqual(result.returncode, 1)
        self.assertIn('Error: no NCA files specified', result.stderr)
        self.assertIn('usage:', result.stderr)
        self.assertFalse(os.path.exists(os.path.join(self.tempDir, 'out.nsp')))

    def testMissingInputFile(self):
        result = self._run('-o', 'out.nsp', 'missing.nca')

        self.assertEqual(result.returncode, 1)
        self.assertIn('Error: Failed to add files to NSP builder:', result.stderr)
        self.assertIn('missing.nca', result.stderr)
        self.assertFalse(os.path.exists(os.path.join(self.tempDir, 'out.nsp')))

    def testUnwritableOutput(self):
        path = self._createFile('a.bin', b'a')

        result = self._run('-o', os.path.join(self.tempDir, 'missing', 'out.nsp'), path)

        self.assertEqual(result.returncode, 1)
        self.assertIn('Error: Failed to build NSP file:', result.stderr)

    @unittest.skipUnless(os.path.exists('/dev/full'), 'requires /dev/full')
    def testDiskFullOutput(self):
        path = self._createFile('a.bin', b'abc')

        result = self._run('-o', '/dev/full', path)

        self.assertEqual(result.returncode, 1)
        self.assertIn('Error: Failed to build NSP file:', result.stderr)
        self.assertNotIn('Traceback', result.stderr)

    def testVersion(self):
        result = self._run('--version')

        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout.strip(), f'nsppack v{PUBLIC_VERSION}')

    def testHelp(self):
        result = self._run('-h')

        self.assertEqual(result.returncode, 0)
        self.assertIn('--progress', result.stdout)
        self.assertIn('Nintendo Submission Package', result.stdout)

    def testEnvFileBufferSize(self):
        with open(os.path.join(self.storageDir, '.env'), 'w') as f:
            f.write('NSP_BUFFER_SIZE=3\n')
        path = self._createFile('a.bin', b'abcdefgh')

        result = self._run('-o', 'out.nsp', path)

        self.assertEqual(result.returncode, 0, result.stderr)
        self.assertEqual(Path(self.tempDir, 'out.nsp').read_bytes()[-8:], b'abcdefgh')


if __name__ == '__main__':
    unittest.main()
