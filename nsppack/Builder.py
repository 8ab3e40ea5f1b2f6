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
import stat

from enum import Enum

from nsppack.Kernel import EventTiming, NSPEvent, getLogger
from nsppack.PFS0 import HeaderOverflowError, PartitionEntry, generateHeader
from nsppack.Progress import Progress
from nsppack.Settings import ProgressStyle, SettingsGetter
from nsppack.Utils import formatSize

logger = getLogger(__name__)

# =============================================================================
# Build Exception Classes
# =============================================================================


class BuildError(Exception):
    """Base exception for archive build errors"""

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class ArchiveIOError(BuildError):
    """Create, open, seek, read, write or stat failure. The OS error is kept in cause."""

    def __init__(self, message, path=None, cause=None):
        super().__init__(message, path=path)
        self.cause = cause


class SourceNotFoundError(ArchiveIOError):
    pass


class AccessDeniedError(ArchiveIOError):
    pass


class EmptyInputError(BuildError):
    """Raised when build() is called without any registered entry"""
    pass


class BuildStateError(BuildError):
    """Raised when a builder is reused after its build started"""
    pass


class ByteCountError(BuildError):

    def __init__(self, message, path=None, expected=0, actual=0):
        super().__init__(message, path=path)
        self.expected = expected
        self.actual = actual


class ShortWriteError(ByteCountError):
    pass


class SizeMismatchError(ByteCountError):
    pass


def wrapOSError(message, path, error):
    if isinstance(error, FileNotFoundError):
        errorClass = SourceNotFoundError
    elif isinstance(error, PermissionError):
        errorClass = AccessDeniedError
    else:
        errorClass = ArchiveIOError
    return errorClass(f"{message} {path}: {error}", path=path, cause=error)


class BuildState(Enum):
    EMPTY = 'empty'
    HEADER_WRITTEN = 'header_written'
    COPYING = 'copying'
    DONE = 'done'
    FAILED = 'failed'


class Builder:
    """
    Collects input files and writes them into a PFS0 archive (NSP).

    One builder performs one build. Entries are laid out sorted by name, regardless
    of the order they were added in.
    """

    def __init__(
        self,
        outputPath,
        bufferSize=None,
        showProgress=False,
        progressInterval=None,
        progressWidth=None,
        progressStyle=None,
        stream=None,
    ):
        settingsGetter = SettingsGetter.getInstance()

        self.outputPath = outputPath
        self.bufferSize = settingsGetter.bufferSize if bufferSize is None else bufferSize
        self.showProgress = showProgress
        self.progressInterval = settingsGetter.progressInterval if progressInterval is None else progressInterval
        self.progressWidth = settingsGetter.progressWidth if progressWidth is None else progressWidth
        self.progressStyle = ProgressStyle(progressStyle) if progressStyle else settingsGetter.progressStyle
        self.stream = stream

        self.state = BuildState.EMPTY
        self.copyIndex = None

        self._entries = []

        if self.bufferSize <= 0:
            raise ValueError(f"Buffer size must be positive, got {self.bufferSize}")
        if self.progressWidth <= 0:
            raise ValueError(f"Progress width must be positive, got {self.progressWidth}")

    @property
    def entries(self):
        return tuple(self._entries)

    @property
    def totalSize(self):
        return sum(entry.size for entry in self._entries)

    def _checkNotStarted(self):
        if self.state != BuildState.EMPTY:
            raise BuildStateError(
                f"Builder for {self.outputPath} is already {self.state.value}, create a new one",
                path=self.outputPath,
            )

    def addFile(self, path):
        """Register a file. Its size and base name are captured now."""
        self._checkNotStarted()

        try:
            info = os.stat(path)
        except OSError as e:
            raise wrapOSError("Failed to add file", path, e) from e

        if stat.S_ISDIR(info.st_mode):
            raise ArchiveIOError(f"Failed to add file {path}: is a directory", path=path)

        entry = PartitionEntry(path=path, name=os.path.basename(os.path.normpath(path)), size=info.st_size)
        self._entries.append(entry)

        logger.debug(f"Added {entry.name} ({formatSize(entry.size)}) from {path}")
        NSPEvent.entryAdd.trigger(timing=EventTiming.AFTER, builder=self, entry=entry)

    def addFiles(self, paths):
        """Register files in order, stopping at the first failure."""
        for path in paths:
            self.addFile(path)

    def build(self):
        """Write the archive. Any failure leaves the builder FAILED and the partial output on disk."""
        self._checkNotStarted()

        if not self._entries:
            self.state = BuildState.FAILED
            raise EmptyInputError("No input files provided", path=self.outputPath)

        try:
            self._build()
        except BaseException:
            self.state = BuildState.FAILED
            raise

        self.state = BuildState.DONE
        self.copyIndex = None

        logger.info(f"Built {self.outputPath}: {len(self._entries)} entries, {formatSize(self.totalSize)}")
        NSPEvent.buildFinish.trigger(timing=EventTiming.AFTER, builder=self)

    def _build(self):
        try:
            header = generateHeader(self._entries)
        except HeaderOverflowError as e:
            raise BuildError(f"Failed to generate header for {self.outputPath}: {e}", path=self.outputPath) from e

        try:
            outFile = open(self.outputPath, 'wb')
        except OSError as e:
            raise wrapOSError("Failed to create output file", self.outputPath, e) from e

        # Closing flushes the write buffer, so a full disk may only show up there.
        completed = False
        try:
            self._writeArchive(outFile, header)
            completed = True
        finally:
            try:
                outFile.close()
            except OSError as e:
                if completed:
                    raise wrapOSError("Error writing to output file", self.outputPath, e) from e
                logger.debug(f"Closing {self.outputPath} after a failed build: {e}")

    def _writeArchive(self, outFile, header):
        try:
            bytesWritten = outFile.write(header)
        except OSError as e:
            raise wrapOSError("Failed to write header to", self.outputPath, e) from e

        if bytesWritten != len(header):
            raise ShortWriteError(
                f"Size mismatch for file {self.outputPath} during write: "
                f"expected {len(header)} bytes, wrote {bytesWritten} bytes",
                path=self.outputPath,
                expected=len(header),
                actual=bytesWritten,
            )

        self.state = BuildState.HEADER_WRITTEN
        logger.info(f"Building {self.outputPath}: header {len(header)} bytes, {len(self._entries)} entries")

        buffer = bytearray(self.bufferSize)
        progress = self._createProgress()
        try:
            self.state = BuildState.COPYING
            for i, entry in enumerate(self._entries):
                self.copyIndex = i
                eventArgs = dict(builder=self, entry=entry, index=i, count=len(self._entries), progress=progress)

                NSPEvent.entryCopy.trigger(timing=EventTiming.BEFORE, **eventArgs)
                try:
                    self._copyEntry(outFile, entry, buffer, progress)
                finally:
                    if progress is not None:
                        progress.clearLine()
                NSPEvent.entryCopy.trigger(timing=EventTiming.AFTER, **eventArgs)
        finally:
            if progress is not None:
                progress.finish()

        try:
            outFile.flush()
        except OSError as e:
            raise wrapOSError("Error writing to output file", self.outputPath, e) from e

    def _createProgress(self):
        if not self.showProgress:
            return None

        return Progress(
            self.totalSize,
            interval=self.progressInterval,
            width=self.progressWidth,
            useBar=self.progressStyle == ProgressStyle.TQDM,
            stream=self.stream,
        )

    def _copyEntry(self, outFile, entry, buffer, progress):
        """Stream one source file to its dataOffset in outFile."""
        try:
            inFile = open(entry.path, 'rb')
        except OSError as e:
            raise wrapOSError("Failed to open input file", entry.path, e) from e

        with inFile:
            try:
                outFile.seek(entry.dataOffset)
            except OSError as e:
                raise wrapOSError("Failed to seek in output file for", entry.path, e) from e

            view = memoryview(buffer)
            bytesCopied = 0
            while True:
                try:
                    n = inFile.readinto(buffer)
                except OSError as e:
                    raise wrapOSError("Error reading input file", entry.path, e) from e

                if not n:
                    break

                try:
                    outFile.write(view[:n])
                except OSError as e:
                    raise wrapOSError("Error writing to output file", self.outputPath, e) from e

                bytesCopied += n
                if progress is not None:
                    progress.update(n)

        if bytesCopied != entry.size:
            raise SizeMismatchError(
                f"Size mismatch for file {entry.path} during write: "
                f"expected {entry.size} bytes, wrote {bytesCopied} bytes",
                path=entry.path,
                expected=entry.size,
                actual=bytesCopied,
            )

        logger.debug(f"Copied {entry.name} to offset {entry.dataOffset} ({bytesCopied} bytes)")
