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
PFS0 header layout.

    0x0-0x4:   Magic ("PFS0")
    0x4-0x8:   EntryCount (number of files)
    0x8-0xC:   StringTableSize (including padding)
    0xC-0x10:  Reserved (zeros)
    0x10-X:    PartitionEntryTable (24 bytes per file)
    X-Y:       StringTable with null-terminated filenames, zero padded to 16 bytes

All integers are little-endian. Payloads follow the header contiguously in entry order.
"""

import struct

from dataclasses import dataclass

PFS0_MAGIC = b'PFS0'

HEADER_ALIGNMENT = 0x10

# Magic(4) + EntryCount(4) + StringTableSize(4) + Reserved(4)
PROLOGUE = struct.Struct('<4sIII')

# DataOffset(8) + Size(8) + StringOffset(4) + Reserved(4)
ENTRY_RECORD = struct.Struct('<QQII')

MAX_UINT32 = 0xFFFFFFFF


class HeaderOverflowError(ValueError):
    """A header field does not fit its on-disk width."""
    pass


@dataclass
class PartitionEntry:
    # Filesystem path to the source file
    path: str

    # Filename stored in the archive
    name: str

    # Size in bytes, captured when the entry was added
    size: int

    # Absolute position of the payload in the archive, set by generateHeader()
    dataOffset: int = 0

    # Offset of the name in the string table, set by generateHeader()
    stringOffset: int = 0

    @property
    def encodedName(self) -> bytes:
        return self.name.encode('utf-8')


@dataclass(frozen=True)
class HeaderLayout:
    entryCount: int
    entryTableSize: int
    stringTableSize: int
    padding: int

    @property
    def headerSize(self) -> int:
        return PROLOGUE.size + self.entryTableSize + self.stringTableSize + self.padding

    @property
    def stringTableOffset(self) -> int:
        return PROLOGUE.size + self.entryTableSize


def alignUp(value, alignment=HEADER_ALIGNMENT):
    remainder = value % alignment
    return value if remainder == 0 else value + alignment - remainder


def sortEntries(entries):
    """Sort in place by the stored name, byte-wise."""
    entries.sort(key=lambda entry: entry.encodedName)
    return entries


def computeLayout(entries):
    stringTableSize = sum(len(entry.encodedName) + 1 for entry in entries) # +1 for null terminator
    entryTableSize = len(entries) * ENTRY_RECORD.size

    unpadded = PROLOGUE.size + entryTableSize + stringTableSize
    padding = alignUp(unpadded) - unpadded

    if len(entries) > MAX_UINT32:
        raise HeaderOverflowError(f"Too many entries for a PFS0 header: {len(entries)}")
    if stringTableSize + padding > MAX_UINT32:
        raise HeaderOverflowError(f"String table too large for a PFS0 header: {stringTableSize + padding} bytes")

    return HeaderLayout(
        entryCount=len(entries),
        entryTableSize=entryTableSize,
        stringTableSize=stringTableSize,
        padding=padding,
    )


def generateHeader(entries):
    """
    Build the PFS0 header for entries.

    The list is sorted in place and every entry gets its absolute dataOffset and its
    stringOffset assigned. Returns the header bytes, whose length is the offset of the
    first payload.
    """
    sortEntries(entries)
    layout = computeLayout(entries)
    headerSize = layout.headerSize

    header = bytearray(headerSize)

    PROLOGUE.pack_into(header, 0, PFS0_MAGIC, layout.entryCount, layout.stringTableSize + layout.padding, 0)

    recordPosition = PROLOGUE.size
    stringOffset = 0
    relativeOffset = 0
    for entry in entries:
        ENTRY_RECORD.pack_into(header, recordPosition, relativeOffset, entry.size, stringOffset, 0)

        entry.dataOffset = headerSize + relativeOffset
        entry.stringOffset = stringOffset

        relativeOffset += entry.size
        stringOffset += len(entry.encodedName) + 1
        recordPosition += ENTRY_RECORD.size

    # The buffer is zero filled, so terminators and padding are already in place.
    for entry in entries:
        namePosition = layout.stringTableOffset + entry.stringOffset
        name = entry.encodedName
        header[namePosition:namePosition + len(name)] = name

    return bytes(header)
