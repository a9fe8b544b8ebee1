#!/usr/bin/env python3
"""Forward-only ZIP reader.

Reads entries one at a time from a byte stream that cannot seek, using only
the local file headers. The central directory is never consulted; reading
stops at the first central directory or end-of-central-directory record.

Supported:
  - STORED and DEFLATED entries
  - DEFLATED entries whose CRC and sizes follow the payload in a data
    descriptor (general purpose flag bit 3), as written by jar tools
  - Zip64 sizes in the local header extra field

Every payload is checked against its recorded CRC-32 and size once it has
been consumed.
"""

from __future__ import annotations

import struct
import zipfile
import zlib
from typing import BinaryIO, Iterator, Optional, Tuple

from xzr_io import FILE_BUFFER
from xzr_zip import DIRECTORY_SUFFIX, ArchiveEntry

# =============================================================================
# Constants
# =============================================================================

SIG_LOCAL_HEADER = 0x04034B50
SIG_CENTRAL_HEADER = 0x02014B50
SIG_END_OF_CENTRAL = 0x06054B50
SIG_ZIP64_END = 0x06064B50
SIG_DATA_DESCRIPTOR = 0x08074B50

FLAG_ENCRYPTED = 0x0001
FLAG_DATA_DESCRIPTOR = 0x0008
FLAG_UTF8 = 0x0800

ZIP64_EXTRA_TAG = 0x0001
ZIP64_MARKER = 0xFFFFFFFF

# Local header after the 4-byte signature
_LOCAL_HEADER = struct.Struct("<HHHHHIIIHH")

_END_SIGNATURES = {SIG_CENTRAL_HEADER, SIG_END_OF_CENTRAL, SIG_ZIP64_END}


class ZipFormatError(ValueError):
    """Raised when a stream is not a readable ZIP container."""

    pass


# =============================================================================
# Entry payload
# =============================================================================


class EntryPayload:
    """File-like view over the payload of the current entry."""

    def __init__(
        self,
        reader: "ZipStreamReader",
        entry: ArchiveEntry,
        compressed_size: Optional[int],
    ):
        self.entry = entry  # replaced with the verified values once drained
        self.name = entry.name
        self.crc = 0
        self.size = 0
        self.compressed_read = 0
        self._reader = reader
        self._remaining = compressed_size  # None: ends with the deflate stream
        self._inflater = zlib.decompressobj(-15) if entry.method == zipfile.ZIP_DEFLATED else None
        self._tail = b""
        self._pending = b""
        self._eof = False

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            return b"".join(iter(lambda: self.read(FILE_BUFFER), b""))

        while len(self._pending) < size and not self._eof:
            self._fill()

        data, self._pending = self._pending[:size], self._pending[size:]
        self.crc = zlib.crc32(data, self.crc)
        self.size += len(data)
        return data

    def drain(self) -> None:
        while self.read(FILE_BUFFER):
            pass

    def _next_compressed(self) -> bytes:
        want = FILE_BUFFER if self._remaining is None else min(FILE_BUFFER, self._remaining)
        chunk = self._reader.read_raw(want) if want else b""
        if not chunk:
            raise ZipFormatError(f"Truncated payload for entry: {self.name}")
        if self._remaining is not None:
            self._remaining -= len(chunk)
        self.compressed_read += len(chunk)
        return chunk

    def _fill(self) -> None:
        if self._inflater is None:
            if self._remaining == 0:
                self._eof = True
                return
            self._pending += self._next_compressed()
            return

        if not self._tail:
            self._tail = self._next_compressed()
        try:
            self._pending += self._inflater.decompress(self._tail, FILE_BUFFER)
        except zlib.error as e:
            raise ZipFormatError(f"Corrupt deflate data for entry {self.name}: {e}") from e
        self._tail = self._inflater.unconsumed_tail

        if self._inflater.eof:
            unused = self._inflater.unused_data
            self.compressed_read -= len(unused)
            self._reader.unread(unused)
            self._eof = True


# =============================================================================
# Reader
# =============================================================================


class ZipStreamReader:
    """Sequential reader over the local headers of a ZIP stream."""

    def __init__(self, source: BinaryIO):
        self._source = source
        self._pushback = b""

    def read_raw(self, n: int) -> bytes:
        """Read up to ``n`` bytes, short only at end of stream."""
        head, self._pushback = self._pushback[:n], self._pushback[n:]
        chunks = [head]
        missing = n - len(head)
        while missing > 0:
            chunk = self._source.read(missing)
            if not chunk:
                break
            chunks.append(chunk)
            missing -= len(chunk)
        return b"".join(chunks)

    def unread(self, data: bytes) -> None:
        self._pushback = data + self._pushback

    def _read_exact(self, n: int, what: str) -> bytes:
        data = self.read_raw(n)
        if len(data) < n:
            raise ZipFormatError(f"Truncated {what}")
        return data

    def entries(self) -> Iterator[Tuple[ArchiveEntry, EntryPayload]]:
        """
        Yield ``(entry, payload)`` pairs in stream order.

        Each payload must be used before advancing; whatever is left unread
        is drained and verified when the next entry is requested. For
        entries with a data descriptor the yielded sizes and CRC are zero;
        ``payload.entry`` holds the verified values once the next entry has
        been requested.

        Raises:
            ZipFormatError: On a malformed, encrypted or unsupported entry,
                or when a payload does not match its CRC or sizes
        """
        while True:
            raw_sig = self.read_raw(4)
            if not raw_sig:
                return
            if len(raw_sig) < 4:
                raise ZipFormatError("Truncated record signature")
            (signature,) = struct.unpack("<I", raw_sig)
            if signature in _END_SIGNATURES:
                return
            if signature != SIG_LOCAL_HEADER:
                raise ZipFormatError(f"Bad local header signature: 0x{signature:08x}")

            (
                _version,
                flags,
                method,
                _mtime,
                _mdate,
                crc,
                compressed_size,
                size,
                name_len,
                extra_len,
            ) = _LOCAL_HEADER.unpack(self._read_exact(_LOCAL_HEADER.size, "local header"))
            raw_name = self._read_exact(name_len, "entry name")
            extra = self._read_exact(extra_len, "extra field")
            try:
                name = raw_name.decode("utf-8" if flags & FLAG_UTF8 else "cp437")
            except UnicodeDecodeError as e:
                raise ZipFormatError(f"Undecodable entry name {raw_name!r}: {e}") from e

            if flags & FLAG_ENCRYPTED:
                raise ZipFormatError(f"Encrypted entries are not supported: {name}")
            if method not in (zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED):
                raise ZipFormatError(f"Unsupported compression method {method}: {name}")

            has_descriptor = bool(flags & FLAG_DATA_DESCRIPTOR)
            if has_descriptor and method == zipfile.ZIP_STORED:
                raise ZipFormatError(f"STORED entry with data descriptor cannot be streamed: {name}")

            size, compressed_size, zip64 = _zip64_sizes(extra, size, compressed_size)

            entry = ArchiveEntry(
                name=name,
                is_directory=name.endswith(DIRECTORY_SUFFIX),
                size=size,
                compressed_size=compressed_size,
                crc32=crc,
                method=method,
            )
            payload = EntryPayload(self, entry, None if has_descriptor else compressed_size)
            yield entry, payload

            payload.drain()
            if has_descriptor:
                crc, compressed_size, size = self._read_descriptor(zip64)
            _verify(payload, crc, compressed_size, size)
            payload.entry = entry._replace(size=size, compressed_size=compressed_size, crc32=crc)

    def _read_descriptor(self, zip64: bool) -> Tuple[int, int, int]:
        fmt = "<IQQ" if zip64 else "<III"
        body_len = struct.calcsize(fmt)
        head = self._read_exact(4, "data descriptor")
        if struct.unpack("<I", head)[0] == SIG_DATA_DESCRIPTOR:
            body = self._read_exact(body_len, "data descriptor")
        else:
            body = head + self._read_exact(body_len - 4, "data descriptor")
        crc, compressed_size, size = struct.unpack(fmt, body)
        return crc, compressed_size, size


def _zip64_sizes(extra: bytes, size: int, compressed_size: int) -> Tuple[int, int, bool]:
    offset = 0
    while offset + 4 <= len(extra):
        tag, length = struct.unpack_from("<HH", extra, offset)
        if tag == ZIP64_EXTRA_TAG:
            body = extra[offset + 4 : offset + 4 + length]
            pos = 0
            try:
                if size == ZIP64_MARKER:
                    (size,) = struct.unpack_from("<Q", body, pos)
                    pos += 8
                if compressed_size == ZIP64_MARKER:
                    (compressed_size,) = struct.unpack_from("<Q", body, pos)
            except struct.error as e:
                raise ZipFormatError("Truncated zip64 extra field") from e
            return size, compressed_size, True
        offset += 4 + length
    return size, compressed_size, False


def _verify(payload: EntryPayload, crc: int, compressed_size: int, size: int) -> None:
    if payload.crc != crc:
        raise ZipFormatError(
            f"CRC mismatch for entry {payload.name}: "
            f"expected {crc:08x}, got {payload.crc:08x}"
        )
    if payload.size != size or payload.compressed_read != compressed_size:
        raise ZipFormatError(f"Size mismatch for entry: {payload.name}")


def iter_zip_stream(source: BinaryIO) -> Iterator[Tuple[ArchiveEntry, EntryPayload]]:
    """Iterate the entries of a ZIP byte stream without seeking."""
    return ZipStreamReader(source).entries()
