"""Simulated physical disk stored in an ordinary host file."""

from __future__ import annotations

import logging
import os
import struct
from typing import BinaryIO, Tuple, Union

from mipsmachine.interrupt import CallBackObj, Interrupt, IntType
from mipsmachine.stats import ROTATION_TIME, SEEK_TIME, Statistics

logger = logging.getLogger(__name__)

SECTOR_SIZE = 128  # bytes per disk sector
SECTORS_PER_TRACK = 32  # sectors per disk track
NUM_TRACKS = 32  # tracks per disk
NUM_SECTORS = SECTORS_PER_TRACK * NUM_TRACKS  # total sectors per disk

# A magic number at the front of the file makes it less likely that a
# useful file is mistaken for a disk and overwritten.
MAGIC_NUMBER = 0x456789AB
MAGIC_SIZE = 4
DISK_SIZE = MAGIC_SIZE + NUM_SECTORS * SECTOR_SIZE

_MAGIC = struct.Struct("<I")
_SECTOR_WORDS = struct.Struct(f"<{SECTOR_SIZE // 4}i")

PathLike = Union[str, "os.PathLike[str]"]


class DiskError(Exception):
    """Raised when the disk file is not a disk or a request is refused."""


class Disk(CallBackObj):
    """A single-surface disk that accepts one sector request at a time.

    Requests are carried out on the host file at once; ``callback`` is
    called when the simulated request completes, after a delay made of
    seek time, rotational delay and transfer time.  The disk keeps a track
    buffer, so reads from the current track can complete sooner.
    """

    def __init__(
        self,
        path: PathLike,
        interrupt: Interrupt,
        stats: Statistics,
        callback: CallBackObj,
    ) -> None:
        logger.debug("Initializing the disk.")
        self._interrupt = interrupt
        self._stats = stats
        self._callback = callback
        self._last_sector = 0
        self._buffer_init = 0
        self._active = False
        self._file = self._open(path)

    @staticmethod
    def _open(path: PathLike) -> BinaryIO:
        if os.path.exists(path):
            file = open(path, "r+b")
            header = file.read(MAGIC_SIZE)
            if len(header) != MAGIC_SIZE or _MAGIC.unpack(header)[0] != MAGIC_NUMBER:
                file.close()
                raise DiskError(f"{os.fspath(path)!r} is not a simulated disk")
            return file
        file = open(path, "w+b")
        file.write(_MAGIC.pack(MAGIC_NUMBER))
        # Write at the very end so reads of any sector do not hit end of file.
        file.seek(DISK_SIZE - 4)
        file.write(bytes(4))
        file.flush()
        return file

    @property
    def active(self) -> bool:
        """True while a request is in progress."""
        return self._active

    def _check_request(self, sector_number: int) -> None:
        if self._active:
            raise DiskError("only one disk request may be in progress at a time")
        if not 0 <= sector_number < NUM_SECTORS:
            raise ValueError(f"sector {sector_number} out of range")

    def _start(self, sector_number: int, ticks: int) -> None:
        self._active = True
        self._update_last(sector_number)
        self._interrupt.schedule(self, ticks, IntType.DISK)

    @staticmethod
    def _log_sector(writing: bool, sector: int, data: bytes) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            action = "Writing" if writing else "Reading"
            words = " ".join(str(w) for w in _SECTOR_WORDS.unpack(data))
            logger.debug("%s sector: %d\n%s", action, sector, words)

    def read_request(self, sector_number: int) -> bytes:
        """Read one sector and return its contents.

        The completion interrupt is scheduled for later.
        """
        ticks = self.compute_latency(sector_number, False)
        self._check_request(sector_number)
        logger.debug("Reading from sector %d", sector_number)
        self._file.seek(SECTOR_SIZE * sector_number + MAGIC_SIZE)
        data = self._file.read(SECTOR_SIZE)
        if len(data) != SECTOR_SIZE:
            raise DiskError(f"short read from sector {sector_number}")
        self._log_sector(False, sector_number, data)
        self._start(sector_number, ticks)
        self._stats.num_disk_reads += 1
        return data

    def write_request(self, sector_number: int, data: bytes) -> None:
        """Write one whole sector; the completion interrupt comes later."""
        data = bytes(data)
        if len(data) != SECTOR_SIZE:
            raise ValueError(f"a sector write takes exactly {SECTOR_SIZE} bytes")
        ticks = self.compute_latency(sector_number, True)
        self._check_request(sector_number)
        logger.debug("Writing to sector %d", sector_number)
        self._file.seek(SECTOR_SIZE * sector_number + MAGIC_SIZE)
        self._file.write(data)
        self._file.flush()
        self._log_sector(True, sector_number, data)
        self._start(sector_number, ticks)
        self._stats.num_disk_writes += 1

    def call_back(self) -> None:
        """Finish the current request and notify the owner."""
        self._active = False
        self._callback.call_back()

    def _time_to_seek(self, new_sector: int) -> Tuple[int, int]:
        """Return (seek time, delay until the next sector boundary)."""
        new_track = new_sector // SECTORS_PER_TRACK
        old_track = self._last_sector // SECTORS_PER_TRACK
        seek = abs(new_track - old_track) * SEEK_TIME
        over = (self._stats.total_ticks + seek) % ROTATION_TIME
        rotation = ROTATION_TIME - over if over > 0 else 0
        return seek, rotation

    @staticmethod
    def _modulo_diff(to: int, frm: int) -> int:
        """Number of sectors of rotational delay from ``frm`` to ``to``."""
        return ((to % SECTORS_PER_TRACK) - (frm % SECTORS_PER_TRACK)) % SECTORS_PER_TRACK

    def compute_latency(self, new_sector: int, writing: bool) -> int:
        """Return the ticks a request for ``new_sector`` would take now."""
        seek, rotation = self._time_to_seek(new_sector)
        time_after = self._stats.total_ticks + seek + rotation

        if (
            not writing
            and seek == 0
            and (time_after - self._buffer_init) // ROTATION_TIME
            > self._modulo_diff(new_sector, self._buffer_init // ROTATION_TIME)
        ):
            logger.debug("Request latency = %d", ROTATION_TIME)
            return ROTATION_TIME

        rotation += self._modulo_diff(new_sector, time_after // ROTATION_TIME) * ROTATION_TIME
        latency = seek + rotation + ROTATION_TIME
        logger.debug("Request latency = %d", latency)
        return latency

    def _update_last(self, new_sector: int) -> None:
        seek, rotation = self._time_to_seek(new_sector)
        if seek != 0:
            self._buffer_init = self._stats.total_ticks + seek + rotation
        self._last_sector = new_sector
        logger.debug(
            "Updating last sector = %d , %d", self._last_sector, self._buffer_init
        )

    def close(self) -> None:
        """Close the file backing the disk."""
        self._file.close()

    def __enter__(self) -> "Disk":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()