import io
import struct

import pytest

from mipsmachine.disk import (
    DISK_SIZE,
    MAGIC_NUMBER,
    NUM_SECTORS,
    SECTOR_SIZE,
    SECTORS_PER_TRACK,
    Disk,
    DiskError,
)
from mipsmachine.interrupt import CallBackObj, Interrupt
from mipsmachine.stats import ROTATION_TIME, SEEK_TIME, Statistics


class Recorder(CallBackObj):
    def __init__(self):
        self.calls = 0

    def call_back(self):
        self.calls += 1


@pytest.fixture
def env(tmp_path):
    stats = Statistics()
    interrupt = Interrupt(stats, output=io.StringIO())
    recorder = Recorder()
    path = tmp_path / "DISK_0"
    disk = Disk(path, interrupt, stats, recorder)
    yield disk, interrupt, stats, recorder, path
    disk.close()


def _sector(fill):
    return bytes([fill]) * SECTOR_SIZE


def test_new_disk_file_has_magic_and_full_size(env):
    _, _, _, _, path = env
    raw = path.read_bytes()
    assert len(raw) == DISK_SIZE
    assert raw[:4] == struct.pack("<I", 0x456789AB)
    assert MAGIC_NUMBER == 0x456789AB


def test_fresh_sector_reads_as_zeros(env):
    disk, _, _, _, _ = env
    assert disk.read_request(7) == bytes(SECTOR_SIZE)


def test_write_then_read_round_trip(env):
    disk, interrupt, stats, recorder, _ = env
    data = bytes(range(SECTOR_SIZE))
    disk.write_request(3, data)
    assert disk.active
    interrupt.idle()
    assert not disk.active
    assert recorder.calls == 1
    assert disk.read_request(3) == data
    interrupt.idle()
    assert recorder.calls == 2
    assert stats.num_disk_writes == 1
    assert stats.num_disk_reads == 1


def test_write_lands_at_sector_offset_in_file(env):
    disk, _, _, _, path = env
    disk.write_request(2, _sector(0x5A))
    raw = path.read_bytes()
    start = 4 + 2 * SECTOR_SIZE
    assert raw[start:start + SECTOR_SIZE] == _sector(0x5A)
    assert raw[start - 1] == 0


def test_contents_persist_across_reopen(tmp_path):
    stats = Statistics()
    interrupt = Interrupt(stats, output=io.StringIO())
    path = tmp_path / "disk"
    with Disk(path, interrupt, stats, Recorder()) as disk:
        disk.write_request(NUM_SECTORS - 1, _sector(9))
    with Disk(path, interrupt, stats, Recorder()) as disk:
        assert disk.read_request(NUM_SECTORS - 1) == _sector(9)


def test_file_without_magic_is_rejected(tmp_path):
    path = tmp_path / "notadisk"
    path.write_bytes(b"\x00" * 64)
    stats = Statistics()
    interrupt = Interrupt(stats, output=io.StringIO())
    with pytest.raises(DiskError):
        Disk(path, interrupt, stats, Recorder())
    assert path.read_bytes() == b"\x00" * 64


def test_second_request_while_active_is_refused(env):
    disk, _, _, _, _ = env
    disk.read_request(0)
    with pytest.raises(DiskError):
        disk.read_request(1)
    with pytest.raises(DiskError):
        disk.write_request(1, _sector(1))


@pytest.mark.parametrize("sector", [-1, NUM_SECTORS])
def test_sector_out_of_range(env, sector):
    disk, _, stats, _, _ = env
    with pytest.raises(ValueError):
        disk.read_request(sector)
    with pytest.raises(ValueError):
        disk.write_request(sector, _sector(0))
    assert stats.num_disk_reads == 0
    assert not disk.active


def test_write_requires_whole_sector(env):
    disk, _, _, _, _ = env
    with pytest.raises(ValueError):
        disk.write_request(0, b"short")


def test_latency_at_head_position_is_one_transfer(env):
    disk, _, _, _, _ = env
    assert disk.compute_latency(0, True) == ROTATION_TIME
    assert disk.compute_latency(0, False) == ROTATION_TIME


def test_latency_does_not_change_state(env):
    disk, _, _, _, _ = env
    first = [disk.compute_latency(s, False) for s in range(0, NUM_SECTORS, 37)]
    second = [disk.compute_latency(s, False) for s in range(0, NUM_SECTORS, 37)]
    assert first == second


@pytest.mark.parametrize("track", [1, 5, 31])
def test_latency_includes_seek_across_tracks(env, track):
    disk, _, _, _, _ = env
    sector = track * SECTORS_PER_TRACK
    latency = disk.compute_latency(sector, True)
    assert latency >= track * SEEK_TIME + ROTATION_TIME
    assert latency < track * SEEK_TIME + (SECTORS_PER_TRACK + 1) * ROTATION_TIME


def test_track_buffer_speeds_up_reads_on_current_track(env):
    disk, _, stats, _, _ = env
    stats.total_ticks = 2 * SECTORS_PER_TRACK * ROTATION_TIME
    read_latency = disk.compute_latency(5, False)
    write_latency = disk.compute_latency(5, True)
    assert read_latency == ROTATION_TIME
    assert write_latency > read_latency


def test_latency_is_at_least_one_transfer_everywhere(env):
    disk, _, _, _, _ = env
    for sector in range(0, NUM_SECTORS, 13):
        assert disk.compute_latency(sector, False) >= ROTATION_TIME
        assert disk.compute_latency(sector, True) >= ROTATION_TIME


def test_completion_fires_after_latency(env):
    disk, interrupt, stats, recorder, _ = env
    latency = disk.compute_latency(SECTORS_PER_TRACK * 2, True)
    disk.write_request(SECTORS_PER_TRACK * 2, _sector(3))
    assert interrupt.pending[0].when == latency
    interrupt.idle()
    assert stats.total_ticks == latency
    assert recorder.calls == 1


def test_close_closes_file(tmp_path):
    stats = Statistics()
    interrupt = Interrupt(stats, output=io.StringIO())
    disk = Disk(tmp_path / "d", interrupt, stats, Recorder())
    disk.close()
    with pytest.raises(ValueError):
        disk.read_request(0)