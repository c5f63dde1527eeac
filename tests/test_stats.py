from mipsmachine.stats import Statistics


def test_counters_start_at_zero():
    stats = Statistics()
    assert stats.total_ticks == 0
    assert stats.idle_ticks == 0
    assert stats.num_disk_reads == 0
    assert stats.num_packets_recvd == 0


def test_report_on_fresh_statistics():
    report = Statistics().report()
    lines = report.splitlines()
    assert lines[0] == "Ticks: total 0, idle 0, system 0, user 0"
    assert lines[1] == "Disk I/O: reads 0, writes 0"
    assert lines[3] == "Paging: faults 0"
    assert len(lines) == 5
    assert report.endswith("\n")


def test_report_reflects_counters():
    stats = Statistics(total_ticks=1234, idle_ticks=56, system_ticks=700, user_ticks=478)
    stats.num_console_chars_read = 7
    stats.num_console_chars_written = 9
    stats.num_packets_recvd = 3
    stats.num_packets_sent = 4
    lines = stats.report().splitlines()
    assert lines[0] == "Ticks: total 1234, idle 56, system 700, user 478"
    assert lines[2] == "Console I/O: reads 7, writes 9"
    assert lines[4] == "Network I/O: packets received 3, sent 4"


def test_counters_are_mutable():
    stats = Statistics()
    stats.num_disk_reads += 2
    stats.num_disk_writes += 5
    assert "Disk I/O: reads 2, writes 5" in stats.report()