"""Performance counters kept by the simulated machine."""

from __future__ import annotations

from dataclasses import dataclass

# Relative cost of operations, in simulated ticks.
USER_TICK = 1  # advance for each user-level instruction
SYSTEM_TICK = 10  # advance each time interrupts are enabled
ROTATION_TIME = 500  # time the disk takes to rotate one sector
SEEK_TIME = 500  # time the disk takes to seek past one track
CONSOLE_TIME = 100  # time to read or write one character
NETWORK_TIME = 100  # time to send or receive one packet
TIMER_TICKS = 100  # average time between timer interrupts


@dataclass
class Statistics:
    """Counters for elapsed time and device activity, all starting at zero."""

    total_ticks: int = 0
    idle_ticks: int = 0
    system_ticks: int = 0
    user_ticks: int = 0
    num_disk_reads: int = 0
    num_disk_writes: int = 0
    num_console_chars_read: int = 0
    num_console_chars_written: int = 0
    num_page_faults: int = 0
    num_packets_sent: int = 0
    num_packets_recvd: int = 0

    def report(self) -> str:
        """Return the collected statistics as printable text."""
        return (
            f"Ticks: total {self.total_ticks}, idle {self.idle_ticks}, "
            f"system {self.system_ticks}, user {self.user_ticks}\n"
            f"Disk I/O: reads {self.num_disk_reads}, "
            f"writes {self.num_disk_writes}\n"
            f"Console I/O: reads {self.num_console_chars_read}, "
            f"writes {self.num_console_chars_written}\n"
            f"Paging: faults {self.num_page_faults}\n"
            f"Network I/O: packets received {self.num_packets_recvd}, "
            f"sent {self.num_packets_sent}\n"
        )