"""Simulated workstation hardware: clock and interrupts, timer, console, disk and an instruction decoder."""

__version__ = "0.1.0"
__all__ = ["stats", "interrupt", "instruction", "console", "timer", "disk"]