# mipsmachine

Simulated workstation hardware for teaching operating systems. The package
has a simulated clock that drives hardware interrupts. Three devices are
attached to it: a timer, a console and a disk. It also has a decoder and
disassembler for MIPS R2000/R3000 instruction words.

Simulated time moves forward only when code asks it to. This happens when
interrupts are re-enabled, when `Interrupt.one_tick()` is called, or when the
machine idles. Device behaviour is therefore deterministic and can be
repeated.

## Installation

```
pip install .
```

To install with the test dependencies and run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `mipsmachine.stats`

`Statistics` is a dataclass of counters. All of them start at zero:

- ticks: `total_ticks`, `idle_ticks`, `system_ticks`, `user_ticks`
- disk: `num_disk_reads`, `num_disk_writes`
- console: `num_console_chars_read`, `num_console_chars_written`
- other: `num_page_faults`, `num_packets_sent`, `num_packets_recvd`

`report()` returns the counters as a text summary.

The module also defines the timing constants used by the devices:
`USER_TICK`, `SYSTEM_TICK`, `ROTATION_TIME`, `SEEK_TIME`, `CONSOLE_TIME`,
`NETWORK_TIME` and `TIMER_TICKS`.

### `mipsmachine.interrupt`

- `CallBackObj` is the abstract base class for anything a device calls
  back. Subclasses implement `call_back()`.
- `IntStatus` (`OFF`, `ON`), `MachineStatus` (`IDLE`, `SYSTEM`, `USER`) and
  `IntType` (`TIMER`, `DISK`, `CONSOLE_WRITE`, `CONSOLE_READ`,
  `NETWORK_SEND`, `NETWORK_RECV`) are enums.
- `Interrupt(stats, on_yield=None, output=None)` models the interrupt
  controller and the clock:
  - `schedule(to_call, from_now, kind)` queues a `PendingInterrupt`.
    `from_now` must be positive; otherwise it raises `ValueError`.
  - `set_level(now)` changes the interrupt level and returns the old one.
    `enable()` is a shortcut for enabling. Turning interrupts from off to on
    advances time by one tick.
  - `one_tick()` advances time. It adds `SYSTEM_TICK` in system mode and
    `USER_TICK` otherwise, then fires any interrupts that are due.
  - `check_if_due(advance_clock)` fires the interrupts that are due and
    returns `True` if any fired. Interrupts must be off when it is called.
  - `yield_on_return()` may only be called inside a handler. It makes
    `one_tick()` call `on_yield` after the handlers return.
  - `idle()` jumps the clock forward to the next pending interrupt and
    fires it. If nothing is pending, it halts.
  - `halt()` writes the statistics to `output` (standard output by
    default) and raises `MachineHalted`.
  - `dump_state()` writes the level and the pending interrupts.
  - Read-only properties: `level`, `in_handler` and `pending`.
  - If the `machine` attribute is set, `machine.delayed_load(0, 0)` is
    called before any handlers run.

### `mipsmachine.instruction`

`decode(value)` turns a 32-bit word into a frozen `Instruction`. The
instruction has these fields: `value`, `op_code` (an `OpCode`), `rs`, `rt`,
`rd` and `extra`. For I-format instructions, `extra` holds the
sign-extended immediate. For J-format it holds the jump target, and for
R-format the shift amount. `Instruction.disassemble()` (also `str()`)
renders the instruction as assembly text.

```python
from mipsmachine.instruction import decode, OpCode

instr = decode(0x2008000A)
assert instr.op_code is OpCode.ADDI
print(instr.disassemble())  # ADDI r8,r0,10
```

### `mipsmachine.timer`

`Timer(interrupt, callback, randomize=False, rng=None)` calls `callback`
every `TIMER_TICKS` ticks. With `randomize` set, each delay is drawn from
1 to `2 * TIMER_TICKS` using `rng`, a `random.Random`. After `disable()` the
timer schedules no further interrupts.

### `mipsmachine.console`

- `ConsoleInput(interrupt, stats, callback, read_file=None)` polls a file,
  or standard input if no file is given, once every `CONSOLE_TIME` ticks.
  When a character arrives it notifies `callback`. `get_char()` returns
  that character as a one-character string, or `None` if there is none.
  At end of input, polling stops.
- `ConsoleOutput(interrupt, stats, callback, write_file=None)` writes to a
  file, or standard output if no file is given.
  - `put_char(ch)` writes one character.
  - `callback` is notified `CONSOLE_TIME` ticks later. Until then, `busy`
    is true and a second `put_char` raises `RuntimeError`.

Both classes are context managers. `close()` closes only files they opened
themselves.

### `mipsmachine.disk`

`Disk(path, interrupt, stats, callback)` is a single-surface disk with
`NUM_SECTORS` sectors of `SECTOR_SIZE` bytes. It is stored in a host file
that begins with a magic number. If the file does not exist, it is created.
If an existing file lacks the magic number, `DiskError` is raised.

- `read_request(sector)` returns the sector's bytes.
- `write_request(sector, data)` takes exactly `SECTOR_SIZE` bytes.
- Each request schedules a completion interrupt. Its latency comes from
  `compute_latency(sector, writing)`, which models seek time, rotational
  delay and a track buffer for reads.
- Only one request may be in progress at a time: `active` is true until
  `call_back()` runs.
- `Disk` is a context manager.

## Example

```python
from mipsmachine.stats import Statistics
from mipsmachine.interrupt import CallBackObj, Interrupt, IntType, MachineHalted

class Bell(CallBackObj):
    def __init__(self):
        self.rung = 0

    def call_back(self):
        self.rung += 1

stats = Statistics()
interrupt = Interrupt(stats)
bell = Bell()
interrupt.schedule(bell, 50, IntType.TIMER)
interrupt.idle()  # advances the clock to tick 50 and rings the bell
print(bell.rung, stats.total_ticks)  # 1 50

try:
    interrupt.idle()  # nothing pending: prints statistics and halts
except MachineHalted:
    pass
```

## What this package does not do

- It decodes and disassembles instructions but does not execute them.
- It has no CPU registers, main memory or virtual-to-physical address
  translation, and so it cannot run user programs.
- The `NETWORK_SEND` and `NETWORK_RECV` interrupt kinds and the network
  counters exist, but there is no network device.
- There is no command-line program. The package is a library.