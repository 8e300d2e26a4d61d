"""
cpu8 — Machine / Debugger Configuration
=======================================

Fixed machine geometry plus the debugger's tunables. Everything that
sizes a buffer or a batch lives here so the engine, history and session
agree on the same numbers.
"""

# =============================================================================
#  MACHINE GEOMETRY (fixed: the ISA assumes an 8-bit address bus)
# =============================================================================
MEMORY_SIZE = 256         # bytes, addresses wrap mod 256
ADDR_MASK = 0xFF
BYTE_MASK = 0xFF
STACK_TOP = 0xFF          # SP after reset, stack grows downward
DEFAULT_START = 0x00      # load address for assembled images


# =============================================================================
#  TRACE / HISTORY BUFFERS
# =============================================================================
TRACE_LIMIT = 200         # trace ring, oldest line dropped first
HISTORY_CAPACITY = 100    # step-back snapshots kept


# =============================================================================
#  RUN CADENCE
# =============================================================================
STEPS_PER_BATCH = 5       # engine steps per run_batch() call
DEFAULT_MAX_STEPS = 10_000  # run_until_stop() budget before TIMEOUT


# =============================================================================
#  INSPECTION TAILS (what a front end shows by default)
# =============================================================================
TRACE_TAIL = 80
OUTPUT_TAIL = 50
