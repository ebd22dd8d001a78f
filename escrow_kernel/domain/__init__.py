"""Pure domain layer of the escrow kernel: value objects and rules, zero I/O."""
