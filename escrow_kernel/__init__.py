"""
Escrow Kernel - security deposit custody for residential leases.

A lease-scoped escrow state machine with:
- Exact-amount deposit funding
- Move-out inspection evidence by opaque reference
- Time-boxed damage claims and arbitrated resolution
- Automatic return after the claim window
- Atomic state transition and payout under a reentrancy guard
- Hash-chained lease event log
"""

__version__ = "0.1.0"
