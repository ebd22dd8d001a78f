"""Imperative-shell services of the escrow kernel.  Services flush, never commit."""
