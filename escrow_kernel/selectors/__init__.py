"""Read-only query selectors returning DTOs."""

from escrow_kernel.selectors.base import BaseSelector
from escrow_kernel.selectors.lease_selector import LeaseSelector

__all__ = ["BaseSelector", "LeaseSelector"]
