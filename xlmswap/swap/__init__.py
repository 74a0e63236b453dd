"""
Swap coordination for xlmswap.

Runs the Stellar leg of atomic swaps and recovers revealed secrets.
"""

from .executor import SwapExecutor
from .extractor import SecretExtractor

__all__ = ["SwapExecutor", "SecretExtractor"]
