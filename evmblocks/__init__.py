"""EVM instruction traits, gas cost tables and basic-block bytecode analysis."""

__version__ = "0.1.0"
__all__ = ["analysis", "traits"]