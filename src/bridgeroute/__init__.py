"""BridgeRoute - cross-chain bridge route planning."""

__version__ = "0.1.0"
