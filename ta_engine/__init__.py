"""Technical indicator and chart pattern computation core.

Pure, synchronous computations over OHLCV arrays: rolling statistics,
oscillators, volatility bands, volume indicators, extremum detection,
divergence detection and geometric chart pattern recognition.
"""

__version__ = "0.1.0"
