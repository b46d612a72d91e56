"""
Kernel layer.

`curvelaunch/kernels/python/` holds the small integer-only kernels the core
wires together: curve swaps, liquidity shares and checked u64 arithmetic.
"""
