"""
Alignment engine: anchor policy, the pure alignment calculation, and the
per-session coordinator that debounces recomputation and applies keyboard
adjustments.
"""
