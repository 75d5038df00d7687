"""repcoach: real-time repetition and movement-quality feedback.

This package turns a per-frame stream of body landmarks into repetition
phase events and debounced pass/fail feedback for a single exercise. The
stateful core lives in ``repdetect`` (phase detection), ``signals``
(feature aggregation) and ``quality`` (rule evaluation); ``session`` wires
them together in the order a live coaching loop calls them.
"""

__all__ = [
    "cli",
    "config",
    "session",
]

__version__ = "0.1.0"
