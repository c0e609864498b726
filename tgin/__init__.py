"""Sampling from the generalized inverse normal distribution truncated to a half-line."""
from __future__ import annotations

from tgin.exceptions import InvalidParameter, SamplingError, TGINError, UnsupportedAlgorithm
from tgin.inference.kernel import dtgin, ptgin, tgin_kernel
from tgin.inference.rectangle import BoundingRectangle, build_rectangle
from tgin.inference.rou import DrawResult, draw_one
from tgin.inference.samplers import TGINDraws, rtgin
from tgin.utils.typing import Algorithm, Sign, TGINParameters

__version__ = "0.1.0"

__all__ = [
    "Algorithm",
    "BoundingRectangle",
    "DrawResult",
    "InvalidParameter",
    "SamplingError",
    "Sign",
    "TGINDraws",
    "TGINError",
    "TGINParameters",
    "UnsupportedAlgorithm",
    "build_rectangle",
    "draw_one",
    "dtgin",
    "ptgin",
    "rtgin",
    "tgin_kernel",
]
