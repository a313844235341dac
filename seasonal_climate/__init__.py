"""
Seasonal climate package.

Annual climate sampling over the surface grid: temperature, precipitation,
snowfall, sea-ice and snow-cover windows, and river flow.
"""

from .noise_fields import NoiseField, MoistureNoise
from .rivers import compute_runoff, compute_river_flow, route_receivers
from .sampler import (ClimateState, SeasonalClimateSampler, build_hadley_table, freeze_windows,
                      hadley_value, humidity_ramp, is_in_range, precipitation_factor)

__all__ = [
    'NoiseField',
    'MoistureNoise',
    'compute_runoff',
    'compute_river_flow',
    'route_receivers',
    'ClimateState',
    'SeasonalClimateSampler',
    'build_hadley_table',
    'freeze_windows',
    'hadley_value',
    'humidity_ramp',
    'is_in_range',
    'precipitation_factor',
]
