"""Decoder for Xiaomi MiBeacon BLE advertisements."""

__version__ = "0.1.0"
