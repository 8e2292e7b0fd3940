"""
Arcade Queue Service

Tracks live queue lengths for arcades, partitioned per chat group (tenant),
with optional read-only mirroring of another group's arcades.
"""

__version__ = "1.0.0"
