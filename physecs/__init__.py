"""Rigid-body physics building blocks: shapes, mass properties, collision queries and joints."""

__version__ = "0.1.0"

__all__ = [
    "shapes",
    "trimesh",
    "massutil",
    "geomutil",
    "gjk",
    "epa",
    "overlap",
    "raycast",
    "contacts",
    "joint",
    "joints_basic",
    "joints_driven",
]