"""Geometry helpers: quaternions and homogeneous transforms."""
