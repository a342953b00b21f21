"""cubespin - touch driven 3D orientation control."""

__version__ = "0.1.0"
