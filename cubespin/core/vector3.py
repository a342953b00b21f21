"""Small mutable 3D vector used for rotation axes."""
from __future__ import annotations

import math

import numpy as np


class Vector3:
    """
    3-component vector.

    Touch code only fills x and y (a screen delta), z stays 0.
    Instances are mutable so the controller can reuse them between frames.
    """
    __slots__ = ("x", "y", "z")

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> None:
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    def __repr__(self) -> str:
        return f"Vector3({self.x:.4f}, {self.y:.4f}, {self.z:.4f})"

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector3):
            return NotImplemented
        return (self.x, self.y, self.z) == (other.x, other.y, other.z)

    __hash__ = None

    def set(self, x: float, y: float, z: float = 0.0) -> Vector3:
        """Overwrite the components in place."""
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)
        return self

    def copy(self) -> Vector3:
        return Vector3(self.x, self.y, self.z)

    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def normalise(self) -> Vector3:
        """
        Scale to unit length in place.

        A zero vector stays zero, so it contributes an identity rotation.
        :return: self
        """
        m = self.magnitude()
        if m == 0:
            return self
        self.x /= m
        self.y /= m
        self.z /= m
        return self

    def normalised(self) -> Vector3:
        return self.copy().normalise()

    def dot(self, other: Vector3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vector3) -> Vector3:
        return Vector3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)
