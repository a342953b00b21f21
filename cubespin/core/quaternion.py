"""Rotation quaternion with in-place composition."""
from __future__ import annotations

import math

import numpy as np

from cubespin.core.vector3 import Vector3


class Quaternion:
    """
    Quaternion (w, x, y, z) representing a rotation.

    Composition keeps the base rotation on the left:
        base.mul_this(delta)  ->  base = base * delta
    """
    __slots__ = ("w", "x", "y", "z")

    def __init__(self, w: float = 1.0, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> None:
        self.w = float(w)
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    @classmethod
    def identity(cls) -> Quaternion:
        return cls(1.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_axis_angle(cls, axis: Vector3, angle: float) -> Quaternion:
        """
        Build a rotation of `angle` radians about `axis`.

        :param axis: Rotation axis, expected to be unit length already
        :param angle: Angle in radians
        """
        return cls().set_axis_angle(axis, angle)

    def __repr__(self) -> str:
        return f"Quaternion(w={self.w:.6f}, x={self.x:.6f}, y={self.y:.6f}, z={self.z:.6f})"

    def __iter__(self):
        yield self.w
        yield self.x
        yield self.y
        yield self.z

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quaternion):
            return NotImplemented
        return tuple(self) == tuple(other)

    __hash__ = None

    def __mul__(self, other: Quaternion) -> Quaternion:
        if not isinstance(other, Quaternion):
            return NotImplemented
        return self.copy().mul_this(other)

    def set(self, other: Quaternion) -> Quaternion:
        """Copy the components of `other` into this quaternion."""
        self.w = other.w
        self.x = other.x
        self.y = other.y
        self.z = other.z
        return self

    def set_axis_angle(self, axis: Vector3, angle: float) -> Quaternion:
        """Set from a unit axis and an angle in radians. A zero axis gives the identity."""
        if axis.magnitude() == 0:
            self.w, self.x, self.y, self.z = 1.0, 0.0, 0.0, 0.0
            return self
        half = angle / 2.0
        s = math.sin(half)
        self.w = math.cos(half)
        self.x = axis.x * s
        self.y = axis.y * s
        self.z = axis.z * s
        return self

    def copy(self) -> Quaternion:
        return Quaternion(self.w, self.x, self.y, self.z)

    def mul_this(self, other: Quaternion) -> Quaternion:
        """
        In-place Hamilton product, self = self * other.

        :param other: Right operand (the incremental rotation)
        :return: self
        """
        w1, x1, y1, z1 = self.w, self.x, self.y, self.z
        w2, x2, y2, z2 = other.w, other.x, other.y, other.z
        self.w = w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2
        self.x = w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2
        self.y = w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2
        self.z = w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2
        return self

    def norm(self) -> float:
        return math.sqrt(self.w * self.w + self.x * self.x + self.y * self.y + self.z * self.z)

    def normalised(self) -> Quaternion:
        n = self.norm()
        if n == 0:
            return Quaternion.identity()
        return Quaternion(self.w / n, self.x / n, self.y / n, self.z / n)

    def conjugate(self) -> Quaternion:
        return Quaternion(self.w, -self.x, -self.y, -self.z)

    @property
    def angle(self) -> float:
        """Rotation angle in radians, in [0, 2*pi]."""
        return 2.0 * math.acos(max(-1.0, min(1.0, self.w)))

    @property
    def axis(self) -> Vector3:
        """Rotation axis; zero vector for the identity."""
        return Vector3(self.x, self.y, self.z).normalise()

    def rotate(self, v: Vector3) -> Vector3:
        """Rotate a vector by this quaternion (q * v * q^-1)."""
        p = Quaternion(0.0, v.x, v.y, v.z)
        r = self * p * self.conjugate()
        return Vector3(r.x, r.y, r.z)

    def to_matrix(self) -> np.ndarray:
        """
        4x4 homogeneous rotation matrix for the render side.

        :return: numpy array, row-major
        """
        w, x, y, z = self.w, self.x, self.y, self.z
        xx, yy, zz = x * x, y * y, z * z
        xy, xz, yz = x * y, x * z, y * z
        wx, wy, wz = w * x, w * y, w * z

        m = np.identity(4, dtype=np.float64)
        m[0, 0] = 1 - 2 * (yy + zz)
        m[0, 1] = 2 * (xy - wz)
        m[0, 2] = 2 * (xz + wy)

        m[1, 0] = 2 * (xy + wz)
        m[1, 1] = 1 - 2 * (xx + zz)
        m[1, 2] = 2 * (yz - wx)

        m[2, 0] = 2 * (xz - wy)
        m[2, 1] = 2 * (yz + wx)
        m[2, 2] = 1 - 2 * (xx + yy)
        return m

    def isclose(self, other: Quaternion, abs_tol: float = 1e-9) -> bool:
        return all(math.isclose(a, b, abs_tol=abs_tol) for a, b in zip(self, other))
