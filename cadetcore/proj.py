"""Perspective projection of table coordinates onto the screen."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from .maths import Vector2, Vector2i, Vector3, magnitude

Row = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Matrix4:
    """Row-major 4x4 matrix."""

    rows: Tuple[Row, Row, Row, Row]

    @classmethod
    def from_4x3(cls, values: Iterable[float]) -> "Matrix4":
        """Build a matrix from 12 row-major values; the last row becomes (0, 0, 0, 1)."""
        vals = tuple(float(v) for v in values)
        if len(vals) != 12:
            raise ValueError(f"expected 12 matrix values, got {len(vals)}")
        return cls((vals[0:4], vals[4:8], vals[8:12], (0.0, 0.0, 0.0, 1.0)))


def matrix_vector_multiply(mat: Matrix4, vec: Vector3) -> Vector3:
    """Apply the affine part of ``mat`` to ``vec``."""
    x, y, z = vec.x, vec.y, vec.z
    r0, r1, r2 = mat.rows[0], mat.rows[1], mat.rows[2]
    return Vector3(
        z * r0[2] + y * r0[1] + x * r0[0] + r0[3],
        z * r1[2] + y * r1[1] + x * r1[0] + r1[3],
        z * r2[2] + y * r2[1] + x * r2[0] + r2[3],
    )


class Projection:
    """Camera projection with a depth range for the z-buffer."""

    def __init__(
        self,
        mat4x3: Iterable[float],
        d: float,
        center_x: float,
        center_y: float,
        z_min: float,
        z_scaler: float,
    ) -> None:
        self.matrix = Matrix4.from_4x3(mat4x3)
        self.d = d
        self.center_x = center_x
        self.center_y = center_y
        self.z_scaler = z_scaler
        self.z_min = z_min
        self.z_max = float(0xFFFFFFFF) / z_scaler + z_min

    def z_distance(self, vec: Vector3) -> float:
        return magnitude(matrix_vector_multiply(self.matrix, vec))

    def xform_to_2d(self, vec: Vector2) -> Vector2i:
        """Project a table point to screen pixels; 2D points lie at z = 0."""
        if not isinstance(vec, Vector3):
            vec = Vector3(vec.x, vec.y, 0.0)
        proj_vec = matrix_vector_multiply(self.matrix, vec)
        proj_coef = 999999.88 if proj_vec.z == 0.0 else self.d / proj_vec.z
        return Vector2i(
            int(proj_vec.x * proj_coef + self.center_x),
            int(proj_vec.y * proj_coef + self.center_y),
        )

    def reverse_xform(self, vec: Vector2i) -> Vector3:
        """Recover the z = 0 table point that projects to the given pixel.

        Assumes the table camera: rows (1,0,0,0), (0,A,B,F), (0,-B,A,G).
        """
        a = self.matrix.rows[1][1]
        b = self.matrix.rows[1][2]
        f = self.matrix.rows[1][3]
        g = self.matrix.rows[2][3]
        x2 = (vec.x - self.center_x) / self.d
        y2 = (vec.y - self.center_y) / self.d
        z0 = 0.0

        y0 = (y2 * (a * z0 + g) - b * z0 - f) / (a + b * y2)
        x0 = x2 * (a * z0 - b * y0 + g)
        return Vector3(x0, y0, z0)

    def recenter(self, center_x: float, center_y: float) -> None:
        self.center_x = center_x
        self.center_y = center_y

    def normalize_depth(self, depth: float) -> int:
        """Map a depth to the 16-bit z-buffer range."""
        if depth < self.z_min:
            return 0
        depth_scaled = (depth - self.z_min) * self.z_scaler
        if depth_scaled <= self.z_max:
            return int(depth_scaled) & 0xFFFF
        return 0xFFFF