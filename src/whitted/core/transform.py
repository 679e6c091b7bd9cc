"""Affine transform construction for objects, patterns and the camera.

Transforms are built on the host as 4x4 NumPy arrays and only their
inverses are uploaded to Taichi fields. All constructors follow the
column-vector convention (p' = M @ p), so composing "scale, then rotate,
then translate" by hand reads right to left. `chain` takes the steps in
the order they are applied instead:

Example:
    >>> import math
    >>> from src.whitted.core.transform import chain, rotation_x, scaling, translation
    >>> m = chain(rotation_x(math.pi / 2), scaling(5, 5, 5), translation(10, 5, 7))
    >>> m @ [1.0, 0.0, 1.0, 1.0]  # -> [15, 0, 7, 1]
"""

import math
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

Matrix4 = npt.NDArray[np.float64]

# Smallest |det| accepted as invertible
SINGULAR_TOLERANCE = 1e-12


def identity() -> Matrix4:
    """Return the 4x4 identity matrix."""
    return np.eye(4, dtype=np.float64)


def translation(x: float, y: float, z: float) -> Matrix4:
    """Return a matrix that moves points by (x, y, z) and leaves vectors alone."""
    m = identity()
    m[0, 3] = x
    m[1, 3] = y
    m[2, 3] = z
    return m


def scaling(x: float, y: float, z: float) -> Matrix4:
    """Return a matrix that scales each axis independently."""
    return np.diag([float(x), float(y), float(z), 1.0])


def rotation_x(radians: float) -> Matrix4:
    """Return a left-handed rotation about the x axis."""
    c, s = math.cos(radians), math.sin(radians)
    m = identity()
    m[1, 1] = c
    m[1, 2] = -s
    m[2, 1] = s
    m[2, 2] = c
    return m


def rotation_y(radians: float) -> Matrix4:
    """Return a left-handed rotation about the y axis."""
    c, s = math.cos(radians), math.sin(radians)
    m = identity()
    m[0, 0] = c
    m[0, 2] = s
    m[2, 0] = -s
    m[2, 2] = c
    return m


def rotation_z(radians: float) -> Matrix4:
    """Return a left-handed rotation about the z axis."""
    c, s = math.cos(radians), math.sin(radians)
    m = identity()
    m[0, 0] = c
    m[0, 1] = -s
    m[1, 0] = s
    m[1, 1] = c
    return m


def shearing(xy: float, xz: float, yx: float, yz: float, zx: float, zy: float) -> Matrix4:
    """Return a shearing matrix.

    Each argument moves one component in proportion to another, e.g. `xy`
    moves x in proportion to y.
    """
    m = identity()
    m[0, 1] = xy
    m[0, 2] = xz
    m[1, 0] = yx
    m[1, 2] = yz
    m[2, 0] = zx
    m[2, 1] = zy
    return m


def view_transform(
    from_point: Sequence[float],
    to_point: Sequence[float],
    up: Sequence[float],
) -> Matrix4:
    """Build the world-to-camera matrix for an eye looking from one point to another.

    Args:
        from_point: Eye position in world space.
        to_point: Point the eye looks at.
        up: Approximate up direction; it does not need to be orthogonal to
            the view direction or normalized.

    Returns:
        The view matrix. The camera looks down its local -z axis.

    Raises:
        ValueError: If the eye and target coincide or up is parallel to
            the view direction.
    """
    eye = np.asarray(from_point, dtype=np.float64)
    forward = np.asarray(to_point, dtype=np.float64) - eye
    forward_len = np.linalg.norm(forward)
    up_len = np.linalg.norm(up)
    if forward_len == 0.0 or up_len == 0.0:
        raise ValueError("view_transform requires distinct from/to points and a non-zero up vector")
    forward = forward / forward_len
    left = np.cross(forward, np.asarray(up, dtype=np.float64) / up_len)
    if np.linalg.norm(left) < SINGULAR_TOLERANCE:
        raise ValueError("view_transform up vector is parallel to the view direction")
    true_up = np.cross(left, forward)

    orientation = identity()
    orientation[0, :3] = left
    orientation[1, :3] = true_up
    orientation[2, :3] = -forward
    return orientation @ translation(-eye[0], -eye[1], -eye[2])


def chain(*transforms: Matrix4) -> Matrix4:
    """Compose transforms in application order.

    `chain(a, b, c)` applies a first and c last, i.e. returns c @ b @ a.
    With no arguments the identity is returned.
    """
    result = identity()
    for m in transforms:
        result = np.asarray(m, dtype=np.float64) @ result
    return result


def as_matrix(transform: Matrix4 | Sequence[Sequence[float]] | None) -> Matrix4:
    """Coerce a transform (or None for identity) to a 4x4 float64 array.

    Raises:
        ValueError: If the input is not 4x4.
    """
    if transform is None:
        return identity()
    m = np.array(transform, dtype=np.float64)
    if m.shape != (4, 4):
        raise ValueError(f"Transform must be a 4x4 matrix, got shape {m.shape}")
    return m


def inverse(transform: Matrix4) -> Matrix4:
    """Invert a transform, rejecting singular matrices.

    Shapes, patterns and the camera all store inverses, so a degenerate
    transform (for example a zero scale) is reported when the scene is
    built rather than surfacing as NaNs in the image.

    Raises:
        ValueError: If the matrix is not invertible.
    """
    m = as_matrix(transform)
    det = np.linalg.det(m)
    if not np.isfinite(det) or abs(det) < SINGULAR_TOLERANCE:
        raise ValueError(f"Transform is not invertible (determinant {det:g})")
    return np.linalg.inv(m)
