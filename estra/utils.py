# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Utility functions to generate and assess rigid transformations.
"""

import torch
import numpy as np
import estra.mappings

def is_orthonormal_matrix(R, epsilon=1e-7):
    r"""
    Test if matrices are orthonormal.

    Args:
        R (...xDxD tensor): batch of square matrices.
        epsilon: tolerance threshold.
    Returns:
        boolean.
    """
    assert R.shape[-1] == R.shape[-2], "Input should be a ...xDxD batch of matrices."
    D = R.shape[-1]
    errors = torch.norm(R @ R.transpose(-1, -2) - torch.eye(D, device=R.device, dtype=R.dtype), dim=[-2,-1])
    return bool(torch.all(errors < epsilon))

def is_rotation_matrix(R, epsilon=1e-7):
    r"""
    Test if matrices are rotation matrices (orthonormal, with a positive determinant).

    Args:
        R (...xDxD tensor): batch of square matrices.
        epsilon: tolerance threshold.
    Returns:
        boolean.
    """
    if not is_orthonormal_matrix(R, epsilon):
        return False
    return bool(torch.all(torch.det(R) > 0))

def is_rigid_transformation(T, epsilon=1e-7):
    r"""
    Test if a homogeneous 4x4 matrix represents a rigid transformation.
    """
    if T.shape[-2:] != (4, 4):
        return False
    last_row = torch.tensor([0.0, 0.0, 0.0, 1.0], dtype=T.dtype, device=T.device)
    return is_rotation_matrix(T[...,:3,:3], epsilon) and bool(torch.all(T[...,3,:] == last_row))

def random_rotmat(size=tuple(), dtype=torch.float, device=None):
    r"""
    Generates a batch of random 3x3 rotation matrices, uniformly sampled according to the usual rotation metric.

    Args:
        size (tuple or int): batch size. Use for example ``tuple()`` to generate a single element, and ``(5,2)`` to generate a 5x2 batch.
    Returns:
        batch of rotation matrices (size x 3x3 tensor).
    Note:
        Special Procrustes orthonormalization of a matrix with i.i.d. Gaussian entries is uniformly distributed over :math:`SO(3)`.
    """
    if type(size) == int:
        size = (size,)
    M = torch.randn(tuple(size) + (3, 3), dtype=dtype, device=device)
    return estra.mappings.special_procrustes(M)

_ONE_OVER_2SQRT2 = 1.0 / (2 * np.sqrt(2))
def rotmat_geodesic_distance(R1, R2, clamping=1.0):
    r"""
    Returns the angular distance alpha between a pair of rotation matrices.
    Based on the equality :math:`|R_2 - R_1|_F = 2 \sqrt{2} sin(alpha/2)`.

    Args:
        R1, R2 (...x3x3 tensor): batch of 3x3 rotation matrices.
        clamping: clamping value applied to the input of :func:`torch.asin()`.
    Returns:
        batch of angles in radians (... tensor).
    """
    return 2.0 * torch.asin(torch.clamp_max(torch.norm(R2 - R1, dim=[-1, -2]) * _ONE_OVER_2SQRT2, clamping))
