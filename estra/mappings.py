# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Mappings between rotation representations used by the estimation kernels.
"""

import torch
import estra.internal

def special_procrustes(M, return_singular_values : bool = False):
    r"""
    Returns the rotation matrix :math:`R` minimizing Frobenius norm :math:`\| M - R \|_F`.

    Args:
        M (...xNxN tensor): batch of square matrices.
        return_singular_values (bool): if True, also return the singular values of :math:`M`,
            with the sign of the smallest one flipped when a reflection had to be corrected.
    Returns:
        batch of rotation matrices (...xNxN tensor), and optionally singular values (...xN tensor).
    Note:
        For :math:`M = U D V^T`, the naive solution :math:`U V^T` may be a reflection (negative determinant).
        In such case the last singular vector is flipped, which yields the closest proper rotation.
    """
    M, batch_shape = estra.internal.flatten_batch_dims(M, -3)
    assert (M.dim() == 3 and M.shape[1] == M.shape[2]), "Input should be a BxDxD batch of matrices."
    U, D, V = estra.internal.svd(M)
    # D is sorted in descending order
    flip = (torch.det(U) * torch.det(V) < 0)
    sign = torch.ones_like(D)
    sign[flip, -1] = -1
    R = (U * sign[:,None,:]) @ V.transpose(-1, -2)
    R = estra.internal.unflatten_batch_dims(R, batch_shape)
    if not return_singular_values:
        return R
    DS = estra.internal.unflatten_batch_dims(D * sign, batch_shape)
    return R, DS

def skew(v):
    r"""
    Returns the skew-symmetric matrix :math:`[v]_\times` such that :math:`[v]_\times x = v \times x`.

    Args:
        v (...x3 tensor): batch of 3D vectors.
    Returns:
        batch of skew-symmetric matrices (...x3x3 tensor).
    """
    assert v.shape[-1] == 3, "Expecting a ...x3 batch of vectors."
    x, y, z = v[...,0], v[...,1], v[...,2]
    zero = torch.zeros_like(x)
    return torch.stack([zero, -z, y,
                        z, zero, -x,
                        -y, x, zero], dim=-1).reshape(v.shape[:-1] + (3, 3))

def rotvec_to_rotmat(rotvec: torch.Tensor, epsilon=1e-6) -> torch.Tensor:
    r"""
    Converts rotation vector to rotation matrix representation (exponential map of :math:`SO(3)`).
    Conversion uses Rodrigues formula in general, and a second order expansion for small angles.

    Args:
        rotvec (...x3 tensor): batch of rotation vectors.
        epsilon (float): small angle threshold.
    Returns:
        batch of rotation matrices (...x3x3 tensor).
    """
    rotvec, batch_shape = estra.internal.flatten_batch_dims(rotvec, end_dim=-2)
    batch_size, D = rotvec.shape
    assert(D == 3), "Input should be a Bx3 tensor."

    theta = torch.norm(rotvec, dim=-1)
    is_angle_small = theta < epsilon
    # Clamping avoids non finite values in the branch discarded by torch.where.
    safe_theta = torch.clamp_min(theta, epsilon)
    # R = I + a [w]x + b [w]x^2
    a = torch.where(is_angle_small, 1.0 - theta**2 / 6.0, torch.sin(safe_theta) / safe_theta)
    b = torch.where(is_angle_small, 0.5 - theta**2 / 24.0, (1.0 - torch.cos(safe_theta)) / safe_theta**2)
    K = skew(rotvec)
    identity = torch.eye(3, dtype=rotvec.dtype, device=rotvec.device).expand(batch_size, 3, 3)
    R = identity + a[:,None,None] * K + b[:,None,None] * (K @ K)
    return estra.internal.unflatten_batch_dims(R, batch_shape)
