# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Numerical kernels estimating a rigid motion from a set of point correspondences.

Inputs are validated before any computation (devices, dtypes, shapes, correspondences).
Matched pairs are gathered with vectorized indexing and every computation is then carried in ``torch.float64``
on the device of the inputs, per-pair terms being reduced with :func:`torch.einsum`.

Linearized kernels return a 6D pose :math:`[\omega, t]`, where a source point :math:`p` is moved to
:math:`p + \omega \times p + t` to first order (see :func:`~estra.converters.pose_to_transformation`).
"""

import logging
import torch
import estra.internal
import estra.mappings
from estra.robust_kernel import RobustKernel

logger = logging.getLogger(__name__)

def gather_correspondences(correspondences, num_source, num_target, source_tensors, target_tensors):
    r"""
    Selects matched rows of source and target tensors, cast to ``torch.float64``.
    """
    source_indices, target_indices = estra.internal.select_correspondences(correspondences, num_source, num_target)
    sources = [tensor[source_indices].to(torch.float64) for tensor in source_tensors]
    targets = [tensor[target_indices].to(torch.float64) for tensor in target_tensors]
    return sources, targets

def _solve_pose(A, b):
    r"""
    :meta private:
    Solves the 6x6 normal equations :math:`A x = -b` of a linearized estimation.
    """
    return estra.internal.solve_spd(A, -b)

def compute_rt_point_to_point(source_points, target_points, correspondences):
    r"""
    Returns the rigid motion :math:`(R, t)` minimizing :math:`\sum_i \|R p_i + t - q_i\|^2` over valid correspondences,
    using the closed form solution of Kabsch and Umeyama.

    Args:
        source_points (Nx3 tensor): source point positions :math:`p`.
        target_points (Mx3 tensor): target point positions :math:`q`.
        correspondences (N tensor, torch.int64): index of the target point matched to each source point, or -1.
    Returns:
        a rotation matrix :math:`R` (3x3 tensor) and a translation :math:`t` (3 tensor), of dtype ``torch.float64``.

    References:
        S. Umeyama, “Least-squares estimation of transformation parameters between two point patterns,” IEEE Transactions on pattern analysis and machine intelligence, vol. 13, no. 4, Art. no. 4, 1991.

        W. Kabsch, "A solution for the best rotation to relate two sets of vectors". Acta Crystallographica, A32, 1976.
    """
    estra.internal.check_same_device(source_points=source_points, target_points=target_points, correspondences=correspondences)
    estra.internal.check_same_dtype(source_points=source_points, target_points=target_points)
    estra.internal.check_shape("source points", source_points)
    estra.internal.check_shape("target points", target_points)
    (x,), (y,) = gather_correspondences(correspondences, len(source_points), len(target_points), [source_points], [target_points])
    logger.debug("Point-to-point estimation from %d correspondences.", len(x))

    # Center data
    xmean = torch.mean(x, dim=0)
    ymean = torch.mean(y, dim=0)
    # M is the transpose of the cross-covariance H = sum_i (p_i - xmean) (q_i - ymean)^T
    M = torch.einsum("ki, kj -> ij", y - ymean, x - xmean)
    R = estra.mappings.special_procrustes(M)
    t = ymean - R @ xmean
    return R, t

def _point_to_plane_terms(p, q, n):
    r"""
    :meta private:
    Residuals :math:`n \cdot (p - q)` and Jacobian rows :math:`[p \times n, n]`.
    """
    residuals = torch.sum((p - q) * n, dim=-1)
    J = torch.cat((torch.cross(p, n, dim=-1), n), dim=-1)
    return residuals, J

def compute_pose_point_to_plane(source_points, target_points, target_normals, correspondences, kernel=None):
    r"""
    Returns the incremental pose minimizing :math:`\sum_i \rho(n_i \cdot (R p_i + t - q_i))`
    under the small rotation approximation :math:`R \approx I + [\omega]_\times`.

    Args:
        source_points (Nx3 tensor): source point positions :math:`p`.
        target_points (Mx3 tensor): target point positions :math:`q`.
        target_normals (Mx3 tensor): target point normals :math:`n`.
        correspondences (N tensor, torch.int64): index of the target point matched to each source point, or -1.
        kernel (RobustKernel or None): robust loss :math:`\rho`. Plain least squares if None.
    Returns:
        pose :math:`[\omega, t]` (6 tensor, ``torch.float64``).
    Raises:
        DegenerateSystemError: if the correspondences do not constrain the motion at all.
    """
    kernel = RobustKernel() if kernel is None else kernel
    estra.internal.check_same_device(source_points=source_points, target_points=target_points,
                                     target_normals=target_normals, correspondences=correspondences)
    estra.internal.check_same_dtype(source_points=source_points, target_points=target_points, target_normals=target_normals)
    estra.internal.check_shape("source points", source_points)
    estra.internal.check_shape("target points", target_points)
    estra.internal.check_shape("target normals", target_normals, len(target_points))
    (p,), (q, n) = gather_correspondences(correspondences, len(source_points), len(target_points),
                                          [source_points], [target_points, target_normals])
    logger.debug("Point-to-plane estimation from %d correspondences (%s).", len(p), kernel)

    residuals, J = _point_to_plane_terms(p, q, n)
    w = kernel.weight(residuals)
    A = torch.einsum("k, ki, kj -> ij", w, J, J)
    b = torch.einsum("k, ki, k -> i", w, J, residuals)
    return _solve_pose(A, b)

def colored_icp_terms(p, cs, q, n, ct, dit, lambda_geometric, require_jacobians=True):
    r"""
    Geometric and photometric terms of colored ICP for matched pairs.

    Source points are projected onto the tangent plane of their target point,
    where the target intensity is extrapolated using the target color gradient.
    Intensities are the mean of color channels.

    Args:
        p (Kx3 tensor): source positions.
        cs (KxC tensor): source colors.
        q (Kx3 tensor): target positions.
        n (Kx3 tensor): target normals.
        ct (KxC tensor): target colors.
        dit (Kx3 tensor): target color gradients.
        lambda_geometric (float in [0,1]): weight of the geometric term.
        require_jacobians (bool): if False, Jacobians are not computed and returned as None.
    Returns:
        tuple (r_G, r_I, J_G, J_I) of geometric and photometric residuals (K tensors) and Jacobians (Kx6 tensors),
        all scaled by the square root of their respective weight.
    """
    sqrt_lambda_geometric = lambda_geometric ** 0.5
    sqrt_lambda_photometric = (1.0 - lambda_geometric) ** 0.5

    d = torch.sum((p - q) * n, dim=-1)
    p_proj = p - d[:,None] * n
    intensity_source = torch.mean(cs, dim=-1)
    intensity_target = torch.mean(ct, dim=-1)
    intensity_proj = torch.sum(dit * (p_proj - q), dim=-1) + intensity_target

    r_G = sqrt_lambda_geometric * d
    r_I = sqrt_lambda_photometric * (intensity_source - intensity_proj)
    if not require_jacobians:
        return r_G, r_I, None, None

    J_G = sqrt_lambda_geometric * torch.cat((torch.cross(p, n, dim=-1), n), dim=-1)
    # Derivative of the photometric residual w.r.t. the source point: the gradient projected onto the tangent plane.
    dit_M = torch.sum(dit * n, dim=-1, keepdim=True) * n - dit
    J_I = sqrt_lambda_photometric * torch.cat((torch.cross(p, dit_M, dim=-1), dit_M), dim=-1)
    return r_G, r_I, J_G, J_I

def compute_pose_colored_icp(source_points, source_colors, target_points, target_normals, target_colors,
                             target_color_gradients, correspondences, kernel=None, lambda_geometric=0.968):
    r"""
    Returns the incremental pose minimizing the colored ICP objective
    :math:`\sum_i \rho(r_{G,i}) + \rho(r_{I,i})` under the small rotation approximation,
    combining a point-to-plane term weighted by :math:`\lambda` and a photometric term weighted by :math:`1 - \lambda`
    (see :func:`colored_icp_terms`).

    Args:
        source_points (Nx3 tensor): source point positions.
        source_colors (NxC tensor): source point colors.
        target_points (Mx3 tensor): target point positions.
        target_normals (Mx3 tensor): target point normals.
        target_colors (MxC tensor): target point colors.
        target_color_gradients (Mx3 tensor): gradient of the target intensity, in the tangent plane of each target point.
        correspondences (N tensor, torch.int64): index of the target point matched to each source point, or -1.
        kernel (RobustKernel or None): robust loss :math:`\rho`, applied separately to both residuals. Plain least squares if None.
        lambda_geometric (float in [0,1]): weight of the geometric term.
    Returns:
        pose :math:`[\omega, t]` (6 tensor, ``torch.float64``).

    Reference:
        J. Park, Q.-Y. Zhou, and V. Koltun, "Colored Point Cloud Registration Revisited", ICCV 2017.
    """
    kernel = RobustKernel() if kernel is None else kernel
    if not 0.0 <= lambda_geometric <= 1.0:
        raise ValueError(f"lambda_geometric should lie within [0, 1], got {lambda_geometric}.")
    estra.internal.check_same_device(source_points=source_points, source_colors=source_colors,
                                     target_points=target_points, target_normals=target_normals,
                                     target_colors=target_colors, target_color_gradients=target_color_gradients,
                                     correspondences=correspondences)
    estra.internal.check_same_dtype(source_points=source_points, source_colors=source_colors,
                                    target_points=target_points, target_normals=target_normals,
                                    target_colors=target_colors, target_color_gradients=target_color_gradients)
    estra.internal.check_shape("source points", source_points)
    estra.internal.check_shape("source colors", source_colors, len(source_points), channels=None)
    estra.internal.check_shape("target points", target_points)
    estra.internal.check_shape("target normals", target_normals, len(target_points))
    estra.internal.check_shape("target colors", target_colors, len(target_points), channels=None)
    estra.internal.check_shape("target color gradients", target_color_gradients, len(target_points))
    (p, cs), (q, n, ct, dit) = gather_correspondences(correspondences, len(source_points), len(target_points),
                                                        [source_points, source_colors],
                                                        [target_points, target_normals, target_colors, target_color_gradients])
    logger.debug("Colored ICP estimation from %d correspondences (lambda_geometric=%g, %s).", len(p), lambda_geometric, kernel)

    r_G, r_I, J_G, J_I = colored_icp_terms(p, cs, q, n, ct, dit, lambda_geometric)
    w_G = kernel.weight(r_G)
    w_I = kernel.weight(r_I)
    A = torch.einsum("k, ki, kj -> ij", w_G, J_G, J_G) + torch.einsum("k, ki, kj -> ij", w_I, J_I, J_I)
    b = torch.einsum("k, ki, k -> i", w_G, J_G, r_G) + torch.einsum("k, ki, k -> i", w_I, J_I, r_I)
    return _solve_pose(A, b)
