# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Transformation estimation strategies for ICP registration.

Each strategy exposes the same two operations:

- :code:`compute_rmse(source, target, correspondences)`: error metric over valid correspondences,
  used as a convergence signal by an outer ICP loop;
- :code:`compute_transformation(source, target, correspondences)`: 4x4 rigid transformation
  (``torch.float64``, CPU) best aligning the source onto the target.

Correspondences are a ``torch.int64`` tensor holding, for each source point, the index of the matched target point or -1.
Point cloud attributes, devices and dtypes are checked before any computation.

Example of use
~~~~~~~~~~~~~~

.. code-block:: python

    estimation = estra.TransformationEstimationPointToPlane(kernel=estra.RobustKernel(estra.RobustKernelMethod.TukeyLoss, 0.1))
    rmse = estimation.compute_rmse(source, target, correspondences)
    T = estimation.compute_transformation(source, target, correspondences)
    source = source.transform(T)
"""

import enum
import logging
import torch
import estra.converters
import estra.errors
import estra.internal
import estra.kernels
from estra.robust_kernel import RobustKernel

logger = logging.getLogger(__name__)

class TransformationEstimationType(enum.Enum):
    Unspecified = 0
    PointToPoint = 1
    PointToPlane = 2
    ColoredICP = 3

def _require_attributes(point_cloud, names, owner):
    for name in names:
        if not point_cloud.has_point_attr(name):
            raise estra.errors.MissingAttributeError(name, owner)

class TransformationEstimation:
    r"""
    Base class of the transformation estimation strategies.
    """
    estimation_type = TransformationEstimationType.Unspecified

    def compute_rmse(self, source, target, correspondences):
        r"""
        Args:
            source (PointCloud): source point cloud.
            target (PointCloud): target point cloud.
            correspondences (N tensor, torch.int64): target index matched to each source point, or -1.
        Returns:
            error metric (float).
        """
        raise NotImplementedError

    def compute_transformation(self, source, target, correspondences):
        r"""
        Args:
            source (PointCloud): source point cloud.
            target (PointCloud): target point cloud.
            correspondences (N tensor, torch.int64): target index matched to each source point, or -1.
        Returns:
            rigid transformation (4x4 tensor, ``torch.float64``, CPU).
        """
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"

class TransformationEstimationPointToPoint(TransformationEstimation):
    r"""
    Point-to-point estimation: minimizes :math:`\sum_i \|R p_i + t - q_i\|^2`.
    """
    estimation_type = TransformationEstimationType.PointToPoint

    def compute_rmse(self, source, target, correspondences):
        r"""
        Returns :math:`\sqrt{\sum_i \|p_i - q_i\|^2 / n}` over the :math:`n` valid correspondences.
        """
        _require_attributes(source, ["positions"], "source point cloud")
        _require_attributes(target, ["positions"], "target point cloud")
        estra.internal.check_same_device(source_points=source.positions, target_points=target.positions, correspondences=correspondences)
        estra.internal.check_same_dtype(source_points=source.positions, target_points=target.positions)
        (p,), (q,) = estra.kernels.gather_correspondences(correspondences, len(source), len(target), [source.positions], [target.positions])
        error = torch.sum(torch.square(p - q)).item()
        rmse = (error / len(p)) ** 0.5
        logger.debug("Point-to-point RMSE %g over %d correspondences.", rmse, len(p))
        return rmse

    def compute_transformation(self, source, target, correspondences):
        _require_attributes(source, ["positions"], "source point cloud")
        _require_attributes(target, ["positions"], "target point cloud")
        R, t = estra.kernels.compute_rt_point_to_point(source.positions, target.positions, correspondences)
        return estra.converters.rt_to_transformation(R, t)

class TransformationEstimationPointToPlane(TransformationEstimation):
    r"""
    Point-to-plane estimation: minimizes :math:`\sum_i \rho(n_i \cdot (R p_i + t - q_i))`, with :math:`n_i` the target normals.

    Args:
        kernel (RobustKernel or None): robust loss :math:`\rho`. Plain least squares if None.
    """
    estimation_type = TransformationEstimationType.PointToPlane

    def __init__(self, kernel=None):
        self.kernel = RobustKernel() if kernel is None else kernel

    def compute_rmse(self, source, target, correspondences):
        r"""
        Returns :math:`\sqrt{\sum_i (n_i \cdot (p_i - q_i))^2 / n}` over the :math:`n` valid correspondences.
        """
        _require_attributes(source, ["positions"], "source point cloud")
        _require_attributes(target, ["positions", "normals"], "target point cloud")
        estra.internal.check_same_device(source_points=source.positions, target_points=target.positions,
                                         target_normals=target.normals, correspondences=correspondences)
        estra.internal.check_same_dtype(source_points=source.positions, target_points=target.positions, target_normals=target.normals)
        estra.internal.check_shape("target normals", target.normals, len(target))
        (p,), (q, n) = estra.kernels.gather_correspondences(correspondences, len(source), len(target),
                                                            [source.positions], [target.positions, target.normals])
        error = torch.sum(torch.square(torch.sum((p - q) * n, dim=-1))).item()
        rmse = (error / len(p)) ** 0.5
        logger.debug("Point-to-plane RMSE %g over %d correspondences.", rmse, len(p))
        return rmse

    def compute_transformation(self, source, target, correspondences):
        _require_attributes(source, ["positions"], "source point cloud")
        _require_attributes(target, ["positions", "normals"], "target point cloud")
        pose = estra.kernels.compute_pose_point_to_plane(source.positions, target.positions, target.normals,
                                                         correspondences, self.kernel)
        return estra.converters.pose_to_transformation(pose)

    def __repr__(self):
        return f"{type(self).__name__}(kernel={self.kernel})"

class TransformationEstimationForColoredICP(TransformationEstimation):
    r"""
    Colored ICP estimation, combining a point-to-plane term and a photometric term.

    The source point cloud requires ``"colors"``, the target point cloud requires ``"normals"``, ``"colors"``
    and ``"color_gradients"`` (gradient of the intensity in the tangent plane of each point).

    Args:
        lambda_geometric (float in [0,1]): weight of the geometric term, the photometric term being weighted by :math:`1 - \lambda`.
        kernel (RobustKernel or None): robust loss applied to both residuals. Plain least squares if None.

    Reference:
        J. Park, Q.-Y. Zhou, and V. Koltun, "Colored Point Cloud Registration Revisited", ICCV 2017.
    """
    estimation_type = TransformationEstimationType.ColoredICP

    def __init__(self, lambda_geometric=0.968, kernel=None):
        if not 0.0 <= lambda_geometric <= 1.0:
            raise ValueError(f"lambda_geometric should lie within [0, 1], got {lambda_geometric}.")
        self.lambda_geometric = float(lambda_geometric)
        self.kernel = RobustKernel() if kernel is None else kernel

    def _check_attributes(self, source, target):
        _require_attributes(source, ["positions", "colors"], "source point cloud")
        _require_attributes(target, ["positions", "normals", "colors", "color_gradients"], "target point cloud")

    def compute_rmse(self, source, target, correspondences):
        r"""
        Returns the sum over valid correspondences of the squared weighted residuals :math:`r_G^2 + r_I^2`.

        Note:
            This score is neither normalized by the number of correspondences nor square-rooted:
            it is meant as a relative convergence signal, not as a distance.
        """
        self._check_attributes(source, target)
        source_tensors = [source.positions, source.colors]
        target_tensors = [target.positions, target.normals, target.colors, target.get_point_attr("color_gradients")]
        estra.internal.check_same_device(source_points=source_tensors[0], source_colors=source_tensors[1],
                                         target_points=target_tensors[0], target_normals=target_tensors[1],
                                         target_colors=target_tensors[2], target_color_gradients=target_tensors[3],
                                         correspondences=correspondences)
        estra.internal.check_same_dtype(source_points=source_tensors[0], source_colors=source_tensors[1],
                                        target_points=target_tensors[0], target_normals=target_tensors[1],
                                        target_colors=target_tensors[2], target_color_gradients=target_tensors[3])
        estra.internal.check_shape("source colors", source_tensors[1], len(source), channels=None)
        estra.internal.check_shape("target normals", target_tensors[1], len(target))
        estra.internal.check_shape("target colors", target_tensors[2], len(target), channels=None)
        estra.internal.check_shape("target color gradients", target_tensors[3], len(target))
        (p, cs), (q, n, ct, dit) = estra.kernels.gather_correspondences(correspondences, len(source), len(target), source_tensors, target_tensors)
        r_G, r_I, _, _ = estra.kernels.colored_icp_terms(p, cs, q, n, ct, dit, self.lambda_geometric, require_jacobians=False)
        residual = torch.sum(torch.square(r_G) + torch.square(r_I)).item()
        logger.debug("Colored ICP residual %g over %d correspondences.", residual, len(p))
        return residual

    def compute_transformation(self, source, target, correspondences):
        self._check_attributes(source, target)
        pose = estra.kernels.compute_pose_colored_icp(source.positions, source.colors, target.positions, target.normals,
                                                      target.colors, target.get_point_attr("color_gradients"),
                                                      correspondences, self.kernel, self.lambda_geometric)
        return estra.converters.pose_to_transformation(pose)

    def __repr__(self):
        return f"{type(self).__name__}(lambda_geometric={self.lambda_geometric}, kernel={self.kernel})"
