# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
EsTra: estimation of rigid transformations for ICP registration, in PyTorch.
"""
import logging

from estra.errors import *
from estra.mappings import special_procrustes, skew, rotvec_to_rotmat
from estra.transforms import Rigid
from estra.converters import rt_to_transformation, pose_to_transformation, transformation_to_rt
from estra.robust_kernel import RobustKernel, RobustKernelMethod
from estra.geometry import PointCloud
from estra.kernels import compute_rt_point_to_point, compute_pose_point_to_plane, compute_pose_colored_icp
from estra.estimation import (TransformationEstimation,
                              TransformationEstimationType,
                              TransformationEstimationPointToPoint,
                              TransformationEstimationPointToPlane,
                              TransformationEstimationForColoredICP)
from estra.utils import is_orthonormal_matrix, is_rotation_matrix, is_rigid_transformation, random_rotmat, rotmat_geodesic_distance

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"
