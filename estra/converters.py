# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Conversions between kernel outputs and 4x4 homogeneous rigid transformations.

Every transformation returned by the estimators is a ``torch.float64`` tensor living on CPU.
"""

import torch
import estra.errors
import estra.mappings
from estra.transforms import Rigid

_CPU = torch.device("cpu")

def rt_to_transformation(R, t):
    r"""
    Embeds a rotation and a translation into a homogeneous transformation.

    Args:
        R (3x3 tensor): rotation matrix.
        t (3 tensor): translation vector.
    Returns:
        4x4 tensor (``torch.float64``, CPU).
    """
    if R.shape != (3, 3) or t.reshape(-1).shape != (3,):
        raise estra.errors.DimensionError(f"Expecting a 3x3 rotation and a 3D translation, got {tuple(R.shape)} and {tuple(t.shape)}.")
    rigid = Rigid(R, t.reshape(3)).to(device=_CPU, dtype=torch.float64)
    return rigid.to_homogeneous()

def pose_to_transformation(pose):
    r"""
    Converts an incremental pose :math:`[\omega, t]` into a homogeneous transformation.

    The rotation block is the exponential map of the rotation vector :math:`\omega` (Rodrigues formula),
    hence always a proper rotation, and matches :math:`I + [\omega]_\times` to first order.

    Args:
        pose (6 tensor): rotation vector followed by translation.
    Returns:
        4x4 tensor (``torch.float64``, CPU).
    """
    pose = pose.reshape(-1)
    if pose.shape != (6,):
        raise estra.errors.DimensionError(f"Expecting a pose of 6 elements, got {pose.numel()}.")
    pose = pose.to(device=_CPU, dtype=torch.float64)
    R = estra.mappings.rotvec_to_rotmat(pose[:3])
    return Rigid(R, pose[3:]).to_homogeneous()

def transformation_to_rt(transformation):
    r"""
    Splits a 4x4 homogeneous transformation into its rotation and translation parts.

    Args:
        transformation (4x4 tensor): rigid transformation.
    Returns:
        tuple (R, t) of a 3x3 and a 3 tensor (views of the input).
    """
    if transformation.shape != (4, 4):
        raise estra.errors.DimensionError(f"Expecting a 4x4 transformation, got {tuple(transformation.shape)}.")
    return Rigid.from_homogeneous(transformation).as_tuple()
