# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Minimal point cloud container consumed by the estimators.

A :class:`PointCloud` stores per-point attributes in a dictionary mapping an attribute name to a tensor.
``"positions"`` is the primary attribute: every other attribute (``"normals"``, ``"colors"``, ``"color_gradients"``, ...)
is expected to have one row per position.
All attributes live on the same device, but may have different dtypes.

.. code-block:: python

    pcd = estra.PointCloud(torch.rand(100, 3))
    pcd.normals = torch.nn.functional.normalize(torch.randn(100, 3), dim=-1)
    pcd.has_point_attr("normals") # True
"""

import torch
import estra.errors
import estra.converters
from estra.transforms import Rigid

class PointCloud:
    r"""
    Point cloud with an arbitrary set of per-point attributes.

    Args:
        positions (Nx3 tensor or None): point coordinates. An empty Float32 cloud is created if None.
        device (torch.device or None): device of the empty cloud when ``positions`` is None.
    """
    def __init__(self, positions=None, device=None):
        if positions is None:
            positions = torch.empty((0, 3), dtype=torch.float32, device=device)
        self.point = {}
        self.positions = positions

    @property
    def device(self):
        return self.point["positions"].device

    def __len__(self):
        return self.point["positions"].shape[0]

    def has_point_attr(self, name):
        r"""
        Returns True if the attribute exists, is not empty, and has one entry per point.
        """
        value = self.point.get(name)
        return value is not None and value.numel() > 0 and value.shape[0] == len(self)

    def get_point_attr(self, name):
        if name not in self.point:
            raise estra.errors.MissingAttributeError(name)
        return self.point[name]

    def set_point_attr(self, name, value):
        r"""
        Sets an attribute. The value must live on the device of the point positions.
        """
        if not isinstance(value, torch.Tensor):
            raise TypeError(f"Attribute '{name}' should be a torch.Tensor, got {type(value).__name__}.")
        if name == "positions":
            if value.dim() != 2 or value.shape[1] != 3:
                raise estra.errors.DimensionError(f"Positions should be a Nx3 tensor, got shape {tuple(value.shape)}.")
            if any(other.device != value.device for key, other in self.point.items() if key != "positions"):
                raise estra.errors.DeviceMismatchError(f"Positions on device {value.device} differ from the device of existing attributes.")
        elif value.device != self.device:
            raise estra.errors.DeviceMismatchError(f"Attribute '{name}' is on device {value.device}, while positions are on device {self.device}.")
        self.point[name] = value

    def remove_point_attr(self, name):
        if name == "positions":
            raise KeyError("Positions cannot be removed.")
        del self.point[name]

    positions = property(lambda self: self.get_point_attr("positions"),
                         lambda self, value: self.set_point_attr("positions", value))
    normals = property(lambda self: self.get_point_attr("normals"),
                       lambda self, value: self.set_point_attr("normals", value))
    colors = property(lambda self: self.get_point_attr("colors"),
                      lambda self, value: self.set_point_attr("colors", value))

    def to(self, device):
        r"""
        Returns a copy of the point cloud with every attribute moved to ``device``.
        """
        result = PointCloud(self.positions.to(device))
        for name, value in self.point.items():
            if name != "positions":
                result.set_point_attr(name, value.to(device))
        return result

    def clone(self):
        result = PointCloud(self.positions.clone())
        for name, value in self.point.items():
            if name != "positions":
                result.set_point_attr(name, value.clone())
        return result

    def transform(self, transformation):
        r"""
        Returns a copy of the point cloud transformed by a rigid transformation.
        Positions are transformed, normals are rotated. Other attributes are copied.

        Args:
            transformation (4x4 tensor): homogeneous rigid transformation.
        """
        R, t = estra.converters.transformation_to_rt(transformation)
        rigid = Rigid(R, t).to(device=self.device, dtype=self.positions.dtype)
        result = self.clone()
        result.positions = rigid.apply(self.positions)
        if self.has_point_attr("normals"):
            result.normals = rigid.to(self.normals.dtype).linear_apply(self.normals)
        return result

    def __repr__(self):
        attributes = ", ".join(f"{name}: {value.dtype}" for name, value in self.point.items())
        return f"{type(self).__name__}(points={len(self)}, device={self.device}, attributes=[{attributes}])"
