# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Rigid transformations parameterized by a rotation matrix and a translation vector.

Applying a transformation
~~~~~~~~~~~~~~~~~~~~~~~~~

A single rigid transformation can be applied to a whole set of points:

.. code-block:: python

    T = estra.Rigid(estra.random_rotmat(dtype=torch.float64), torch.randn(3, dtype=torch.float64))
    T.apply(torch.randn(100, 3, dtype=torch.float64))

.. warning::

    For efficiency reasons, transformation objects do not copy input data.
"""
import torch

class Rigid:
    r"""
    A rigid transformation represented by a rotation and a translation part,
    transforming a point :math:`x \in \mathbb{R}^D` into :math:`R x + t`.

    :var linear: (...xDxD tensor): batch of rotation matrices.
    :var translation: (...xD tensor): batch of translation vectors.
    """
    def __init__(self, linear, translation):
        assert linear.shape[-1] == linear.shape[-2], "Expecting same dimensions for input and output."
        assert translation.shape[-1] == linear.shape[-2], "Incompatible linear and translation dimensions."
        self.linear = linear
        self.translation = translation

    def linear_apply(self, v):
        r"""
        Rotates a tensor of vector coordinates (e.g. normals).

        Args:
            v (...xD tensor): vectors to transform. Leading dimensions broadcast against the batch shape of the transformation.
        Returns:
            the rotated vectors.
        """
        return torch.einsum("...ik, ...k -> ...i", self.linear, v)

    def apply(self, v):
        r"""
        Transforms a tensor of point coordinates.

        Args:
            v (...xD tensor): points to transform.
        Returns:
            the transformed points.
        """
        return self.linear_apply(v) + self.translation

    def __repr__(self):
        return f"{type(self).__name__}(linear={self.linear.__repr__()}, translation={self.translation.__repr__()})"

    def as_tuple(self):
        r"""
        Returns:
            a tuple of tensors containing the linear and translation parts of the transformation respectively.
        """
        return self.linear, self.translation

    def to(self, *args, **kwargs):
        r"""
        Returns a copy of the transformation with both parts moved/cast as :func:`torch.Tensor.to` would.
        """
        return Rigid(self.linear.to(*args, **kwargs), self.translation.to(*args, **kwargs))

    def to_homogeneous(self):
        r"""
        Returns:
            A ...x(D+1)x(D+1) tensor of homogeneous matrices representing the transformation, with a last row equal to (0,...,0,1).
        """
        D = self.linear.shape[-1]
        batch_shape = self.linear.shape[:-2]
        output = torch.zeros(batch_shape + (D+1, D+1), device=self.translation.device, dtype=self.translation.dtype)
        output[...,:D,:D] = self.linear
        output[...,:D,D] = self.translation
        output[...,D,D] = 1.0
        return output

    @classmethod
    def from_homogeneous(cls, matrix):
        r"""
        Instantiate a new transformation from a homogeneous (D+1)x(D+1) matrix.
        The input is not checked to be a rigid transformation.

        Note:
            Components of the resulting transformation are views of the input matrix.
        """
        H1, H2 = matrix.shape[-2:]
        assert H1 == H2, "Expecting a square homogeneous matrix."
        D = H1 - 1
        return cls(matrix[...,:D,:D], matrix[...,:D,D])
