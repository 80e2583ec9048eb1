# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Exceptions raised by transformation estimation.

All of them derive from :class:`EstimationError`, itself a :class:`ValueError`,
so that callers may catch the whole family at once.
An outer ICP loop would typically treat :class:`EmptyCorrespondenceError` and :class:`DegenerateSystemError`
as a failure of the current iteration only.
"""

class EstimationError(ValueError):
    r"""
    Base class of transformation estimation errors.
    """
    pass

class MissingAttributeError(EstimationError):
    r"""
    A required point attribute (e.g. ``"normals"``) is absent or invalid.
    """
    def __init__(self, attribute, owner="point cloud"):
        self.attribute = attribute
        self.owner = owner
        super().__init__(f"{owner.capitalize()} missing '{attribute}' attribute.")

class DeviceMismatchError(EstimationError):
    r"""
    Tensors involved in a single estimation do not live on the same device.
    """
    pass

class DtypeMismatchError(EstimationError):
    r"""
    Floating point attributes do not share the same dtype, or correspondences are not ``torch.int64``.
    """
    pass

class DimensionError(EstimationError):
    r"""
    Unexpected tensor shape or length.
    """
    pass

class EmptyCorrespondenceError(EstimationError):
    r"""
    No valid (non ``-1``) correspondence is available.
    """
    pass

class DegenerateSystemError(EstimationError):
    r"""
    Normal equations of a linearized estimation cannot be solved to a stable pose.
    """
    pass
