# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Robust loss functions for the linearized estimators.

Normal equations are weighted following the iteratively reweighted least squares scheme:
each residual :math:`r` contributes with a weight :math:`w(r) = \rho'(r) / r`,
where :math:`\rho` denotes the robust loss.
The default :class:`RobustKernel` (L2 loss) gives a unit weight to every residual, i.e. plain least squares.

Reference:
    J. T. Barron, "A General and Adaptive Robust Loss Function", CVPR 2019.
"""

import enum
import torch

class RobustKernelMethod(enum.Enum):
    L2Loss = 0
    L1Loss = 1
    HuberLoss = 2
    CauchyLoss = 3
    GMLoss = 4
    TukeyLoss = 5
    GeneralizedLoss = 6

class RobustKernel:
    r"""
    Robust kernel selection.

    Args:
        method (RobustKernelMethod): loss function.
        scaling_parameter (float > 0): scale :math:`k` of the loss, in residual units.
        shape_parameter (float): shape :math:`\alpha` of the loss, only used by ``GeneralizedLoss``.
    """
    def __init__(self, method=RobustKernelMethod.L2Loss, scaling_parameter=1.0, shape_parameter=1.0):
        if not isinstance(method, RobustKernelMethod):
            raise ValueError(f"Unknown robust kernel method {method!r}.")
        if not scaling_parameter > 0:
            raise ValueError(f"Scaling parameter should be strictly positive, got {scaling_parameter}.")
        self.method = method
        self.scaling_parameter = float(scaling_parameter)
        self.shape_parameter = float(shape_parameter)

    @property
    def is_standard(self):
        r"""
        True for the plain least squares kernel.
        """
        return self.method == RobustKernelMethod.L2Loss

    def weight(self, residual, epsilon=1e-12):
        r"""
        Returns the weights associated to a batch of residuals.

        Args:
            residual (... tensor): residuals.
            epsilon (float): lower bound on absolute residuals, for losses whose weight is singular at 0.
        Returns:
            weights (... tensor, same dtype and device as the residuals).
        """
        k = self.scaling_parameter
        abs_residual = torch.abs(residual)
        if self.method == RobustKernelMethod.L2Loss:
            return torch.ones_like(residual)
        elif self.method == RobustKernelMethod.L1Loss:
            return 1.0 / torch.clamp_min(abs_residual, epsilon)
        elif self.method == RobustKernelMethod.HuberLoss:
            return torch.where(abs_residual > k, k / torch.clamp_min(abs_residual, epsilon), torch.ones_like(residual))
        elif self.method == RobustKernelMethod.CauchyLoss:
            return 1.0 / (1.0 + torch.square(residual / k))
        elif self.method == RobustKernelMethod.GMLoss:
            return k / torch.square(k + torch.square(residual))
        elif self.method == RobustKernelMethod.TukeyLoss:
            return torch.where(abs_residual > k, torch.zeros_like(residual), torch.square(1.0 - torch.square(residual / k)))
        else:
            alpha = self.shape_parameter
            scaled_square = torch.square(residual / k)
            if alpha == 2.0:
                return torch.full_like(residual, 1.0 / k**2)
            elif alpha == 0.0:
                return 2.0 / (torch.square(residual) + 2.0 * k**2)
            elif alpha < -1e7:
                return torch.exp(-0.5 * scaled_square) / k**2
            return torch.pow(scaled_square / abs(alpha - 2.0) + 1.0, alpha / 2.0 - 1.0) / k**2

    def __repr__(self):
        return f"{type(self).__name__}(method={self.method.name}, scaling_parameter={self.scaling_parameter}, shape_parameter={self.shape_parameter})"
