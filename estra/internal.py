# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
r"""
Set of functions for internal module use.
"""

import logging
import torch
import estra.errors

logger = logging.getLogger(__name__)

def svd(M):
    r"""
    Singular Value Decomposition wrapper.

    Args:
        M (BxMxN tensor): batch of real matrices.
    Returns:
        (U,D,V) decomposition, such as :math:`M = U @ diag(D) @ V^T`.
    """
    U, D, Vt = torch.linalg.svd(M)
    return (U, D, Vt.transpose(-2,-1))

def symeig_lower(A):
    r"""
    Batched eigenvalue decomposition. Only the lower part of the matrix is considered.
    """
    return torch.linalg.eigh(A, UPLO='L')

def flatten_batch_dims(tensor, end_dim):
    r"""
    :meta private:
    Utility function: flatten multiple batch dimensions into a single one, or add a batch dimension if there is none.
    """
    batch_shape = tensor.shape[:end_dim+1]
    flattened = tensor.flatten(end_dim=end_dim) if len(batch_shape) > 0 else tensor.unsqueeze(0)
    return flattened, batch_shape

def unflatten_batch_dims(tensor, batch_shape):
    r"""
    :meta private:
    Revert flattening of a tensor.
    """
    return tensor.reshape(batch_shape + tensor.shape[1:]) if len(batch_shape) > 0 else tensor.squeeze(0)

def solve_spd(A, b, epsilon=1e-12, rcond=1e-10):
    r"""
    Solves the linear system :math:`A x = b` for a symmetric positive semi-definite matrix :math:`A`.

    Well conditioned systems are solved through a Cholesky factorization.
    When the ratio between the smallest and largest eigenvalues of :math:`A` falls below ``rcond``
    (rank deficient or nearly singular normal equations), the minimum norm solution is returned instead:
    weakly constrained directions are left to zero rather than amplified.

    Args:
        A (DxD tensor): symmetric positive semi-definite matrix.
        b (D tensor): right hand side.
        epsilon (float): absolute threshold below which the largest eigenvalue is considered null.
        rcond (float): relative threshold below which eigenvalues are considered null.
    Returns:
        solution x (D tensor).
    Raises:
        DegenerateSystemError: if :math:`A` does not constrain any direction, or if the solution is not finite.
    """
    assert A.dim() == 2 and A.shape[0] == A.shape[1], "Expecting a square matrix."
    assert b.shape == A.shape[:1], "Incompatible right hand side."
    if not torch.all(torch.isfinite(A)) or not torch.all(torch.isfinite(b)):
        raise estra.errors.DegenerateSystemError("Normal equations contain non finite values.")

    eigenvalues, eigenvectors = symeig_lower(A)
    # Eigenvalues are sorted in ascending order
    largest = eigenvalues[-1]
    if largest.item() <= epsilon:
        raise estra.errors.DegenerateSystemError("Normal equations do not constrain any degree of freedom.")
    inverse_condition = (eigenvalues[0] / largest).item()
    logger.debug("Normal equations inverse condition number %g.", inverse_condition)

    if inverse_condition > rcond:
        L, info = torch.linalg.cholesky_ex(A)
        if info.item() == 0:
            x = torch.cholesky_solve(b[:,None], L)[:,0]
            if torch.all(torch.isfinite(x)):
                return x

    mask = eigenvalues > rcond * largest
    rank = int(mask.sum().item())
    logger.warning("Ill conditioned normal equations (rank %d/%d, inverse condition number %g), using minimum norm solution.",
                   rank, A.shape[0], inverse_condition)
    inverse_eigenvalues = torch.where(mask, 1.0 / torch.where(mask, eigenvalues, torch.ones_like(eigenvalues)), torch.zeros_like(eigenvalues))
    x = eigenvectors @ (inverse_eigenvalues * (eigenvectors.transpose(-1,-2) @ b))
    if not torch.all(torch.isfinite(x)):
        raise estra.errors.DegenerateSystemError("Solution of the normal equations is not finite.")
    return x

def check_same_device(**tensors):
    r"""
    :meta private:
    Raises a DeviceMismatchError unless all named tensors live on the same device. Returns this device.
    """
    (first_name, first), *others = tensors.items()
    for name, tensor in others:
        if tensor.device != first.device:
            raise estra.errors.DeviceMismatchError(f"Device of {name} ({tensor.device}) differs from device of {first_name} ({first.device}).")
    return first.device

def check_same_dtype(**tensors):
    r"""
    :meta private:
    Raises a DtypeMismatchError unless all named tensors share a common Float32 or Float64 dtype. Returns this dtype.
    """
    (first_name, first), *others = tensors.items()
    if first.dtype not in (torch.float32, torch.float64):
        raise estra.errors.DtypeMismatchError(f"Expecting {first_name} of dtype torch.float32 or torch.float64, got {first.dtype}.")
    for name, tensor in others:
        if tensor.dtype != first.dtype:
            raise estra.errors.DtypeMismatchError(f"Dtype of {name} ({tensor.dtype}) differs from dtype of {first_name} ({first.dtype}).")
    return first.dtype

def check_shape(name, tensor, length=None, channels=3):
    r"""
    :meta private:
    Raises a DimensionError unless the tensor is of shape (length x channels).
    Any length and number of channels are accepted when set to None.
    """
    if (tensor.dim() != 2
        or (channels is not None and tensor.shape[1] != channels)
        or (length is not None and tensor.shape[0] != length)):
        expected = f"{'N' if length is None else length}x{'C' if channels is None else channels}"
        raise estra.errors.DimensionError(f"Expecting {name} of shape {expected}, got {tuple(tensor.shape)}.")

def select_correspondences(correspondences, num_source, num_target):
    r"""
    :meta private:
    Filters out the ``-1`` entries of a correspondence tensor.

    Args:
        correspondences (N or Nx1 tensor, torch.int64): target index for each source point, or -1.
        num_source (int): number of source points N.
        num_target (int): number of target points.
    Returns:
        tuple (source_indices, target_indices) of 1D tensors, both of length the number of valid correspondences.
    """
    if correspondences.dtype != torch.int64:
        raise estra.errors.DtypeMismatchError(f"Expecting correspondences of dtype torch.int64, got {correspondences.dtype}.")
    if correspondences.dim() == 2 and correspondences.shape[1] == 1:
        correspondences = correspondences.reshape(-1)
    if correspondences.dim() != 1 or correspondences.shape[0] != num_source:
        raise estra.errors.DimensionError(f"Expecting {num_source} correspondences (one per source point), got shape {tuple(correspondences.shape)}.")
    valid = correspondences != -1
    target_indices = correspondences[valid]
    if torch.any(correspondences < -1).item() or torch.any(target_indices >= num_target).item():
        raise estra.errors.DimensionError(f"Correspondences should be -1 or lie within [0, {num_target}).")
    if target_indices.numel() == 0:
        raise estra.errors.EmptyCorrespondenceError("No valid correspondence: all entries are -1.")
    source_indices = torch.nonzero(valid, as_tuple=True)[0]
    return source_indices, target_indices
