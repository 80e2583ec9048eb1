# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
import torch
import estra

def is_close(A, B, eps1 = 1.0, eps2 = 1e-5):
    return (torch.norm(A - B) / (torch.norm(torch.abs(A) + torch.abs(B)) + eps1)) < eps2

def random_point_cloud(num_points, dtype=torch.float64, device=None, normals=True):
    r"""
    Points spread in the unit cube, with random unit normals.
    """
    pcd = estra.PointCloud(torch.rand((num_points, 3), dtype=dtype, device=device) * 2 - 1)
    if normals:
        pcd.normals = torch.nn.functional.normalize(torch.randn((num_points, 3), dtype=dtype, device=device), dim=-1)
    return pcd

def identity_correspondences(num_points, device=None):
    return torch.arange(num_points, dtype=torch.int64, device=device)
