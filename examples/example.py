# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.

import torch
import estra

# Point clouds store per-point attributes as tensors
source = estra.PointCloud(torch.rand(500, 3) * 2 - 1)
source.normals = torch.nn.functional.normalize(torch.randn(500, 3), dim=-1)
source.colors = torch.rand(500, 3)

# Ground truth motion, as a 6D pose [rotation vector, translation]
T_gt = estra.pose_to_transformation(torch.tensor([0.05, -0.02, 0.03, 0.1, 0.0, -0.05]))
target = source.transform(T_gt)
target.set_point_attr("color_gradients", torch.zeros(500, 3))

# Known correspondences: source point i matches target point i, except a few unmatched ones (-1)
correspondences = torch.arange(500)
correspondences[::10] = -1

# Closed form point-to-point estimation
point_to_point = estra.TransformationEstimationPointToPoint()
T = point_to_point.compute_transformation(source, target, correspondences)
print(f"Point-to-point\n{T}\nRMSE before: {point_to_point.compute_rmse(source, target, correspondences):.3g}"
      f" after: {point_to_point.compute_rmse(source.transform(T), target, correspondences):.3g}")

# Linearized estimations are iterated, as within an ICP loop
kernel = estra.RobustKernel(estra.RobustKernelMethod.TukeyLoss, scaling_parameter=0.5)
for estimation in (estra.TransformationEstimationPointToPlane(kernel),
                   estra.TransformationEstimationForColoredICP(lambda_geometric=0.9)):
    T = torch.eye(4, dtype=torch.float64)
    for _ in range(5):
        T = estimation.compute_transformation(source.transform(T), target, correspondences) @ T
    print(f"{estimation}\n{T}")

# Decomposition into a rotation matrix and a translation
R, t = estra.transformation_to_rt(T)
print(f"Geodesic distance to the ground truth rotation: {estra.rotmat_geodesic_distance(R, T_gt[:3,:3]).item():.3g} rad")
