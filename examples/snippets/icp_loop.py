import logging
import torch, estra

logging.basicConfig(level=logging.DEBUG)

# Target: noisy samples of a sphere, with outward normals
target = estra.PointCloud(torch.nn.functional.normalize(torch.randn(2000, 3, dtype=torch.float64), dim=-1))
target.normals = target.positions.clone()
target.positions[:,:2] *= 2.0
target.normals = torch.nn.functional.normalize(target.normals / torch.tensor([2.0, 2.0, 1.0], dtype=torch.float64), dim=-1)

T_gt = estra.pose_to_transformation(torch.tensor([0.1, 0.05, -0.1, 0.2, -0.1, 0.05]))
source = target.transform(torch.inverse(T_gt))
source.remove_point_attr("normals")

# Nearest neighbor correspondences within a maximum distance, -1 otherwise
def find_correspondences(source, target, max_distance=0.5):
    distances, indices = torch.min(torch.cdist(source.positions, target.positions), dim=-1)
    return torch.where(distances < max_distance, indices, -torch.ones_like(indices))

estimation = estra.TransformationEstimationPointToPlane(estra.RobustKernel(estra.RobustKernelMethod.HuberLoss, 0.05))
T = torch.eye(4, dtype=torch.float64)
previous_rmse = float("inf")
for iteration in range(30):
    current = source.transform(T)
    correspondences = find_correspondences(current, target)
    try:
        rmse = estimation.compute_rmse(current, target, correspondences)
        T = estimation.compute_transformation(current, target, correspondences) @ T
    except (estra.EmptyCorrespondenceError, estra.DegenerateSystemError) as error:
        print(f"Iteration {iteration} failed: {error}")
        break
    print(f"Iteration {iteration}: RMSE {rmse:.3g}")
    if abs(previous_rmse - rmse) < 1e-9:
        break
    previous_rmse = rmse

print(f"T_gt\n{T_gt}")
print(f"T_predicted\n{T}")
