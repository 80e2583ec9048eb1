# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
import unittest
import torch
import estra
from estra.transforms import Rigid
from test.utils import is_close

class TestTransforms(unittest.TestCase):
    def test_apply(self):
        dtype = torch.float64
        x = torch.randn((10, 3), dtype=dtype)
        R = estra.random_rotmat(dtype=dtype)
        t = torch.randn(3, dtype=dtype)
        T = Rigid(R, t)
        self.assertTrue(is_close(T.apply(x), x @ R.T + t))
        self.assertTrue(is_close(T.linear_apply(x), x @ R.T))

    def test_batch_apply(self):
        dtype = torch.float64
        x = torch.randn((5, 10, 3), dtype=dtype)
        T = Rigid(estra.random_rotmat(5, dtype=dtype)[:,None], torch.randn((5, 1, 3), dtype=dtype))
        self.assertTrue(is_close(T.apply(x), torch.einsum("bnik, bnk -> bni", T.linear.expand(5, 10, 3, 3), x) + T.translation))

    def test_cast(self):
        T = Rigid(estra.random_rotmat(dtype=torch.float32), torch.randn(3)).to(dtype=torch.float64)
        self.assertEqual(T.linear.dtype, torch.float64)
        self.assertEqual(T.translation.dtype, torch.float64)
        self.assertIn("Rigid", repr(T))

    def test_homogeneous_cast(self):
        dtype = torch.float64
        T = Rigid(estra.random_rotmat(dtype=dtype), torch.randn(3, dtype=dtype))
        homogeneous = T.to_homogeneous()
        self.assertEqual(homogeneous.shape, (4, 4))
        self.assertTrue(torch.all(homogeneous[:3,:3] == T.linear))
        self.assertTrue(torch.all(homogeneous[:3,3] == T.translation))
        self.assertTrue(torch.all(homogeneous[3,:3] == 0.0))
        self.assertTrue(homogeneous[3,3] == 1.0)
        T2 = Rigid.from_homogeneous(homogeneous)
        self.assertTrue(torch.all(T2.linear == T.linear))
        self.assertTrue(torch.all(T2.translation == T.translation))

class TestConverters(unittest.TestCase):
    def test_rt_to_transformation(self):
        for dtype in (torch.float32, torch.float64):
            R = estra.random_rotmat(dtype=dtype)
            t = torch.randn(3, dtype=dtype)
            T = estra.rt_to_transformation(R, t)
            self.assertEqual(T.dtype, torch.float64)
            self.assertEqual(T.device, torch.device("cpu"))
            self.assertTrue(estra.is_rigid_transformation(T, 1e-5))
            self.assertTrue(torch.allclose(T[:3,:3], R.to(torch.float64)))
            self.assertTrue(torch.allclose(T[:3,3], t.to(torch.float64)))
            R2, t2 = estra.transformation_to_rt(T)
            self.assertTrue(torch.all(R2 == T[:3,:3]))
            self.assertTrue(torch.all(t2 == T[:3,3]))

    def test_rt_to_transformation_shapes(self):
        with self.assertRaises(estra.DimensionError):
            estra.rt_to_transformation(torch.eye(4), torch.zeros(3))
        with self.assertRaises(estra.DimensionError):
            estra.rt_to_transformation(torch.eye(3), torch.zeros(4))
        with self.assertRaises(estra.DimensionError):
            estra.transformation_to_rt(torch.eye(3))

    def test_pose_to_transformation(self):
        for dtype in (torch.float32, torch.float64):
            pose = torch.tensor([0.1, -0.2, 0.3, 1.0, 2.0, 3.0], dtype=dtype)
            T = estra.pose_to_transformation(pose)
            self.assertEqual(T.dtype, torch.float64)
            self.assertEqual(T.device, torch.device("cpu"))
            self.assertTrue(estra.is_rigid_transformation(T, 1e-6))
            self.assertTrue(torch.allclose(T[:3,:3], estra.rotvec_to_rotmat(pose[:3].to(torch.float64))))
            self.assertTrue(torch.allclose(T[:3,3], torch.tensor([1.0, 2.0, 3.0], dtype=torch.float64)))

    def test_pose_to_transformation_first_order(self):
        # Small rotations match the linearization I + [w]x used by the estimators.
        pose = torch.tensor([1e-4, -2e-4, 3e-4, 0.0, 0.0, 0.0], dtype=torch.float64)
        T = estra.pose_to_transformation(pose)
        first_order = torch.eye(3, dtype=torch.float64) + estra.skew(pose[:3])
        self.assertTrue(torch.allclose(T[:3,:3], first_order, atol=1e-6))

    def test_pose_shape(self):
        with self.assertRaises(estra.DimensionError):
            estra.pose_to_transformation(torch.zeros(5))
        # Column vectors are accepted
        T = estra.pose_to_transformation(torch.zeros((6, 1)))
        self.assertTrue(torch.all(T == torch.eye(4, dtype=torch.float64)))

if __name__ == "__main__":
    unittest.main()
