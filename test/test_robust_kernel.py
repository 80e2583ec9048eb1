# EsTra
# Copyright (c) 2020 NAVER Corp.
# 3-Clause BSD License.
import unittest
import torch
import estra

class TestRobustKernel(unittest.TestCase):
    def setUp(self):
        self.residuals = torch.tensor([0.0, 0.5, -1.0, 2.0, -4.0], dtype=torch.float64)

    def test_default(self):
        kernel = estra.RobustKernel()
        self.assertEqual(kernel.method, estra.RobustKernelMethod.L2Loss)
        self.assertTrue(kernel.is_standard)
        self.assertTrue(torch.equal(kernel.weight(self.residuals), torch.ones(5, dtype=torch.float64)))
        self.assertFalse(estra.RobustKernel(estra.RobustKernelMethod.HuberLoss).is_standard)

    def test_weights(self):
        r = self.residuals
        abs_r = torch.abs(r)
        k = 1.5
        expected = {
            estra.RobustKernelMethod.HuberLoss: torch.tensor([1.0, 1.0, 1.0, 0.75, 0.375], dtype=torch.float64),
            estra.RobustKernelMethod.CauchyLoss: 1.0 / (1.0 + (r / k)**2),
            estra.RobustKernelMethod.GMLoss: k / (k + r**2)**2,
            estra.RobustKernelMethod.TukeyLoss: torch.where(abs_r > k, torch.zeros_like(r), (1.0 - (r / k)**2)**2),
        }
        for method, weights in expected.items():
            kernel = estra.RobustKernel(method, scaling_parameter=k)
            self.assertTrue(torch.allclose(kernel.weight(r), weights), method)

    def test_l1(self):
        kernel = estra.RobustKernel(estra.RobustKernelMethod.L1Loss)
        weights = kernel.weight(self.residuals)
        self.assertTrue(torch.all(torch.isfinite(weights)))
        self.assertTrue(torch.allclose(weights[1:], 1.0 / torch.abs(self.residuals[1:])))

    def test_tukey_rejects_outliers(self):
        kernel = estra.RobustKernel(estra.RobustKernelMethod.TukeyLoss, scaling_parameter=1.0)
        weights = kernel.weight(self.residuals)
        self.assertEqual(weights[0].item(), 1.0)
        self.assertEqual(weights[3].item(), 0.0)
        self.assertEqual(weights[4].item(), 0.0)

    def test_generalized_loss(self):
        r = self.residuals
        k = 0.5
        # Special values of the shape parameter match known losses.
        l2 = estra.RobustKernel(estra.RobustKernelMethod.GeneralizedLoss, k, shape_parameter=2.0)
        self.assertTrue(torch.allclose(l2.weight(r), torch.full_like(r, 1.0 / k**2)))
        cauchy = estra.RobustKernel(estra.RobustKernelMethod.GeneralizedLoss, k, shape_parameter=0.0)
        self.assertTrue(torch.allclose(cauchy.weight(r), 2.0 / (r**2 + 2.0 * k**2)))
        welsch = estra.RobustKernel(estra.RobustKernelMethod.GeneralizedLoss, k, shape_parameter=-1e8)
        self.assertTrue(torch.allclose(welsch.weight(r), torch.exp(-0.5 * (r / k)**2) / k**2))
        charbonnier = estra.RobustKernel(estra.RobustKernelMethod.GeneralizedLoss, k, shape_parameter=1.0)
        self.assertTrue(torch.allclose(charbonnier.weight(r), 1.0 / (k**2 * torch.sqrt((r / k)**2 + 1.0))))

    def test_weights_keep_dtype_and_shape(self):
        for method in estra.RobustKernelMethod:
            kernel = estra.RobustKernel(method)
            residuals = torch.randn((4, 2), dtype=torch.float32)
            weights = kernel.weight(residuals)
            self.assertEqual(weights.shape, residuals.shape)
            self.assertEqual(weights.dtype, torch.float32)
            self.assertTrue(torch.all(weights >= 0))

    def test_invalid_parameters(self):
        with self.assertRaises(ValueError):
            estra.RobustKernel("TukeyLoss")
        for scale in (0.0, -1.0):
            with self.assertRaises(ValueError):
                estra.RobustKernel(estra.RobustKernelMethod.HuberLoss, scaling_parameter=scale)

    def test_repr(self):
        kernel = estra.RobustKernel(estra.RobustKernelMethod.CauchyLoss, 0.2)
        self.assertIn("CauchyLoss", repr(kernel))
        self.assertIn("0.2", repr(kernel))

if __name__ == "__main__":
    unittest.main()
