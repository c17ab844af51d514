"""Tests for Hamming search and the feature matcher."""

import pytest
import numpy as np
from orbmatch.errors import InvalidFormat
from orbmatch.features.detection import DetectionResult
from orbmatch.features.keypoint import Keypoint
from orbmatch.geometry.homography import HomographyEstimator
from orbmatch.matching.hamming import distance_matrix, knn2
from orbmatch.matching.matcher import Correspondence, FeatureMatcher, MatchResult

from conftest import flip_bits, points_to_keypoints, random_descriptors

H_TRUE = np.array([[1.05, 0.02, 15.0],
                   [-0.03, 0.98, -8.0],
                   [0.0001, 0.00005, 1.0]])


def grid_keypoints(n: int, seed: int = 0) -> list:
    rng = np.random.default_rng(seed)
    return points_to_keypoints(rng.uniform(20, 600, (n, 2)))


class TestHamming:
    """Test Hamming distances."""
    
    def test_distance_values(self):
        """Test popcount of XOR."""
        a = np.zeros((2, 32), dtype=np.uint8)
        a[1, 0] = 0b00000011
        b = np.zeros((2, 32), dtype=np.uint8)
        b[0, :] = 255
        
        d = distance_matrix(a, b)
        assert d.shape == (2, 2)
        assert d[0, 0] == 256
        assert d[0, 1] == 0
        assert d[1, 1] == 2
        assert d[1, 0] == 254
    
    def test_distance_matches_popcount(self):
        """Test agreement with an explicit XOR popcount on random descriptors."""
        a = random_descriptors(7, seed=21)
        b = random_descriptors(5, seed=22)
        expected = np.unpackbits(a[:, None, :] ^ b[None, :, :], axis=2).sum(axis=2)

        d = distance_matrix(a, b)
        assert d.dtype == np.int64
        np.testing.assert_array_equal(d, expected)

    def test_distance_empty_side(self):
        """Test that an empty side gives an empty matrix."""
        d = distance_matrix(np.zeros((0, 32), np.uint8), random_descriptors(4))
        assert d.shape == (0, 4)

    def test_width_mismatch(self):
        """Test descriptors of different widths."""
        with pytest.raises(ValueError):
            distance_matrix(np.zeros((1, 32), np.uint8), np.zeros((1, 16), np.uint8))
    
    def test_knn2_order_and_ties(self):
        """Test that ties resolve to the lowest target index."""
        source = random_descriptors(1, seed=1)
        far = np.bitwise_not(source)
        near = flip_bits(source[0], 3)[None, :]
        target = np.vstack([far, near, near])
        
        indices, distances = knn2(source, target)
        assert indices.tolist() == [[1, 2]]
        assert distances.tolist() == [[3, 3]]
    
    def test_knn2_single_target(self):
        """Test that one target row gives one neighbour."""
        indices, distances = knn2(random_descriptors(3), random_descriptors(1, seed=9))
        assert indices.shape == (3, 1)


class TestFeatureMatcher:
    """Test ratio test and geometric verification."""
    
    def test_matcher_initialization(self):
        """Test defaults."""
        matcher = FeatureMatcher()
        assert matcher.ratio == 0.75
        assert matcher.ransac_threshold == 3.0
    
    @pytest.mark.parametrize("ratio", [0.0, 1.0, -0.5, 1.5])
    def test_invalid_ratio(self, ratio):
        """Test that ratio must lie in (0, 1)."""
        with pytest.raises(ValueError):
            FeatureMatcher(ratio=ratio)
        matcher = FeatureMatcher()
        desc = random_descriptors(3)
        kps = grid_keypoints(3)
        with pytest.raises(ValueError):
            matcher.match(desc, kps, desc, kps, ratio=ratio)
    
    def test_single_row_each_side(self):
        """Test that one identical target row cannot pass the ratio test."""
        desc = random_descriptors(1)
        kp = [Keypoint(10, 10)]
        result = FeatureMatcher().match(desc, kp, desc.copy(), kp)
        assert len(result) == 0
        assert result.homography is None
        assert result.num_inliers == 0
    
    def test_empty_descriptors(self):
        """Test that an empty side returns an empty result."""
        desc = random_descriptors(5)
        kps = grid_keypoints(5)
        matcher = FeatureMatcher()
        
        result = matcher.match(None, [], desc, kps)
        assert isinstance(result, MatchResult)
        assert len(result) == 0
        assert result.homography is None
        assert result.warnings
        
        result = matcher.match(desc, kps, np.zeros((0, 32), np.uint8), [])
        assert len(result) == 0
    
    def test_mismatched_keypoints(self):
        """Test that keypoints must pair with descriptor rows."""
        with pytest.raises(InvalidFormat):
            FeatureMatcher().match(random_descriptors(3), grid_keypoints(2),
                                   random_descriptors(3), grid_keypoints(3))
    
    def test_exact_ties_are_dropped(self):
        """Test that d1 == d2 fails the strict ratio test."""
        source = random_descriptors(1)
        target = np.vstack([source, source])
        result = FeatureMatcher().match(source, [Keypoint(0, 0)], target,
                                        [Keypoint(0, 0), Keypoint(1, 1)])
        assert len(result) == 0
    
    def test_fewer_than_four_matches_no_homography(self):
        """Test that 3 survivors produce no homography and zero inliers."""
        source = random_descriptors(3, seed=1)
        target = np.vstack([source, random_descriptors(5, seed=2)])
        result = FeatureMatcher().match(source, grid_keypoints(3),
                                        target, grid_keypoints(8, seed=5))
        assert len(result) == 3
        assert result.homography is None
        assert result.homography_flat is None
        assert result.num_inliers == 0
        assert result.inlier_mask == (False, False, False)
    
    def test_correspondences_sorted_by_distance(self):
        """Test ascending distance order and index mapping."""
        source = random_descriptors(6, seed=3)
        flips = [5, 0, 9, 2, 7, 1]
        target = np.vstack([flip_bits(row, f) for row, f in zip(source, flips)])
        target = np.vstack([random_descriptors(4, seed=4), target])
        
        result = FeatureMatcher().match(source, grid_keypoints(6), target, grid_keypoints(10, seed=1))
        distances = [c.distance for c in result.correspondences]
        assert distances == sorted(distances)
        assert distances == [0, 1, 2, 5, 7, 9]
        for c in result.correspondences:
            assert c.target_index == c.source_index + 4
    
    def test_ratio_monotonicity(self):
        """Test that a smaller ratio never yields more matches."""
        rng = np.random.default_rng(11)
        source = random_descriptors(60, seed=5)
        target = np.vstack([
            flip_bits(row, int(rng.integers(0, 100))) for row in source
        ] + [random_descriptors(40, seed=6)])
        src_kps = grid_keypoints(60)
        tgt_kps = grid_keypoints(100, seed=2)
        matcher = FeatureMatcher(max_iters=200)
        
        counts = [len(matcher.match(source, src_kps, target, tgt_kps, ratio=r))
                  for r in [0.95, 0.85, 0.75, 0.6, 0.45, 0.3, 0.15, 0.05]]
        assert all(a >= b for a, b in zip(counts, counts[1:]))
        assert counts[0] > counts[-1]
    
    def test_homography_recovered_with_outliers(self):
        """Test RANSAC rejects wrong correspondences and recovers H."""
        n_good, n_bad = 30, 6
        rng = np.random.default_rng(21)
        src_points = rng.uniform(20, 600, (n_good + n_bad, 2))
        dst_points = HomographyEstimator().transform_points(src_points, H_TRUE)
        dst_points[n_good:] += rng.uniform(80, 200, (n_bad, 2))
        
        source = random_descriptors(n_good + n_bad, seed=8)
        order = rng.permutation(n_good + n_bad)
        target = source[order]
        target_points = dst_points[order]
        
        result = FeatureMatcher().match(source, points_to_keypoints(src_points),
                                        target, points_to_keypoints(target_points))
        assert len(result) == n_good + n_bad
        assert result.homography is not None
        assert result.num_inliers == n_good
        for c, inlier in zip(result.correspondences, result.inlier_mask):
            assert inlier == (c.source_index < n_good)
            assert order[c.target_index] == c.source_index
        np.testing.assert_allclose(result.homography, H_TRUE, rtol=1e-4, atol=1e-4)
        assert len(result.homography_flat) == 9
    
    def test_match_results(self):
        """Test matching two detection results."""
        desc = random_descriptors(8, seed=2)
        kps = grid_keypoints(8)
        source = DetectionResult(kps, desc, 640, 480)
        target = DetectionResult(kps, desc.copy(), 640, 480)
        result = FeatureMatcher().match_results(source, target)
        assert len(result) == 8
        assert result.num_inliers == 8
        np.testing.assert_allclose(result.homography, np.eye(3), atol=1e-6)
        assert result.inliers[0] == Correspondence(result.inliers[0].source_index,
                                                   result.inliers[0].source_index, 0.0)
    
    def test_deterministic(self):
        """Test that repeated matches agree."""
        desc = random_descriptors(20, seed=4)
        kps = grid_keypoints(20)
        moved = points_to_keypoints(HomographyEstimator().transform_points(
            np.array([kp.pt for kp in kps]), H_TRUE))
        matcher = FeatureMatcher()
        first = matcher.match(desc, kps, desc, moved)
        second = matcher.match(desc, kps, desc, moved)
        assert first == second
        np.testing.assert_array_equal(first.homography, second.homography)
