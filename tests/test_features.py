"""Tests for signature feature extraction."""
import numpy as np
import pytest

from sigaudit.errors import ConfigurationError, FormatError
from sigaudit.skeleton.features import (
    FeatureExtractor,
    FeatureSet,
    center_of_mass,
    dissimilarity,
    get_closed_loops,
    get_cross_points,
    get_edge_points,
    get_horizontal_geometric_centers,
    get_max_horizontal_histogram,
    get_max_vertical_histogram,
    get_vertical_geometric_centers,
)


def plus_sign() -> np.ndarray:
    image = np.zeros((9, 9), dtype=np.uint8)
    image[4, 1:8] = 255
    image[1:8, 4] = 255
    return image


class TestTopology:
    """Edge points, cross points and loops."""

    def test_line_has_two_edges(self):
        image = np.zeros((5, 10), dtype=np.uint8)
        image[2, 2:8] = 255
        ink = image == 255
        assert get_edge_points(ink) == [(2, 2), (7, 2)]
        assert get_cross_points(ink) == []

    def test_plus_sign(self):
        ink = plus_sign() == 255
        edges = get_edge_points(ink)
        crosses = get_cross_points(ink)

        assert sorted(edges) == [(1, 4), (4, 1), (4, 7), (7, 4)]
        assert crosses == [(4, 4)]
        # S = 4 - 2 = 2, loops = max(0, 1 + (2 - 4) // 2) = 0
        assert get_closed_loops(ink, crosses, len(edges)) == 0

    def test_ring_has_one_loop(self, ring_skeleton):
        features = FeatureExtractor().extract(ring_skeleton)
        assert features.edge_points == []
        assert features.cross_points == []
        assert features.closed_loops == 1

    def test_loops_floor_division(self):
        """Negative odd differences round toward minus infinity."""
        ink = plus_sign() == 255
        # S = 2, edges = 5 -> 1 + (-3 // 2) = 1 - 2 = -1 -> clamped to 0
        assert get_closed_loops(ink, [(4, 4)], 5) == 0
        # S = 2, edges = 1 -> 1 + (1 // 2) = 1
        assert get_closed_loops(ink, [(4, 4)], 1) == 1

    def test_stroke_touching_border_has_no_loop(self):
        image = np.zeros((5, 10), dtype=np.uint8)
        image[2, 0:7] = 255
        ink = image == 255
        edges = get_edge_points(ink)
        assert edges == [(6, 2)]
        # S = 0, edges = 1 -> 1 + (-1 // 2) = 0
        assert get_closed_loops(ink, get_cross_points(ink), len(edges)) == 0

    @pytest.mark.parametrize("seed", range(5))
    def test_loops_never_negative(self, seed):
        rng = np.random.default_rng(seed)
        image = np.where(rng.random((20, 20)) < 0.4, 255, 0).astype(np.uint8)
        assert FeatureExtractor().extract(image).closed_loops >= 0

    def test_border_pixels_ignored(self):
        image = np.zeros((5, 5), dtype=np.uint8)
        image[0, 0:2] = 255
        assert get_edge_points(image == 255) == []


class TestHistograms:
    """Histogram peaks."""

    def test_peak_row_and_column(self):
        ink = np.zeros((6, 8), dtype=bool)
        ink[4, 1:7] = True
        ink[0:3, 2] = True
        assert get_max_horizontal_histogram(ink) == 4
        assert get_max_vertical_histogram(ink) == 2

    def test_ties_resolved_by_first_occurrence(self):
        ink = np.zeros((6, 6), dtype=bool)
        ink[1, 0:3] = True
        ink[3, 2:5] = True
        assert get_max_horizontal_histogram(ink) == 1
        assert get_max_vertical_histogram(ink) == 2

    def test_blank_peak_is_zero(self):
        ink = np.zeros((4, 4), dtype=bool)
        assert get_max_horizontal_histogram(ink) == 0
        assert get_max_vertical_histogram(ink) == 0


class TestGeometricCenters:
    """Recursive centers of mass."""

    def test_center_of_empty_region(self):
        assert center_of_mass(np.zeros((0, 5), dtype=bool)) == (0, 0)
        assert center_of_mass(np.zeros((3, 3), dtype=bool)) == (0, 0)

    def test_center_truncates(self):
        ink = np.zeros((4, 4), dtype=bool)
        ink[1:3, 1:3] = True
        assert center_of_mass(ink) == (1, 1)

    def test_vertical_centers_of_full_square(self):
        ink = np.ones((4, 4), dtype=bool)
        assert get_vertical_geometric_centers(ink) == [
            (0, 1), (2, 1), (0, 0), (0, 2), (2, 0), (2, 2)
        ]

    def test_horizontal_centers_of_full_square(self):
        ink = np.ones((4, 4), dtype=bool)
        assert get_horizontal_geometric_centers(ink) == [
            (1, 0), (1, 2), (0, 0), (2, 0), (0, 2), (2, 2)
        ]

    def test_six_points_each(self, ring_skeleton):
        features = FeatureExtractor().extract(ring_skeleton)
        assert len(features.vertical_centers) == 6
        assert len(features.horizontal_centers) == 6


class TestFeatureSet:
    """Normalization, comparison and persistence."""

    def test_size_with_centers(self, ring_skeleton):
        features = FeatureExtractor().extract(ring_skeleton)
        assert features.size == 7 + 2 * len(features.vertical_centers) + 2 * len(features.horizontal_centers) == 31
        assert len(features.normalized_data) == features.size
        assert features.normalized_data.dtype == np.float32

    def test_size_without_centers(self, ring_skeleton):
        features = FeatureExtractor(include_geometric_centers=False).extract(ring_skeleton)
        assert features.vertical_centers == []
        assert features.horizontal_centers == []
        assert features.size == 7
        assert len(features.normalized_data) == 7

    def test_blank_image(self, blank_skeleton):
        features = FeatureExtractor().extract(blank_skeleton)
        assert features.occupancy_ratio == 0
        assert features.edge_points == []
        assert features.cross_points == []
        assert features.closed_loops == 0
        assert features.aspect_ratio == pytest.approx(1.5)

    def test_normalized_values(self, ring_skeleton):
        features = FeatureExtractor().extract(ring_skeleton)
        data = features.normalized_data
        h, w = ring_skeleton.shape

        assert data[0] == pytest.approx(w / h)
        assert data[1] == pytest.approx(np.count_nonzero(ring_skeleton) / (w * h))
        assert data[2] == pytest.approx(features.max_horizontal_histogram / h)
        assert data[3] == pytest.approx(features.max_vertical_histogram / w)
        assert data[6] == pytest.approx(1 / 5)
        x, y = features.vertical_centers[0]
        assert data[7] == pytest.approx(x / (w // 2))
        assert data[8] == pytest.approx(y / (h // 2))

    def test_deterministic(self, ring_skeleton):
        a = FeatureExtractor().extract(ring_skeleton)
        b = FeatureExtractor().extract(ring_skeleton.copy())
        np.testing.assert_array_equal(a.normalized_data, b.normalized_data)

    def test_unnormalized_extraction(self, ring_skeleton):
        features = FeatureExtractor().extract(ring_skeleton, normalize=False)
        assert not features.is_normalized

    def test_dissimilarity_to_self_is_zero(self, ring_skeleton):
        features = FeatureExtractor().extract(ring_skeleton)
        assert dissimilarity(features, features) == 0
        assert features - features == 0

    def test_dissimilarity_sum_of_absolute_differences(self, feature_set_factory):
        a = feature_set_factory(0.25, size=4)
        b = FeatureSet.from_normalized([0.0, 0.5, 0.25, 1.0])
        assert dissimilarity(a, b) == pytest.approx(0.25 + 0.25 + 0.0 + 0.75)

    def test_dissimilarity_requires_normalization(self, ring_skeleton):
        raw = FeatureExtractor().extract(ring_skeleton, normalize=False)
        normalized = FeatureExtractor().extract(ring_skeleton)
        with pytest.raises(ConfigurationError):
            dissimilarity(raw, normalized)

    def test_dissimilarity_length_mismatch(self, feature_set_factory):
        with pytest.raises(ConfigurationError):
            feature_set_factory(0.1, size=31) - feature_set_factory(0.1, size=7)

    def test_export_import(self, ring_skeleton, tmp_path):
        features = FeatureExtractor().extract(ring_skeleton)
        path = tmp_path / "features.txt"
        features.export(path)

        restored = FeatureSet.import_file(path)
        np.testing.assert_allclose(restored.normalized_data, features.normalized_data, rtol=1e-6)
        assert restored.size == 31
        assert dissimilarity(features, restored) == pytest.approx(0.0, abs=1e-5)

    def test_export_requires_normalization(self, ring_skeleton, tmp_path):
        features = FeatureExtractor().extract(ring_skeleton, normalize=False)
        with pytest.raises(ConfigurationError):
            features.export(tmp_path / "features.txt")

    def test_import_malformed(self, tmp_path):
        path = tmp_path / "features.txt"
        path.write_text("0.5\nnot-a-number\n")
        with pytest.raises(FormatError):
            FeatureSet.import_file(path)

    def test_import_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FeatureSet.import_file(tmp_path / "missing.txt")

    def test_imported_set_cannot_be_renormalized(self, feature_set_factory):
        with pytest.raises(ConfigurationError):
            feature_set_factory(0.1).normalize((10, 10))

    def test_rejects_non_binary(self):
        with pytest.raises(FormatError):
            FeatureExtractor().extract(np.full((5, 5), 7, dtype=np.uint8))
