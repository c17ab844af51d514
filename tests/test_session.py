"""Tests for the interactive session state machine."""

import pytest
import numpy as np
from orbmatch.coordinates.crop import CropRect
from orbmatch.errors import InvalidFormat, InvalidState
from orbmatch.session import Session, SessionState

from conftest import SHIFT, make_textured_image


class TestSessionState:
    """Test state transitions."""
    
    def test_initial_state(self):
        """Test a fresh session."""
        session = Session()
        assert session.state == SessionState.IDLE
        assert not session.can_detect
        assert not session.can_export
        assert not session.can_match
    
    def test_detect_requires_image_a(self):
        """Test detect before loading Image A."""
        with pytest.raises(InvalidState):
            Session().detect()
    
    def test_match_requires_features_and_image_b(self, textured_image):
        """Test match before its inputs are loaded."""
        session = Session()
        session.load_image_b(textured_image)
        with pytest.raises(InvalidState):
            session.match()
        assert session.state == SessionState.IDLE
    
    def test_export_requires_features(self, textured_image):
        """Test export before detection."""
        session = Session()
        session.load_image_a(textured_image)
        with pytest.raises(InvalidState):
            session.export()
    
    def test_render_requires_match(self):
        """Test render before matching."""
        with pytest.raises(InvalidState):
            Session().render()
    
    def test_full_workflow(self, textured_image, shifted_image):
        """Test IDLE -> ... -> MATCHED."""
        session = Session()
        session.load_image_a(textured_image)
        assert session.state == SessionState.IMAGE_A_LOADED
        
        detection = session.detect()
        assert len(detection) > 0
        assert session.state == SessionState.DETECTED
        assert session.can_export
        
        session.load_image_b(shifted_image)
        assert session.state == SessionState.IMAGE_B_LOADED
        
        result = session.match()
        assert session.state == SessionState.MATCHED
        assert result.homography is not None
        
        vis = session.render()
        assert vis.shape == (480, 1280, 3)
    
    def test_new_image_a_resets(self, textured_image, shifted_image):
        """Test that loading Image A discards detections and matches."""
        session = Session()
        session.load_image_a(textured_image)
        session.detect()
        session.load_image_b(shifted_image)
        session.match()
        
        session.load_image_a(shifted_image)
        assert session.state == SessionState.IMAGE_A_LOADED
        assert session.features is None
        assert session.match_result is None
    
    def test_new_image_b_drops_match(self, textured_image, shifted_image):
        """Test that loading Image B discards the last match."""
        session = Session()
        session.load_image_a(textured_image)
        session.detect()
        session.load_image_b(shifted_image)
        session.match()
        session.load_image_b(textured_image)
        assert session.state == SessionState.IMAGE_B_LOADED
    
    def test_failed_import_keeps_state(self, textured_image):
        """Test that a rejected document leaves the session untouched."""
        session = Session()
        session.load_image_a(textured_image)
        features = session.detect()
        
        with pytest.raises(InvalidFormat):
            session.load_features({"type": "AKAZE"})
        assert session.features is features
        assert session.state == SessionState.DETECTED
    
    def test_imported_features_replace_image_a(self, textured_image, shifted_image):
        """Test that imported features drop Image A, its crop and the old target."""
        session = Session()
        session.load_image_a(textured_image, CropRect(50, 50, 300, 200))
        session.detect()
        session.load_image_b(shifted_image)
        session.match()
        assert session.target is not None
        
        other = Session()
        other.load_image_a(make_textured_image(seed=3, height=240, width=320))
        other.detect()
        session.load_features(other.export())
        
        assert session.image_a is None
        assert session.crop_a is None
        assert session.target is None
        assert session.match_result is None
        assert session.state == SessionState.IMAGE_B_LOADED
        with pytest.raises(InvalidState):
            session.render_keypoints()
    
    def test_render_uses_imported_image_size(self, textured_image, shifted_image):
        """Test that the left panel has the size recorded in the feature file."""
        small = Session()
        small.load_image_a(make_textured_image(seed=3, height=240, width=320))
        small.detect()
        doc = small.export()
        
        session = Session()
        session.load_image_a(textured_image)
        session.detect()
        session.load_features(doc)
        session.load_image_b(shifted_image)
        session.match()
        
        vis = session.render()
        assert vis.shape == (480, 320 + 640, 3)


class TestSessionMatching:
    """Test matching through a session."""
    
    def test_features_from_file_without_image_a(self, textured_image, shifted_image):
        """Test matching imported features when Image A is not loaded."""
        first = Session()
        first.load_image_a(textured_image, CropRect(100, 80, 400, 300))
        first.detect()
        doc = first.export()
        
        second = Session()
        second.load_features(doc)
        assert second.state == SessionState.DETECTED
        second.load_image_b(shifted_image)
        result = second.match()
        
        assert result.homography is not None
        mapped = result.homography @ np.array([300.0, 230.0, 1.0])
        mapped = mapped[:2] / mapped[2]
        np.testing.assert_allclose(mapped, [300 + SHIFT[0], 230 + SHIFT[1]], atol=3.0)
        
        vis = second.render()
        assert vis.shape == (480, 1280, 3)
    
    def test_crop_on_image_b(self, textured_image, shifted_image):
        """Test that target keypoints stay in full-image coordinates."""
        session = Session()
        session.load_image_a(textured_image)
        session.detect()
        session.load_image_b(shifted_image, CropRect(150, 100, 350, 300))
        result = session.match()
        
        points = session.target.points
        assert np.all(points[:, 0] >= 150)
        assert np.all(points[:, 1] >= 100)
        assert result.homography is not None
        mapped = result.homography @ np.array([320.0, 240.0, 1.0])
        np.testing.assert_allclose(mapped[:2] / mapped[2], [350, 260], atol=3.0)
    
    def test_render_keypoints(self, textured_image):
        """Test drawing detected keypoints on Image A."""
        session = Session()
        session.load_image_a(textured_image)
        session.detect()
        assert session.render_keypoints().shape == textured_image.shape
    
    def test_ratio_override(self, textured_image, shifted_image):
        """Test a stricter ratio gives no more matches."""
        session = Session()
        session.load_image_a(textured_image)
        session.detect()
        session.load_image_b(shifted_image)
        loose = len(session.match(ratio=0.8))
        strict = len(session.match(ratio=0.5))
        assert strict <= loose
