"""Batch example: match one feature file against a folder of frames."""

import json
import cv2
from pathlib import Path
from orbmatch.core import FeatureProcessor
from orbmatch.io.feature_file import load_features
from orbmatch.utils.io_handler import save_image
from orbmatch.utils.logger import setup_logger


def main():
    """Match stored features against every frame."""
    logger = setup_logger('batch_matcher')
    
    processor = FeatureProcessor()
    features = load_features("test_data/features.json")
    
    frames_dir = Path("test_data/frames")
    frame_files = sorted(frames_dir.glob("*.jpg"))
    
    logger.info(f"Matching {len(features)} features against {len(frame_files)} frames...")
    
    results = []
    for i, frame_path in enumerate(frame_files):
        logger.info(f"Processing frame {i+1}/{len(frame_files)}: {frame_path.name}")
        
        image = cv2.imread(str(frame_path))
        if image is None:
            logger.warning(f"Could not load {frame_path}")
            continue
        
        result = processor.match(features, image)
        if "matching" in result:
            save_image(result["visualization"], f"output/matches/{frame_path.stem}.jpg")
            results.append({
                'frame_name': frame_path.name,
                'status': result['status'],
                'matches': result['matching']['matches'],
                'inliers': result['matching']['inliers']
            })
    
    Path("output").mkdir(exist_ok=True)
    with open("output/batch_results.json", 'w') as f:
        json.dump(results, f, indent=2)
    logger.info("Batch processing complete!")


if __name__ == "__main__":
    main()
