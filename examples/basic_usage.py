"""Basic usage example for orbmatch."""

import cv2
from orbmatch.coordinates.crop import CropRect
from orbmatch.session import Session
from orbmatch.utils.io_handler import save_image
from orbmatch.utils.visualization import draw_stats, format_stats


def main():
    """Detect features in a region of Image A and match them to Image B."""
    image_a = cv2.imread("test_data/frames/image_a.jpg")
    image_b = cv2.imread("test_data/frames/image_b.jpg")
    
    if image_a is None or image_b is None:
        print("Error: Could not load test_data/frames/image_a.jpg and image_b.jpg")
        return
    
    session = Session()
    
    # Detect inside the central half of Image A
    h, w = image_a.shape[:2]
    session.load_image_a(image_a, CropRect(w // 4, h // 4, w // 2, h // 2))
    print("Detecting features...")
    features = session.detect()
    print(f"Detected {len(features)} keypoints")
    
    session.load_image_b(image_b)
    print("Matching...")
    result = session.match()
    for line in format_stats(result, image_b.shape[1], image_b.shape[0]):
        print(line)
    
    output = draw_stats(session.render(), format_stats(result, image_b.shape[1], image_b.shape[0]))
    output_path = "output/basic_matches.jpg"
    save_image(output, output_path)
    print(f"Results saved to {output_path}")


if __name__ == "__main__":
    main()
