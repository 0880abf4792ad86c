"""Photo acquisition from a camera or an image file."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .errors import ValidationError
from .models import EmbeddedPhoto


@dataclass
class CameraCapture:
    camera_index: int
    image_path: str
    captured_at: str  # ISO8601


def load_photo(path: str | Path) -> EmbeddedPhoto:
    """Read an image file into an embedded photo.

    Raises:
        ValidationError: If the file is missing or not an image.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ValidationError(f"Photo file not found: {path}")
    media_type = mimetypes.guess_type(str(path))[0] or "image/jpeg"
    if not media_type.startswith("image/"):
        raise ValidationError(f"Not an image file: {path} ({media_type})")
    return EmbeddedPhoto.from_bytes(path.read_bytes(), media_type)


class ScanCamera:
    """Capture photos of waste containers from an attached camera."""

    def __init__(self, camera_index: int = 0, save_dir: str = "/tmp/wastescan") -> None:
        self._camera_index = camera_index
        self._save_dir = Path(save_dir)
        self._save_dir.mkdir(parents=True, exist_ok=True)

    def capture(self, camera_index: int | None = None) -> CameraCapture:
        """Capture a single frame and save it as a JPEG file."""
        try:
            import cv2
        except ImportError:
            raise ImportError(
                "opencv-python is required: pip install opencv-python"
            ) from None

        index = self._camera_index if camera_index is None else camera_index
        cap = cv2.VideoCapture(index)
        if not cap.isOpened():
            raise RuntimeError(
                f"Could not open camera {index}. Check that it is connected."
            )

        try:
            ret, frame = cap.read()
            if not ret or frame is None:
                raise RuntimeError(f"Could not read a frame from camera {index}.")

            now = datetime.now(timezone.utc)
            timestamp = now.strftime("%Y%m%d_%H%M%S")
            filepath = self._save_dir / f"scan{index}_{timestamp}.jpg"

            cv2.imwrite(str(filepath), frame)

            return CameraCapture(
                camera_index=index,
                image_path=str(filepath),
                captured_at=now.isoformat(),
            )
        finally:
            cap.release()

    def capture_photo(self, camera_index: int | None = None) -> EmbeddedPhoto:
        """Capture a frame and return it as an embedded photo."""
        capture = self.capture(camera_index)
        return load_photo(capture.image_path)

    @staticmethod
    def list_cameras(max_check: int = 10) -> list[int]:
        """List available camera indices by probing."""
        try:
            import cv2
        except ImportError:
            raise ImportError(
                "opencv-python is required: pip install opencv-python"
            ) from None

        available: list[int] = []
        for i in range(max_check):
            cap = cv2.VideoCapture(i)
            if cap.isOpened():
                available.append(i)
                cap.release()
        return available
