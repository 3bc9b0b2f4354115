"""
Golden-file assertions against product-specific reference directories.

Images (png/jpeg) are decoded with Pillow and compared pixel by pixel, so
two encodings of the same picture match. Everything else is compared
byte for byte. On mismatch the actual result, the expected result and,
for images, a diff image are written to the output directory.
"""

from __future__ import annotations

import io
import logging
import os
import shutil

from PIL import Image, ImageChops

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")


def _decode(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data)).convert("RGBA")


def _image_diff(actual: bytes, expected: bytes) -> tuple[str | None, Image.Image | None]:
    """Return (reason, diff image) for a mismatch, or (None, None) when equal."""
    actual_image = _decode(actual)
    expected_image = _decode(expected)

    if actual_image.size != expected_image.size:
        return (
            f"image size {actual_image.size} differs from golden size {expected_image.size}",
            None,
        )

    diff = ImageChops.difference(actual_image, expected_image)
    # Check each band; an RGBA getbbox() only looks at alpha
    boxes = [box for box in (band.getbbox() for band in diff.split()) if box]
    if not boxes:
        return None, None

    bbox = (
        min(box[0] for box in boxes),
        min(box[1] for box in boxes),
        max(box[2] for box in boxes),
        max(box[3] for box in boxes),
    )
    return f"pixels differ within {bbox}", diff.convert("RGB")


class GoldenComparator:
    def __init__(self, golden_dir: str, output_dir: str):
        self.golden_dir = golden_dir
        self.output_dir = output_dir

    @classmethod
    def for_product(cls, root: str, product_suffix: str) -> GoldenComparator:
        return cls(
            os.path.join(root, f"golden-{product_suffix}"),
            os.path.join(root, f"output-{product_suffix}"),
        )

    def clear_output(self):
        if os.path.exists(self.output_dir):
            shutil.rmtree(self.output_dir)
            logger.debug(f"Removed stale golden output at {self.output_dir}")

    def _output_path(self, name: str) -> str:
        path = os.path.join(self.output_dir, name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        return path

    def _write_output(self, name: str, data: bytes) -> str:
        path = self._output_path(name)
        with open(path, "wb") as f:
            f.write(data)
        return path

    def assert_golden(self, actual: bytes | str, name: str):
        if isinstance(actual, str):
            actual = actual.encode("utf-8")

        expected_path = os.path.join(self.golden_dir, name)
        if not os.path.exists(expected_path):
            actual_path = self._write_output(f"actual-{name}", actual)
            raise AssertionError(
                f"{expected_path} is missing in golden results. "
                f"Actual result written to {actual_path}"
            )

        with open(expected_path, "rb") as f:
            expected = f.read()

        diff_image = None
        if name.lower().endswith(IMAGE_EXTENSIONS):
            reason, diff_image = _image_diff(actual, expected)
        elif expected != actual:
            reason = f"{len(actual)} bytes vs {len(expected)} bytes"
        else:
            reason = None

        if reason is None:
            return

        actual_path = self._write_output(f"actual-{name}", actual)
        self._write_output(f"expected-{name}", expected)
        if diff_image is not None:
            diff_name = os.path.splitext(name)[0] + ".png"
            diff_image.save(self._output_path(f"diff-{diff_name}"))

        raise AssertionError(
            f"{name} does not match the golden result ({reason}). "
            f"Actual result written to {actual_path}"
        )
