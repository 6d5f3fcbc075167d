"""
Image export for rendered pixel buffers.

This module writes packed pixel buffers to PNG, JPEG or TIFF files with
Pillow, embedding the render parameters so a frame can be reproduced later.
"""

import numpy as np
from typing import Dict, Any, Iterable, Optional, Tuple, List
from pathlib import Path
from dataclasses import dataclass, asdict, field
import json
import logging
from datetime import datetime

from PIL import Image, PngImagePlugin

from .coloring import buffer_to_rgb_array

logger = logging.getLogger(__name__)

METADATA_KEY = "FractalMetadata"


@dataclass
class RenderMetadata:
    """Metadata for a rendered frame."""

    # View parameters
    fractal_type: str
    view: Dict[str, Any]
    resolution: Tuple[int, int]  # width, height

    # Rendering parameters
    fidelity: str
    effective_max_iterations: int
    max_iterations: int
    iteration_policy: str

    # Timing
    render_time_seconds: float

    # Generation info
    timestamp: str = ""
    software_version: str = ""

    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Set default timestamp and version if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()
        if not self.software_version:
            from .. import __version__
            self.software_version = __version__

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        """Create metadata from dictionary."""
        data = dict(data)
        data['resolution'] = tuple(data['resolution'])
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        """Create metadata from JSON string."""
        return cls.from_dict(json.loads(json_str))


class ImageExporter:
    """Image export with metadata support."""

    def __init__(self):
        """Initialize image exporter."""
        self.supported_formats = {
            '.png': self._save_png,
            '.tiff': self._save_tiff,
            '.tif': self._save_tiff,
            '.jpg': self._save_jpeg,
            '.jpeg': self._save_jpeg,
        }

    def save_buffer(self, buffer: np.ndarray, width: int, height: int, filepath: Path,
                    metadata: Optional[RenderMetadata] = None, quality: int = 95) -> Path:
        """
        Save a packed pixel buffer to an image file.

        Args:
            buffer: Packed ``uint32`` buffer of width*height cells
            width, height: Image resolution
            filepath: Output file path; the suffix selects the format
            metadata: Render metadata to embed
            quality: JPEG quality (1-100)

        Returns:
            Path of the written file
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        if suffix not in self.supported_formats:
            supported = ', '.join(self.supported_formats.keys())
            raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

        pil_image = Image.fromarray(buffer_to_rgb_array(buffer, width, height))

        filepath.parent.mkdir(parents=True, exist_ok=True)
        save_method = self.supported_formats[suffix]
        save_method(pil_image, filepath, metadata, quality)

        logger.info(f"Saved image: {filepath} ({pil_image.size[0]}x{pil_image.size[1]})")
        return filepath

    def _save_png(self, pil_image: Image.Image, filepath: Path,
                  metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as PNG with metadata text chunks."""
        pnginfo = PngImagePlugin.PngInfo()

        if metadata:
            pnginfo.add_text("Title", f"Fractal: {metadata.fractal_type}")
            pnginfo.add_text("Software", f"fractal-explorer v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_text(METADATA_KEY, metadata.to_json())

        pil_image.save(filepath, "PNG", pnginfo=pnginfo, compress_level=6)

    def _save_tiff(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as TIFF; metadata goes into the ImageDescription tag."""
        save_kwargs = {'format': 'TIFF', 'compression': 'tiff_lzw'}
        if metadata:
            save_kwargs['description'] = metadata.to_json()
        pil_image.save(filepath, **save_kwargs)

    def _save_jpeg(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as JPEG with a companion JSON metadata file."""
        pil_image.save(filepath, "JPEG", quality=quality, optimize=True)

        if metadata:
            json_path = filepath.with_suffix('.json')
            with open(json_path, 'w') as f:
                f.write(metadata.to_json())
            logger.info(f"Saved metadata: {json_path}")

    def create_image_sequence(self, frames: Iterable[Tuple[np.ndarray, Optional[RenderMetadata]]],
                              width: int, height: int, output_dir: Path,
                              base_name: str = "frame", format: str = "png",
                              padding: int = 6) -> List[Path]:
        """
        Save a sequence of buffers with sequential numbering.

        Frames are consumed one at a time, so a generator that renders into a
        single reused buffer keeps memory flat for long sequences.

        Args:
            frames: Iterable of (packed buffer, metadata or None)
            width, height: Resolution shared by every frame
            output_dir: Output directory
            base_name: Base filename
            format: Image format
            padding: Number of digits for frame numbering

        Returns:
            List of saved file paths
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        saved_paths = []
        for i, (buffer, metadata) in enumerate(frames):
            filepath = output_dir / f"{base_name}_{str(i).zfill(padding)}.{format}"
            saved_paths.append(self.save_buffer(buffer, width, height, filepath, metadata))

        logger.info(f"Saved {len(saved_paths)} images to {output_dir}")
        return saved_paths

    def extract_metadata_from_image(self, filepath: Path) -> Optional[RenderMetadata]:
        """Read embedded metadata back from a PNG written by :meth:`save_buffer`."""
        with Image.open(filepath) as img:
            text = getattr(img, 'text', {}) or img.info
            payload = text.get(METADATA_KEY)
        if payload is None:
            return None
        return RenderMetadata.from_json(payload)
