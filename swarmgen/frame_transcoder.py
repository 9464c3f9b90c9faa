"""
FrameTranscoder - Classifies and re-encodes decoded animation frames.
"""

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from PIL import Image, ImageSequence

from .errors import BackendError, TranscodeError


SNIFF_LENGTH = 12


class FrameFormat(Enum):
    GIF = 'gif'
    JPEG = 'jpeg'
    WEBP = 'webp'
    UNKNOWN = 'unknown'


def sniff_format(data: bytes) -> FrameFormat:
    """
    Classify a frame by the magic bytes in its first 12 bytes.
    
    Args:
        data: Decoded frame bytes (only the prefix is inspected)
        
    Returns:
        Detected format, UNKNOWN if no signature matches
    """
    header = bytes(data[:SNIFF_LENGTH])
    if len(header) < SNIFF_LENGTH:
        return FrameFormat.UNKNOWN
    if header[:3] == b'GIF':
        return FrameFormat.GIF
    if header[:2] == b'\xff\xd8':
        return FrameFormat.JPEG
    if header[8:12] == b'WEBP':
        return FrameFormat.WEBP
    return FrameFormat.UNKNOWN


@dataclass
class TranscodedFrame:
    """
    Frame ready for delivery.
    
    Attributes:
        format: Format of `data` (GIF or JPEG)
        data: Encoded bytes
        source_format: Format the frame arrived in
    """
    format: FrameFormat
    data: bytes
    source_format: FrameFormat
    
    CONTENT_TYPES = {
        FrameFormat.GIF: 'image/gif',
        FrameFormat.JPEG: 'image/jpeg',
    }
    
    @property
    def content_type(self) -> str:
        return self.CONTENT_TYPES.get(self.format, 'application/octet-stream')
    
    @property
    def extension(self) -> str:
        return self.format.value


class FrameTranscoder:
    """
    Prepares animation frames for delivery using Pillow.
    
    GIF frames pass through untouched, JPEG frames are resized to a fixed
    canvas, and (possibly animated) WebP frames are upscaled and
    re-encoded as GIF with a global web-safe palette.
    """
    
    def __init__(
        self,
        jpeg_size: Tuple[int, int] = (1024, 768),
        webp_scale: int = 3,
        quality: int = 85,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize transcoder.
        
        Args:
            jpeg_size: Canvas JPEG frames are resized to (width, height)
            webp_scale: Factor applied to both WebP dimensions
            quality: JPEG quality for re-encoded frames
            logger: Optional logger instance
        """
        self.jpeg_size = jpeg_size
        self.webp_scale = webp_scale
        self.quality = quality
        self.logger = logger or logging.getLogger(__name__)
    
    def transcode(self, data: bytes) -> TranscodedFrame:
        """
        Sniff a frame and re-encode it if its format requires.
        
        Args:
            data: Decoded frame bytes
            
        Returns:
            TranscodedFrame with the delivery format and bytes
            
        Raises:
            TranscodeError: If the format is unknown or re-encoding fails
        """
        source = sniff_format(data)
        
        if source == FrameFormat.GIF:
            return TranscodedFrame(FrameFormat.GIF, data, source)
        if source == FrameFormat.JPEG:
            return TranscodedFrame(FrameFormat.JPEG, self._resize_jpeg(data), source)
        if source == FrameFormat.WEBP:
            return TranscodedFrame(FrameFormat.GIF, self._webp_to_gif(data), source)
        
        raise TranscodeError(f"Unrecognized frame format (header {bytes(data[:SNIFF_LENGTH])!r})")
    
    def _resize_jpeg(self, data: bytes) -> bytes:
        try:
            img = Image.open(io.BytesIO(data))
            img = self._convert_color_mode(img)
            img = img.resize(self.jpeg_size, Image.Resampling.LANCZOS)
            
            output = io.BytesIO()
            img.save(output, format='JPEG', quality=self.quality)
            return output.getvalue()
        except (OSError, ValueError) as e:
            raise TranscodeError(f"JPEG resize failed: {e}") from e
    
    def _webp_to_gif(self, data: bytes) -> bytes:
        try:
            img = Image.open(io.BytesIO(data))
            frames: List[Image.Image] = []
            durations: List[int] = []
            
            for frame in ImageSequence.Iterator(img):
                size = (frame.width * self.webp_scale, frame.height * self.webp_scale)
                rgb = self._convert_color_mode(frame.copy()).resize(size, Image.Resampling.LANCZOS)
                # Same fixed palette on every frame so the GIF needs only the global table
                frames.append(rgb.convert('P', palette=Image.Palette.WEB))
                durations.append(frame.info.get('duration') or 100)
            
            output = io.BytesIO()
            # Passing the shared palette keeps Pillow from writing local color tables
            frames[0].save(
                output,
                format='GIF',
                save_all=True,
                append_images=frames[1:],
                duration=durations,
                loop=0,
                optimize=False,
                palette=frames[0].getpalette(),
            )
            self.logger.debug(f"WebP -> GIF: {len(frames)} frame(s) at {frames[0].size}")
            return output.getvalue()
        except (OSError, ValueError, EOFError) as e:
            raise TranscodeError(f"WebP to GIF conversion failed: {e}") from e
    
    def _convert_color_mode(self, img: Image.Image) -> Image.Image:
        """Flatten transparency onto white and convert to RGB."""
        if img.mode in ('RGBA', 'LA', 'P'):
            img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode != 'RGB':
            return img.convert('RGB')
        return img


@dataclass
class AnimationFrame:
    """
    One element of the animation sequence.
    
    Attributes:
        data: Encoded frame bytes (empty for an error result)
        is_final: True for the completed animation
        eta: Estimated time remaining as hh:mm:ss
        format: Format of `data`
        error: Backend error message when the generation failed
    """
    data: bytes
    is_final: bool
    eta: str
    format: Optional[FrameFormat] = None
    error: Optional[str] = None
    
    @property
    def content_type(self) -> str:
        return TranscodedFrame.CONTENT_TYPES.get(self.format, 'application/octet-stream')
    
    @property
    def extension(self) -> str:
        return self.format.value if self.format else 'bin'
    
    def raise_for_error(self) -> None:
        """Raise BackendError if this frame reports a backend failure."""
        if self.error is not None:
            raise BackendError(self.error)
