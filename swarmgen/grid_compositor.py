"""
Default compositor: lays the four batch slots out as a 2x2 grid.
"""

import io
import math
from typing import Dict, Mapping, Tuple

from PIL import Image

from .batch_assembler import SLOT_COUNT
from .errors import ProtocolError


def compose_grid(
    slots: Mapping[int, bytes],
    columns: int = 2,
    background: Tuple[int, int, int] = (0, 0, 0)
) -> Image.Image:
    """
    Compose slot images into one grid image.
    
    Slots are placed row-major by batch index on tiles sized to the
    largest slot image. Missing slots are left as background.
    
    Args:
        slots: Encoded image bytes keyed by batch index
        columns: Tiles per row
        background: RGB fill for empty tiles
        
    Returns:
        RGB grid image
    """
    if not slots:
        raise ValueError("No slots to compose")
    
    images: Dict[int, Image.Image] = {}
    for index, payload in slots.items():
        try:
            img = Image.open(io.BytesIO(payload))
            img.load()
        except (OSError, ValueError) as e:
            raise ProtocolError(f"Slot {index} is not a decodable image: {e}") from e
        images[index] = img.convert('RGB')
    
    tile_width = max(img.width for img in images.values())
    tile_height = max(img.height for img in images.values())
    rows = math.ceil(SLOT_COUNT / columns)
    
    canvas = Image.new('RGB', (tile_width * columns, tile_height * rows), background)
    for index, img in images.items():
        row, col = divmod(index, columns)
        canvas.paste(img, (col * tile_width, row * tile_height))
    
    return canvas
