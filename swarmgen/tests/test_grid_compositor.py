"""Tests for compose_grid function."""

import pytest

from conftest import make_image_bytes
from swarmgen.errors import ProtocolError
from swarmgen.grid_compositor import compose_grid


class TestComposeGrid:
    """Tests for compose_grid function."""
    
    def test_full_grid(self):
        """Test four slots are laid out 2x2 in index order."""
        colors = {0: 'red', 1: 'lime', 2: 'blue', 3: 'white'}
        slots = {i: make_image_bytes('PNG', size=(10, 8), color=c) for i, c in colors.items()}
        
        grid = compose_grid(slots)
        
        assert grid.size == (20, 16)
        assert grid.getpixel((5, 4)) == (255, 0, 0)
        assert grid.getpixel((15, 4)) == (0, 255, 0)
        assert grid.getpixel((5, 12)) == (0, 0, 255)
        assert grid.getpixel((15, 12)) == (255, 255, 255)
    
    def test_missing_slots_left_blank(self):
        """Test a partial set still produces a full-size grid."""
        grid = compose_grid({3: make_image_bytes('PNG', size=(10, 8), color='white')})
        
        assert grid.size == (20, 16)
        assert grid.getpixel((5, 4)) == (0, 0, 0)
        assert grid.getpixel((15, 12)) == (255, 255, 255)
    
    def test_tiles_sized_to_largest_slot(self):
        """Test mixed slot sizes use the largest dimensions for every tile."""
        slots = {
            0: make_image_bytes('PNG', size=(10, 8)),
            1: make_image_bytes('JPEG', size=(16, 12)),
        }
        
        assert compose_grid(slots).size == (32, 24)
    
    def test_empty_slots(self):
        """Test composing nothing is an error."""
        with pytest.raises(ValueError):
            compose_grid({})
    
    def test_undecodable_slot(self):
        """Test garbage slot data raises ProtocolError."""
        with pytest.raises(ProtocolError):
            compose_grid({0: b'not an image'})
