"""Tests for StreamProgress and StreamStats classes."""

import time

import pytest
from PIL import Image

from swarmgen.batch_assembler import BatchResult
from swarmgen.frame_transcoder import AnimationFrame, FrameFormat
from swarmgen.protocol_events import StatusUpdate
from swarmgen.stream_progress import StreamProgress
from swarmgen.stream_stats import StreamStats


class TestStreamStats:
    """Tests for StreamStats class."""
    
    def test_defaults(self):
        """Test default initialization."""
        stats = StreamStats()
        
        assert stats.messages == 0
        assert stats.frames_dropped == 0
        assert stats.last_status is None
        assert stats.errors == 0
    
    def test_elapsed_and_rate(self):
        """Test elapsed time and message rate."""
        stats = StreamStats(messages=10, start_time=time.time() - 5)
        
        assert stats.elapsed_seconds >= 5
        assert 0 < stats.messages_per_second <= 2
    
    def test_errors_counts_details(self):
        """Test errors reflects recorded messages."""
        stats = StreamStats(error_details=['a', 'b'])
        
        assert stats.errors == 2


class TestStreamProgress:
    """Tests for StreamProgress class."""
    
    def test_init_defaults(self, logger):
        """Test default initialization."""
        progress = StreamProgress(logger=logger)
        
        assert progress.show_ticks is False
        assert progress.log_interval == 25
        assert isinstance(progress.stats, StreamStats)
    
    def test_on_message_logs_interval(self, logger, caplog):
        """Test a summary is logged every log_interval messages."""
        progress = StreamProgress(log_interval=3, logger=logger)
        
        with caplog.at_level('INFO', logger='test'):
            for _ in range(6):
                progress.on_message()
        
        assert progress.stats.messages == 6
        assert caplog.text.count('Progress:') == 2
        assert 'msg/s' in caplog.text
    
    def test_on_status(self, logger):
        """Test the latest status is kept."""
        progress = StreamProgress(logger=logger)
        status = StatusUpdate(waiting_gens=3, live_gens=1)
        
        progress.on_status(status)
        
        assert progress.stats.last_status is status
    
    def test_on_result_preview(self, logger, capsys):
        """Test preview composites are printed with their ETA."""
        progress = StreamProgress(logger=logger)
        
        progress.on_result(BatchResult(image=Image.new('RGB', (128, 96)), is_final=False, eta='00:01:05'))
        
        captured = capsys.readouterr()
        assert '[PREVIEW]' in captured.out
        assert '128x96' in captured.out
        assert '00:01:05' in captured.out
        assert progress.stats.preview_composites == 1
    
    def test_on_result_tick_hidden(self, logger, capsys):
        """Test empty ticks are counted but not printed by default."""
        progress = StreamProgress(logger=logger)
        
        progress.on_result(BatchResult(image=None, is_final=False))
        
        assert capsys.readouterr().out == ''
        assert progress.stats.preview_ticks == 1
        assert progress.stats.preview_composites == 0
    
    def test_on_result_tick_shown(self, logger, capsys):
        """Test show_ticks prints empty ticks."""
        progress = StreamProgress(show_ticks=True, logger=logger)
        
        progress.on_result(BatchResult(image=None, is_final=False))
        
        assert '[TICK]' in capsys.readouterr().out
    
    def test_on_result_final(self, logger, capsys):
        """Test final results are printed and counted."""
        progress = StreamProgress(logger=logger)
        
        progress.on_result(BatchResult(image='grid', is_final=True))
        
        assert '[FINAL] composite' in capsys.readouterr().out
        assert progress.stats.finals == 1
    
    def test_on_result_error(self, logger, capsys):
        """Test error results are printed and recorded."""
        progress = StreamProgress(logger=logger)
        
        progress.on_result(BatchResult(image=None, is_final=False, error='Model not found'))
        
        captured = capsys.readouterr()
        assert '[ERROR] Model not found' in captured.out
        assert progress.stats.error_details == ['Model not found']
        assert progress.stats.preview_ticks == 0
    
    def test_on_frame(self, logger, capsys):
        """Test animation frames are printed with size and format."""
        progress = StreamProgress(logger=logger)
        
        progress.on_frame(AnimationFrame(data=b'x' * 2048, is_final=False, eta='00:00:30',
                                         format=FrameFormat.GIF))
        progress.on_frame(AnimationFrame(data=b'x', is_final=True, eta='00:00:00',
                                         format=FrameFormat.GIF))
        
        captured = capsys.readouterr()
        assert '[FRAME] gif 2.0 KB' in captured.out
        assert '[FINAL] gif' in captured.out
        assert progress.stats.frames == 2
    
    def test_on_frame_error(self, logger, capsys):
        """Test error frames are recorded but not counted as frames."""
        progress = StreamProgress(logger=logger)
        
        progress.on_frame(AnimationFrame(data=b'', is_final=False, eta='', error='boom'))
        
        assert '[ERROR] boom' in capsys.readouterr().out
        assert progress.stats.frames == 0
        assert progress.stats.errors == 1
    
    def test_on_frame_dropped(self, logger, capsys):
        """Test dropped frames are printed and counted."""
        progress = StreamProgress(logger=logger)
        
        progress.on_frame_dropped(ValueError('unrecognized frame format'))
        
        assert '[DROPPED] unrecognized frame format' in capsys.readouterr().out
        assert progress.stats.frames_dropped == 1
    
    @pytest.mark.parametrize('value,expected', [
        (None, 'unknown'),
        (512, '512.0 B'),
        (1536, '1.5 KB'),
        (5 * 1024 * 1024, '5.0 MB'),
    ])
    def test_format_bytes(self, value, expected):
        """Test human-readable byte formatting."""
        assert StreamProgress._format_bytes(value) == expected
