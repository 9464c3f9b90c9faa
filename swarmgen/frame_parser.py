"""
FrameParser - Decodes backend messages into protocol events.
"""

import base64
import binascii
import json
import logging
import re
from typing import List, Optional, Tuple, Union

from .errors import ProtocolError
from .protocol_events import (
    ErrorEvent,
    FinalFrame,
    PreviewFrame,
    ProgressUpdate,
    ProtocolEvent,
    StatusUpdate,
)


BASE64_MARKER = 'base64,'
DATA_URI_PATTERN = re.compile(r'(data:[\w.+/-]*;base64,)[A-Za-z0-9+/=\s]*')


def redact_base64(text: str) -> str:
    """Replace base64 image data in a message with a short placeholder."""
    return DATA_URI_PATTERN.sub(r'\1[BASE64_DATA]', text)


def decode_data_uri(value: object) -> Tuple[Optional[str], bytes]:
    """
    Decode a MIME-tagged base64 string.
    
    Args:
        value: String such as 'data:image/png;base64,iVBOR...' or bare base64
        
    Returns:
        Tuple of (mime_type or None, decoded bytes)
    """
    if not isinstance(value, str) or not value.strip():
        raise ProtocolError("Image data is empty")
    
    mime_type = None
    marker = value.find(BASE64_MARKER)
    if marker != -1:
        prefix = value[:marker]
        if prefix.startswith('data:'):
            mime_type = prefix[len('data:'):].rstrip(';') or None
        value = value[marker + len(BASE64_MARKER):]
    
    try:
        return mime_type, base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ProtocolError(f"Invalid base64 image data: {e}") from e


class FrameParser:
    """
    Turns one logical message into zero or more protocol events.
    
    A message may carry several recognized keys at once (a progress
    object, a status object, an image and an error); one event is
    produced per key, in the order the keys appear. Unknown keys are
    ignored.
    """
    
    STATUS_FIELDS = ('waiting_gens', 'loading_models', 'waiting_backends', 'live_gens')
    
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
    
    def parse(self, raw: Union[str, bytes]) -> List[ProtocolEvent]:
        """
        Parse a raw message.
        
        Args:
            raw: Complete JSON message text (or UTF-8 bytes)
            
        Returns:
            Events in the order their keys appear in the message
        """
        try:
            if isinstance(raw, bytes):
                raw = raw.decode('utf-8')
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"Malformed message: {e}") from e
        
        if not isinstance(data, dict):
            raise ProtocolError(f"Expected a JSON object, got {type(data).__name__}")
        
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Received: {redact_base64(raw)}")
        
        events: List[ProtocolEvent] = []
        for key, value in data.items():
            if key == 'error':
                events.append(ErrorEvent(message=str(value)))
            elif key == 'image':
                events.append(self._final_frame(value, data))
            elif isinstance(value, dict) and 'preview' in value:
                events.append(self._preview_frame(value))
            elif key == 'gen_progress' and isinstance(value, dict):
                events.append(ProgressUpdate(
                    overall_percent=self._percent(value, 'overall_percent'),
                    current_percent=self._percent(value, 'current_percent'),
                ))
            elif key == 'status' and isinstance(value, dict):
                events.append(self._status(value))
        
        return events
    
    def _preview_frame(self, value: dict) -> PreviewFrame:
        mime_type, payload = decode_data_uri(value['preview'])
        return PreviewFrame(
            batch_index=self._batch_index(value),
            payload=payload,
            mime_type=mime_type,
            overall_percent=self._percent(value, 'overall_percent', required=False),
            current_percent=self._percent(value, 'current_percent', required=False),
        )
    
    def _final_frame(self, value: object, data: dict) -> FinalFrame:
        mime_type, payload = decode_data_uri(value)
        return FinalFrame(
            batch_index=self._batch_index(data),
            payload=payload,
            mime_type=mime_type,
        )
    
    def _status(self, value: dict) -> StatusUpdate:
        counts = {}
        for name in self.STATUS_FIELDS:
            try:
                counts[name] = int(value.get(name) or 0)
            except (TypeError, ValueError) as e:
                raise ProtocolError(f"Invalid status field {name}: {value.get(name)!r}") from e
        return StatusUpdate(fields=dict(value), **counts)
    
    @staticmethod
    def _batch_index(obj: dict) -> int:
        if 'batch_index' not in obj:
            raise ProtocolError("Image data without batch_index")
        value = obj['batch_index']
        if isinstance(value, bool):
            raise ProtocolError(f"Invalid batch_index: {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"Invalid batch_index: {value!r}") from e
    
    @staticmethod
    def _percent(obj: dict, key: str, required: bool = True) -> Optional[float]:
        if key not in obj or obj[key] is None:
            if required:
                raise ProtocolError(f"Progress data without {key}")
            return None
        try:
            return float(obj[key])
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"Invalid {key}: {obj[key]!r}") from e
