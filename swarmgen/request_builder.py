"""
RequestBuilder - Assembles the outbound generation request.
"""

import logging
from typing import Dict, Mapping, Optional, Union


OptionValue = Union[str, int, float, bool, None]


class RequestBuilder:
    """
    Merges caller options with a session token.
    
    The caller's mapping is copied, never modified. Options whose value
    is unset (None) are removed because the backend rejects null fields.
    """
    
    SESSION_KEY = 'session_id'
    
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
    
    def build(self, options: Mapping[str, OptionValue], token: str) -> Dict[str, OptionValue]:
        """
        Build a request ready for transmission.
        
        Args:
            options: Generation options (text, number, boolean or None values)
            token: Session token for this call
            
        Returns:
            New dict containing the set options plus the session token
            
        Raises:
            TypeError: If an option name is not a string or a value is not
                text, number, boolean or None
        """
        request: Dict[str, OptionValue] = {}
        for name, value in options.items():
            if not isinstance(name, str):
                raise TypeError(f"Option names must be strings, got {name!r}")
            if value is not None and not isinstance(value, (str, int, float, bool)):
                raise TypeError(
                    f"Option {name!r} must be text, number or boolean, "
                    f"got {type(value).__name__}"
                )
            request[name] = value
        
        request[self.SESSION_KEY] = token
        
        dropped = [name for name, value in request.items() if value is None]
        for name in dropped:
            del request[name]
        if dropped:
            self.logger.debug(f"Dropped unset options: {', '.join(sorted(dropped))}")
        
        return request
