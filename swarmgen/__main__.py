"""
Main entry point for running the package as a module.

Usage:
    python -m swarmgen session
    python -m swarmgen generate --prompt "a lighthouse at dusk"
    python -m swarmgen animate --init-image start.png
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
