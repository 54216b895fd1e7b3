"""
Module execution entry point.

Allows running with: python -m zkpp_cli
"""

import sys
from zkpp_cli.main import main

if __name__ == "__main__":
    sys.exit(main())
