"""
Module execution entry point.

Allows running with: python -m divtokens_cli
"""

import sys
from divtokens_cli.main import main

if __name__ == "__main__":
    sys.exit(main())
