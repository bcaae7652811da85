"""
FontSync - Module Entry Point

Allows running FontSync with `python -m fontsync`.
"""

import sys

from fontsync.main import main


if __name__ == '__main__':
    sys.exit(main())
