"""Allow ``python -m stackforge``."""

import sys

from stackforge.cli import main

if __name__ == "__main__":
    sys.exit(main())
