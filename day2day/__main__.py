"""Allow `python -m day2day`."""

import sys

from day2day.cli import main

sys.exit(main())
