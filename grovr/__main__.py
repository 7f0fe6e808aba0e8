import sys

from grovr.cli import main

sys.exit(main())
