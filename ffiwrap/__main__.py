import sys

from ffiwrap.cli import main

sys.exit(main())
