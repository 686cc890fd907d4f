import sys

from dc_emulator.cli import main

sys.exit(main())
