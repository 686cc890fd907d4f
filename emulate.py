import sys

from dc_emulator.cli import main

if __name__ == "__main__":
    sys.exit(main())
