"""Allow running the package as a module: python -m liquid_staking"""

import sys

from liquid_staking.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
