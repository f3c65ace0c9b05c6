import sys

from calorie_snap.cli import main

sys.exit(main())
