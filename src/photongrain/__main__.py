import sys

from photongrain.cli import main

sys.exit(main())
