import sys

from tokenfs.cli import main

sys.exit(main())
