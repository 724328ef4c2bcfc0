import sys

from sptiff._cli import main

sys.exit(main())
