import sys

from kirimo._cli import main

sys.exit(main())
