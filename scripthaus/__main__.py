import sys

from scripthaus.cli import main

sys.exit(main())
