import sys

from debasar.cli import main

sys.exit(main())
