import sys

from sentinel_locker.cli.main import main

sys.exit(main())
