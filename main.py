import sys

from scrobblefm.main import main

sys.exit(main())
